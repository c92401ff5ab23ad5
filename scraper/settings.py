"""
Run configuration for the Holex flower scraper.

Settings are read from the environment (and a .env file) once at process
start and handed to every component; nothing else reads os.environ.
"""

import os
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

from scraper_utils import ConfigError


PRODUCT_BASE_URL = "https://shop.holex.com"
FLOWERS_PATH = "/en_US/All-products/Flowers/c/Flowers"

REQUIRED_KEYS = (
    "SPREADSHEET_ID",
    "SHEET_NAME",
    "CREDENTIALS_PATH",
    "HOLEX_USERNAME",
    "HOLEX_PASSWORD",
    "LOGIN_URL",
    "ANTHURIUM_BASE_URL",
)


@dataclass(frozen=True)
class ScrapingConfig:
    """Timing knobs for the browser session, all in milliseconds."""
    page_timeout: int = 90000
    login_settle: int = 5000
    page_settle: int = 3000
    next_page_settle: int = 12000
    scroll_pause: int = 1500
    max_scrolls: int = 20
    calendar_step: int = 500
    click_timeout: int = 5000
    calendar_timeout: int = 5000
    confirm_timeout: int = 3000
    confirm_settle: int = 2000


@dataclass(frozen=True)
class HolexSettings:
    spreadsheet_id: str
    sheet_name: str
    credentials_path: str
    username: str
    password: str
    login_url: str
    base_url: str
    urls: Tuple[str, ...] = ()
    log_path: str = "scraper.log"
    headless: bool = True
    verify_login: bool = True
    config_sheet: str = "_config"
    packing_date_cell: str = "C5"
    status_cell: str = "F5"
    product_base_url: str = PRODUCT_BASE_URL
    flowers_path: str = FLOWERS_PATH
    timing: ScrapingConfig = field(default_factory=ScrapingConfig)

    @property
    def flowers_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.flowers_path}"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "HolexSettings":
        """
        Build settings from environment variables.

        Args:
            env: Mapping to read instead of os.environ (no .env loading then)

        Returns:
            HolexSettings instance

        Raises:
            ConfigError: if any required key is missing
        """
        if env is None:
            load_dotenv()
            env = os.environ

        missing = [key for key in REQUIRED_KEYS if not env.get(key, "").strip()]
        if missing:
            raise ConfigError(f"Missing required settings: {', '.join(missing)}")

        return cls(
            spreadsheet_id=env["SPREADSHEET_ID"].strip(),
            sheet_name=env["SHEET_NAME"].strip(),
            credentials_path=env["CREDENTIALS_PATH"].strip(),
            username=env["HOLEX_USERNAME"],
            password=env["HOLEX_PASSWORD"],
            login_url=env["LOGIN_URL"].strip(),
            base_url=env["ANTHURIUM_BASE_URL"].strip(),
            urls=parse_url_list(env.get("URLS", "")),
            log_path=env.get("LOG_PATH") or "scraper.log",
            headless=env.get("HEADLESS", "true").strip().lower() in ("1", "true", "yes", "y"),
        )

    def with_overrides(self, **changes) -> "HolexSettings":
        return replace(self, **changes)


def parse_url_list(raw: str) -> Tuple[str, ...]:
    """Split a comma separated URL list, dropping blanks."""
    return tuple(url.strip() for url in (raw or "").split(",") if url.strip())
