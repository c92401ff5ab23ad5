"""
Shared utilities for the Holex flower scraper.
Centralizes logging, text cleanup, URL handling and the error hierarchy.
"""

import os
import re
import logging
import time
from functools import wraps
from logging.handlers import RotatingFileHandler
from typing import Optional, Type


LOGGER_NAME = "holex_scraper"
NOT_AVAILABLE = "N/A"

# UTF-8 euro sign decoded as cp1252
MISENCODED_EURO = "â‚¬"
NON_PRINTABLE_RE = re.compile(r"[^\x20-\x7E€$]")
ABSOLUTE_URL_RE = re.compile(r"^https?://", re.IGNORECASE)


def setup_logging(log_path: str = "scraper.log", name: str = LOGGER_NAME) -> logging.Logger:
    """
    Set up logging configuration for the scraper.

    Args:
        log_path: File the rotating handler appends to
        name: Name of the root scraper logger

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)

    # Already configured in this process
    if logger.handlers:
        return logger

    log_dir = os.path.dirname(os.path.abspath(log_path))
    os.makedirs(log_dir, exist_ok=True)

    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    console_formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s'
    )

    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=10485760,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(file_formatter)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    logger.info(f"Logging configured. Saving logs to: {log_path}")
    return logger


def retry_on_failure(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    error_class: Optional[Type[Exception]] = None
):
    """
    Decorator to retry a function on failure with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts
        delay: Initial delay between retries in seconds
        backoff: Multiplier for delay after each retry
        error_class: If given, the last failure is re-raised wrapped in this type
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            last_exception = None
            current_delay = delay

            for attempt in range(max_attempts):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    last_exception = e
                    if attempt < max_attempts - 1:
                        logging.getLogger(LOGGER_NAME).warning(
                            f"{func.__name__} failed (attempt {attempt + 1}/{max_attempts}): {e}"
                        )
                        time.sleep(current_delay)
                        current_delay *= backoff

            if error_class is not None:
                raise error_class(f"{func.__name__} failed: {last_exception}") from last_exception
            raise last_exception
        return wrapper
    return decorator


def sanitize(text: Optional[str]) -> str:
    """
    Clean scraped text for the spreadsheet.

    Repairs the mis-decoded euro sign, drops everything outside printable
    ASCII (keeping the euro and dollar signs) and trims the result.

    Args:
        text: Raw text, may be None

    Returns:
        Cleaned text, or "N/A" when the input is empty
    """
    if not text:
        return NOT_AVAILABLE

    text = str(text).replace(MISENCODED_EURO, "€")
    return NON_PRINTABLE_RE.sub("", text).strip()


def clean_quantity(text: Optional[str]) -> str:
    """Strip the leading "x " marker from a tier quantity label."""
    if not text:
        return NOT_AVAILABLE
    return re.sub(r"^x\s*", "", text).strip()


def make_absolute_url(url: str, base_url: str) -> str:
    """
    Convert relative URL to absolute URL.

    Args:
        url: URL to convert (may be relative or absolute)
        base_url: Base URL for relative URLs

    Returns:
        Absolute URL with exactly one slash at the join point
    """
    if not url:
        return ""

    url = url.strip()
    if ABSOLUTE_URL_RE.match(url):
        return url

    return base_url.rstrip("/") + "/" + url.lstrip("/")


class ScraperError(Exception):
    """Base exception for scraper errors"""
    pass


class ConfigError(ScraperError):
    """Exception raised when required configuration is missing or malformed"""
    pass


class LoginError(ScraperError):
    """Exception raised when login fails"""
    pass


class SheetsError(ScraperError):
    """Exception raised when a spreadsheet call fails"""
    pass
