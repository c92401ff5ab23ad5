"""
Abstract base classes for browser-driven scrapers.
Provides the browser session, popup handling, lazy-load scrolling and the
pagination loop shared by concrete site scrapers.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional
import logging

from playwright.sync_api import sync_playwright, Page, Browser, BrowserContext, Playwright

from scraper_utils import LOGGER_NAME
from settings import ScrapingConfig


POPUP_CLOSE = '#cboxClose, .fancybox-close, .popup-close, .modal-close, .close-popup'
SCROLL_HEIGHT_JS = "() => document.body.scrollHeight"
SCROLL_BY_VIEWPORT_JS = "() => window.scrollBy(0, window.innerHeight)"


class BaseScraper(ABC):
    """Abstract base class for all product scrapers."""

    def __init__(
        self,
        supplier_name: str,
        source_site: str,
        headless: bool = True,
        timing: Optional[ScrapingConfig] = None
    ):
        """
        Initialize the base scraper.

        Args:
            supplier_name: Name of the supplier (used for logging)
            source_site: Base URL of the source website
            headless: Whether to run browser in headless mode
            timing: Delays and timeouts for page interactions
        """
        self.supplier_name = supplier_name
        self.source_site = source_site
        self.headless = headless
        self.timing = timing or ScrapingConfig()

        self.logger = logging.getLogger(f"{LOGGER_NAME}.{supplier_name}")

        # Browser components (initialized in open_browser)
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    def __enter__(self):
        """Context manager entry - open the browser session."""
        self.open_browser()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - cleanup browser."""
        self.close_browser()

    def open_browser(self) -> None:
        """Start Playwright and open a single page."""
        self.playwright = sync_playwright().start()
        self.browser = self.playwright.chromium.launch(headless=self.headless)
        self.context = self.browser.new_context(
            user_agent=self.get_user_agent(),
            java_script_enabled=True,
            accept_downloads=False,
        )
        self.page = self.context.new_page()
        self.page.set_default_timeout(self.timing.page_timeout)
        self.logger.info(f"Browser started (headless={self.headless}).")

    def close_browser(self) -> None:
        """Release the browser session. Safe to call more than once."""
        if self.browser:
            self.browser.close()
            self.browser = None
            self.logger.info("Browser closed.")
        if self.playwright:
            self.playwright.stop()
            self.playwright = None
        self.context = None
        self.page = None

    def get_user_agent(self) -> str:
        """Get user agent string for browser."""
        return "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"

    @abstractmethod
    def login(self) -> None:
        """Authenticate the browser session."""
        pass

    def goto(self, url: str, settle_ms: int = 0) -> None:
        """Load a page and give client-side scripts time to settle."""
        self.page.goto(url, wait_until="domcontentloaded")
        if settle_ms:
            self.page.wait_for_timeout(settle_ms)

    def close_popup(self) -> None:
        close_button = self.page.query_selector(POPUP_CLOSE)
        if close_button:
            close_button.click()
            self.logger.info("Closed popup.")

    def auto_scroll(self) -> None:
        """
        Scroll one viewport at a time until the page height stops growing,
        so lazily loaded cards are rendered before extraction.
        """
        previous_height = self.page.evaluate(SCROLL_HEIGHT_JS)
        for _ in range(self.timing.max_scrolls):
            self.page.evaluate(SCROLL_BY_VIEWPORT_JS)
            self.page.wait_for_timeout(self.timing.scroll_pause)
            new_height = self.page.evaluate(SCROLL_HEIGHT_JS)
            if new_height == previous_height:
                break
            previous_height = new_height
        self.logger.info("Scrolling complete.")


class PageNavigationScraper(BaseScraper):
    """
    Base class for scrapers that walk paginated listing pages.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.pages_crawled = 0

    @abstractmethod
    def extract_products(self) -> List[Any]:
        """
        Extract the products rendered on the current listing page.

        Returns:
            List of product records in DOM order
        """
        pass

    def get_next_page_url(self) -> Optional[str]:
        """
        Get the URL of the next page, if any.
        Override this method to implement pagination.

        Returns:
            Next page URL or None if no more pages
        """
        return None

    def crawl_all(self) -> List[Any]:
        """
        Scrape the current listing page and every page after it.

        Returns:
            Records of all pages, in page order then DOM order
        """
        all_products = []
        page_num = 1

        while True:
            self.logger.info(f"Scraping page {page_num}...")
            self.auto_scroll()
            products = self.extract_products()
            all_products.extend(products)

            next_url = self.get_next_page_url()
            if not next_url:
                break

            self.logger.info(f"Moving to: {next_url}")
            self.goto(next_url, self.timing.next_page_settle)
            page_num += 1

        self.pages_crawled = page_num
        self.logger.info(f"Finished scraping {page_num} pages ({len(all_products)} products).")
        return all_products
