#!/usr/bin/env python3
"""
Holex flower scraper.
Logs into shop.holex.com, selects the packing date configured in the
spreadsheet, scrapes every configured listing URL and publishes the rows
and a run status back to Google Sheets.
"""

import argparse
import sys
import time
from typing import Callable, List, Optional, Tuple

from tabulate import tabulate

from base_scraper import PageNavigationScraper
from date_picker import DateSelection, choose_packing_date, split_packing_date
from product_extractor import ProductExtractor
from product_record import ProductRecord
from run_status import RunStatus, format_runtime, format_status, truncate_error
from scraper_utils import ConfigError, LoginError, make_absolute_url, setup_logging
from settings import HolexSettings
from sheets_client import SheetsClient


SUPPLIER_NAME = "holex"
USERNAME_FIELD = '#j_username'
PASSWORD_FIELD = '#j_password'
LOGIN_BUTTON = 'button.primary_button'
NEXT_PAGE = 'li.pagination-next:not(.disabled) a[rel="next"]'


class HolexScraper(PageNavigationScraper):
    """Runs one complete scrape of the Holex flower catalogue."""

    def __init__(
        self,
        settings: HolexSettings,
        sheets_factory: Optional[Callable[[HolexSettings], SheetsClient]] = None,
        extractor: Optional[ProductExtractor] = None
    ):
        super().__init__(
            supplier_name=SUPPLIER_NAME,
            source_site=settings.base_url,
            headless=settings.headless,
            timing=settings.timing
        )
        self.settings = settings
        self.sheets_factory = sheets_factory or SheetsClient.from_settings
        self.extractor = extractor or ProductExtractor(settings.product_base_url)
        self.sheets: Optional[SheetsClient] = None
        self.start_time: Optional[float] = None
        self.url_summary: List[Tuple[str, int, int]] = []

    def login(self) -> None:
        self.logger.info("Logging in...")
        self.goto(self.settings.login_url)
        self.page.fill(USERNAME_FIELD, self.settings.username)
        self.page.fill(PASSWORD_FIELD, self.settings.password)
        self.page.click(LOGIN_BUTTON)
        self.page.wait_for_timeout(self.timing.login_settle)

        if self.settings.verify_login:
            username_field = self.page.query_selector(USERNAME_FIELD)
            if username_field and username_field.is_visible():
                raise LoginError(f"Login form still shown after submitting credentials ({self.page.url})")
        self.logger.info("Logged in.")

    def extract_products(self) -> List[ProductRecord]:
        return self.extractor.extract_all(self.page)

    def get_next_page_url(self) -> Optional[str]:
        next_link = self.page.query_selector(NEXT_PAGE)
        if not next_link:
            return None
        href = next_link.get_attribute('href')
        if not href:
            return None
        return make_absolute_url(href, self.source_site)

    def elapsed_ms(self) -> int:
        if self.start_time is None:
            return 0
        return int((time.time() - self.start_time) * 1000)

    def report(self, status: RunStatus, error_message: Optional[str] = None) -> RunStatus:
        self.sheets.update_status(format_status(status, self.elapsed_ms(), error_message))
        return status

    def scrape_urls(self) -> int:
        """
        Crawl every configured listing URL and write its rows.

        The first batch actually written clears the data range; later
        batches are appended below it.

        Returns:
            Total number of products written
        """
        self.url_summary = []
        total_products = 0
        clear_pending = True

        for url in self.settings.urls:
            self.logger.info(f"Scraping URL: {url}")
            self.goto(url, self.timing.page_settle)
            self.close_popup()

            products = self.crawl_all()
            total_products += len(products)
            if products:
                self.sheets.write_products(products, clear_first=clear_pending)
                clear_pending = False

            self.url_summary.append((url, self.pages_crawled, len(products)))
            self.logger.info(f"Finished scraping URL: {url} ({len(products)} products).")

        self.logger.info(f"All URLs processed. Total products: {total_products}")
        self.logger.info("\n" + tabulate(self.url_summary, headers=["URL", "Pages", "Products"], tablefmt="grid"))
        return total_products

    def _finish_date_unavailable(self, packing_date: str, selection: DateSelection) -> RunStatus:
        if selection is DateSelection.DISABLED:
            self.logger.warning(f"Packing date {packing_date} is disabled. Writing 'No products found' and exiting.")
        else:
            self.logger.warning(f"Packing date {packing_date} could not be found on the calendar. Treating it as disabled.")
        self.sheets.write_headers()
        self.sheets.write_products([ProductRecord.placeholder(packing_date)], clear_first=True)
        return self.report(RunStatus.DATE_DISABLED)

    def scrape_session(self, packing_date: Optional[str] = None) -> RunStatus:
        """Browser part of the run; expects an open browser."""
        packing_date = packing_date or self.sheets.read_packing_date()
        split_packing_date(packing_date)

        self.login()
        self.goto(self.settings.flowers_url, self.timing.page_settle)
        self.close_popup()

        selection = choose_packing_date(self.page, packing_date, self.timing)
        if selection is not DateSelection.SELECTED:
            return self._finish_date_unavailable(packing_date, selection)

        if not self.settings.urls:
            self.logger.warning("No URLs provided. Exiting.")
            return self.report(RunStatus.NO_URLS)

        self.sheets.write_headers()
        total_products = self.scrape_urls()

        if total_products > 0:
            return self.report(RunStatus.SUCCESS)
        return self.report(RunStatus.NO_PRODUCTS)

    def run(self, packing_date: Optional[str] = None) -> RunStatus:
        """
        Execute the whole scrape and report the outcome to the status cell.

        Args:
            packing_date: MM/DD/YYYY override for the date in the config sheet

        Returns:
            Final RunStatus; RunStatus.ERROR when anything failed
        """
        self.start_time = time.time()
        try:
            self.sheets = self.sheets_factory(self.settings)
            self.report(RunStatus.RUNNING)

            with self:
                self.logger.info("Script started.")
                return self.scrape_session(packing_date)

        except Exception as e:
            self.logger.error(f"ERROR: {e}", exc_info=True)
            if self.sheets:
                try:
                    self.report(RunStatus.ERROR, truncate_error(str(e)))
                except Exception as status_error:
                    self.logger.error(f"Failed to update error status: {status_error}")
            return RunStatus.ERROR

        finally:
            self.logger.info(f"Script finished. Runtime: {format_runtime(self.elapsed_ms())}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to run the Holex scraper."""
    parser = argparse.ArgumentParser(description='Scrape Holex flower listings into Google Sheets')
    parser.add_argument('--headful', action='store_true', help='Show the browser window')
    parser.add_argument('--log-file', type=str, help='Log file path (overrides LOG_PATH)')
    parser.add_argument('--packing-date', type=str, help='MM/DD/YYYY date to use instead of the config sheet value')
    args = parser.parse_args(argv)

    try:
        settings = HolexSettings.from_env()
    except ConfigError as e:
        logger = setup_logging(args.log_file or "scraper.log")
        logger.critical(f"Configuration error: {e}")
        return 1

    overrides = {}
    if args.headful:
        overrides['headless'] = False
    if args.log_file:
        overrides['log_path'] = args.log_file
    if overrides:
        settings = settings.with_overrides(**overrides)

    setup_logging(settings.log_path)
    status = HolexScraper(settings).run(packing_date=args.packing_date)
    return 1 if status is RunStatus.ERROR else 0


if __name__ == "__main__":
    sys.exit(main())
