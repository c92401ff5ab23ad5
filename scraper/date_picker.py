"""
Packing date selection on the Holex calendar widget.
"""

import logging
from enum import Enum
from typing import Optional, Tuple

from playwright.sync_api import Page, TimeoutError as PlaywrightTimeoutError

from scraper_utils import LOGGER_NAME, ConfigError
from settings import ScrapingConfig


CALENDAR = 'div.js-custom_datepicker'
CALENDAR_ICON = f'{CALENDAR} i.js-calendar_icon'
CALENDAR_TABLE = f'{CALENDAR} table'
CALENDAR_HEADER = f'{CALENDAR} th.picker-switch'
CALENDAR_NEXT = f'{CALENDAR} th.next'
CONFIRM_BUTTON = 'button.confirm_select_date'
BLOCKING_BANNER = 'div.alert, div.hl_notification, header.js-mainHeader .hlx_notification'
REMOVE_ELEMENT_JS = "el => el.remove()"

MAX_MONTH_ADVANCES = 12

# The widget renders en-US month names whatever the process locale is
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

logger = logging.getLogger(f"{LOGGER_NAME}.date_picker")


class DateSelection(Enum):
    SELECTED = "selected"
    DISABLED = "disabled"
    NOT_FOUND = "not-found"


def split_packing_date(date_str: str) -> Tuple[int, int, int]:
    """
    Split an MM/DD/YYYY packing date.

    Returns:
        (month, day, year)

    Raises:
        ConfigError: if the value is not three slash-separated numbers
    """
    parts = (date_str or "").strip().split('/')
    if len(parts) != 3 or not all(part.strip().isdigit() for part in parts):
        raise ConfigError(f"Packing date must be MM/DD/YYYY, got '{date_str}'")
    month, day, year = (int(part) for part in parts)
    if not 1 <= month <= 12:
        raise ConfigError(f"Packing date has an invalid month: '{date_str}'")
    return month, day, year


def calendar_key(month: int, year: int) -> str:
    """Month header text as the widget renders it, e.g. "June 2025"."""
    return f"{MONTH_NAMES[month - 1]} {year}"


def remove_blocking_banner(page: Page) -> None:
    banner = page.query_selector(BLOCKING_BANNER)
    if banner:
        page.evaluate(REMOVE_ELEMENT_JS, banner)
        logger.info("Removed a blocking alert/banner.")


def _current_month(page: Page) -> str:
    header = page.query_selector(CALENDAR_HEADER)
    return header.inner_text().strip() if header else ""


def _advance_to_month(page: Page, target: str, timing: ScrapingConfig) -> bool:
    """Page the calendar forward until the header reads `target`.

    Returns False only when the next-month control is gone.
    """
    for _ in range(MAX_MONTH_ADVANCES):
        current = _current_month(page)
        if current == target:
            return True
        next_button = page.query_selector(CALENDAR_NEXT)
        if not next_button:
            logger.error(f"Cannot find next month button. Calendar stuck at {current}")
            return False
        next_button.click()
        page.wait_for_timeout(timing.calendar_step)
    return True


def _confirm_selection(page: Page, timing: ScrapingConfig) -> None:
    try:
        continue_button = page.wait_for_selector(CONFIRM_BUTTON, timeout=timing.confirm_timeout)
    except PlaywrightTimeoutError:
        logger.info("No confirmation popup appeared.")
        return

    if continue_button:
        continue_button.click()
        logger.info("Confirmed date selection by clicking Continue.")
        page.wait_for_timeout(timing.confirm_settle)


def choose_packing_date(page: Page, date_str: str, timing: Optional[ScrapingConfig] = None) -> DateSelection:
    """
    Open the calendar and click the packing date.

    The date must be MM/DD/YYYY; callers validate it with split_packing_date.

    Args:
        page: Listing page showing the calendar widget
        date_str: Packing date, month first
        timing: Delays and timeouts

    Returns:
        SELECTED when the day was clicked, DISABLED when the day is greyed
        out, NOT_FOUND when a calendar control or the day cell is missing
    """
    timing = timing or ScrapingConfig()
    logger.info(f"Selecting packing date: {date_str}")
    month, day, year = split_packing_date(date_str)
    formatted_date = f"{month:02d}/{day:02d}/{year}"

    remove_blocking_banner(page)

    calendar_icon = page.query_selector(CALENDAR_ICON)
    if not calendar_icon:
        logger.error("Calendar icon not found!")
        return DateSelection.NOT_FOUND
    calendar_icon.click(timeout=timing.click_timeout)
    logger.info("Calendar icon clicked.")

    page.wait_for_selector(CALENDAR_TABLE, timeout=timing.calendar_timeout)

    if not _advance_to_month(page, calendar_key(month, year), timing):
        return DateSelection.NOT_FOUND

    date_cell = page.query_selector(f'{CALENDAR} td[data-day="{formatted_date}"]')
    if not date_cell:
        logger.error(f"Date cell for {formatted_date} not found!")
        return DateSelection.NOT_FOUND

    if 'disabled' in (date_cell.get_attribute('class') or ''):
        logger.warning(f"Date {formatted_date} is disabled and cannot be selected.")
        return DateSelection.DISABLED

    date_cell.click()
    logger.info(f"Date selected: {formatted_date}")

    _confirm_selection(page, timing)
    return DateSelection.SELECTED


def select_packing_date(page: Page, date_str: str, timing: Optional[ScrapingConfig] = None) -> bool:
    """True only if the packing date was found, enabled and clicked."""
    return choose_packing_date(page, date_str, timing) is DateSelection.SELECTED
