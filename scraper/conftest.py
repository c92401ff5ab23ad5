"""
In-memory stand-ins for Playwright handles and the Sheets v4 service.
"""

import re
from typing import Dict, List, Optional

import pytest
from playwright.sync_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

import product_extractor as pe
from base_scraper import POPUP_CLOSE, SCROLL_BY_VIEWPORT_JS, SCROLL_HEIGHT_JS
from date_picker import (
    BLOCKING_BANNER, CALENDAR, CALENDAR_HEADER, CALENDAR_ICON, CALENDAR_NEXT,
    CALENDAR_TABLE, CONFIRM_BUTTON, REMOVE_ELEMENT_JS, calendar_key,
)
from holex_scraper import NEXT_PAGE, USERNAME_FIELD, HolexScraper
from settings import HolexSettings, ScrapingConfig
from sheets_client import SheetsClient


BASE_URL = "https://anthurium.holex.com"
LOGIN_URL = "https://shop.holex.com/login"


class FakeElement:
    def __init__(self, text=None, attrs=None, children=None, js=None, visible=True, on_click=None):
        self.text = text
        self.attrs = attrs or {}
        self.children = children or {}
        self.js = js or {}
        self.visible = visible
        self.on_click = on_click
        self.clicks = 0
        self.removed = False

    def query_selector(self, selector):
        matches = self.children.get(selector) or []
        return matches[0] if matches else None

    def query_selector_all(self, selector):
        return list(self.children.get(selector, []))

    def text_content(self):
        return self.text

    def inner_text(self):
        return self.text or ""

    def get_attribute(self, name):
        return self.attrs.get(name)

    def evaluate(self, script, arg=None):
        if script not in self.js:
            raise PlaywrightError(f"Unsupported script: {script}")
        value = self.js[script]
        return value() if callable(value) else value

    def is_visible(self):
        return self.visible

    def click(self, **kwargs):
        self.clicks += 1
        if self.on_click:
            self.on_click()


def price_row(price=None, quantity=None, from_price=None, disabled=False, readonly=False):
    children = {}
    if price is not None or from_price is not None:
        attrs = {'from-price': from_price} if from_price is not None else {}
        children[pe.PRICE_TEXT] = [FakeElement(text=price, attrs=attrs)]
    if quantity is not None:
        children[pe.TIER_QUANTITY] = [FakeElement(text=quantity)]
    if readonly:
        children[pe.READONLY_INPUT] = [FakeElement()]
    row_class = 'input_row disabled' if disabled else 'input_row'
    return FakeElement(attrs={'class': row_class}, children=children)


def make_card(
    name=None,
    tag=None,
    image=None,
    origin=None,
    color=None,
    attributes=(),
    farm=None,
    quantity=None,
    pack=None,
    href=None,
    rows=()
):
    """Build a product card; arguments left as None leave the element out."""
    children = {}
    if name is not None:
        children[pe.NAME] = [FakeElement(text=name)]
    if tag is not None:
        children[pe.TAG] = [FakeElement(text=tag)]
    if image is not None:
        children[pe.IMAGE] = [FakeElement(js={pe.IMAGE_SRC_JS: image})]
    if origin is not None:
        children[pe.ORIGIN] = [FakeElement(text=origin)]
    if color is not None:
        children[pe.COLOR_SWATCH] = [FakeElement(js={pe.BACKGROUND_COLOR_JS: color})]
    if attributes:
        items = [
            FakeElement(children={'i': [FakeElement(attrs={'class': f'hlx_icon {icon}'})], 'p': [FakeElement(text=text)]})
            for icon, text in attributes
        ]
        children[pe.ATTRIBUTE_BLOCK] = [FakeElement(children={'li': items})]
    if farm is not None:
        children[pe.FARM_LABEL] = [FakeElement(js={pe.OWN_TEXT_JS: farm})]
    if quantity is not None:
        children[pe.FIRST_QUANTITY] = [FakeElement(text=quantity)]
    if pack is not None:
        children[pe.PACK_UNIT] = [FakeElement(children={'span': [FakeElement(text=part) for part in pack]})]
    if href is not None:
        children[pe.PRODUCT_LINK] = [FakeElement(attrs={'href': href})]
    if rows:
        children[pe.PRICE_ROW] = list(rows)
    return FakeElement(attrs={'class': 'product-item'}, children=children)


def named_cards(prefix: str, count: int) -> List[FakeElement]:
    return [make_card(name=f"{prefix} {i}", rows=[price_row("0,50", "x 50")]) for i in range(1, count + 1)]


class FakeCalendar:
    """Date picker widget showing `months` in order, starting at the first."""

    def __init__(self, months, day_classes=None, has_icon=True, confirm=False):
        self.months = list(months)
        self.index = 0
        self.day_classes = day_classes or {}
        self.has_icon = has_icon
        self.confirm = confirm
        self.opened = False
        self.next_clicks = 0
        self.clicked_days: List[str] = []
        self.confirm_button = FakeElement(text="Continue")

    def _open(self):
        self.opened = True

    def _advance(self):
        self.index += 1
        self.next_clicks += 1

    def query(self, selector):
        if selector == CALENDAR_ICON:
            return FakeElement(on_click=self._open) if self.has_icon else None
        if selector == CALENDAR_HEADER:
            return FakeElement(text=f" {self.months[self.index]} ")
        if selector == CALENDAR_NEXT:
            if self.index < len(self.months) - 1:
                return FakeElement(on_click=self._advance)
            return None
        match = re.match(re.escape(CALENDAR) + r' td\[data-day="([^"]+)"\]', selector)
        if match:
            day = match.group(1)
            month, _, year = (int(part) for part in day.split('/'))
            if day not in self.day_classes or self.months[self.index] != calendar_key(month, year):
                return None
            return FakeElement(
                attrs={'class': self.day_classes[day]},
                on_click=lambda: self.clicked_days.append(day),
            )
        return None


class FakeListing:
    def __init__(self, products=(), next_href=None, heights=(1000,)):
        self.products = list(products)
        self.next_href = next_href
        self.heights = list(heights)
        self.height_reads = 0

    def next_height(self):
        index = min(self.height_reads, len(self.heights) - 1)
        self.height_reads += 1
        return self.heights[index]


class FakePage:
    def __init__(self, listings: Optional[Dict[str, FakeListing]] = None, calendar: Optional[FakeCalendar] = None,
                 banner=False, popup=False, login_form_after_submit=False):
        self.listings = listings or {}
        self.calendar = calendar
        self.banner = FakeElement() if banner else None
        self.popup = FakeElement() if popup else None
        self.login_form_after_submit = login_form_after_submit
        self.url = "about:blank"
        self.current: Optional[FakeListing] = None
        self.visited: List[str] = []
        self.filled: Dict[str, str] = {}
        self.clicked: List[str] = []
        self.waits: List[int] = []
        self.scrolls = 0
        self.default_timeout = None

    def goto(self, url, wait_until=None, **kwargs):
        self.url = url
        self.visited.append(url)
        self.current = self.listings.get(url)

    def wait_for_timeout(self, ms):
        self.waits.append(ms)

    def set_default_timeout(self, ms):
        self.default_timeout = ms

    def fill(self, selector, value, **kwargs):
        self.filled[selector] = value

    def click(self, selector, **kwargs):
        self.clicked.append(selector)

    def query_selector(self, selector):
        if selector == POPUP_CLOSE:
            return self.popup
        if selector == BLOCKING_BANNER:
            return self.banner
        if selector == USERNAME_FIELD:
            return FakeElement() if self.login_form_after_submit else None
        if selector == NEXT_PAGE:
            if self.current and self.current.next_href:
                return FakeElement(attrs={'href': self.current.next_href})
            return None
        if self.calendar and selector.startswith(CALENDAR):
            return self.calendar.query(selector)
        return None

    def query_selector_all(self, selector):
        if selector == pe.PRODUCT_CARD and self.current:
            return list(self.current.products)
        return []

    def evaluate(self, script, arg=None):
        if script == SCROLL_HEIGHT_JS:
            return self.current.next_height() if self.current else 1000
        if script == SCROLL_BY_VIEWPORT_JS:
            self.scrolls += 1
            return None
        if script == REMOVE_ELEMENT_JS:
            arg.removed = True
            self.banner = None
            return None
        raise PlaywrightError(f"Unsupported script: {script}")

    def wait_for_selector(self, selector, timeout=None, **kwargs):
        if selector == CALENDAR_TABLE and self.calendar and self.calendar.opened:
            return FakeElement()
        if selector == CONFIRM_BUTTON and self.calendar and self.calendar.confirm:
            return self.calendar.confirm_button
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")


CELL_RE = re.compile(r"^([A-Z]*)(\d*)$")


def _column_index(letters: str) -> int:
    index = 0
    for char in letters:
        index = index * 26 + (ord(char) - ord('A') + 1)
    return index


def parse_a1(a1_range: str):
    sheet, _, ref = a1_range.partition('!')
    start, _, end = ref.partition(':')
    start_col, start_row = CELL_RE.match(start).groups()
    if end:
        end_col, end_row = CELL_RE.match(end).groups()
    else:
        end_col, end_row = start_col, start_row
    return (
        sheet,
        int(start_row) if start_row else 1,
        _column_index(start_col),
        int(end_row) if end_row else None,
        _column_index(end_col),
    )


class FakeRequest:
    def __init__(self, action):
        self.action = action

    def execute(self):
        return self.action()


class FakeValues:
    def __init__(self, service):
        self.service = service

    def get(self, spreadsheetId, range):
        self.service.calls.append(('get', range))
        return FakeRequest(lambda: self.service.read(range))

    def update(self, spreadsheetId, range, valueInputOption, body):
        self.service.calls.append(('update', range))
        return FakeRequest(lambda: self.service.write(range, body['values']))

    def clear(self, spreadsheetId, range, body=None):
        self.service.calls.append(('clear', range))
        return FakeRequest(lambda: self.service.clear(range))


class FakeSheetsService:
    """Sheets v4 values API over a dict of {sheet: {(row, col): value}}."""

    def __init__(self, cells=None):
        self.cells: Dict[str, Dict[tuple, str]] = cells or {}
        self.calls: List[tuple] = []

    def spreadsheets(self):
        return self

    def values(self):
        return FakeValues(self)

    def sheet(self, name):
        return self.cells.setdefault(name, {})

    def read(self, a1_range):
        sheet, start_row, start_col, end_row, end_col = parse_a1(a1_range)
        grid = self.sheet(sheet)
        rows = [r for (r, c) in grid if start_col <= c <= end_col and r >= start_row and (end_row is None or r <= end_row)]
        if not rows:
            return {}
        values = []
        for r in range(start_row, max(rows) + 1):
            values.append([grid[(r, c)] for c in range(start_col, end_col + 1) if (r, c) in grid])
        return {'values': values}

    def write(self, a1_range, values):
        sheet, start_row, start_col, _, _ = parse_a1(a1_range)
        grid = self.sheet(sheet)
        for r_offset, row in enumerate(values):
            for c_offset, value in enumerate(row):
                grid[(start_row + r_offset, start_col + c_offset)] = value
        return {}

    def clear(self, a1_range):
        sheet, start_row, start_col, end_row, end_col = parse_a1(a1_range)
        grid = self.sheet(sheet)
        for (r, c) in list(grid):
            if start_col <= c <= end_col and r >= start_row and (end_row is None or r <= end_row):
                del grid[(r, c)]
        return {}

    def rows(self, sheet):
        grid = self.sheet(sheet)
        if not grid:
            return []
        last_row = max(r for r, _ in grid)
        return [
            [grid[(r, c)] for c in sorted(c for rr, c in grid if rr == r)]
            for r in range(1, last_row + 1)
        ]


class FakeBrowserScraper(HolexScraper):
    """HolexScraper driving a FakePage instead of a real browser."""

    def __init__(self, settings, fake_page, **kwargs):
        super().__init__(settings, **kwargs)
        self.fake_page = fake_page
        self.browser_closed = 0

    def open_browser(self):
        self.page = self.fake_page

    def close_browser(self):
        self.browser_closed += 1
        self.page = None


@pytest.fixture
def fast_timing():
    return ScrapingConfig(
        login_settle=0, page_settle=0, next_page_settle=0, scroll_pause=0,
        calendar_step=0, confirm_settle=0,
    )


@pytest.fixture
def settings(fast_timing):
    return HolexSettings(
        spreadsheet_id="sheet-id",
        sheet_name="Flowers",
        credentials_path="credentials.json",
        username="buyer@example.com",
        password="secret",
        login_url=LOGIN_URL,
        base_url=BASE_URL,
        urls=(),
        timing=fast_timing,
    )


@pytest.fixture
def sheets_service():
    service = FakeSheetsService()
    service.write("_config!C5", [["06/15/2025"]])
    return service


@pytest.fixture
def sheets(sheets_service):
    return SheetsClient(sheets_service, "sheet-id", "Flowers")
