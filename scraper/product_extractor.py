"""
Field extraction for Holex product cards.

Each card is read through a table of field groups. A group that raises is
logged and left at "N/A"; the rest of the card is still read.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from playwright.sync_api import ElementHandle, Page

from product_record import PriceTier, ProductRecord
from run_status import uae_timestamp
from scraper_utils import LOGGER_NAME, NOT_AVAILABLE, clean_quantity, make_absolute_url, sanitize
from settings import PRODUCT_BASE_URL


PRODUCT_CARD = 'div.product-item'
NAME = 'div.name_fav span a'
PRODUCT_LINK = 'div.name_fav a'
TAG = 'div.thumnail_section span'
IMAGE = 'div.thumnail_section img'
ORIGIN = 'div.country_icon_outer div.text'
COLOR_SWATCH = 'span.hlx_plp_color'
ATTRIBUTE_BLOCK = '.classification_attributes_block'
FARM_LABEL = 'div.classification_attributes_block.labels_attr div.classification_label_attributes'
FIRST_QUANTITY = 'div.first_quantity'
PACK_UNIT = 'div.text-left'
PRICE_ROW = 'div.input_row'
READONLY_INPUT = 'input[readonly]'
PRICE_TEXT = 'span.price_text'
TIER_QUANTITY = 'span.stock_unit.pieces_unit'

IMAGE_SRC_JS = "el => el.src"
BACKGROUND_COLOR_JS = "el => window.getComputedStyle(el).getPropertyValue('background-color')"
OWN_TEXT_JS = (
    "el => { const copy = el.cloneNode(true);"
    " copy.querySelectorAll('span').forEach(s => s.remove());"
    " return copy.textContent; }"
)

MALFORMED_IMAGE_PROXY = 'image=/https'
FIXED_IMAGE_PROXY = 'image=https'

# No icon class exists for bud count, so bud_count is never filled
ATTRIBUTE_ICONS = {
    'length_icon': 'length',
    'diameter_icon': 'diameter',
    'weight_icon': 'weight',
    'certificate_icon': 'certificate',
}

TIER_FIELDS = (
    ('stem_price', 'stem_quantity'),
    ('second_price', 'second_quantity'),
    ('third_price', 'third_quantity'),
)

logger = logging.getLogger(f"{LOGGER_NAME}.extractor")

FieldReader = Callable[[ElementHandle], Dict[str, str]]


@dataclass(frozen=True)
class FieldGroup:
    fields: Tuple[str, ...]
    read: FieldReader


def _text(node: ElementHandle, selector: str) -> Optional[str]:
    element = node.query_selector(selector)
    return element.text_content() if element else None


def read_name(node: ElementHandle) -> Dict[str, str]:
    return {'name': sanitize(_text(node, NAME))}


def read_tag(node: ElementHandle) -> Dict[str, str]:
    return {'tag': sanitize(_text(node, TAG))}


def read_origin(node: ElementHandle) -> Dict[str, str]:
    return {'origin': sanitize(_text(node, ORIGIN))}


def read_image_url(node: ElementHandle) -> Dict[str, str]:
    image = node.query_selector(IMAGE)
    src = image.evaluate(IMAGE_SRC_JS) if image else None
    if src and MALFORMED_IMAGE_PROXY in src:
        src = src.replace(MALFORMED_IMAGE_PROXY, FIXED_IMAGE_PROXY)
    return {'image_url': src or NOT_AVAILABLE}


def read_color(node: ElementHandle) -> Dict[str, str]:
    # Raw computed value such as "rgb(255, 0, 0)"; no name lookup
    swatch = node.query_selector(COLOR_SWATCH)
    if not swatch:
        return {}
    return {'color': swatch.evaluate(BACKGROUND_COLOR_JS) or NOT_AVAILABLE}


def read_classification(node: ElementHandle) -> Dict[str, str]:
    block = node.query_selector(ATTRIBUTE_BLOCK)
    if not block:
        return {}

    values = {}
    for item in block.query_selector_all('li'):
        icon = item.query_selector('i')
        if not icon:
            continue
        icon_classes = icon.get_attribute('class') or ''
        for icon_class, field_name in ATTRIBUTE_ICONS.items():
            if icon_class in icon_classes:
                values[field_name] = sanitize(_text(item, 'p'))
                break
    return values


def read_farm(node: ElementHandle) -> Dict[str, str]:
    label = node.query_selector(FARM_LABEL)
    if not label:
        return {}
    return {'farm': (label.evaluate(OWN_TEXT_JS) or '').strip()}


def read_quantities(node: ElementHandle) -> Dict[str, str]:
    quantity = node.query_selector(FIRST_QUANTITY)
    if not quantity:
        return {}

    raw = sanitize(quantity.text_content())
    available = re.sub(r'assortment', '', raw, count=1, flags=re.IGNORECASE).strip() or NOT_AVAILABLE

    pack = node.query_selector(PACK_UNIT)
    if pack:
        spans = pack.query_selector_all('span')
        unit_name = sanitize(spans[0].text_content()) if len(spans) > 0 else ''
        unit_code = sanitize(spans[1].text_content()) if len(spans) > 1 else ''
        label = f"{unit_name} ({unit_code}) {available}".strip()
    else:
        label = available

    return {'available_quantity': available, 'first_quantity_label': label}


def read_tier(row: ElementHandle) -> PriceTier:
    """Price and quantity of one purchasable row."""
    price = NOT_AVAILABLE
    price_element = row.query_selector(PRICE_TEXT)
    if price_element:
        raw_price = price_element.get_attribute('from-price') or price_element.text_content()
        price = sanitize(raw_price).replace(',', '.', 1)

    quantity_element = row.query_selector(TIER_QUANTITY)
    quantity = clean_quantity(quantity_element.text_content()) if quantity_element else NOT_AVAILABLE
    return PriceTier(price, quantity)


def read_price_tiers(node: ElementHandle) -> Dict[str, str]:
    tiers = []
    for row in node.query_selector_all(PRICE_ROW):
        row_classes = row.get_attribute('class') or ''
        # Greyed out or read-only rows are placeholders, not buyable tiers
        if 'disabled' in row_classes or row.query_selector(READONLY_INPUT):
            continue
        tiers.append(read_tier(row))
        if len(tiers) == len(TIER_FIELDS):
            break

    values = {}
    for (price_field, quantity_field), (price, quantity) in zip(TIER_FIELDS, tiers):
        values[price_field] = price
        values[quantity_field] = quantity
    return values


class ProductExtractor:
    """Turns product card handles into ProductRecords."""

    def __init__(self, base_url: str = PRODUCT_BASE_URL):
        self.base_url = base_url
        self.field_table: Tuple[FieldGroup, ...] = (
            FieldGroup(('name',), read_name),
            FieldGroup(('tag',), read_tag),
            FieldGroup(('image_url',), read_image_url),
            FieldGroup(('origin',), read_origin),
            FieldGroup(('color',), read_color),
            FieldGroup(('length', 'diameter', 'bud_count', 'weight', 'certificate'), read_classification),
            FieldGroup(('farm',), read_farm),
            FieldGroup(('available_quantity', 'first_quantity_label'), read_quantities),
            FieldGroup(('product_url',), self.read_product_url),
            FieldGroup(tuple(name for pair in TIER_FIELDS for name in pair), read_price_tiers),
        )

    def read_product_url(self, node: ElementHandle) -> Dict[str, str]:
        link = node.query_selector(PRODUCT_LINK)
        href = link.get_attribute('href') if link else None
        if not href or not href.strip():
            return {}
        return {'product_url': make_absolute_url(href, self.base_url)}

    def extract(self, node: ElementHandle, captured_at: str) -> ProductRecord:
        """
        Read every field group of one card.

        Args:
            node: Handle of a div.product-item card
            captured_at: Timestamp shared by the page visit

        Returns:
            ProductRecord with "N/A" wherever a value could not be read
        """
        values = {}
        for group in self.field_table:
            try:
                found = group.read(node)
            except Exception as e:
                logger.debug(f"Could not read {', '.join(group.fields)}: {e}")
                continue
            for field_name in group.fields:
                if found.get(field_name):
                    values[field_name] = found[field_name]

        return ProductRecord(captured_at=captured_at, **values)

    def extract_all(self, page: Page) -> List[ProductRecord]:
        """Extract every product card currently rendered on the page."""
        cards = page.query_selector_all(PRODUCT_CARD)
        captured_at = uae_timestamp()
        records = []

        for card in cards:
            try:
                records.append(self.extract(card, captured_at))
            except Exception as e:
                logger.error(f"Error scraping product: {e}")

        logger.info(f"Extracted {len(records)} of {len(cards)} product cards.")
        return records
