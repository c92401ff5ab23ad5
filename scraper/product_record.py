from dataclasses import astuple, dataclass, fields
from typing import List, NamedTuple

from scraper_utils import NOT_AVAILABLE


PLACEHOLDER_PREFIX = "No products found"


class PriceTier(NamedTuple):
    price: str
    quantity: str


@dataclass
class ProductRecord:
    """One flower listing as scraped from a product card.

    Every field is a string; anything missing on the card stays "N/A" so the
    spreadsheet never receives an empty cell.
    """
    name: str = NOT_AVAILABLE
    tag: str = NOT_AVAILABLE
    image_url: str = NOT_AVAILABLE
    origin: str = NOT_AVAILABLE
    length: str = NOT_AVAILABLE
    diameter: str = NOT_AVAILABLE
    bud_count: str = NOT_AVAILABLE
    weight: str = NOT_AVAILABLE
    certificate: str = NOT_AVAILABLE
    farm: str = NOT_AVAILABLE
    color: str = NOT_AVAILABLE
    stem_price: str = NOT_AVAILABLE
    stem_quantity: str = NOT_AVAILABLE
    first_quantity_label: str = NOT_AVAILABLE
    available_quantity: str = NOT_AVAILABLE
    product_url: str = NOT_AVAILABLE
    second_price: str = NOT_AVAILABLE
    second_quantity: str = NOT_AVAILABLE
    third_price: str = NOT_AVAILABLE
    third_quantity: str = NOT_AVAILABLE
    captured_at: str = NOT_AVAILABLE

    @classmethod
    def placeholder(cls, packing_date: str) -> "ProductRecord":
        return cls(name=f"{PLACEHOLDER_PREFIX} {{{packing_date}}}")

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    @property
    def is_placeholder(self) -> bool:
        return self.name.startswith(PLACEHOLDER_PREFIX)

    @property
    def tiers(self) -> List[PriceTier]:
        return [
            PriceTier(self.stem_price, self.stem_quantity),
            PriceTier(self.second_price, self.second_quantity),
            PriceTier(self.third_price, self.third_quantity),
        ]

    def values(self) -> tuple:
        return astuple(self)
