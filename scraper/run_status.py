"""
Status strings and output rows written to the spreadsheet.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from zoneinfo import ZoneInfo

from product_record import ProductRecord
from scraper_utils import NOT_AVAILABLE


UAE_TZ = ZoneInfo("Asia/Dubai")
ERROR_SNIPPET_LENGTH = 50

HEADER = [
    'Name',
    'Tag',
    'Image URL',
    'Origin',
    'Length',
    'Diameter',
    'No of Buds',
    'Weight',
    'Certificate',
    'Farm',
    'Color',
    'First Price',
    'Packing Value',
    'Available Quantity',
    'Product URL',
    'Second Price',
    'Third Price',
    'Time',
]


class RunStatus(Enum):
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"
    NO_PRODUCTS = "no-products"
    NO_URLS = "no-urls"
    DATE_DISABLED = "date-disabled"


STATUS_TEMPLATES = {
    RunStatus.SUCCESS: "✅ {timestamp} — {runtime}",
    RunStatus.ERROR: "❌ Failed {timestamp} — {runtime}",
    RunStatus.NO_PRODUCTS: "⚠️ No products found {timestamp} — {runtime}",
    RunStatus.NO_URLS: "⚠️ No URLs provided {timestamp} — {runtime}",
    RunStatus.DATE_DISABLED: "⚠️ Date disabled {timestamp} — {runtime}",
}
RUNNING_TEXT = "🟡 Scraping in progress..."


def format_runtime(ms: int) -> str:
    """Format a duration as "42s", "2m 13s" or "1h 5m 20s" (raw ms under a second)."""
    total_seconds = ms // 1000
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    if seconds > 0:
        return f"{seconds}s"
    return f"{ms}ms"


def uae_timestamp(now: Optional[datetime] = None) -> str:
    """Current time in Dubai as DD/MM/YYYY HH:MM:SS."""
    now = now or datetime.now(tz=UAE_TZ)
    return now.astimezone(UAE_TZ).strftime("%d/%m/%Y %H:%M:%S")


def truncate_error(message: Optional[str]) -> Optional[str]:
    if not message:
        return None
    return str(message)[:ERROR_SNIPPET_LENGTH]


def format_status(
    status: RunStatus,
    elapsed_ms: int = 0,
    error_message: Optional[str] = None,
    now: Optional[datetime] = None
) -> str:
    """
    Render the text written to the status cell.

    Args:
        status: Outcome being reported
        elapsed_ms: Milliseconds since the run started
        error_message: Short reason, only used for RunStatus.ERROR
        now: Timestamp override

    Returns:
        Status cell text
    """
    if status is RunStatus.RUNNING:
        return RUNNING_TEXT

    text = STATUS_TEMPLATES[status].format(
        timestamp=uae_timestamp(now),
        runtime=format_runtime(elapsed_ms),
    )
    if status is RunStatus.ERROR and error_message:
        text += f" - {error_message}"
    return text


def _combine(price: str, quantity: str) -> str:
    if not price or price == NOT_AVAILABLE:
        return NOT_AVAILABLE
    return f"{price} × {quantity or NOT_AVAILABLE}"


def product_to_row(record: ProductRecord) -> List[str]:
    """Lay out one record in HEADER column order."""
    if record.is_placeholder:
        return [record.name]

    return [
        record.name,
        record.tag,
        record.image_url,
        record.origin,
        record.length,
        record.diameter,
        record.bud_count,
        record.weight,
        record.certificate,
        record.farm,
        record.color,
        _combine(record.stem_price, record.stem_quantity),
        record.first_quantity_label,
        record.available_quantity,
        record.product_url,
        _combine(record.second_price, record.second_quantity),
        _combine(record.third_price, record.third_quantity),
        record.captured_at if record.captured_at != NOT_AVAILABLE else uae_timestamp(),
    ]
