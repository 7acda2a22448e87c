import logging
import re
from datetime import date
from typing import Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "INV-"
SEQUENCE_WIDTH = 4

_HEX_COLOR = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)
_SEQUENCE = re.compile(r"^[0-9]+\Z")


def next_invoice_number(existing_numbers: Iterable[str], prefix: str, year: int) -> str:
    """
    Next invoice number for ``year`` under ``prefix``, e.g. ``INV-2024-0004``.

    Only numbers starting with ``<prefix><year>-`` take part, so a prefix change
    restarts the sequence at 0001. Suffixes that are not plain ASCII digits are skipped.
    Not safe for concurrent callers; serialize allocation at the write boundary.
    """
    year_prefix = f"{prefix or DEFAULT_PREFIX}{year}-"
    last_num = 0
    for number in existing_numbers:
        if not number.startswith(year_prefix):
            continue
        suffix = number[len(year_prefix):]
        if _SEQUENCE.match(suffix):
            last_num = max(last_num, int(suffix))
    return f"{year_prefix}{str(last_num + 1).zfill(SEQUENCE_WIDTH)}"


def hex_to_rgb(hex_color: str) -> Optional[Tuple[int, int, int]]:
    m = _HEX_COLOR.match((hex_color or "").strip())
    if not m:
        return None
    return tuple(int(part, 16) for part in m.groups())


def accent_rgb(hex_color: str) -> Tuple[int, int, int]:
    """Accent colour as RGB; malformed values fall back to black."""
    rgb = hex_to_rgb(hex_color)
    if rgb is None:
        logger.warning("Invalid accent colour %r, using black", hex_color)
        return (0, 0, 0)
    return rgb


def parse_gst_rates(text: str) -> List[float]:
    """'5,12,18,28' -> [5.0, 12.0, 18.0, 28.0]; junk entries are dropped."""
    rates = []
    for part in (text or "").split(","):
        try:
            rates.append(float(part.strip()))
        except ValueError:
            continue
    return rates


def format_number(val) -> str:
    """Plain number text: 2 -> '2', 2.5 -> '2.5'."""
    val = float(val)
    if val.is_integer():
        return str(int(val))
    return f"{val:g}"


def format_amount(val, symbol: str = "") -> str:
    return f"{symbol}{float(val):.2f}"


def format_indian(val, symbol: str = "") -> str:
    """Two decimals with Indian digit grouping: 1234567.5 -> '12,34,567.50'."""
    sign = "-" if val < 0 else ""
    whole, frac = f"{abs(float(val)):.2f}".split(".")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])
    return f"{sign}{symbol}{whole}.{frac}"


def format_date(d: date) -> str:
    """en-IN short date, e.g. 20/7/2024."""
    return f"{d.day}/{d.month}/{d.year}"
