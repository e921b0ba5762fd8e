import re
from typing import Iterable, List, Optional, Tuple

# "SKU123 (2x), SKU456" -> SKU with an optional "(Nx)" quantity suffix
_ORDER_SKU_PATTERN = re.compile(r'([A-Z0-9\-]+)\s*\((\d+)x\)|([A-Z0-9\-]+)', re.IGNORECASE)


def normalize_sku(value: Optional[str]) -> str:
    """Trim and upper-case a SKU. ``None`` becomes an empty string."""
    if value is None:
        return ''
    return str(value).strip().upper()


def normalize_skus(values: Iterable[Optional[str]], normalize: bool = True) -> List[str]:
    """Normalize SKUs, dropping blanks and duplicates and keeping first-seen order.

    With ``normalize=False`` values are kept as given.
    """
    seen = []
    for value in values:
        sku = normalize_sku(value) if normalize else (value or '')
        if sku and sku not in seen:
            seen.append(sku)
    return seen


def parse_order_skus(note: Optional[str]) -> List[Tuple[str, int]]:
    """Extract ``(sku, quantity)`` pairs from an order note.

    Args:
        note: Text such as ``"SKU123 (2x), SKU456"``

    Returns:
        Pairs in order of appearance; bare SKUs get quantity 1
    """
    if not note:
        return []

    pairs = []
    for match in _ORDER_SKU_PATTERN.finditer(note.upper()):
        if match.group(1):
            quantity = int(match.group(2))
            if quantity > 0:
                pairs.append((match.group(1), quantity))
        elif match.group(3):
            pairs.append((match.group(3), 1))
    return pairs
