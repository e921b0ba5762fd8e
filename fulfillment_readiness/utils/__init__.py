from .sku import normalize_sku, normalize_skus, parse_order_skus
from .validation import validate_quantity, validate_decrement_line

__all__ = [
    'normalize_sku',
    'normalize_skus',
    'parse_order_skus',
    'validate_quantity',
    'validate_decrement_line'
]
