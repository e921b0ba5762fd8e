from .stock_ledger import StockLocationLedger
from .composition_resolver import CompositionResolver
from .mapping_resolver import SkuMappingResolver
from .supply_validation import SupplyValidationEngine
from .status_combiner import StatusCombiner, combine
from .engine import FulfillmentReadinessEngine

__all__ = [
    'StockLocationLedger',
    'CompositionResolver',
    'SkuMappingResolver',
    'SupplyValidationEngine',
    'StatusCombiner',
    'combine',
    'FulfillmentReadinessEngine'
]
