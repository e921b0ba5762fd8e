# fulfillment_readiness/services/stock_ledger.py
from typing import Iterable, Mapping, Optional, Tuple, Union
import logging

from fulfillment_readiness.cache import LookupCache
from fulfillment_readiness.config import config
from fulfillment_readiness.db.interface import StockRepository
from fulfillment_readiness.exceptions import InsufficientStockError, StorageError, ValidationError
from fulfillment_readiness.records import AvailabilityResult, BatchAvailability, DecrementResult
from fulfillment_readiness.utils.validation import validate_quantity

logger = logging.getLogger(__name__)

BatchItems = Union[Mapping[str, int], Iterable[Tuple[str, int]]]


class StockLocationLedger:
    """Per-location stock quantities.

    Answers whether a location holds enough of a SKU and applies guarded
    decrements. After every write the product's aggregate quantity is
    recomputed as the sum over its locations.
    """

    def __init__(self, repository: StockRepository, cache: LookupCache = None):
        """Initialize the ledger.

        Args:
            repository: Storage backend
            cache: Cache for location names; a private one is created if omitted
        """
        self.repository = repository
        if cache is None:
            settings = config.resolution_config
            cache = LookupCache(settings['location_cache_size'], settings['location_cache_ttl_seconds'])
        self.cache = cache

    def location_name(self, location_id: Optional[str]) -> Optional[str]:
        """Display name of a location, falling back to its id."""
        if not location_id:
            return None

        def load():
            location = self.repository.find_location(location_id)
            return location.name if location else None

        try:
            name = self.cache.get_or_load(('location', location_id), load)
        except StorageError as e:
            logger.warning(f"Could not load name of location {location_id}: {e}")
            name = None

        return name or location_id

    def check_availability(self, sku: str, location_id: str, required_qty: int) -> AvailabilityResult:
        """Check whether a location holds at least ``required_qty`` of a SKU.

        A SKU without an entry at the location is reported as unavailable with
        zero on hand rather than as an error.
        """
        location_name = self.location_name(location_id)
        on_hand = self.repository.find_location_stock(sku, location_id)

        if on_hand is None:
            return AvailabilityResult(
                sku=sku,
                required=required_qty,
                available=False,
                on_hand=0,
                location_id=location_id,
                location_name=location_name,
                message=f"Sem estoque cadastrado no local \"{location_name}\""
            )

        available = on_hand >= required_qty
        message = '' if available else (
            f"Estoque insuficiente no local \"{location_name}\": {sku} "
            f"necessário {required_qty}, disponível {on_hand}"
        )
        return AvailabilityResult(
            sku=sku,
            required=required_qty,
            available=available,
            on_hand=on_hand,
            location_id=location_id,
            location_name=location_name,
            message=message
        )

    def check_availability_batch(self, items: BatchItems, location_id: str) -> BatchAvailability:
        """Check several SKUs at one location.

        Args:
            items: Mapping of SKU to required quantity, or ``(sku, qty)`` pairs
            location_id: Location to check

        Returns:
            BatchAvailability whose ``error_summary`` holds one ``sku: message``
            line per shortfall
        """
        pairs = items.items() if isinstance(items, Mapping) else items
        results = [self.check_availability(sku, location_id, qty) for sku, qty in pairs]
        shortfalls = [result for result in results if not result.available]

        return BatchAvailability(
            results=results,
            all_available=not shortfalls,
            error_summary='\n'.join(f"{result.sku}: {result.message}" for result in shortfalls)
        )

    def decrement(self, sku: str, location_id: str, qty: int) -> DecrementResult:
        """Remove ``qty`` units of a SKU from a location.

        Raises:
            ValidationError: If ``qty`` is not a positive integer
            InsufficientStockError: If the location holds less than ``qty``
            StorageError: If the storage backend fails
        """
        qty = validate_quantity(qty)

        new_quantity = self.repository.decrement_location_stock(sku, location_id, qty)
        if new_quantity is None:
            available = self.repository.find_location_stock(sku, location_id)
            raise InsufficientStockError(
                sku, location_id, qty,
                available=available or 0,
                location_name=self.location_name(location_id)
            )

        logger.info(f"Decremented {qty} of {sku} at {location_id}, {new_quantity} left")
        return DecrementResult(
            sku=sku,
            location_id=location_id,
            quantity=qty,
            new_quantity_at_location=new_quantity,
            new_aggregate_quantity=self._refresh_aggregate(sku)
        )

    def increment(self, sku: str, location_id: str, qty: int) -> DecrementResult:
        """Add ``qty`` units of a SKU to a location (returns, receipts)."""
        qty = validate_quantity(qty)

        new_quantity = self.repository.increment_location_stock(sku, location_id, qty)
        logger.info(f"Incremented {qty} of {sku} at {location_id}, now {new_quantity}")
        return DecrementResult(
            sku=sku,
            location_id=location_id,
            quantity=qty,
            new_quantity_at_location=new_quantity,
            new_aggregate_quantity=self._refresh_aggregate(sku)
        )

    def set_quantity(self, sku: str, location_id: str, qty: int) -> DecrementResult:
        """Overwrite the quantity of a SKU at a location after a stock count."""
        if isinstance(qty, bool) or not isinstance(qty, int) or qty < 0:
            raise ValidationError("Quantidade não pode ser negativa", details={'qty': qty})

        previous = self.repository.find_location_stock(sku, location_id) or 0
        self.repository.update_location_stock(sku, location_id, qty)
        logger.info(f"Set {sku} at {location_id} from {previous} to {qty}")
        return DecrementResult(
            sku=sku,
            location_id=location_id,
            quantity=qty - previous,
            new_quantity_at_location=qty,
            new_aggregate_quantity=self._refresh_aggregate(sku)
        )

    def _refresh_aggregate(self, sku: str) -> Optional[int]:
        # The location write already committed; a failed re-sum is picked up by the next one.
        try:
            return self.repository.refresh_aggregate_quantity(sku)
        except StorageError as e:
            logger.warning(f"Could not recompute aggregate quantity of {sku}: {e}")
            return None
