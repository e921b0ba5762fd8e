# fulfillment_readiness/services/mapping_resolver.py
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional
import logging

from fulfillment_readiness.db.interface import StockRepository
from fulfillment_readiness.exceptions import (
    CompositionMissingError, MappingNotFoundError, SkuNotRegisteredError, StorageError, ValidationError
)
from fulfillment_readiness.models import FulfillmentStatus
from fulfillment_readiness.records import ResolutionResult, SkuMappingRecord
from fulfillment_readiness.services.composition_resolver import CompositionResolver
from fulfillment_readiness.services.stock_ledger import StockLocationLedger
from fulfillment_readiness.utils.sku import normalize_sku, normalize_skus
from fulfillment_readiness.utils.validation import validate_quantity

logger = logging.getLogger(__name__)


class SkuMappingResolver:
    """Resolves order-line SKUs to stock SKUs and a fulfillment status.

    Unknown order SKUs get an empty De-Para row so someone can complete the
    mapping later; they resolve as UNMAPPED until that happens.
    """

    def __init__(
        self,
        repository: StockRepository,
        composition: CompositionResolver,
        ledger: StockLocationLedger,
        max_workers: int = 8,
        placeholder_reason: str = 'auto_detected',
        normalize: bool = True
    ):
        """Initialize the resolver.

        Args:
            repository: Storage backend
            composition: Resolver for kit compositions
            ledger: Per-location stock ledger
            max_workers: Threads used to resolve a batch
            placeholder_reason: ``creation_reason`` stored on placeholder mappings
            normalize: Trim and upper-case incoming SKUs
        """
        self.repository = repository
        self.composition = composition
        self.ledger = ledger
        self.max_workers = max(1, max_workers)
        self.placeholder_reason = placeholder_reason
        self.normalize = normalize

    def _sku(self, value: str) -> str:
        return normalize_sku(value) if self.normalize else (value or '')

    def resolve_batch(
        self,
        order_skus: Iterable[str],
        location_id: Optional[str] = None,
        qty_by_sku: Optional[Dict[str, int]] = None
    ) -> List[ResolutionResult]:
        """Resolve a batch of order SKUs.

        Args:
            order_skus: Order-line SKUs; duplicates are resolved once
            location_id: Location the order ships from
            qty_by_sku: Ordered quantity per order SKU, 1 when absent

        Returns:
            One ResolutionResult per distinct order SKU, in input order

        Raises:
            StorageError: If the batch mapping lookup fails
        """
        skus = normalize_skus(order_skus, self.normalize)

        if not skus:
            return []

        quantities, quantity_errors = {}, {}
        for value, qty in (qty_by_sku or {}).items():
            sku = self._sku(value)
            try:
                quantities[sku] = validate_quantity(qty, f"quantidade de {sku}")
            except ValidationError as e:
                quantity_errors[sku] = e.message

        mappings = {
            mapping.order_sku: mapping
            for mapping in self.repository.find_active_mappings(skus)
        }
        location_name = self.ledger.location_name(location_id)

        logger.info(f"Resolving {len(skus)} order SKUs ({len(mappings)} mapped) at location {location_id}")

        def resolve(sku):
            return self.resolve_one(
                sku,
                mappings.get(sku),
                location_id=location_id,
                location_name=location_name,
                ordered_quantity=quantities.get(sku, 1),
                quantity_error=quantity_errors.get(sku)
            )

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(skus))) as executor:
            return list(executor.map(resolve, skus))

    def resolve_one(
        self,
        order_sku: str,
        mapping: Optional[SkuMappingRecord],
        location_id: Optional[str] = None,
        location_name: Optional[str] = None,
        ordered_quantity: int = 1,
        quantity_error: Optional[str] = None
    ) -> ResolutionResult:
        """Resolve a single order SKU given its (possibly missing) mapping.

        Storage failures are reported on the result instead of raised. A mapped
        line with an invalid ordered quantity is OUT_OF_STOCK without checking
        stock, and ``quantity_error`` becomes its diagnostic.
        """
        result = ResolutionResult(
            order_sku=order_sku,
            mapped=False,
            fulfillment_status=FulfillmentStatus.UNMAPPED,
            location_id=location_id,
            location_name=location_name,
            ordered_quantity=ordered_quantity
        )
        if quantity_error:
            result.diagnostics.append(quantity_error)

        if mapping is None:
            self._park(result)
            return result

        result.mapped = True
        result.stock_sku = mapping.stock_sku
        result.kit_sku = mapping.kit_sku
        result.unit_multiplier = mapping.unit_multiplier

        target = mapping.target_sku
        if not target:
            result.diagnostics.append(f"Mapeamento de {order_sku} sem SKU de estoque preenchido")
            return result

        if quantity_error:
            result.fulfillment_status = FulfillmentStatus.OUT_OF_STOCK
            return result

        try:
            self._resolve_stock(result, target)
        except StorageError as e:
            logger.error(f"Storage failure resolving {order_sku}: {e}")
            result.fulfillment_status = FulfillmentStatus.SKU_NOT_REGISTERED
            result.diagnostics.append(f"Falha ao consultar estoque de {e.sku or target}: {e.message}")

        return result

    def _park(self, result: ResolutionResult):
        result.diagnostics.append(MappingNotFoundError(result.order_sku).message)
        try:
            if self.repository.upsert_mapping_placeholder(result.order_sku, self.placeholder_reason):
                logger.info(f"Created placeholder mapping for {result.order_sku}")
        except StorageError as e:
            logger.error(f"Could not create placeholder mapping for {result.order_sku}: {e}")
            result.diagnostics.append(f"Falha ao criar mapeamento: {e.message}")

    def _resolve_stock(self, result: ResolutionResult, target: str):
        record = self.repository.find_stock_sku(target)
        if record is None or not record.exists or not record.active:
            result.fulfillment_status = FulfillmentStatus.SKU_NOT_REGISTERED
            result.diagnostics.append(SkuNotRegisteredError(target).message)
            return

        if record.quantity_on_hand <= 0:
            result.fulfillment_status = FulfillmentStatus.OUT_OF_STOCK
            result.diagnostics.append(f"Produto {target} sem estoque (disponível: {record.quantity_on_hand})")
            return

        components = self.composition.get_components(target, result.location_id)
        result.components = components
        if not components:
            result.fulfillment_status = FulfillmentStatus.NO_COMPOSITION
            result.diagnostics.append(
                CompositionMissingError(target, result.location_id, result.location_name).message
            )
            return

        ordered_units = result.ordered_quantity * (result.unit_multiplier or 1)
        check = self.composition.check_component_stock(
            target, result.location_id, ordered_units, components=components
        )
        if check.sufficient:
            result.fulfillment_status = FulfillmentStatus.READY_TO_FULFILL
            return

        result.fulfillment_status = FulfillmentStatus.OUT_OF_STOCK
        for short in check.short_components:
            result.diagnostics.append(short.message)
