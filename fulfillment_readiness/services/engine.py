# fulfillment_readiness/services/engine.py
from collections import Counter
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union
import logging

from fulfillment_readiness.cache import LookupCache
from fulfillment_readiness.config import config as default_config
from fulfillment_readiness.db.interface import StockRepository
from fulfillment_readiness.exceptions import FulfillmentError, OrderAlreadyProcessedError, StorageError
from fulfillment_readiness.logging_setup import logger as log_manager, log_exception
from fulfillment_readiness.models import SupplyStatus
from fulfillment_readiness.records import DecrementLine, DecrementReport, ResolutionResult, SupplyResult
from fulfillment_readiness.services.composition_resolver import CompositionResolver
from fulfillment_readiness.services.mapping_resolver import SkuMappingResolver
from fulfillment_readiness.services.status_combiner import combine
from fulfillment_readiness.services.stock_ledger import StockLocationLedger
from fulfillment_readiness.services.supply_validation import SupplyValidationEngine
from fulfillment_readiness.utils.sku import normalize_sku
from fulfillment_readiness.utils.validation import validate_decrement_line

logger = logging.getLogger(__name__)

LineInput = Union[DecrementLine, Mapping[str, Any]]


class FulfillmentReadinessEngine:
    """Entry point for order readiness checks and stock decrements.

    Wires the stock ledger, the mapping and composition resolvers, the insumo
    validator and the status combiner over one repository.
    """

    def __init__(self, repository: StockRepository, config=None, cache: LookupCache = None):
        """Initialize the engine.

        Args:
            repository: Storage backend
            config: ``Config`` object or a dict overriding RESOLUTION settings
            cache: Cache for location names; built from configuration if omitted
        """
        settings = dict(default_config.resolution_config)
        if isinstance(config, Mapping):
            settings.update(config)
        elif config is not None:
            settings.update(config.resolution_config)
        self.settings = settings

        if cache is None:
            cache = LookupCache(settings['location_cache_size'], settings['location_cache_ttl_seconds'])

        self.repository = repository
        self.cache = cache
        self.ledger = StockLocationLedger(repository, cache)
        self.composition = CompositionResolver(repository, self.ledger)
        self.mapping = SkuMappingResolver(
            repository,
            self.composition,
            self.ledger,
            max_workers=settings['max_workers'],
            placeholder_reason=settings['placeholder_reason'],
            normalize=settings['normalize_skus']
        )
        self.supply = SupplyValidationEngine(
            repository,
            self.ledger,
            max_workers=settings['max_workers'],
            normalize=settings['normalize_skus']
        )

    def resolve_batch(
        self,
        order_skus: Iterable[str],
        location_id: Optional[str] = None,
        qty_by_sku: Optional[Dict[str, int]] = None
    ) -> List[ResolutionResult]:
        """Resolve order SKUs to a combined readiness status.

        Args:
            order_skus: Order-line SKUs
            location_id: Location the orders ship from
            qty_by_sku: Ordered quantity per order SKU, 1 when absent

        Returns:
            One ResolutionResult per distinct order SKU with fulfillment, supply
            and combined statuses filled in

        Raises:
            StorageError: If the batch mapping lookup fails
        """
        order_skus = list(order_skus)
        log_info = log_manager.batch_start_log('resolve_batch', {
            'order_skus': len(order_skus),
            'location_id': location_id
        })

        try:
            results = self.mapping.resolve_batch(order_skus, location_id, qty_by_sku)

            targets = [result.stock_sku or result.kit_sku for result in results if result.mapped]
            supply = self.supply.validate_batch([sku for sku in targets if sku], location_id)

            for result in results:
                target = self._sku(result.stock_sku or result.kit_sku) if result.mapped else ''
                self._apply_supply(result, supply.get(target) if target else None)
        except FulfillmentError as e:
            log_exception('batch', e, "resolve_batch failed")
            log_manager.batch_end_log(log_info, success=False)
            raise

        counts = Counter(result.combined_status.value for result in results)
        log_manager.batch_end_log(log_info, success=True, result_info=dict(counts))
        return results

    @staticmethod
    def _apply_supply(result: ResolutionResult, supply_result: Optional[SupplyResult]):
        if supply_result is None:
            result.supply_status = SupplyStatus.NO_INSUMO_MAPPING
        else:
            result.supply_status = supply_result.status
            result.diagnostics.extend(supply_result.details)

        result.combined_status = combine(result.fulfillment_status, result.supply_status)

    def validate_supply_batch(self, stock_skus: Iterable[str], location_id: Optional[str] = None) -> Dict[str, SupplyResult]:
        """Validate the insumos of several stock SKUs."""
        stock_skus = list(stock_skus)
        log_info = log_manager.batch_start_log('validate_supply_batch', {
            'stock_skus': len(stock_skus),
            'location_id': location_id
        })

        results = self.supply.validate_batch(stock_skus, location_id)

        counts = Counter(result.status.value for result in results.values())
        log_manager.batch_end_log(log_info, success=True, result_info=dict(counts))
        return results

    def plan_decrement(self, results: Iterable[ResolutionResult]) -> List[DecrementLine]:
        """Ledger lines for every ready result; other results are skipped.

        A result is ready when its combined status is, so a line whose insumos
        are pending is never decremented.
        """
        lines = []
        for result in results:
            if result.is_ready:
                lines.extend(self.composition.build_decrement_lines(result))
        return lines

    def decrement_for_order(self, lines: Iterable[LineInput], order_id: Optional[str] = None) -> DecrementReport:
        """Apply the stock decrements of an order.

        Every line is attempted even when an earlier one fails. With an
        ``order_id``, an order already recorded as processed is refused as a
        whole, and the order is recorded once at least one line succeeds.

        Args:
            lines: DecrementLine objects or mappings with sku, location_id and qty
            order_id: Unique order identifier

        Returns:
            DecrementReport with succeeded results and failed ``{sku, reason}`` items

        Raises:
            StorageError: If the processed-order check fails
        """
        lines = [self._as_line(line) for line in lines]
        report = DecrementReport()
        log_info = log_manager.batch_start_log('decrement_for_order', {
            'order_id': order_id,
            'lines': len(lines)
        })

        try:
            processed = bool(order_id) and self.repository.is_order_processed(order_id)
        except StorageError as e:
            log_exception('batch', e, f"Could not check whether order {order_id} was processed")
            log_manager.batch_end_log(log_info, success=False)
            raise

        if processed:
            reason = OrderAlreadyProcessedError(order_id)
            logger.warning(str(reason))
            for line in lines:
                report.add_failure(line.sku, "Pedido já processado")
            log_manager.batch_end_log(log_info, success=False, result_info={'failed': len(report.failed)})
            return report

        for line in lines:
            errors = validate_decrement_line(line)
            if errors:
                report.add_failure(line.sku, '; '.join(errors.values()))
                continue

            try:
                report.succeeded.append(self.ledger.decrement(line.sku, line.location_id, line.qty))
            except FulfillmentError as e:
                logger.warning(f"Decrement of {line.sku} at {line.location_id} failed: {e}")
                report.add_failure(line.sku, e.message)

        if order_id and report.succeeded:
            self._record_order(order_id, report)

        log_manager.batch_end_log(log_info, success=report.success, result_info={
            'succeeded': len(report.succeeded),
            'failed': len(report.failed)
        })
        return report

    def consume_insumos(self, stock_skus: List[str], location_id: str) -> DecrementReport:
        """Decrement the insumos of an order's lines at a location."""
        return self.supply.consume(stock_skus, location_id)

    def _record_order(self, order_id: str, report: DecrementReport):
        skus = list(dict.fromkeys(result.sku for result in report.succeeded))
        total = sum(result.quantity for result in report.succeeded)
        try:
            if not self.repository.record_processed_order(order_id, skus, total):
                logger.warning(f"Order {order_id} was recorded by a concurrent decrement")
        except StorageError as e:
            # Stock is already decremented at this point
            log_exception('batch', e, f"Could not record order {order_id} as processed")

    def _sku(self, value: Optional[str]) -> str:
        return normalize_sku(value) if self.settings['normalize_skus'] else (value or '')

    def _as_line(self, line: LineInput) -> DecrementLine:
        if isinstance(line, DecrementLine):
            sku, location_id, qty = line.sku, line.location_id, line.qty
        else:
            sku, location_id, qty = line.get('sku'), line.get('location_id'), line.get('qty')

        return DecrementLine(sku=self._sku(sku), location_id=location_id, qty=qty)
