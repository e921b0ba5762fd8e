# fulfillment_readiness/services/composition_resolver.py
from typing import List, Optional
import logging

from fulfillment_readiness.db.interface import StockRepository
from fulfillment_readiness.exceptions import ValidationError
from fulfillment_readiness.records import (
    AvailabilityResult, ComponentCheck, ComponentRow, DecrementLine, ResolutionResult
)
from fulfillment_readiness.services.stock_ledger import StockLocationLedger

logger = logging.getLogger(__name__)


class CompositionResolver:
    """Service for kit compositions.

    Every stock SKU is sold through its composition: a simple item has one
    component (itself), a kit has several. Compositions are registered per
    location, and a parent without rows at a location has no composition there.
    """

    def __init__(self, repository: StockRepository, ledger: StockLocationLedger):
        self.repository = repository
        self.ledger = ledger

    def get_components(self, stock_sku: str, location_id: Optional[str] = None) -> List[ComponentRow]:
        """Get the components of a stock SKU.

        Args:
            stock_sku: Parent SKU
            location_id: Location the composition is registered for; without it
                the rows of every location are merged, first location first

        Returns:
            Component rows, one per component SKU
        """
        rows = self.repository.find_composition(stock_sku, location_id)
        if location_id is not None:
            return rows

        components = {}
        for row in rows:
            components.setdefault(row.component_sku, row)
        return list(components.values())

    def has_composition(self, stock_sku: str, location_id: Optional[str] = None) -> bool:
        return bool(self.get_components(stock_sku, location_id))

    def check_component_stock(
        self,
        stock_sku: str,
        location_id: Optional[str],
        ordered_units: int,
        stop_at_first: bool = False,
        components: Optional[List[ComponentRow]] = None
    ) -> ComponentCheck:
        """Check that every component covers ``quantity_per_unit * ordered_units``.

        Args:
            stock_sku: Parent SKU
            location_id: Location to check; without it aggregate stock is used
            ordered_units: Units of the parent being ordered
            stop_at_first: Return as soon as one component is short
            components: Already loaded components, to avoid a second lookup

        Returns:
            ComponentCheck with one result per checked component
        """
        if components is None:
            components = self.get_components(stock_sku, location_id)

        if not components:
            return ComponentCheck(sufficient=False, results=[])

        results = []
        for component in components:
            required = component.quantity_per_unit * ordered_units
            result = self._check_component(component.component_sku, location_id, required)
            results.append(result)

            if not result.available:
                logger.debug(f"Component {component.component_sku} of {stock_sku} short: {result.message}")
                if stop_at_first:
                    break

        return ComponentCheck(
            sufficient=all(result.available for result in results),
            results=results
        )

    def is_component_stock_sufficient(self, stock_sku: str, location_id: Optional[str], ordered_units: int) -> bool:
        return self.check_component_stock(stock_sku, location_id, ordered_units, stop_at_first=True).sufficient

    def _check_component(self, component_sku: str, location_id: Optional[str], required: int) -> AvailabilityResult:
        if location_id is not None:
            return self.ledger.check_availability(component_sku, location_id, required)

        record = self.repository.find_stock_sku(component_sku)
        on_hand = record.quantity_on_hand if record else 0
        available = on_hand >= required
        return AvailabilityResult(
            sku=component_sku,
            required=required,
            available=available,
            on_hand=on_hand,
            message='' if available else f"Estoque insuficiente: {component_sku} necessário {required}, disponível {on_hand}"
        )

    def build_decrement_lines(self, result: ResolutionResult, ordered_units: Optional[int] = None) -> List[DecrementLine]:
        """Expand a ready order line into one ledger line per component.

        Args:
            result: READY_TO_FULFILL resolution carrying a location and components
            ordered_units: Units to decrement; defaults to ordered quantity times
                the mapping's unit multiplier

        Raises:
            ValidationError: If the line is not ready or has no location
        """
        if not result.is_ready:
            raise ValidationError(
                f"Pedido com SKU {result.order_sku} não está pronto para baixa ({result.status.label})",
                details={'order_sku': result.order_sku, 'status': result.status.value}
            )
        if not result.location_id:
            raise ValidationError(
                f"Local de estoque não informado para {result.order_sku}",
                details={'order_sku': result.order_sku}
            )

        if ordered_units is None:
            ordered_units = result.ordered_quantity * (result.unit_multiplier or 1)

        return [
            DecrementLine(
                sku=component.component_sku,
                location_id=result.location_id,
                qty=component.quantity_per_unit * ordered_units
            )
            for component in result.components
        ]
