# fulfillment_readiness/services/supply_validation.py
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional
import logging

from fulfillment_readiness.db.interface import StockRepository
from fulfillment_readiness.exceptions import FulfillmentError, StorageError
from fulfillment_readiness.models import SupplyStatus
from fulfillment_readiness.records import DecrementReport, SupplyResult
from fulfillment_readiness.services.stock_ledger import StockLocationLedger
from fulfillment_readiness.utils.sku import normalize_sku, normalize_skus

logger = logging.getLogger(__name__)


class SupplyValidationEngine:
    """Validates the insumos (packaging and other auxiliary materials) of stock SKUs.

    Insumos are consumed once per order line that contains the product, no
    matter how many units the line orders.
    """

    def __init__(self, repository: StockRepository, ledger: StockLocationLedger, max_workers: int = 8,
                 normalize: bool = True):
        self.repository = repository
        self.ledger = ledger
        self.max_workers = max(1, max_workers)
        self.normalize = normalize

    def _sku(self, value: str) -> str:
        return normalize_sku(value) if self.normalize else (value or '')

    def required_insumos(self, stock_sku: str) -> Dict[str, int]:
        """Units of each insumo consumed by one order line of ``stock_sku``."""
        required = {}
        for row in self.repository.find_insumo_composition(stock_sku):
            required[row.insumo_sku] = max(1, row.quantity or 1)
        return required

    def validate(self, stock_sku: str, location_id: Optional[str] = None) -> SupplyResult:
        """Validate the insumos of a stock SKU.

        Args:
            stock_sku: Product whose insumos are checked
            location_id: Location to check; without it aggregate stock is used

        Returns:
            SupplyResult with the status and one detail line per problem
        """
        stock_sku = self._sku(stock_sku)
        location_name = self.ledger.location_name(location_id)
        result = SupplyResult(
            stock_sku=stock_sku,
            status=SupplyStatus.READY,
            location_id=location_id,
            location_name=location_name
        )

        required = self.required_insumos(stock_sku)
        if not required:
            result.status = SupplyStatus.NO_INSUMO_MAPPING
            return result

        stock = self.repository.find_insumo_stock(list(required))
        missing = [sku for sku in required if sku not in stock]
        if missing:
            result.status = SupplyStatus.INSUMO_NOT_REGISTERED
            result.details = [f"Insumo {sku} não cadastrado no estoque" for sku in missing]
            return result

        if location_id is not None:
            availability = self.ledger.check_availability_batch(required, location_id)
            pending = [(short.sku, short.required, short.on_hand) for short in availability.shortfalls]
        else:
            pending = [(sku, qty, stock[sku]) for sku, qty in required.items() if stock[sku] < qty]

        if pending:
            result.status = SupplyStatus.INSUMO_PENDING
            where = f" no local \"{location_name}\"" if location_id is not None else ''
            result.details = [
                f"Insumo {sku}{where}: necessário {qty}, disponível {on_hand}"
                for sku, qty, on_hand in pending
            ]

        return result

    def validate_batch(self, stock_skus: Iterable[str], location_id: Optional[str] = None) -> Dict[str, SupplyResult]:
        """Validate several stock SKUs in parallel.

        A storage failure for one SKU is reported on its own result.
        """
        skus = normalize_skus(stock_skus, self.normalize)

        if not skus:
            return {}

        def validate_one(sku):
            try:
                return self.validate(sku, location_id)
            except StorageError as e:
                logger.error(f"Storage failure validating insumos of {sku}: {e}")
                return SupplyResult(
                    stock_sku=sku,
                    status=SupplyStatus.INSUMO_NOT_REGISTERED,
                    details=[f"Falha ao consultar insumos de {e.sku or sku}: {e.message}"],
                    location_id=location_id
                )

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(skus))) as executor:
            return dict(zip(skus, executor.map(validate_one, skus)))

    def consume(self, stock_skus: List[str], location_id: str) -> DecrementReport:
        """Decrement the insumos of each order line at a location.

        Args:
            stock_skus: Stock SKU of every order line; repeat a SKU once per line
            location_id: Location the order ships from

        Returns:
            DecrementReport; a failed insumo does not stop the others
        """
        report = DecrementReport()

        for value in stock_skus:
            stock_sku = self._sku(value)
            try:
                required = self.required_insumos(stock_sku)
            except StorageError as e:
                report.add_failure(stock_sku, e.message)
                continue

            for insumo_sku, qty in required.items():
                try:
                    report.succeeded.append(self.ledger.decrement(insumo_sku, location_id, qty))
                except FulfillmentError as e:
                    logger.warning(f"Insumo {insumo_sku} of {stock_sku} not decremented: {e}")
                    report.add_failure(insumo_sku, e.message)

        return report
