# fulfillment_readiness/records.py
"""Plain records exchanged between the storage layer and the engine services.

Storage implementations convert ORM objects or PostgREST rows into these so the
services never deal with untyped dictionaries.
"""
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional

from fulfillment_readiness.models import FulfillmentStatus, SupplyStatus


@dataclass(frozen=True)
class SkuMappingRecord:
    order_sku: str
    stock_sku: Optional[str] = None
    kit_sku: Optional[str] = None
    unit_multiplier: int = 1
    active: bool = True
    creation_reason: Optional[str] = None

    @property
    def target_sku(self) -> Optional[str]:
        """Stock SKU to resolve against, falling back to the kit SKU."""
        return self.stock_sku or self.kit_sku or None


@dataclass(frozen=True)
class StockSkuRecord:
    sku: str
    exists: bool = True
    active: bool = True
    quantity_on_hand: int = 0
    minimum_quantity: int = 0
    name: str = ''


@dataclass(frozen=True)
class ComponentRow:
    component_sku: str
    quantity_per_unit: int
    location_id: Optional[str] = None


@dataclass(frozen=True)
class InsumoRow:
    insumo_sku: str
    quantity: int = 1


@dataclass(frozen=True)
class LocationRecord:
    id: str
    name: str
    active: bool = True


@dataclass
class AvailabilityResult:
    sku: str
    required: int
    available: bool
    on_hand: int
    location_id: Optional[str] = None
    location_name: Optional[str] = None
    message: str = ''


@dataclass
class BatchAvailability:
    results: List[AvailabilityResult]
    all_available: bool
    error_summary: str = ''

    @property
    def shortfalls(self) -> List[AvailabilityResult]:
        return [result for result in self.results if not result.available]


@dataclass
class DecrementResult:
    sku: str
    location_id: str
    quantity: int
    new_quantity_at_location: int
    new_aggregate_quantity: Optional[int] = None


@dataclass
class ComponentCheck:
    """Outcome of checking every component of a kit at a location."""
    sufficient: bool
    results: List[AvailabilityResult] = field(default_factory=list)

    @property
    def short_components(self) -> List[AvailabilityResult]:
        return [result for result in self.results if not result.available]


@dataclass
class SupplyResult:
    stock_sku: str
    status: SupplyStatus
    details: List[str] = field(default_factory=list)
    location_id: Optional[str] = None
    location_name: Optional[str] = None

    @property
    def diagnostic(self) -> str:
        return '; '.join(self.details)


@dataclass
class ResolutionResult:
    order_sku: str
    mapped: bool
    fulfillment_status: FulfillmentStatus
    stock_sku: Optional[str] = None
    kit_sku: Optional[str] = None
    unit_multiplier: Optional[int] = None
    supply_status: SupplyStatus = SupplyStatus.NO_INSUMO_MAPPING
    combined_status: Optional[FulfillmentStatus] = None
    location_id: Optional[str] = None
    location_name: Optional[str] = None
    ordered_quantity: int = 1
    components: List[ComponentRow] = field(default_factory=list)
    diagnostics: List[str] = field(default_factory=list)

    @property
    def diagnostic(self) -> str:
        """Single free-text diagnostic suitable for direct display."""
        return '\n'.join(self.diagnostics)

    @property
    def status(self) -> FulfillmentStatus:
        """Combined status once supply was checked, the fulfillment status before that."""
        return self.combined_status if self.combined_status is not None else self.fulfillment_status

    @property
    def is_ready(self) -> bool:
        return self.status.is_ready

    def to_dict(self) -> Dict:
        data = asdict(self)
        data['fulfillment_status'] = self.fulfillment_status.value
        data['supply_status'] = self.supply_status.value
        data['combined_status'] = self.combined_status.value if self.combined_status else None
        return data


@dataclass(frozen=True)
class DecrementLine:
    sku: str
    location_id: str
    qty: int


@dataclass
class DecrementReport:
    succeeded: List[DecrementResult] = field(default_factory=list)
    failed: List[Dict[str, str]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed

    def add_failure(self, sku, reason):
        self.failed.append({'sku': sku, 'reason': reason})

    def merge(self, other: 'DecrementReport') -> 'DecrementReport':
        self.succeeded.extend(other.succeeded)
        self.failed.extend(other.failed)
        return self
