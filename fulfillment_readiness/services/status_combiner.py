# fulfillment_readiness/services/status_combiner.py
from fulfillment_readiness.models import CombinedStatus, FulfillmentStatus, SupplyStatus


def combine(fulfillment_status: FulfillmentStatus, supply_status: SupplyStatus) -> CombinedStatus:
    """Merge fulfillment and supply statuses into one readiness status.

    The most severe condition wins: a missing catalog entry (product or insumo)
    beats missing stock (product or insumo), which beats the pass-through
    UNMAPPED and NO_COMPOSITION states.
    """
    if (fulfillment_status is FulfillmentStatus.SKU_NOT_REGISTERED
            or supply_status is SupplyStatus.INSUMO_NOT_REGISTERED):
        return CombinedStatus.SKU_NOT_REGISTERED

    if (fulfillment_status is FulfillmentStatus.OUT_OF_STOCK
            or supply_status is SupplyStatus.INSUMO_PENDING):
        return CombinedStatus.OUT_OF_STOCK

    if fulfillment_status in (FulfillmentStatus.UNMAPPED, FulfillmentStatus.NO_COMPOSITION):
        return fulfillment_status

    return CombinedStatus.READY_TO_FULFILL


class StatusCombiner:
    """Stateless wrapper so the combiner can be injected like the other services."""

    @staticmethod
    def combine(fulfillment_status: FulfillmentStatus, supply_status: SupplyStatus) -> CombinedStatus:
        return combine(fulfillment_status, supply_status)
