"""
Tests for status combination and the status enums.
"""
import unittest
import pytest

from fulfillment_readiness.models import FulfillmentStatus, SupplyStatus, CombinedStatus
from fulfillment_readiness.services.status_combiner import combine, StatusCombiner


class TestStatusCombiner(unittest.TestCase):

    def test_catalog_gap_wins_over_everything(self):
        """Missing product or insumo registration is the most severe outcome."""
        self.assertEqual(
            combine(FulfillmentStatus.SKU_NOT_REGISTERED, SupplyStatus.READY),
            CombinedStatus.SKU_NOT_REGISTERED
        )
        self.assertEqual(
            combine(FulfillmentStatus.READY_TO_FULFILL, SupplyStatus.INSUMO_NOT_REGISTERED),
            CombinedStatus.SKU_NOT_REGISTERED
        )
        self.assertEqual(
            combine(FulfillmentStatus.OUT_OF_STOCK, SupplyStatus.INSUMO_NOT_REGISTERED),
            CombinedStatus.SKU_NOT_REGISTERED
        )

    def test_pending_insumo_is_out_of_stock(self):
        self.assertEqual(
            combine(FulfillmentStatus.READY_TO_FULFILL, SupplyStatus.INSUMO_PENDING),
            CombinedStatus.OUT_OF_STOCK
        )
        self.assertEqual(
            combine(FulfillmentStatus.UNMAPPED, SupplyStatus.INSUMO_PENDING),
            CombinedStatus.OUT_OF_STOCK
        )

    def test_missing_insumo_mapping_does_not_block(self):
        self.assertEqual(
            combine(FulfillmentStatus.READY_TO_FULFILL, SupplyStatus.NO_INSUMO_MAPPING),
            CombinedStatus.READY_TO_FULFILL
        )

    def test_pass_through_states(self):
        for status in (FulfillmentStatus.UNMAPPED, FulfillmentStatus.NO_COMPOSITION):
            self.assertEqual(combine(status, SupplyStatus.READY), status)
            self.assertEqual(combine(status, SupplyStatus.NO_INSUMO_MAPPING), status)

    def test_wrapper_matches_function(self):
        for fulfillment in FulfillmentStatus:
            for supply in SupplyStatus:
                self.assertEqual(StatusCombiner.combine(fulfillment, supply), combine(fulfillment, supply))

    def test_result_never_less_severe_than_fulfillment(self):
        for fulfillment in FulfillmentStatus:
            for supply in SupplyStatus:
                combined = combine(fulfillment, supply)
                if fulfillment.severity >= FulfillmentStatus.OUT_OF_STOCK.severity:
                    self.assertGreaterEqual(combined.severity, fulfillment.severity)


class TestStatusEnums(unittest.TestCase):

    def test_fulfillment_severity_order(self):
        ordered = sorted(FulfillmentStatus, key=lambda status: status.severity, reverse=True)
        self.assertEqual(ordered, [
            FulfillmentStatus.SKU_NOT_REGISTERED,
            FulfillmentStatus.OUT_OF_STOCK,
            FulfillmentStatus.UNMAPPED,
            FulfillmentStatus.NO_COMPOSITION,
            FulfillmentStatus.READY_TO_FULFILL
        ])

    def test_supply_severity_order(self):
        ordered = sorted(SupplyStatus, key=lambda status: status.severity, reverse=True)
        self.assertEqual(ordered, [
            SupplyStatus.INSUMO_NOT_REGISTERED,
            SupplyStatus.INSUMO_PENDING,
            SupplyStatus.NO_INSUMO_MAPPING,
            SupplyStatus.READY
        ])

    def test_from_string(self):
        self.assertIs(FulfillmentStatus.from_string('OUT_OF_STOCK'), FulfillmentStatus.OUT_OF_STOCK)
        self.assertIs(SupplyStatus.from_string('READY'), SupplyStatus.READY)

        with pytest.raises(ValueError):
            FulfillmentStatus.from_string('SHIPPED')
        with pytest.raises(ValueError):
            SupplyStatus.from_string('')

    def test_labels(self):
        self.assertEqual(FulfillmentStatus.READY_TO_FULFILL.label, 'Pronto')
        self.assertEqual(FulfillmentStatus.SKU_NOT_REGISTERED.label, 'SKU sem cadastro no Estoque')
        self.assertEqual(str(FulfillmentStatus.UNMAPPED), 'UNMAPPED')


if __name__ == '__main__':
    unittest.main()
