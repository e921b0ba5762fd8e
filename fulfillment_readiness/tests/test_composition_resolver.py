"""
Tests for kit composition checks.
"""
import unittest
from unittest.mock import MagicMock
import pytest

from fulfillment_readiness.cache import LookupCache
from fulfillment_readiness.db.interface import StockRepository
from fulfillment_readiness.exceptions import ValidationError
from fulfillment_readiness.models import FulfillmentStatus
from fulfillment_readiness.records import ComponentRow, LocationRecord, ResolutionResult, StockSkuRecord
from fulfillment_readiness.services.composition_resolver import CompositionResolver
from fulfillment_readiness.services.stock_ledger import StockLocationLedger


class TestCompositionResolver(unittest.TestCase):
    def setUp(self):
        """Set up a kit K = {A: 2, B: 1} at location L1."""
        self.repository = MagicMock(spec=StockRepository)
        self.repository.find_location.return_value = LocationRecord(id='L1', name='Loja 1')
        self.repository.find_composition.return_value = [
            ComponentRow('A', 2, 'L1'),
            ComponentRow('B', 1, 'L1')
        ]
        self.stock = {'A': 6, 'B': 3}
        self.repository.find_location_stock.side_effect = lambda sku, location_id: self.stock.get(sku)

        ledger = StockLocationLedger(self.repository, LookupCache())
        self.resolver = CompositionResolver(self.repository, ledger)

    def test_kit_ready_when_every_component_covers_order(self):
        self.assertTrue(self.resolver.is_component_stock_sufficient('K', 'L1', 3))

    def test_kit_short_component_is_named(self):
        self.stock['A'] = 5

        self.assertFalse(self.resolver.is_component_stock_sufficient('K', 'L1', 3))

        check = self.resolver.check_component_stock('K', 'L1', 3)
        self.assertFalse(check.sufficient)
        self.assertEqual([short.sku for short in check.short_components], ['A'])
        self.assertEqual(check.short_components[0].required, 6)
        self.assertIn('A necessário 6, disponível 5', check.short_components[0].message)

    def test_stop_at_first_failure(self):
        self.stock = {'A': 0, 'B': 0}

        check = self.resolver.check_component_stock('K', 'L1', 1, stop_at_first=True)

        self.assertEqual(len(check.results), 1)

        check = self.resolver.check_component_stock('K', 'L1', 1)
        self.assertEqual(len(check.short_components), 2)

    def test_no_components_is_not_sufficient(self):
        self.repository.find_composition.return_value = []

        self.assertFalse(self.resolver.has_composition('K', 'L2'))
        self.assertFalse(self.resolver.is_component_stock_sufficient('K', 'L2', 1))

    def test_components_without_location_dedupe(self):
        self.repository.find_composition.return_value = [
            ComponentRow('A', 2, 'L1'),
            ComponentRow('B', 1, 'L1'),
            ComponentRow('A', 5, 'L2')
        ]

        components = self.resolver.get_components('K')

        self.repository.find_composition.assert_called_with('K', None)
        self.assertEqual([(c.component_sku, c.quantity_per_unit) for c in components], [('A', 2), ('B', 1)])

    def test_without_location_uses_aggregate_stock(self):
        records = {
            'A': StockSkuRecord(sku='A', quantity_on_hand=6),
            'B': StockSkuRecord(sku='B', quantity_on_hand=2)
        }
        self.repository.find_stock_sku.side_effect = lambda sku: records.get(sku)

        check = self.resolver.check_component_stock('K', None, 3)

        self.assertFalse(check.sufficient)
        self.assertEqual([short.sku for short in check.short_components], ['B'])
        self.repository.find_location_stock.assert_not_called()

    def test_build_decrement_lines(self):
        result = ResolutionResult(
            order_sku='ORD-K',
            mapped=True,
            fulfillment_status=FulfillmentStatus.READY_TO_FULFILL,
            stock_sku='K',
            unit_multiplier=2,
            location_id='L1',
            ordered_quantity=3,
            components=[ComponentRow('A', 2, 'L1'), ComponentRow('B', 1, 'L1')]
        )

        lines = self.resolver.build_decrement_lines(result)
        self.assertEqual([(line.sku, line.location_id, line.qty) for line in lines], [('A', 'L1', 12), ('B', 'L1', 6)])

        lines = self.resolver.build_decrement_lines(result, ordered_units=1)
        self.assertEqual([line.qty for line in lines], [2, 1])

    def test_build_decrement_lines_rejects_blocked_result(self):
        result = ResolutionResult(
            order_sku='ORD-K',
            mapped=True,
            fulfillment_status=FulfillmentStatus.OUT_OF_STOCK,
            location_id='L1'
        )

        with pytest.raises(ValidationError):
            self.resolver.build_decrement_lines(result)

    def test_build_decrement_lines_rejects_pending_insumos(self):
        result = ResolutionResult(
            order_sku='ORD-K',
            mapped=True,
            fulfillment_status=FulfillmentStatus.READY_TO_FULFILL,
            combined_status=FulfillmentStatus.OUT_OF_STOCK,
            location_id='L1',
            components=[ComponentRow('A', 2, 'L1')]
        )

        with pytest.raises(ValidationError) as exc_info:
            self.resolver.build_decrement_lines(result)

        self.assertEqual(exc_info.value.details['status'], 'OUT_OF_STOCK')


if __name__ == '__main__':
    unittest.main()
