"""
Tests for insumo validation and consumption.
"""
import unittest
from unittest.mock import MagicMock

from fulfillment_readiness.cache import LookupCache
from fulfillment_readiness.db.interface import StockRepository
from fulfillment_readiness.exceptions import StorageError
from fulfillment_readiness.models import SupplyStatus
from fulfillment_readiness.records import InsumoRow, LocationRecord
from fulfillment_readiness.services.stock_ledger import StockLocationLedger
from fulfillment_readiness.services.supply_validation import SupplyValidationEngine


class TestSupplyValidationEngine(unittest.TestCase):
    def setUp(self):
        """Set up products P1 (box + tape) and P2 (no insumos)."""
        self.insumos = {
            'P1': [InsumoRow('BOX', 1), InsumoRow('TAPE', 1)]
        }
        self.catalog = {'BOX': 5, 'TAPE': 2}
        self.at_location = {'BOX': 1, 'TAPE': 0}

        repository = MagicMock(spec=StockRepository)
        repository.find_insumo_composition.side_effect = lambda sku: list(self.insumos.get(sku, []))
        repository.find_insumo_stock.side_effect = \
            lambda skus, location_id=None: {sku: self.catalog[sku] for sku in skus if sku in self.catalog}
        repository.find_location_stock.side_effect = lambda sku, location_id: self.at_location.get(sku)
        repository.find_location.return_value = LocationRecord(id='L1', name='Loja 1')
        repository.refresh_aggregate_quantity.return_value = 0
        self.repository = repository

        self.engine = SupplyValidationEngine(repository, StockLocationLedger(repository, LookupCache()), max_workers=2)

    def test_no_insumo_mapping(self):
        result = self.engine.validate('P2')

        self.assertEqual(result.status, SupplyStatus.NO_INSUMO_MAPPING)
        self.repository.find_insumo_stock.assert_not_called()

    def test_ready_with_aggregate_stock(self):
        result = self.engine.validate('P1')

        self.assertEqual(result.status, SupplyStatus.READY)
        self.assertEqual(result.details, [])

    def test_missing_insumo_lists_every_sku(self):
        self.insumos['P1'].append(InsumoRow('LABEL', 1))
        self.insumos['P1'].append(InsumoRow('BAG', 1))

        result = self.engine.validate('P1')

        self.assertEqual(result.status, SupplyStatus.INSUMO_NOT_REGISTERED)
        self.assertEqual(len(result.details), 2)
        self.assertIn('LABEL', result.details[0])
        self.assertIn('BAG', result.details[1])

    def test_pending_at_location(self):
        result = self.engine.validate('P1', 'L1')

        self.assertEqual(result.status, SupplyStatus.INSUMO_PENDING)
        self.assertEqual(result.location_name, 'Loja 1')
        self.assertEqual(result.details, ['Insumo TAPE no local "Loja 1": necessário 1, disponível 0'])

    def test_pending_with_aggregate_stock(self):
        self.catalog['TAPE'] = 0

        result = self.engine.validate('P1')

        self.assertEqual(result.status, SupplyStatus.INSUMO_PENDING)
        self.assertEqual(result.details, ['Insumo TAPE: necessário 1, disponível 0'])

    def test_zero_quantity_row_still_requires_one(self):
        self.insumos['P1'] = [InsumoRow('BOX', 0)]

        self.assertEqual(self.engine.required_insumos('P1'), {'BOX': 1})

    def test_validate_batch_isolates_failures(self):
        def find_insumo_composition(sku):
            if sku == 'BROKEN':
                raise StorageError('timeout', sku=sku)
            return list(self.insumos.get(sku, []))

        self.repository.find_insumo_composition.side_effect = find_insumo_composition

        results = self.engine.validate_batch(['p1', 'BROKEN', 'P2', 'P1'])

        self.assertEqual(list(results), ['P1', 'BROKEN', 'P2'])
        self.assertEqual(results['P1'].status, SupplyStatus.READY)
        self.assertEqual(results['BROKEN'].status, SupplyStatus.INSUMO_NOT_REGISTERED)
        self.assertIn('timeout', results['BROKEN'].diagnostic)
        self.assertEqual(results['P2'].status, SupplyStatus.NO_INSUMO_MAPPING)

    def test_consume_once_per_order_line(self):
        self.at_location = {'BOX': 5, 'TAPE': 5}
        self.repository.decrement_location_stock.return_value = 4

        report = self.engine.consume(['P1', 'P1', 'P2'], 'L1')

        self.assertTrue(report.success)
        self.assertEqual(len(report.succeeded), 4)
        self.assertEqual(self.repository.decrement_location_stock.call_count, 4)
        for call in self.repository.decrement_location_stock.call_args_list:
            self.assertEqual(call.args[2], 1)

    def test_consume_reports_insufficient_insumo(self):
        def decrement(sku, location_id, qty):
            return None if sku == 'TAPE' else 0

        self.repository.decrement_location_stock.side_effect = decrement

        report = self.engine.consume(['P1'], 'L1')

        self.assertFalse(report.success)
        self.assertEqual([item.sku for item in report.succeeded], ['BOX'])
        self.assertEqual(report.failed[0]['sku'], 'TAPE')
        self.assertIn('Estoque insuficiente', report.failed[0]['reason'])


if __name__ == '__main__':
    unittest.main()
