"""
Tests for the per-location stock ledger.
"""
import unittest
from unittest.mock import MagicMock
import pytest

from fulfillment_readiness.cache import LookupCache
from fulfillment_readiness.db.interface import StockRepository
from fulfillment_readiness.exceptions import InsufficientStockError, StorageError, ValidationError
from fulfillment_readiness.records import LocationRecord
from fulfillment_readiness.services.stock_ledger import StockLocationLedger


class TestStockLocationLedger(unittest.TestCase):
    def setUp(self):
        """Set up test fixtures."""
        self.repository = MagicMock(spec=StockRepository)
        self.repository.find_location.return_value = LocationRecord(id='L1', name='Depósito Central')
        self.ledger = StockLocationLedger(self.repository, LookupCache(max_size=8, ttl_seconds=60))

    def test_check_availability_enough(self):
        self.repository.find_location_stock.return_value = 5

        result = self.ledger.check_availability('A', 'L1', 3)

        self.assertTrue(result.available)
        self.assertEqual(result.on_hand, 5)
        self.assertEqual(result.location_name, 'Depósito Central')
        self.assertEqual(result.message, '')

    def test_check_availability_short(self):
        self.repository.find_location_stock.return_value = 1

        result = self.ledger.check_availability('SKU-A', 'L1', 3)

        self.assertFalse(result.available)
        self.assertEqual(result.on_hand, 1)
        self.assertIn('Estoque insuficiente no local "Depósito Central"', result.message)
        self.assertIn('SKU-A necessário 3, disponível 1', result.message)

    def test_check_availability_without_entry_is_soft_failure(self):
        self.repository.find_location_stock.return_value = None

        result = self.ledger.check_availability('A', 'L1', 1)

        self.assertFalse(result.available)
        self.assertEqual(result.on_hand, 0)

    def test_location_name_is_cached(self):
        self.repository.find_location_stock.return_value = 5

        self.ledger.check_availability('A', 'L1', 1)
        self.ledger.check_availability('B', 'L1', 1)

        self.repository.find_location.assert_called_once_with('L1')

    def test_location_name_falls_back_to_id(self):
        self.repository.find_location.return_value = None
        self.assertEqual(self.ledger.location_name('L9'), 'L9')

        self.repository.find_location.side_effect = StorageError('timeout')
        self.assertEqual(self.ledger.location_name('L8'), 'L8')

    def test_batch_summary_lists_every_shortfall(self):
        stock = {'A': 10, 'B': 0, 'C': None}
        self.repository.find_location_stock.side_effect = lambda sku, location_id: stock[sku]

        batch = self.ledger.check_availability_batch({'A': 2, 'B': 1, 'C': 1}, 'L1')

        self.assertFalse(batch.all_available)
        self.assertEqual([result.sku for result in batch.shortfalls], ['B', 'C'])
        lines = batch.error_summary.split('\n')
        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[0].startswith('B: '))
        self.assertTrue(lines[1].startswith('C: '))

    def test_batch_accepts_pairs(self):
        self.repository.find_location_stock.return_value = 4

        batch = self.ledger.check_availability_batch([('A', 2), ('B', 4)], 'L1')

        self.assertTrue(batch.all_available)
        self.assertEqual(batch.error_summary, '')

    def test_decrement_success_refreshes_aggregate(self):
        self.repository.decrement_location_stock.return_value = 7
        self.repository.refresh_aggregate_quantity.return_value = 12

        result = self.ledger.decrement('A', 'L1', 3)

        self.repository.decrement_location_stock.assert_called_once_with('A', 'L1', 3)
        self.repository.refresh_aggregate_quantity.assert_called_once_with('A')
        self.assertEqual(result.new_quantity_at_location, 7)
        self.assertEqual(result.new_aggregate_quantity, 12)

    def test_decrement_insufficient(self):
        self.repository.decrement_location_stock.return_value = None
        self.repository.find_location_stock.return_value = 1

        with pytest.raises(InsufficientStockError) as exc_info:
            self.ledger.decrement('SKU-A', 'L1', 3)

        error = exc_info.value
        self.assertEqual(error.code, 'OUT_OF_STOCK')
        self.assertEqual(error.required, 3)
        self.assertEqual(error.available, 1)
        self.repository.refresh_aggregate_quantity.assert_not_called()

    def test_decrement_rejects_non_positive(self):
        for qty in (0, -2):
            with pytest.raises(ValidationError):
                self.ledger.decrement('A', 'L1', qty)

        self.repository.decrement_location_stock.assert_not_called()

    def test_aggregate_failure_does_not_undo_decrement(self):
        self.repository.decrement_location_stock.return_value = 2
        self.repository.refresh_aggregate_quantity.side_effect = StorageError('down', sku='A')

        result = self.ledger.decrement('A', 'L1', 1)

        self.assertEqual(result.new_quantity_at_location, 2)
        self.assertIsNone(result.new_aggregate_quantity)

    def test_storage_error_on_decrement_propagates(self):
        self.repository.decrement_location_stock.side_effect = StorageError('down', sku='A')

        with pytest.raises(StorageError):
            self.ledger.decrement('A', 'L1', 1)

    def test_increment(self):
        self.repository.increment_location_stock.return_value = 9
        self.repository.refresh_aggregate_quantity.return_value = 9

        result = self.ledger.increment('A', 'L1', 4)

        self.repository.increment_location_stock.assert_called_once_with('A', 'L1', 4)
        self.assertEqual(result.new_quantity_at_location, 9)

    def test_set_quantity(self):
        self.repository.find_location_stock.return_value = 3
        self.repository.refresh_aggregate_quantity.return_value = 10

        result = self.ledger.set_quantity('A', 'L1', 10)

        self.repository.update_location_stock.assert_called_once_with('A', 'L1', 10)
        self.assertEqual(result.quantity, 7)
        self.assertEqual(result.new_aggregate_quantity, 10)

    def test_set_quantity_rejects_negative(self):
        with pytest.raises(ValidationError):
            self.ledger.set_quantity('A', 'L1', -1)

        self.repository.update_location_stock.assert_not_called()


if __name__ == '__main__':
    unittest.main()
