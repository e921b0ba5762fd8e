"""
Tests for SKU helpers, input validation and the lookup cache.
"""
import unittest
import pytest

from fulfillment_readiness.cache import LookupCache
from fulfillment_readiness.exceptions import ValidationError
from fulfillment_readiness.records import DecrementLine
from fulfillment_readiness.utils.sku import normalize_sku, normalize_skus, parse_order_skus
from fulfillment_readiness.utils.validation import validate_quantity, validate_decrement_line


class TestSkuHelpers(unittest.TestCase):

    def test_normalize_sku(self):
        self.assertEqual(normalize_sku('  abc-1 '), 'ABC-1')
        self.assertEqual(normalize_sku(None), '')

    def test_normalize_skus_drops_blanks_and_duplicates(self):
        self.assertEqual(normalize_skus(['a', ' A ', '', None, 'b']), ['A', 'B'])

    def test_normalize_skus_can_keep_values_as_given(self):
        self.assertEqual(normalize_skus(['a', 'a', None, 'A'], normalize=False), ['a', 'A'])

    def test_parse_order_skus(self):
        self.assertEqual(
            parse_order_skus('SKU123 (2x), SKU456'),
            [('SKU123', 2), ('SKU456', 1)]
        )

    def test_parse_order_skus_lowercase_and_spacing(self):
        self.assertEqual(parse_order_skus('kit-9(3x)  part-a'), [('KIT-9', 3), ('PART-A', 1)])

    def test_parse_empty_note(self):
        self.assertEqual(parse_order_skus(''), [])
        self.assertEqual(parse_order_skus(None), [])


class TestValidation(unittest.TestCase):

    def test_validate_quantity(self):
        self.assertEqual(validate_quantity(3), 3)
        self.assertEqual(validate_quantity(2.0), 2)

        for bad in (0, -1, 1.5, 'x', None, True):
            with pytest.raises(ValidationError):
                validate_quantity(bad)

    def test_validate_decrement_line(self):
        self.assertEqual(validate_decrement_line(DecrementLine('A', 'L1', 2)), {})

        errors = validate_decrement_line(DecrementLine('', None, 0))
        self.assertEqual(set(errors), {'sku', 'location_id', 'qty'})


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestLookupCache(unittest.TestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.cache = LookupCache(max_size=2, ttl_seconds=10, clock=self.clock)

    def test_entries_expire(self):
        self.cache.set('L1', 'Depósito')
        self.assertEqual(self.cache.get('L1'), 'Depósito')

        self.clock.now = 10.5
        self.assertIsNone(self.cache.get('L1'))
        self.assertEqual(len(self.cache), 0)

    def test_least_recently_used_is_evicted(self):
        self.cache.set('a', 1)
        self.cache.set('b', 2)
        self.cache.get('a')
        self.cache.set('c', 3)

        self.assertEqual(self.cache.get('a'), 1)
        self.assertIsNone(self.cache.get('b'))
        self.assertEqual(self.cache.get('c'), 3)

    def test_get_or_load_does_not_cache_none(self):
        calls = []

        def loader():
            calls.append(1)
            return None

        self.assertIsNone(self.cache.get_or_load('missing', loader))
        self.assertIsNone(self.cache.get_or_load('missing', loader))
        self.assertEqual(len(calls), 2)

    def test_get_or_load_caches_value(self):
        calls = []

        def loader():
            calls.append(1)
            return 'Loja'

        self.assertEqual(self.cache.get_or_load('L2', loader), 'Loja')
        self.assertEqual(self.cache.get_or_load('L2', loader), 'Loja')
        self.assertEqual(len(calls), 1)

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            LookupCache(max_size=0)


if __name__ == '__main__':
    unittest.main()
