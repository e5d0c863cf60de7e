"""
Tests for settings, date helpers, input validation and record models.
"""
import os
import tempfile
import unittest
from datetime import date, datetime, timezone
from unittest.mock import patch

from stockroom.config import Config
from stockroom.exceptions import StockroomError, ValidationError
from stockroom.models import Item, ReportPeriod
from stockroom.utils.date_utils import (
    to_date, date_key, previous_day, get_week_window, get_month_window, days_between
)
from stockroom.utils.validation import (
    to_quantity, to_optional_quantity, validate_item_fields, validate_count,
    validate_purchase_order, raise_if_invalid
)


class TestDateUtils(unittest.TestCase):
    def test_to_date(self):
        """Test date-like values are truncated to the day."""
        self.assertEqual(to_date('2024-06-01'), date(2024, 6, 1))
        self.assertEqual(to_date(date(2024, 6, 1)), date(2024, 6, 1))
        self.assertEqual(to_date(datetime(2024, 6, 1, 23, 59)), date(2024, 6, 1))
        self.assertEqual(to_date('2024-06-01T10:30:00Z'), date(2024, 6, 1))
        self.assertEqual(to_date(datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)), date(2024, 6, 1))
        self.assertIsNone(to_date(None))
        self.assertIsNone(to_date(''))

        for bad in ('2024-13-01', '2024-02-30', 'junk', '   '):
            with self.assertRaises(ValidationError):
                to_date(bad)

    def test_date_key(self):
        """Test date keys are YYYY-MM-DD."""
        self.assertEqual(date_key(date(2024, 6, 1)), '2024-06-01')
        self.assertEqual(date_key(datetime(2024, 6, 1, 8, 0)), '2024-06-01')
        self.assertEqual(date_key('2024-06-01'), '2024-06-01')

    def test_windows(self):
        """Test window helpers."""
        self.assertEqual(previous_day(date(2024, 3, 1)), date(2024, 2, 29))
        self.assertEqual(get_week_window(date(2024, 6, 3)), (date(2024, 6, 3), date(2024, 6, 9)))
        self.assertEqual(get_month_window(date(2023, 2, 15)), (date(2023, 2, 1), date(2023, 2, 28)))
        self.assertEqual(get_month_window(date(2024, 12, 31)), (date(2024, 12, 1), date(2024, 12, 31)))
        self.assertEqual(days_between(date(2024, 6, 3), date(2024, 6, 9)), 7)
        self.assertEqual(days_between(date(2024, 6, 3), date(2024, 6, 3)), 1)


class TestValidation(unittest.TestCase):
    def test_to_quantity(self):
        """Test lenient coercion falls back to zero."""
        self.assertEqual(to_quantity('2.5'), 2.5)
        self.assertEqual(to_quantity(3), 3.0)
        self.assertEqual(to_quantity(''), 0.0)
        self.assertEqual(to_quantity(None), 0.0)
        self.assertEqual(to_quantity('abc'), 0.0)

    def test_to_optional_quantity(self):
        """Test blank means not given and junk is rejected."""
        self.assertEqual(to_optional_quantity('0'), 0.0)
        self.assertIsNone(to_optional_quantity(''))
        self.assertIsNone(to_optional_quantity(None))
        with self.assertRaises(ValidationError):
            to_optional_quantity('abc')

    def test_validators(self):
        """Test validators return per-field errors."""
        self.assertEqual(validate_item_fields('Rice', 'kg'), {})
        self.assertEqual(set(validate_item_fields(None, '')), {'name', 'unit'})
        self.assertEqual(validate_count('2024-06-01', 'a1'), {})
        self.assertEqual(set(validate_count('', None)), {'date', 'item_id'})
        self.assertEqual(validate_purchase_order('2024-06-01', 'a1', 0), {})
        self.assertEqual(set(validate_purchase_order('2024-06-01', 'a1', 'x')), {'planned_qty'})

    def test_raise_if_invalid(self):
        """Test the error carries the field details."""
        raise_if_invalid({}, "ok")

        with self.assertRaises(ValidationError) as ctx:
            raise_if_invalid({'name': 'Item name is required'}, "Invalid item")

        error = ctx.exception
        self.assertIsInstance(error, StockroomError)
        self.assertEqual(error.to_dict(), {
            'error': 'ValidationError',
            'message': 'Invalid item',
            'details': {'name': 'Item name is required'}
        })


class TestConfig(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_default_file_written_on_first_run(self):
        """Test a missing settings file is created with the defaults."""
        config_dir = os.path.join(self.tmpdir.name, 'settings')
        with patch.dict(os.environ, {'STOCKROOM_CONFIG_DIR': config_dir}), \
                patch.object(Config, '_instance', None):
            fresh = Config()

        self.assertTrue(os.path.exists(os.path.join(config_dir, 'settings.ini')))
        self.assertEqual(fresh.storage_config['backend'], 'sql')
        self.assertEqual(fresh.ledger_rules['history_days'], 30)
        self.assertEqual(fresh.get_int('LEDGER', 'missing', 7), 7)
        self.assertIsNone(fresh.get('NOWHERE', 'key'))

    def test_existing_file_is_read(self):
        """Test values from an existing settings file win over defaults."""
        with open(os.path.join(self.tmpdir.name, 'settings.ini'), 'w', encoding='utf-8') as f:
            f.write("[STORAGE]\nbackend = memory\n\n[LEDGER]\nusage_buffer = 1.5\n")

        with patch.dict(os.environ, {'STOCKROOM_CONFIG_DIR': self.tmpdir.name}), \
                patch.object(Config, '_instance', None):
            fresh = Config()

        self.assertEqual(fresh.storage_config['backend'], 'memory')
        self.assertEqual(fresh.ledger_rules['usage_buffer'], 1.5)
        self.assertEqual(fresh.ledger_rules['rounding_places'], 2)


class TestModels(unittest.TestCase):
    def test_report_period_from_string(self):
        """Test report period parsing."""
        self.assertEqual(ReportPeriod.from_string(' Week '), ReportPeriod.WEEK)
        self.assertEqual(str(ReportPeriod.MONTH), 'month')
        with self.assertRaises(ValueError):
            ReportPeriod.from_string('quarter')

    def test_from_dict(self):
        """Test records ignore unknown fields and empty input."""
        item = Item.from_dict({'id': 'a1', 'name': 'Rice', 'unit': 'kg', 'legacy': True})

        self.assertEqual(item, Item(id='a1', name='Rice', unit='kg'))
        self.assertIsNone(Item.from_dict(None))
        self.assertEqual(Item.from_dict(item.to_dict()), item)


if __name__ == '__main__':
    unittest.main()
