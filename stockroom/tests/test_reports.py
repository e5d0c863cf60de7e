"""
Tests for the usage reports.
"""
import csv
import io
import json
import unittest
from datetime import date

from stockroom.db.memory import InMemoryStore
from stockroom.exceptions import ReportingError, ValidationError
from stockroom.models import ReportPeriod
from stockroom.services.inventory_service import InventoryService
from stockroom.services.item_service import ItemService
from stockroom.services.reporting_service import ReportingService, resolve_window


class TestResolveWindow(unittest.TestCase):
    def test_windows(self):
        """Test day, Monday-anchored week and calendar month windows."""
        wednesday = date(2024, 6, 5)

        self.assertEqual(resolve_window(ReportPeriod.DAY, wednesday), (wednesday, wednesday))
        self.assertEqual(resolve_window(ReportPeriod.WEEK, wednesday), (date(2024, 6, 3), date(2024, 6, 9)))
        self.assertEqual(resolve_window(ReportPeriod.WEEK, date(2024, 6, 9)), (date(2024, 6, 3), date(2024, 6, 9)))
        self.assertEqual(resolve_window(ReportPeriod.MONTH, date(2024, 2, 10)), (date(2024, 2, 1), date(2024, 2, 29)))


class TestReportingService(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryStore()
        self.items = ItemService(self.store, max_workers=4)
        self.inventory = InventoryService(self.store, max_workers=4)
        self.service = ReportingService(self.store, max_workers=4)
        self.rice = self.items.create_item('Rice', 'kg')
        self.beans = self.items.create_item('Beans', 'kg')

    def test_week_report_averages_over_calendar_days(self):
        """Test a week collapses to one row averaged over seven days."""
        self.inventory.record_count('2024-06-03', self.rice.id, 10, 0, 7)
        self.inventory.record_count('2024-06-05', self.rice.id, 7, 2, 5)

        report = self.service.build_report('week', '2024-06-05')

        self.assertEqual(report['type'], 'week')
        self.assertEqual(report['start_date'], '2024-06-03')
        self.assertEqual(report['end_date'], '2024-06-09')
        self.assertEqual(len(report['stats']), 1)

        stat = report['stats'][0]
        self.assertEqual(stat['item_name'], 'Rice')
        self.assertEqual(stat['total_usage'], 7.0)
        self.assertEqual(stat['total_received_qty'], 2.0)
        self.assertAlmostEqual(stat['avg_usage'], 1.0)
        self.assertEqual(stat['opening_qty'], 10.0)
        self.assertEqual(stat['closing_qty'], 5.0)
        self.assertEqual(stat['records'], [{
            'date': '2024-06-03 to 2024-06-09',
            'usage': 7.0,
            'start_qty': 10.0,
            'received_qty': 2.0,
            'end_qty': 5.0,
        }])

    def test_month_report(self):
        """Test a month averages over the days in the month."""
        self.inventory.record_count('2024-02-01', self.rice.id, 40, 0, 30)
        self.inventory.record_count('2024-02-29', self.rice.id, 30, 0, 1)
        self.inventory.record_count('2024-03-01', self.rice.id, 1, 0, 0)

        report = self.service.build_report(ReportPeriod.MONTH, date(2024, 2, 14))

        stat = report['stats'][0]
        self.assertEqual(report['start_date'], '2024-02-01')
        self.assertEqual(report['end_date'], '2024-02-29')
        self.assertEqual(stat['total_usage'], 39.0)
        self.assertAlmostEqual(stat['avg_usage'], 39.0 / 29)

    def test_day_report_keeps_records(self):
        """Test a day report lists each entry, ordered by item name."""
        self.inventory.record_count('2024-06-03', self.rice.id, 10, 0, 7)
        self.inventory.record_count('2024-06-03', self.beans.id, 5, 1, 2)
        self.inventory.record_count('2024-06-04', self.rice.id, 7, 0, 1)

        report = self.service.build_report('day', '2024-06-03')

        self.assertEqual([s['item_name'] for s in report['stats']], ['Beans', 'Rice'])
        beans, rice = report['stats']
        self.assertEqual(beans['records'][0]['usage'], 4.0)
        self.assertEqual(beans['avg_usage'], 4.0)
        self.assertEqual(rice['records'], [{
            'date': '2024-06-03',
            'usage': 3.0,
            'start_qty': 10.0,
            'received_qty': 0.0,
            'end_qty': 7.0,
        }])

    def test_filters(self):
        """Test uncounted entries, deleted items and the item filter."""
        ghost = self.items.create_item('Ghost', 'kg')
        self.inventory.record_count('2024-06-03', self.rice.id, 10, 0, 7)
        self.inventory.record_count('2024-06-04', self.beans.id, 5, 0, None)
        self.inventory.record_count('2024-06-04', ghost.id, 5, 0, 1)
        self.items.delete_item(ghost.id)

        report = self.service.build_report('week', '2024-06-05')
        self.assertEqual([s['item_name'] for s in report['stats']], ['Rice'])

        filtered = self.service.build_report('week', '2024-06-05', item_id=self.beans.id)
        self.assertEqual(filtered['stats'], [])
        self.assertEqual(filtered['filters'], {'item_id': self.beans.id})

    def test_invalid_period(self):
        """Test an unknown period is rejected."""
        with self.assertRaises(ValidationError):
            self.service.build_report('year', '2024-06-05')

    def test_malformed_reference_date(self):
        """Test an impossible reference day is rejected."""
        with self.assertRaises(ValidationError) as ctx:
            self.service.build_report('week', 'junk')

        self.assertEqual(ctx.exception.details, {'date': 'Invalid date: junk'})

    def test_export_to_csv(self):
        """Test CSV export writes one line per report row."""
        self.inventory.record_count('2024-06-03', self.rice.id, 10, 0, 7)
        report = self.service.build_report('day', '2024-06-03')

        rows = list(csv.DictReader(io.StringIO(self.service.export_report_to_csv(report))))

        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['item_name'], 'Rice')
        self.assertEqual(rows[0]['date'], '2024-06-03')
        self.assertEqual(float(rows[0]['usage']), 3.0)
        self.assertEqual(float(rows[0]['avg_usage']), 3.0)

    def test_export_to_csv_without_stats(self):
        """Test exporting something that is not a report fails."""
        with self.assertRaises(ReportingError):
            self.service.export_report_to_csv({})

    def test_export_to_json(self):
        """Test JSON export keeps the report structure."""
        self.inventory.record_count('2024-06-03', self.rice.id, 10, 0, 7)
        report = self.service.build_report('week', '2024-06-03')

        data = json.loads(self.service.export_report_to_json(report))

        self.assertEqual(data['type'], 'week')
        self.assertEqual(data['stats'][0]['total_usage'], 3.0)


if __name__ == '__main__':
    unittest.main()
