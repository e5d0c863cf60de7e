# stockroom/services/reporting_service.py
from datetime import date
from typing import Dict, Optional, Tuple, Union
import csv
import io
import json
import logging

from stockroom.db.interface import KeyValueStore
from stockroom.exceptions import ReportingError, ValidationError
from stockroom.models import ReportPeriod
from stockroom.repository import ItemRepository, InventoryRepository
from stockroom.utils.concurrency import fan_out
from stockroom.utils.date_utils import (
    date_key, to_date, today, get_week_window, get_month_window, days_between
)

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    'item_id', 'item_name', 'unit', 'date', 'start_qty', 'received_qty',
    'end_qty', 'usage', 'total_usage', 'total_received_qty', 'avg_usage'
]


def resolve_window(period: ReportPeriod, reference_date: date) -> Tuple[date, date]:
    """Get the inclusive date window for a report period.

    Args:
        period: Report period kind
        reference_date: Any day inside the wanted window

    Returns:
        Tuple with start date and end date
    """
    if period == ReportPeriod.WEEK:
        return get_week_window(reference_date)
    if period == ReportPeriod.MONTH:
        return get_month_window(reference_date)
    return (reference_date, reference_date)


def _row(record) -> Dict:
    return {
        'date': record.date,
        'usage': record.usage,
        'start_qty': record.start_qty,
        'received_qty': record.received_qty,
        'end_qty': record.end_qty,
    }


class ReportingService:
    """Service for day/week/month usage reports."""

    def __init__(self, store: KeyValueStore, max_workers: Optional[int] = None):
        """Initialize the reporting service.

        Args:
            store: Key-value store
            max_workers: Optional fan-out pool size
        """
        self.store = store
        self.max_workers = max_workers
        self.items = ItemRepository(store, max_workers)
        self.records = InventoryRepository(store, max_workers)

    def build_report(
        self,
        period: Union[str, ReportPeriod] = ReportPeriod.DAY,
        reference_date=None,
        item_id: Optional[str] = None
    ) -> Dict:
        """Generate a usage report.

        Only counted entries whose item still exists are used. Day reports
        keep every entry and average over the counted entries; week and month
        reports collapse each item to one summary row and average over the
        calendar days in the window.

        Args:
            period: 'day', 'week' or 'month'
            reference_date: Any day in the window (defaults to today)
            item_id: Optional item filter

        Returns:
            Dictionary with the resolved window and one statistics entry per item
        """
        if not isinstance(period, ReportPeriod):
            try:
                period = ReportPeriod.from_string(period)
            except ValueError as e:
                raise ValidationError(str(e), details={'type': str(period)})

        start_date, end_date = resolve_window(period, to_date(reference_date) or today())

        candidates = [
            r for r in self.records.all()
            if r.usage is not None
            and start_date <= to_date(r.date) <= end_date
            and (item_id is None or r.item_id == item_id)
        ]

        item_ids = list(dict.fromkeys(r.item_id for r in candidates))
        items = {item.id: item for item in fan_out(self.items.get, item_ids, self.max_workers, label="item")}

        joined = [(r, items[r.item_id]) for r in candidates if r.item_id in items]
        joined.sort(key=lambda pair: (pair[0].date, pair[1].name.casefold()))

        stats = {}
        for record, item in joined:
            stat = stats.get(item.id)
            if stat is None:
                stat = stats[item.id] = {
                    'item_id': item.id,
                    'item_name': item.name,
                    'unit': item.unit,
                    'total_usage': 0.0,
                    'total_received_qty': 0.0,
                    'avg_usage': 0.0,
                    'records': [],
                    'first_record': None,
                    'last_record': None,
                }

            stat['total_usage'] += record.usage
            stat['total_received_qty'] += record.received_qty or 0

            if stat['first_record'] is None or record.date < stat['first_record'].date:
                stat['first_record'] = record
            if stat['last_record'] is None or record.date > stat['last_record'].date:
                stat['last_record'] = record

            if period == ReportPeriod.DAY:
                stat['records'].append(_row(record))

        window_days = days_between(start_date, end_date)
        for stat in stats.values():
            first = stat.pop('first_record')
            last = stat.pop('last_record')
            stat['opening_qty'] = first.start_qty
            stat['closing_qty'] = last.end_qty

            if period == ReportPeriod.DAY:
                counted = len(stat['records'])
                stat['avg_usage'] = stat['total_usage'] / counted if counted else 0.0
            else:
                stat['records'] = [{
                    'date': f"{date_key(start_date)} to {date_key(end_date)}",
                    'usage': stat['total_usage'],
                    'start_qty': first.start_qty,
                    'received_qty': stat['total_received_qty'],
                    'end_qty': last.end_qty,
                }]
                stat['avg_usage'] = stat['total_usage'] / window_days

        logger.info(
            f"Built {period.value} report {date_key(start_date)}..{date_key(end_date)} "
            f"covering {len(stats)} items"
        )

        return {
            'report_name': f"{period.value.capitalize()} Usage Report",
            'type': period.value,
            'start_date': date_key(start_date),
            'end_date': date_key(end_date),
            'filters': {'item_id': item_id},
            'stats': list(stats.values())
        }

    def export_report_to_csv(self, report: Dict) -> str:
        """Export a report to CSV, one line per report row.

        Args:
            report: Report dictionary

        Returns:
            CSV data as string
        """
        if 'stats' not in report:
            raise ReportingError("Report has no data to export")

        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(CSV_COLUMNS)

        for stat in report['stats']:
            for row in stat['records']:
                line = {**stat, **row}
                writer.writerow([line.get(col, '') for col in CSV_COLUMNS])

        return output.getvalue()

    def export_report_to_json(self, report: Dict) -> str:
        """Export a report to JSON.

        Args:
            report: Report dictionary

        Returns:
            JSON data as string
        """
        return json.dumps(report, indent=2, ensure_ascii=False, default=str)
