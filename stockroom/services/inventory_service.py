# stockroom/services/inventory_service.py
import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

from stockroom import keyspace
from stockroom.core.ledger import (
    derive_usage, carry_forward_quantity, received_from_order,
    stock_from_record, latest_record_on_or_before
)
from stockroom.db.interface import KeyValueStore
from stockroom.exceptions import NotFoundError, ValidationError
from stockroom.models import InventoryRecord
from stockroom.repository import ItemRepository, InventoryRepository, PurchaseOrderRepository
from stockroom.services.item_service import sort_by_name
from stockroom.utils.concurrency import fan_out
from stockroom.utils.date_utils import date_key, previous_day, timestamp, to_date, today
from stockroom.utils.validation import (
    validate_count, raise_if_invalid, to_quantity, to_optional_quantity
)

logger = logging.getLogger(__name__)


class InventoryService:
    """Service for the daily inventory ledger."""

    def __init__(self, store: KeyValueStore, max_workers: Optional[int] = None):
        """Initialize the inventory service.

        Args:
            store: Key-value store
            max_workers: Optional fan-out pool size
        """
        self.store = store
        self.max_workers = max_workers
        self.items = ItemRepository(store, max_workers)
        self.records = InventoryRepository(store, max_workers)
        self.orders = PurchaseOrderRepository(store, max_workers)

    def initialize_day(self, target_date) -> Dict:
        """Make sure every catalog item has a ledger entry for a day.

        Opening quantity is carried forward from the previous day's closing
        count (0 when that day is missing or uncounted). Received quantity
        comes from the day's purchase order, actual before planned. Entries
        that already exist are returned untouched, so running this twice is
        harmless.

        Args:
            target_date: Day to initialize

        Returns:
            Dictionary with the date, number of records and the records
        """
        day = to_date(target_date)
        if day is None:
            raise ValidationError("Date is required", details={'date': 'Date is required'})

        day_key = date_key(day)
        prev_key = date_key(previous_day(day))

        # Catalog read failures are fatal to the whole request
        items = self.items.list_all()

        records = fan_out(
            lambda item: self._initialize_item(day_key, prev_key, item.id),
            items,
            self.max_workers,
            label="item"
        )

        logger.info(f"Initialized {len(records)} inventory records for {day_key}")
        return {
            'date': day_key,
            'count': len(records),
            'records': records
        }

    def _initialize_item(self, day_key: str, prev_key: str, item_id: str) -> InventoryRecord:
        existing = self.records.find(day_key, item_id)
        if existing is not None:
            return existing

        start_qty = carry_forward_quantity(self.records.find(prev_key, item_id))
        received_qty = received_from_order(self.orders.find(day_key, item_id))

        now = timestamp()
        record, created = self.records.create(InventoryRecord(
            id=keyspace.generate_id(),
            date=day_key,
            item_id=item_id,
            start_qty=start_qty,
            received_qty=received_qty,
            end_qty=None,
            usage=None,
            confirmed=False,
            created_at=now,
            updated_at=now
        ))
        if created:
            logger.debug(f"Opened {day_key} for item {item_id}: start {start_qty}, received {received_qty}")
        return record

    def record_count(
        self,
        count_date,
        item_id: str,
        start_qty: Any = 0,
        received_qty: Any = 0,
        end_qty: Any = None
    ) -> Tuple[InventoryRecord, bool]:
        """Store an end-of-day count and derive usage.

        Opening and received quantities are taken as given. A missing closing
        count leaves usage empty. Repeated calls for the same day overwrite
        the entry; the last write wins.

        Args:
            count_date: Day counted
            item_id: Item ID
            start_qty: Opening quantity
            received_qty: Received quantity
            end_qty: Closing count, or None if not counted yet

        Returns:
            Tuple of (record, whether it was created)

        Raises:
            ValidationError if date or item is missing, or the closing count is negative
            NotFoundError if the item does not exist
        """
        raise_if_invalid(validate_count(count_date, item_id), "Date and item are required")

        start = to_quantity(start_qty)
        received = to_quantity(received_qty)
        end = to_optional_quantity(end_qty)

        if end is not None and end < 0:
            raise ValidationError("Closing count cannot be negative", details={'end_qty': 'Quantity cannot be negative'})

        if self.items.get(item_id) is None:
            raise NotFoundError(f"Item {item_id} not found", details={'item_id': item_id})

        key = date_key(count_date)
        usage = derive_usage(start, received, end)
        now = timestamp()

        def build(record_id):
            return InventoryRecord(
                id=record_id,
                date=key,
                item_id=item_id,
                start_qty=start,
                received_qty=received,
                end_qty=end,
                usage=usage,
                confirmed=False,
                created_at=now,
                updated_at=now
            )

        def apply_changes(record):
            record.start_qty = start
            record.received_qty = received
            record.end_qty = end
            record.usage = usage
            record.updated_at = now

        record, created = self.records.upsert(key, item_id, build, apply_changes)
        logger.info(f"Recorded count for item {item_id} on {key}: end {end}, usage {usage}")
        return record, created

    def list_inventory(self, target_date=None) -> List[Dict]:
        """Get one day's ledger entries joined to their items.

        Args:
            target_date: Day (defaults to today)

        Returns:
            List of record dictionaries with an ``item`` entry, sorted by item name
        """
        key = date_key(target_date or today())

        def with_item(record):
            item = self.items.get(record.item_id)
            if item is None:
                return None
            row = record.to_dict()
            row['item'] = item.to_dict()
            return row

        rows = fan_out(with_item, self.records.for_date(key), self.max_workers, label="inventory record")
        return sort_by_name(rows, name=lambda row: row['item']['name'])

    def history_for_item(self, item_id: str) -> List[InventoryRecord]:
        """Get every ledger entry for an item (full scan of the global set)."""
        return [r for r in self.records.all() if r.item_id == item_id]

    def resolve_current_stock(self, item_id: str, as_of=None) -> float:
        """Get stock on hand for an item as of a day.

        Takes the latest entry dated on or before as_of: its closing count if
        counted, else opening plus received. No entry means 0.

        Args:
            item_id: Item ID
            as_of: Day (defaults to today)

        Returns:
            Current stock
        """
        as_of_date = to_date(as_of) or today()
        latest = latest_record_on_or_before(self.records.all(), as_of_date, item_id)
        return stock_from_record(latest)

    def current_stock_for_all(self, as_of=None) -> List[Dict]:
        """Get current stock for every catalog item.

        History is loaded once and resolved per item.

        Args:
            as_of: Day (defaults to today)

        Returns:
            List of dictionaries with item_id, item_name, unit and current_stock
        """
        as_of_date = to_date(as_of) or today()
        items = self.items.list_all()

        by_item = defaultdict(list)
        for record in self.records.all():
            by_item[record.item_id].append(record)

        stocks = []
        for item in sort_by_name(items):
            latest = latest_record_on_or_before(by_item.get(item.id, []), as_of_date)
            stocks.append({
                'item_id': item.id,
                'item_name': item.name,
                'unit': item.unit,
                'current_stock': stock_from_record(latest)
            })
        return stocks
