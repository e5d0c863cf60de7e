# stockroom/services/suggestion_service.py
import logging
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional

from stockroom.config import config
from stockroom.core.ledger import latest_record_on_or_before, stock_from_record
from stockroom.core.replenishment import (
    recent_records, calculate_average_usage, calculate_suggested_quantity, round_for_unit
)
from stockroom.db.interface import KeyValueStore
from stockroom.models import Item, InventoryRecord
from stockroom.repository import ItemRepository, InventoryRepository
from stockroom.services.item_service import sort_by_name
from stockroom.utils.concurrency import fan_out
from stockroom.utils.date_utils import date_key, to_date, today as current_day, tomorrow

logger = logging.getLogger(__name__)


class SuggestionService:
    """Service for reorder suggestions."""

    def __init__(
        self,
        store: KeyValueStore,
        history_days: Optional[int] = None,
        usage_buffer: Optional[float] = None,
        discrete_units: Optional[Iterable[str]] = None,
        rounding_places: Optional[int] = None,
        max_workers: Optional[int] = None
    ):
        """Initialize the suggestion service.

        Args:
            store: Key-value store
            history_days: Number of recent records averaged (default from config)
            usage_buffer: Multiplier on average usage when no par level is set
            discrete_units: Unit names rounded up to whole units
            rounding_places: Decimal places for other units
            max_workers: Optional fan-out pool size
        """
        rules = config.ledger_rules
        self.store = store
        self.max_workers = max_workers
        self.history_days = history_days if history_days is not None else rules['history_days']
        self.usage_buffer = usage_buffer if usage_buffer is not None else rules['usage_buffer']
        self.discrete_units = list(discrete_units) if discrete_units is not None else rules['discrete_units']
        self.rounding_places = rounding_places if rounding_places is not None else rules['rounding_places']
        self.items = ItemRepository(store, max_workers)
        self.records = InventoryRepository(store, max_workers)

    def suggest_for_item(
        self,
        item: Item,
        today: date,
        history: Optional[List[InventoryRecord]] = None
    ) -> Dict:
        """Calculate the reorder suggestion for one item.

        Args:
            item: Catalog item
            today: The day suggestions are made on
            history: Optional preloaded ledger entries for the item

        Returns:
            Dictionary with current stock, par level, average usage and the
            suggested quantity
        """
        if history is None:
            history = [r for r in self.records.all() if r.item_id == item.id]

        window = recent_records(history, today, self.history_days)
        average_usage = calculate_average_usage(window)
        current_stock = stock_from_record(latest_record_on_or_before(history, today))

        today_record = self.records.find(date_key(today), item.id)
        today_uncounted = today_record is None or today_record.end_qty is None

        raw_qty = calculate_suggested_quantity(
            item.par_level,
            current_stock,
            average_usage,
            usage_buffer=self.usage_buffer,
            today_uncounted=today_uncounted
        )

        return {
            'item_id': item.id,
            'item_name': item.name,
            'unit': item.unit,
            'current_stock': current_stock,
            'par_level': item.par_level,
            'avg_usage': average_usage,
            'suggested_qty': round_for_unit(raw_qty, item.unit, self.discrete_units, self.rounding_places)
        }

    def suggest_reorder(self, target_date=None, today=None) -> Dict:
        """Build reorder suggestions for every catalog item.

        Items with nothing to order are included with a zero quantity. An item
        whose calculation fails is logged and left out.

        Args:
            target_date: Delivery day the suggestions are for (defaults to tomorrow)
            today: The day suggestions are made on (defaults to today)

        Returns:
            Dictionary with the target date and the list of suggestions
        """
        target = to_date(target_date) or tomorrow()
        as_of = to_date(today) or current_day()

        # Catalog read failures are fatal to the whole request
        items = sort_by_name(self.items.list_all())

        by_item = defaultdict(list)
        for record in self.records.all():
            by_item[record.item_id].append(record)

        suggestions = fan_out(
            lambda item: self.suggest_for_item(item, as_of, by_item.get(item.id, [])),
            items,
            self.max_workers,
            label="item"
        )

        ordering = sum(1 for s in suggestions if s['suggested_qty'] > 0)
        logger.info(f"Built {len(suggestions)} suggestions for {date_key(target)}, {ordering} with quantity")

        return {
            'date': date_key(target),
            'suggestions': suggestions
        }
