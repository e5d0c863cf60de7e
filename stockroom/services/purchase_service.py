# stockroom/services/purchase_service.py
import logging
from typing import Any, Dict, List, Optional, Tuple

from stockroom.db.interface import KeyValueStore
from stockroom.exceptions import NotFoundError
from stockroom.models import PurchaseOrder
from stockroom.repository import ItemRepository, PurchaseOrderRepository
from stockroom.services.item_service import sort_by_name
from stockroom.utils.concurrency import fan_out
from stockroom.utils.date_utils import date_key, timestamp, tomorrow
from stockroom.utils.validation import (
    validate_purchase_order, raise_if_invalid, to_quantity, to_optional_quantity
)

logger = logging.getLogger(__name__)

_UNSET = object()


class PurchaseService:
    """Service for planned and confirmed deliveries."""

    def __init__(self, store: KeyValueStore, max_workers: Optional[int] = None):
        """Initialize the purchase service.

        Args:
            store: Key-value store
            max_workers: Optional fan-out pool size
        """
        self.store = store
        self.max_workers = max_workers
        self.items = ItemRepository(store, max_workers)
        self.orders = PurchaseOrderRepository(store, max_workers)

    def _with_item(self, order: PurchaseOrder) -> Optional[Dict]:
        item = self.items.get(order.item_id)
        if item is None:
            return None
        row = order.to_dict()
        row['item'] = item.to_dict()
        return row

    def list_purchase_orders(self, order_date=None) -> List[Dict]:
        """Get the purchase orders for one day, joined to their items.

        Args:
            order_date: Order date (defaults to tomorrow)

        Returns:
            List of order dictionaries with an ``item`` entry, sorted by item
            name; orders whose item is gone are left out
        """
        key = date_key(order_date or tomorrow())
        orders = self.orders.for_date(key)
        rows = fan_out(self._with_item, orders, self.max_workers, label="purchase order")
        return sort_by_name(rows, name=lambda row: row['item']['name'])

    def get_purchase_order(self, order_id: str) -> PurchaseOrder:
        order = self.orders.get(order_id)
        if order is None:
            raise NotFoundError(f"Purchase order {order_id} not found", details={'order_id': order_id})
        return order

    def upsert_purchase_order(
        self,
        order_date,
        item_id: str,
        planned_qty: Any,
        confirmed: Optional[bool] = None
    ) -> Tuple[PurchaseOrder, bool]:
        """Create or update the purchase order for (date, item).

        Args:
            order_date: Order date
            item_id: Item ID
            planned_qty: Planned quantity
            confirmed: Optional confirmed flag; an update keeps the stored
                       flag when this is None

        Returns:
            Tuple of (order, whether it was created)

        Raises:
            ValidationError if date, item or planned quantity is missing
            NotFoundError if the item does not exist
        """
        raise_if_invalid(
            validate_purchase_order(order_date, item_id, planned_qty),
            "Date, item and planned quantity are required"
        )
        if self.items.get(item_id) is None:
            raise NotFoundError(f"Item {item_id} not found", details={'item_id': item_id})

        key = date_key(order_date)
        planned = to_quantity(planned_qty)
        now = timestamp()

        def build(order_id):
            return PurchaseOrder(
                id=order_id,
                date=key,
                item_id=item_id,
                planned_qty=planned,
                confirmed=bool(confirmed),
                actual_qty=None,
                created_at=now,
                updated_at=now
            )

        def apply_changes(order):
            order.planned_qty = planned
            if confirmed is not None:
                order.confirmed = bool(confirmed)
            order.updated_at = now

        order, created = self.orders.upsert(key, item_id, build, apply_changes)
        logger.info(
            f"{'Created' if created else 'Updated'} purchase order {order.id} "
            f"for item {item_id} on {key}: planned {planned}"
        )
        return order, created

    def update_purchase_order(
        self,
        order_id: str,
        planned_qty: Any = _UNSET,
        confirmed: Optional[bool] = None,
        actual_qty: Any = _UNSET
    ) -> PurchaseOrder:
        """Confirm or reconcile a purchase order.

        Args:
            order_id: Purchase order ID
            planned_qty: New planned quantity
            confirmed: New confirmed flag
            actual_qty: Quantity actually received; None clears it

        Returns:
            Updated order
        """
        order = self.get_purchase_order(order_id)

        if planned_qty is not _UNSET:
            order.planned_qty = to_quantity(planned_qty)
        if confirmed is not None:
            order.confirmed = bool(confirmed)
        if actual_qty is not _UNSET:
            order.actual_qty = to_optional_quantity(actual_qty)
        order.updated_at = timestamp()

        return self.orders.update(order)

    def delete_purchase_order(self, order_id: str) -> None:
        """Delete a purchase order and purge its index entries."""
        order = self.get_purchase_order(order_id)
        self.orders.delete(order)
        logger.info(f"Deleted purchase order {order_id} ({order.date}, item {order.item_id})")

    def create_orders_from_suggestions(self, suggestions: List[Dict], target_date) -> List[PurchaseOrder]:
        """Turn positive reorder suggestions into planned purchase orders.

        Args:
            suggestions: Suggestion dictionaries from SuggestionService
            target_date: Delivery date for the orders

        Returns:
            List of orders written
        """
        orders = []
        for suggestion in suggestions:
            if suggestion['suggested_qty'] <= 0:
                continue
            order, _ = self.upsert_purchase_order(
                target_date, suggestion['item_id'], suggestion['suggested_qty']
            )
            orders.append(order)

        logger.info(f"Planned {len(orders)} purchase orders for {date_key(target_date)}")
        return orders
