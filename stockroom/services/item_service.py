# stockroom/services/item_service.py
import logging
from typing import Any, List, Optional

from stockroom import keyspace
from stockroom.db.interface import KeyValueStore
from stockroom.exceptions import NotFoundError
from stockroom.models import Item
from stockroom.repository import ItemRepository
from stockroom.utils.date_utils import timestamp
from stockroom.utils.validation import validate_item_fields, raise_if_invalid, to_quantity

logger = logging.getLogger(__name__)


def sort_by_name(rows, name=lambda row: row.name):
    """Sort rows by display name, case-insensitively."""
    return sorted(rows, key=lambda row: (name(row) or '').casefold())


class ItemService:
    """Service for managing the item catalog."""

    def __init__(self, store: KeyValueStore, max_workers: Optional[int] = None):
        """Initialize the item service.

        Args:
            store: Key-value store
            max_workers: Optional fan-out pool size
        """
        self.store = store
        self.items = ItemRepository(store, max_workers)

    def list_items(self) -> List[Item]:
        """Get every catalog item sorted by name.

        Returns:
            List of items; ids whose record is gone are skipped
        """
        return sort_by_name(self.items.list_all())

    def get_item(self, item_id: str) -> Item:
        """Get a catalog item.

        Args:
            item_id: Item ID

        Returns:
            Item

        Raises:
            NotFoundError if the item does not exist
        """
        item = self.items.get(item_id) if item_id else None
        if item is None:
            raise NotFoundError(f"Item {item_id} not found", details={'item_id': item_id})
        return item

    def create_item(
        self,
        name: str,
        unit: str,
        par_level: Any = 0,
        safety_stock: Any = 0
    ) -> Item:
        """Create a catalog item.

        Args:
            name: Display name
            unit: Unit of measure
            par_level: Target stock floor (0 = unset)
            safety_stock: Safety-stock margin

        Returns:
            Created item
        """
        raise_if_invalid(validate_item_fields(name, unit), "Item name and unit are required")

        now = timestamp()
        item = Item(
            id=keyspace.generate_id(),
            name=name.strip(),
            unit=unit.strip(),
            par_level=to_quantity(par_level),
            safety_stock=to_quantity(safety_stock),
            created_at=now,
            updated_at=now
        )
        self.items.create(item)

        logger.info(f"Created item {item.id} ({item.name}, {item.unit})")
        return item

    def update_item(
        self,
        item_id: str,
        name: Optional[str] = None,
        unit: Optional[str] = None,
        par_level: Any = None,
        safety_stock: Any = None
    ) -> Item:
        """Update some fields of a catalog item.

        Fields left as None keep their value. Numeric fields that cannot be
        parsed are stored as 0.

        Raises:
            NotFoundError if the item does not exist
            ValidationError if name or unit is blank
        """
        item = self.get_item(item_id)

        errors = {}
        if name is not None and name.strip() == '':
            errors['name'] = 'Item name cannot be empty'
        if unit is not None and unit.strip() == '':
            errors['unit'] = 'Unit cannot be empty'
        raise_if_invalid(errors, "Invalid item update")

        if name is not None:
            item.name = name.strip()
        if unit is not None:
            item.unit = unit.strip()
        if par_level is not None:
            item.par_level = to_quantity(par_level)
        if safety_stock is not None:
            item.safety_stock = to_quantity(safety_stock)
        item.updated_at = timestamp()

        return self.items.update(item)

    def delete_item(self, item_id: str) -> None:
        """Hard-delete a catalog item.

        Ledger entries and purchase orders that refer to the item are left in
        place; joins skip them from then on.

        Raises:
            NotFoundError if the item does not exist
        """
        self.get_item(item_id)
        self.items.delete(item_id)
        logger.info(f"Deleted item {item_id}")
