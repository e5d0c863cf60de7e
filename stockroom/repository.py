# stockroom/repository.py
"""Index bookkeeping over the key-value store.

Each repository owns the keys of one entity type and keeps them consistent:

- create writes the record, the global id-set, the day-bucket id-set and the
  natural-key lookup;
- update rewrites the record only;
- delete removes the record, both set memberships and the lookup.

Reads are best effort: an id whose record is gone resolves to None.
"""
import logging
from abc import ABC, abstractmethod
from typing import Callable, Generic, List, Optional, Tuple, Type, TypeVar

from stockroom import keyspace
from stockroom.db.interface import KeyValueStore
from stockroom.models import Item, PurchaseOrder, InventoryRecord
from stockroom.utils.concurrency import fan_out

logger = logging.getLogger(__name__)

E = TypeVar('E')


class ItemRepository:
    """Catalog items: primary record plus the global id-set."""

    def __init__(self, store: KeyValueStore, max_workers: Optional[int] = None):
        self.store = store
        self.max_workers = max_workers

    def get(self, item_id: str) -> Optional[Item]:
        return Item.from_dict(self.store.get(keyspace.item_key(item_id)))

    def list_ids(self) -> List[str]:
        return self.store.smembers(keyspace.items_list_key())

    def list_all(self) -> List[Item]:
        """Load every catalog item. A failure listing the ids propagates."""
        return fan_out(self.get, self.list_ids(), self.max_workers, label="item")

    def create(self, item: Item) -> Item:
        with self.store.atomic():
            self.store.set(keyspace.item_key(item.id), item.to_dict())
            self.store.sadd(keyspace.items_list_key(), item.id)
        return item

    def update(self, item: Item) -> Item:
        self.store.set(keyspace.item_key(item.id), item.to_dict())
        return item

    def delete(self, item_id: str) -> None:
        with self.store.atomic():
            self.store.delete(keyspace.item_key(item_id))
            self.store.srem(keyspace.items_list_key(), item_id)


class DatedEntityRepository(ABC, Generic[E]):
    """Records keyed by id and unique per (date, item) natural key."""

    model: Type[E] = None
    entity_name = "record"

    def __init__(self, store: KeyValueStore, max_workers: Optional[int] = None):
        self.store = store
        self.max_workers = max_workers

    # Key builders, supplied by subclasses
    @abstractmethod
    def primary_key(self, entity_id: str) -> str:
        pass

    @abstractmethod
    def lookup_key_for(self, date_key: str, item_id: str) -> str:
        pass

    @abstractmethod
    def date_set_key(self, date_key: str) -> str:
        pass

    @abstractmethod
    def global_set_key(self) -> str:
        pass

    def get(self, entity_id: Optional[str]) -> Optional[E]:
        if not entity_id:
            return None
        return self.model.from_dict(self.store.get(self.primary_key(entity_id)))

    def lookup_id(self, date_key: str, item_id: str) -> Optional[str]:
        return self.store.get(self.lookup_key_for(date_key, item_id))

    def find(self, date_key: str, item_id: str) -> Optional[E]:
        """Resolve the natural key (date, item) to its record.

        Args:
            date_key: Date as YYYY-MM-DD
            item_id: Item ID

        Returns:
            The record, or None when the lookup is absent or dangling
        """
        entity_id = self.lookup_id(date_key, item_id)
        if not entity_id:
            return None

        entity = self.get(entity_id)
        if entity is None:
            logger.warning(
                f"{self.entity_name} lookup {date_key}/{item_id} points at missing id {entity_id}"
            )
        return entity

    def ids_for_date(self, date_key: str) -> List[str]:
        return self.store.smembers(self.date_set_key(date_key))

    def all_ids(self) -> List[str]:
        return self.store.smembers(self.global_set_key())

    def load_many(self, entity_ids: List[str]) -> List[E]:
        return fan_out(self.get, entity_ids, self.max_workers, label=self.entity_name)

    def for_date(self, date_key: str) -> List[E]:
        return self.load_many(self.ids_for_date(date_key))

    def all(self) -> List[E]:
        return self.load_many(self.all_ids())

    def create(self, entity: E) -> Tuple[E, bool]:
        """Write a new record with all of its index entries.

        The natural-key lookup is claimed first with a conditional write. If
        another writer already owns it, that writer's record is returned
        instead and nothing else is written. A lookup left pointing at a
        missing record is taken over.

        Args:
            entity: New record

        Returns:
            Tuple of (stored record, whether it was created)
        """
        lookup_key = self.lookup_key_for(entity.date, entity.item_id)

        with self.store.atomic():
            if not self.store.set_if_absent(lookup_key, entity.id):
                current = self.get(self.store.get(lookup_key))
                if current is not None:
                    return current, False

                logger.warning(f"Replacing dangling {self.entity_name} lookup {lookup_key}")
                self.store.set(lookup_key, entity.id)

            self.store.set(self.primary_key(entity.id), entity.to_dict())
            self.store.sadd(self.global_set_key(), entity.id)
            self.store.sadd(self.date_set_key(entity.date), entity.id)

        return entity, True

    def update(self, entity: E) -> E:
        """Rewrite the record. Sets and lookup are left alone."""
        self.store.set(self.primary_key(entity.id), entity.to_dict())
        return entity

    def upsert(
        self,
        date_key: str,
        item_id: str,
        build: Callable[[str], E],
        apply_changes: Callable[[E], None]
    ) -> Tuple[E, bool]:
        """Create or update the record for a natural key.

        Args:
            date_key: Date as YYYY-MM-DD
            item_id: Item ID
            build: Called with a fresh id to build the record when none exists
            apply_changes: Called to mutate an existing record in place

        Returns:
            Tuple of (stored record, whether it was created)
        """
        existing = self.find(date_key, item_id)
        if existing is not None:
            apply_changes(existing)
            return self.update(existing), False

        entity, created = self.create(build(keyspace.generate_id()))
        if not created:
            # Lost the race for the lookup: fall back to updating the winner
            apply_changes(entity)
            self.update(entity)
        return entity, created

    def delete(self, entity: E) -> None:
        """Remove the record and every index entry that refers to it."""
        lookup_key = self.lookup_key_for(entity.date, entity.item_id)

        with self.store.atomic():
            self.store.delete(self.primary_key(entity.id))
            self.store.srem(self.date_set_key(entity.date), entity.id)
            self.store.srem(self.global_set_key(), entity.id)
            if self.store.get(lookup_key) == entity.id:
                self.store.delete(lookup_key)


class PurchaseOrderRepository(DatedEntityRepository[PurchaseOrder]):
    model = PurchaseOrder
    entity_name = "purchase order"

    def primary_key(self, entity_id):
        return keyspace.purchase_key(entity_id)

    def lookup_key_for(self, date_key, item_id):
        return keyspace.purchase_lookup_key(date_key, item_id)

    def date_set_key(self, date_key):
        return keyspace.purchases_by_date_key(date_key)

    def global_set_key(self):
        return keyspace.purchases_list_key()


class InventoryRepository(DatedEntityRepository[InventoryRecord]):
    model = InventoryRecord
    entity_name = "inventory record"

    def primary_key(self, entity_id):
        return keyspace.inventory_key(entity_id)

    def lookup_key_for(self, date_key, item_id):
        return keyspace.inventory_lookup_key(date_key, item_id)

    def date_set_key(self, date_key):
        return keyspace.inventories_by_date_key(date_key)

    def global_set_key(self):
        return keyspace.inventories_list_key()
