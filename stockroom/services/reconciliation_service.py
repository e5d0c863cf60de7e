# stockroom/services/reconciliation_service.py
import logging
from typing import Dict, List, Optional

from stockroom import keyspace
from stockroom.db.interface import KeyValueStore
from stockroom.repository import (
    DatedEntityRepository, ItemRepository, InventoryRepository, PurchaseOrderRepository
)
from stockroom.utils.concurrency import fan_out

logger = logging.getLogger(__name__)


class ReconciliationService:
    """Service that checks and repairs the secondary indexes.

    Index writes made outside a transactional store can be left half done
    after a crash. This pass walks the global id-sets and compares every
    record against its day bucket and natural-key lookup.
    """

    def __init__(self, store: KeyValueStore, max_workers: Optional[int] = None):
        self.store = store
        self.max_workers = max_workers
        self.items = ItemRepository(store, max_workers)
        self.orders = PurchaseOrderRepository(store, max_workers)
        self.records = InventoryRepository(store, max_workers)

    def reconcile(self, repair: bool = False) -> Dict:
        """Check every index and optionally repair it.

        Args:
            repair: Remove dangling ids and re-add missing index entries

        Returns:
            Dictionary of findings per entity type
        """
        result = {
            'repaired': repair,
            'items': self._check_items(repair),
            'purchase_orders': self._check_dated(self.orders, repair),
            'inventory_records': self._check_dated(self.records, repair),
        }

        problems = sum(
            len(entries)
            for section in ('items', 'purchase_orders', 'inventory_records')
            for entries in result[section].values()
        )
        if problems:
            logger.warning(f"Reconciliation found {problems} index problems (repair={repair})")
        else:
            logger.info("Reconciliation found no index problems")

        return result

    def _load(self, load, ids: List[str]) -> List:
        return fan_out(lambda entity_id: (entity_id, load(entity_id)), ids, self.max_workers, label="id")

    def _check_items(self, repair: bool) -> Dict[str, List[str]]:
        dangling = [item_id for item_id, item in self._load(self.items.get, self.items.list_ids()) if item is None]

        if repair:
            for item_id in dangling:
                self.store.srem(keyspace.items_list_key(), item_id)

        return {'dangling_ids': dangling}

    def _check_dated(self, repo: DatedEntityRepository, repair: bool) -> Dict[str, List[str]]:
        findings = {
            'dangling_ids': [],
            'missing_from_date_set': [],
            'missing_lookups': [],
            'stale_lookups': [],
            'orphans': [],
        }
        date_sets = {}

        for entity_id, entity in self._load(repo.get, repo.all_ids()):
            if entity is None:
                # The day bucket entry cannot be found without the record's date
                findings['dangling_ids'].append(entity_id)
                if repair:
                    self.store.srem(repo.global_set_key(), entity_id)
                continue

            if entity.date not in date_sets:
                date_sets[entity.date] = set(repo.ids_for_date(entity.date))
            if entity_id not in date_sets[entity.date]:
                findings['missing_from_date_set'].append(entity_id)
                if repair:
                    self.store.sadd(repo.date_set_key(entity.date), entity_id)
                    date_sets[entity.date].add(entity_id)

            lookup_key = repo.lookup_key_for(entity.date, entity.item_id)
            owner_id = repo.lookup_id(entity.date, entity.item_id)
            if owner_id == entity_id:
                continue

            if not owner_id:
                findings['missing_lookups'].append(entity_id)
                if repair:
                    self.store.set_if_absent(lookup_key, entity_id)
            elif repo.get(owner_id) is None:
                findings['stale_lookups'].append(entity_id)
                if repair:
                    self.store.set(lookup_key, entity_id)
            else:
                findings['orphans'].append(entity_id)

        for kind, entries in findings.items():
            if entries:
                logger.warning(f"{repo.entity_name}: {len(entries)} {kind.replace('_', ' ')}")

        return findings
