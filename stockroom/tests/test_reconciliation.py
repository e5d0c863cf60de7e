"""
Tests for index reconciliation.
"""
import unittest

from stockroom.db.memory import InMemoryStore
from stockroom.models import InventoryRecord
from stockroom.services.inventory_service import InventoryService
from stockroom.services.item_service import ItemService
from stockroom.services.purchase_service import PurchaseService
from stockroom.services.reconciliation_service import ReconciliationService


class TestReconciliationService(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryStore()
        self.items = ItemService(self.store, max_workers=4)
        self.inventory = InventoryService(self.store, max_workers=4)
        self.purchases = PurchaseService(self.store, max_workers=4)
        self.service = ReconciliationService(self.store, max_workers=4)

        self.rice = self.items.create_item('Rice', 'kg')
        self.record, _ = self.inventory.record_count('2024-06-01', self.rice.id, 10, 0, 7)
        self.order, _ = self.purchases.upsert_purchase_order('2024-06-02', self.rice.id, 5)

    def _problems(self, result):
        return {
            (section, kind): entries
            for section in ('items', 'purchase_orders', 'inventory_records')
            for kind, entries in result[section].items()
            if entries
        }

    def test_consistent_store(self):
        """Test a clean store reports nothing."""
        result = self.service.reconcile()

        self.assertFalse(result['repaired'])
        self.assertEqual(self._problems(result), {})

    def test_dangling_ids(self):
        """Test ids without records are reported and removed on repair."""
        self.store.sadd('items:list', 'ghost-item')
        self.store.sadd('inventories:list', 'ghost-record')
        self.store.sadd('purchases:list', 'ghost-order')

        result = self.service.reconcile()
        self.assertEqual(self._problems(result), {
            ('items', 'dangling_ids'): ['ghost-item'],
            ('purchase_orders', 'dangling_ids'): ['ghost-order'],
            ('inventory_records', 'dangling_ids'): ['ghost-record'],
        })
        self.assertIn('ghost-record', self.store.smembers('inventories:list'))

        self.service.reconcile(repair=True)

        self.assertEqual(self.store.smembers('items:list'), [self.rice.id])
        self.assertEqual(self.store.smembers('inventories:list'), [self.record.id])
        self.assertEqual(self.store.smembers('purchases:list'), [self.order.id])
        self.assertEqual(self._problems(self.service.reconcile()), {})

    def test_missing_index_entries(self):
        """Test a half-written record gets its day bucket and lookup back."""
        self.store.srem('inventories:date:2024-06-01', self.record.id)
        self.store.delete(f'inventory:2024-06-01:{self.rice.id}')

        result = self.service.reconcile()
        self.assertEqual(result['inventory_records']['missing_from_date_set'], [self.record.id])
        self.assertEqual(result['inventory_records']['missing_lookups'], [self.record.id])
        self.assertIsNone(self.inventory.records.find('2024-06-01', self.rice.id))

        self.service.reconcile(repair=True)

        self.assertEqual(self.store.smembers('inventories:date:2024-06-01'), [self.record.id])
        self.assertEqual(self.inventory.records.find('2024-06-01', self.rice.id).id, self.record.id)

    def test_stale_lookup(self):
        """Test a lookup pointing at a missing record is re-pointed."""
        self.store.set(f'purchase:2024-06-02:{self.rice.id}', 'gone')

        result = self.service.reconcile(repair=True)

        self.assertEqual(result['purchase_orders']['stale_lookups'], [self.order.id])
        self.assertEqual(self.store.get(f'purchase:2024-06-02:{self.rice.id}'), self.order.id)

    def test_orphans_are_reported_not_deleted(self):
        """Test a duplicate record for a taken natural key is left alone."""
        orphan = InventoryRecord(id='orphan', date='2024-06-01', item_id=self.rice.id, start_qty=1.0)
        self.store.set('inventory:orphan', orphan.to_dict())
        self.store.sadd('inventories:list', 'orphan')
        self.store.sadd('inventories:date:2024-06-01', 'orphan')

        result = self.service.reconcile(repair=True)

        self.assertEqual(result['inventory_records']['orphans'], ['orphan'])
        self.assertIsNotNone(self.store.get('inventory:orphan'))
        self.assertEqual(self.store.get(f'inventory:2024-06-01:{self.rice.id}'), self.record.id)


if __name__ == '__main__':
    unittest.main()
