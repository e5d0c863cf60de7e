"""
Tests for the SQLAlchemy-backed key-value store, run against SQLite.
"""
import os
import tempfile
import unittest

from sqlalchemy import create_engine, inspect

from stockroom.db.connection import Database, db
from stockroom.db.sql_store import SqlAlchemyStore
from stockroom.services.inventory_service import InventoryService
from stockroom.services.item_service import ItemService
from stockroom.services.purchase_service import PurchaseService


class TestSqlAlchemyStore(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.engine = create_engine(
            f"sqlite:///{os.path.join(self.tmpdir.name, 'stockroom.db')}",
            connect_args={'check_same_thread': False}
        )
        self.store = SqlAlchemyStore(self.engine)

    def tearDown(self):
        self.engine.dispose()
        self.tmpdir.cleanup()

    def test_get_set_delete(self):
        """Test plain keys hold JSON documents."""
        self.assertIsNone(self.store.get('item:a1'))

        self.store.set('item:a1', {'name': 'Rice', 'par_level': 50.0, 'tags': ['dry']})
        self.assertEqual(self.store.get('item:a1'), {'name': 'Rice', 'par_level': 50.0, 'tags': ['dry']})

        self.store.set('item:a1', {'name': '米'})
        self.assertEqual(self.store.get('item:a1'), {'name': '米'})

        self.store.delete('item:a1')
        self.assertIsNone(self.store.get('item:a1'))
        self.store.delete('item:a1')

    def test_sets(self):
        """Test set members keep insertion order and ignore duplicates."""
        self.assertEqual(self.store.smembers('items:list'), [])

        for member in ['b', 'a', 'c', 'a']:
            self.store.sadd('items:list', member)
        self.assertEqual(self.store.smembers('items:list'), ['b', 'a', 'c'])

        self.store.srem('items:list', 'a')
        self.store.srem('items:list', 'missing')
        self.assertEqual(self.store.smembers('items:list'), ['b', 'c'])
        self.assertEqual(self.store.smembers('other'), [])

    def test_set_if_absent(self):
        """Test conditional writes only succeed once."""
        self.assertTrue(self.store.set_if_absent('inventory:2024-06-01:a1', 'r1'))
        self.assertFalse(self.store.set_if_absent('inventory:2024-06-01:a1', 'r2'))
        self.assertEqual(self.store.get('inventory:2024-06-01:a1'), 'r1')

    def test_atomic_commits_together(self):
        """Test an atomic block commits every write at once."""
        with self.store.atomic():
            self.assertTrue(self.store.set_if_absent('lookup', 'r1'))
            self.store.set('record:r1', {'id': 'r1'})
            self.store.sadd('records', 'r1')
            self.assertEqual(self.store.get('record:r1'), {'id': 'r1'})

        self.assertEqual(self.store.get('lookup'), 'r1')
        self.assertEqual(self.store.smembers('records'), ['r1'])

    def test_atomic_rolls_back(self):
        """Test a failing atomic block leaves nothing behind."""
        with self.assertRaises(RuntimeError):
            with self.store.atomic():
                self.store.set('record:r1', {'id': 'r1'})
                self.store.sadd('records', 'r1')
                raise RuntimeError("crash between writes")

        self.assertIsNone(self.store.get('record:r1'))
        self.assertEqual(self.store.smembers('records'), [])

    def test_services_on_sql_store(self):
        """Test the ledger flow end to end on the SQL store."""
        items = ItemService(self.store, max_workers=2)
        purchases = PurchaseService(self.store, max_workers=2)
        inventory = InventoryService(self.store, max_workers=2)

        rice = items.create_item('Rice', 'kg', par_level=50)
        inventory.record_count('2024-06-01', rice.id, 10, 0, 7)
        purchases.upsert_purchase_order('2024-06-02', rice.id, 5)

        result = inventory.initialize_day('2024-06-02')

        self.assertEqual(result['count'], 1)
        record = result['records'][0]
        self.assertEqual(record.start_qty, 7.0)
        self.assertEqual(record.received_qty, 5.0)

        again, created = inventory.record_count('2024-06-02', rice.id, 7, 5, 10)
        self.assertFalse(created)
        self.assertEqual(again.id, record.id)
        self.assertEqual(again.usage, 2.0)
        self.assertEqual(inventory.resolve_current_stock(rice.id, '2024-06-03'), 10.0)


class TestDatabase(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.saved_engine = db._engine

    def tearDown(self):
        if db._engine is not self.saved_engine:
            db._engine.dispose()
        db._engine = self.saved_engine
        self.tmpdir.cleanup()

    def test_singleton(self):
        """Test every Database() is the shared instance."""
        self.assertIs(Database(), db)

    def test_create_and_drop_tables(self):
        """Test the schema is created and dropped on the configured engine."""
        db.initialize(f"sqlite:///{os.path.join(self.tmpdir.name, 'schema.db')}")

        db.create_all_tables()
        self.assertEqual(sorted(inspect(db.engine).get_table_names()), ['kv_entry', 'kv_set_member'])

        db.drop_all_tables()
        self.assertEqual(inspect(db.engine).get_table_names(), [])


if __name__ == '__main__':
    unittest.main()
