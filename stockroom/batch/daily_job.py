# stockroom/batch/daily_job.py
import logging
from datetime import datetime, timedelta
from typing import Dict, Optional

from stockroom.db import get_store
from stockroom.db.interface import KeyValueStore
from stockroom.logging_setup import logger as log_manager, get_logger
from stockroom.services.inventory_service import InventoryService
from stockroom.services.purchase_service import PurchaseService
from stockroom.services.suggestion_service import SuggestionService
from stockroom.utils.date_utils import date_key, to_date, today

# Initialize logger
logger = get_logger('daily_job')
logger.setLevel(logging.INFO)


def initialize_inventory(store: KeyValueStore, run_date) -> Dict:
    """Open the ledger for every item on the run date.

    Args:
        store: Key-value store
        run_date: Day to initialize

    Returns:
        Dictionary with initialization results
    """
    logger.info(f"Initializing inventory for {date_key(run_date)}")
    return InventoryService(store).initialize_day(run_date)


def build_suggestions(store: KeyValueStore, run_date) -> Dict:
    """Build reorder suggestions for the day after the run date."""
    logger.info(f"Building reorder suggestions as of {date_key(run_date)}")
    target = run_date + timedelta(days=1)
    return SuggestionService(store).suggest_reorder(target_date=target, today=run_date)


def plan_orders(store: KeyValueStore, suggestions: Dict) -> Dict:
    """Write planned purchase orders for every positive suggestion.

    Args:
        store: Key-value store
        suggestions: Result of build_suggestions

    Returns:
        Dictionary with the number of orders written
    """
    logger.info(f"Planning purchase orders for {suggestions['date']}")
    orders = PurchaseService(store).create_orders_from_suggestions(
        suggestions['suggestions'], suggestions['date']
    )
    return {
        'date': suggestions['date'],
        'orders_planned': len(orders)
    }


def run_daily_job(
    store: Optional[KeyValueStore] = None,
    run_date=None,
    create_orders: bool = False
) -> Dict:
    """Run the daily job.

    Args:
        store: Optional key-value store (defaults to the configured backend)
        run_date: Day to process (defaults to today)
        create_orders: Whether positive suggestions become planned orders

    Returns:
        Dictionary with job results
    """
    if store is None:
        store = get_store()
    day = to_date(run_date) or today()

    start_time = datetime.now()
    log_info = log_manager.batch_start_log('daily_job', {'date': date_key(day), 'create_orders': create_orders})

    results = {
        'date': date_key(day),
        'start_time': start_time,
        'end_time': None,
        'duration': None,
        'processes': {}
    }

    try:
        # Step 1: Open today's ledger entries
        logger.info("# Step 1: Initialize inventory")
        initialized = initialize_inventory(store, day)
        results['processes']['initialize_inventory'] = {
            'date': initialized['date'],
            'count': initialized['count']
        }

        # Step 2: Reorder suggestions for tomorrow
        logger.info("# Step 2: Build suggestions")
        suggestions = build_suggestions(store, day)
        results['processes']['suggestions'] = suggestions

        # Step 3: Planned orders
        if create_orders:
            logger.info("# Step 3: Plan purchase orders")
            results['processes']['plan_orders'] = plan_orders(store, suggestions)

        results['end_time'] = datetime.now()
        results['duration'] = results['end_time'] - start_time
        results['success'] = True

        log_manager.batch_end_log(log_info, True, {
            'initialized': initialized['count'],
            'suggestions': len(suggestions['suggestions'])
        })
        return results

    except Exception as e:
        log_manager.log_exception('batch', e, "Daily job failed")

        results['end_time'] = datetime.now()
        results['duration'] = results['end_time'] - start_time
        results['success'] = False
        results['error'] = str(e)

        log_manager.batch_end_log(log_info, False, {'error': str(e)})
        return results


if __name__ == "__main__":
    run_daily_job()
