import argparse
import sys

from tabulate import tabulate

from stockroom.config import config
from stockroom.db import db, get_store
from stockroom.exceptions import StockroomError
from stockroom.logging_setup import logger, get_logger
from stockroom.utils.date_utils import to_date, today


def init_application(backend=None):
    """Initialize application components.

    Args:
        backend: Optional storage backend overriding configuration

    Returns:
        Key-value store
    """
    backend = backend or config.storage_config['backend']
    if backend == 'sql':
        db.initialize()

    store = get_store(backend)

    log = logger.app_logger
    log.info("Stockroom ledger initialized")
    if backend == 'sql':
        log.info(f"Using database: {db.engine.url.render_as_string(hide_password=True)}")
    else:
        log.info("Using in-memory store")

    return store


def _fmt(value):
    return '' if value is None else value


def items_command(args, store):
    from stockroom.services.item_service import ItemService

    service = ItemService(store)

    if args.action == 'list':
        items = service.list_items()
        table_data = [
            [item.id, item.name, item.unit, item.par_level, item.safety_stock]
            for item in items
        ]
        print(tabulate(table_data, headers=['Item ID', 'Name', 'Unit', 'Par Level', 'Safety Stock']))
        print(f"\nTotal Items: {len(items)}")
    elif args.action == 'add':
        item = service.create_item(args.name, args.unit, args.par_level, args.safety_stock)
        print(f"Created item {item.id} ({item.name})")
    elif args.action == 'update':
        item = service.update_item(args.item_id, args.name, args.unit, args.par_level, args.safety_stock)
        print(f"Updated item {item.id} ({item.name})")
    elif args.action == 'delete':
        service.delete_item(args.item_id)
        print(f"Deleted item {args.item_id}")


def purchase_command(args, store):
    from stockroom.services.purchase_service import PurchaseService

    service = PurchaseService(store)

    if args.action == 'list':
        rows = service.list_purchase_orders(args.date)
        table_data = [
            [row['id'], row['date'], row['item']['name'], row['planned_qty'],
             'Y' if row['confirmed'] else 'N', _fmt(row['actual_qty'])]
            for row in rows
        ]
        print(tabulate(table_data, headers=['Order ID', 'Date', 'Item', 'Planned', 'Confirmed', 'Actual']))
        print(f"\nTotal Orders: {len(rows)}")
    elif args.action == 'add':
        order, created = service.upsert_purchase_order(args.date, args.item, args.qty, args.confirmed)
        print(f"{'Created' if created else 'Updated'} purchase order {order.id}")
    elif args.action == 'update':
        changes = {}
        if args.planned_qty is not None:
            changes['planned_qty'] = args.planned_qty
        if args.actual_qty is not None:
            changes['actual_qty'] = args.actual_qty
        order = service.update_purchase_order(args.order_id, confirmed=args.confirmed, **changes)
        print(f"Updated purchase order {order.id}")
    elif args.action == 'delete':
        service.delete_purchase_order(args.order_id)
        print(f"Deleted purchase order {args.order_id}")


def inventory_command(args, store):
    from stockroom.services.inventory_service import InventoryService

    service = InventoryService(store)

    if args.action == 'init':
        result = service.initialize_day(args.date or today())
        print(f"Initialized {result['count']} inventory records for {result['date']}")
    elif args.action == 'list':
        rows = service.list_inventory(args.date)
        table_data = [
            [row['item']['name'], row['item']['unit'], row['start_qty'], row['received_qty'],
             _fmt(row['end_qty']), _fmt(row['usage'])]
            for row in rows
        ]
        print(tabulate(table_data, headers=['Item', 'Unit', 'Start', 'Received', 'End', 'Usage']))
    elif args.action == 'count':
        record, created = service.record_count(args.date, args.item, args.start, args.received, args.end)
        print(f"{'Created' if created else 'Updated'} inventory record {record.id}: usage {_fmt(record.usage)}")
    elif args.action == 'stock':
        if args.item:
            print(service.resolve_current_stock(args.item, args.date))
            return
        rows = service.current_stock_for_all(args.date)
        table_data = [[row['item_name'], row['unit'], row['current_stock']] for row in rows]
        print(tabulate(table_data, headers=['Item', 'Unit', 'Current Stock']))


def suggest_command(args, store):
    from datetime import timedelta
    from stockroom.services.purchase_service import PurchaseService
    from stockroom.services.suggestion_service import SuggestionService

    as_of = to_date(args.date) or today()
    result = SuggestionService(store).suggest_reorder(target_date=as_of + timedelta(days=1), today=as_of)

    table_data = [
        [s['item_name'], s['unit'], s['current_stock'], s['par_level'],
         round(s['avg_usage'], 2), s['suggested_qty']]
        for s in result['suggestions']
    ]
    print(f"\nReorder suggestions for {result['date']}:")
    print(tabulate(table_data, headers=['Item', 'Unit', 'Stock', 'Par Level', 'Avg Usage', 'Suggested']))

    if args.create_orders:
        orders = PurchaseService(store).create_orders_from_suggestions(result['suggestions'], result['date'])
        print(f"\nPlanned {len(orders)} purchase orders for {result['date']}")


def report_command(args, store):
    from stockroom.services.reporting_service import ReportingService

    service = ReportingService(store)
    report = service.build_report(args.type, args.date, args.item)

    if args.csv:
        output = service.export_report_to_csv(report)
    elif args.json:
        output = service.export_report_to_json(report)
    else:
        table_data = []
        for stat in report['stats']:
            for row in stat['records']:
                table_data.append([
                    stat['item_name'], row['date'], row['start_qty'], row['received_qty'],
                    _fmt(row['end_qty']), row['usage'], round(stat['avg_usage'], 2)
                ])
        output = "\n".join([
            f"{report['report_name']}: {report['start_date']} - {report['end_date']}",
            tabulate(table_data, headers=['Item', 'Date', 'Start', 'Received', 'End', 'Usage', 'Avg Usage'])
        ])

    if args.output:
        with open(args.output, 'w', encoding='utf-8', newline='') as f:
            f.write(output)
        print(f"Report written to {args.output}")
    else:
        print(output)


def reconcile_command(args, store):
    from stockroom.services.reconciliation_service import ReconciliationService

    result = ReconciliationService(store).reconcile(repair=args.repair)

    table_data = []
    for section in ('items', 'purchase_orders', 'inventory_records'):
        for kind, entries in result[section].items():
            table_data.append([section, kind, len(entries)])
    print(tabulate(table_data, headers=['Entity', 'Check', 'Count']))


def daily_job_command(args, store):
    from stockroom.batch.daily_job import run_daily_job

    results = run_daily_job(store, args.date, args.create_orders)
    if not results['success']:
        print(f"Daily job failed: {results['error']}")
        return False

    print(f"Daily job for {results['date']} completed in {results['duration']}")
    for name, process in results['processes'].items():
        if name == 'suggestions':
            print(f"  {name}: {len(process['suggestions'])} items")
        else:
            print(f"  {name}: {process}")
    return True


def build_parser():
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(description='Stockroom Ledger')

    parser.add_argument('--backend', choices=['sql', 'memory'],
                        help='Storage backend (defaults to configuration)')
    parser.add_argument('--setup-db', action='store_true',
                        help='Create the key-value tables')
    parser.add_argument('--drop-db', action='store_true',
                        help='Drop existing tables before setup')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Items
    items_parser = subparsers.add_parser('items', help='Manage the item catalog')
    items_sub = items_parser.add_subparsers(dest='action', required=True)
    items_sub.add_parser('list', help='List items')
    add_parser = items_sub.add_parser('add', help='Add an item')
    add_parser.add_argument('--name', required=True)
    add_parser.add_argument('--unit', required=True)
    add_parser.add_argument('--par-level', default=0)
    add_parser.add_argument('--safety-stock', default=0)
    update_parser = items_sub.add_parser('update', help='Update an item')
    update_parser.add_argument('item_id')
    update_parser.add_argument('--name')
    update_parser.add_argument('--unit')
    update_parser.add_argument('--par-level')
    update_parser.add_argument('--safety-stock')
    delete_parser = items_sub.add_parser('delete', help='Delete an item')
    delete_parser.add_argument('item_id')

    # Purchase orders
    purchase_parser = subparsers.add_parser('purchase', help='Manage purchase orders')
    purchase_sub = purchase_parser.add_subparsers(dest='action', required=True)
    list_parser = purchase_sub.add_parser('list', help='List orders for a day')
    list_parser.add_argument('--date', help='Order date (defaults to tomorrow)')
    add_parser = purchase_sub.add_parser('add', help='Create or update the order for a date and item')
    add_parser.add_argument('--date', required=True)
    add_parser.add_argument('--item', required=True, help='Item ID')
    add_parser.add_argument('--qty', required=True, help='Planned quantity')
    add_parser.add_argument('--confirmed', action='store_true', default=None)
    update_parser = purchase_sub.add_parser('update', help='Confirm or reconcile an order')
    update_parser.add_argument('order_id')
    update_parser.add_argument('--planned-qty')
    update_parser.add_argument('--actual-qty', help="Received quantity ('' clears it)")
    confirm_group = update_parser.add_mutually_exclusive_group()
    confirm_group.add_argument('--confirm', dest='confirmed', action='store_true', default=None)
    confirm_group.add_argument('--unconfirm', dest='confirmed', action='store_false')
    delete_parser = purchase_sub.add_parser('delete', help='Delete an order')
    delete_parser.add_argument('order_id')

    # Inventory
    inventory_parser = subparsers.add_parser('inventory', help='Daily inventory ledger')
    inventory_sub = inventory_parser.add_subparsers(dest='action', required=True)
    init_parser = inventory_sub.add_parser('init', help='Open the ledger for a day')
    init_parser.add_argument('--date', help='Day (defaults to today)')
    list_parser = inventory_sub.add_parser('list', help='List ledger entries for a day')
    list_parser.add_argument('--date', help='Day (defaults to today)')
    count_parser = inventory_sub.add_parser('count', help='Record an end-of-day count')
    count_parser.add_argument('--date', required=True)
    count_parser.add_argument('--item', required=True, help='Item ID')
    count_parser.add_argument('--start', default=0, help='Opening quantity')
    count_parser.add_argument('--received', default=0, help='Received quantity')
    count_parser.add_argument('--end', help='Closing count')
    stock_parser = inventory_sub.add_parser('stock', help='Show current stock')
    stock_parser.add_argument('--date', help='As-of day (defaults to today)')
    stock_parser.add_argument('--item', help='Single item ID')

    # Suggestions
    suggest_parser = subparsers.add_parser('suggest', help='Reorder suggestions for the next day')
    suggest_parser.add_argument('--date', help='As-of day (defaults to today)')
    suggest_parser.add_argument('--create-orders', action='store_true',
                                help='Plan purchase orders for positive suggestions')

    # Reports
    report_parser = subparsers.add_parser('report', help='Usage reports')
    report_parser.add_argument('--type', choices=['day', 'week', 'month'], default='day')
    report_parser.add_argument('--date', help='Any day in the report window (defaults to today)')
    report_parser.add_argument('--item', help='Only this item ID')
    format_group = report_parser.add_mutually_exclusive_group()
    format_group.add_argument('--csv', action='store_true', help='Output CSV')
    format_group.add_argument('--json', action='store_true', help='Output JSON')
    report_parser.add_argument('--output', '-o', help='Write to file instead of stdout')

    # Reconciliation
    reconcile_parser = subparsers.add_parser('reconcile', help='Check the secondary indexes')
    reconcile_parser.add_argument('--repair', action='store_true',
                                  help='Remove dangling ids and re-add missing entries')

    # Daily job
    job_parser = subparsers.add_parser('daily-job', help='Run the daily batch job')
    job_parser.add_argument('--date', help='Run date (defaults to today)')
    job_parser.add_argument('--create-orders', action='store_true')

    return parser


COMMANDS = {
    'items': items_command,
    'purchase': purchase_command,
    'inventory': inventory_command,
    'suggest': suggest_command,
    'report': report_command,
    'reconcile': reconcile_command,
    'daily-job': daily_job_command,
}


def main(argv=None):
    """Main application entry point."""
    args = build_parser().parse_args(argv)

    if args.setup_db:
        db.initialize()
        if args.drop_db:
            db.drop_all_tables()
        db.create_all_tables()
        logger.app_logger.info("Database schema created")
        return 0

    store = init_application(args.backend)

    if args.command is None:
        logger.app_logger.info("Stockroom ledger ready")
        return 0

    log = get_logger('cli')
    try:
        result = COMMANDS[args.command](args, store)
    except StockroomError as e:
        log.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 1 if result is False else 0


if __name__ == "__main__":
    sys.exit(main())
