import argparse
import json
import sys

from tabulate import tabulate

from fulfillment_readiness.config import config
from fulfillment_readiness.db import db, create_repository
from fulfillment_readiness.exceptions import FulfillmentError
from fulfillment_readiness.logging_setup import get_logger, log_exception
from fulfillment_readiness.services.engine import FulfillmentReadinessEngine
from fulfillment_readiness.utils.sku import parse_order_skus


def init_application():
    """Initialize application components."""
    db.initialize()

    log = get_logger('app')
    log.info("Fulfillment Readiness engine initialized")
    log.info(f"Using database type: {db.db_type}")

    return FulfillmentReadinessEngine(create_repository(db), config)


def parse_quantities(values):
    """Turn ``SKU=N`` arguments into a quantity mapping."""
    quantities = {}
    for value in values or []:
        sku, sep, qty = value.partition('=')
        if not sep or not qty.strip().isdigit():
            raise argparse.ArgumentTypeError(f"Invalid quantity '{value}', expected SKU=N")
        quantities[sku.strip()] = int(qty)
    return quantities


def collect_order_skus(args):
    """Order SKUs and quantities from positional SKUs, --qty and --note."""
    skus = list(args.skus or [])
    quantities = parse_quantities(args.qty)

    if args.note:
        for sku, qty in parse_order_skus(args.note):
            skus.append(sku)
            quantities[sku] = quantities.get(sku, 0) + qty

    return skus, quantities


def init_db(args):
    """Create the database tables."""
    log = get_logger('setup')
    db.initialize()

    if args.drop:
        log.warning("Dropping existing tables")
        db.drop_all_tables()

    db.create_all_tables()
    log.info("Database tables created")
    print("Database tables created")
    return 0


def resolve(args):
    """Resolve order SKUs and print their readiness."""
    engine = init_application()
    skus, quantities = collect_order_skus(args)
    results = engine.resolve_batch(skus, args.location, quantities)

    if args.json:
        print(json.dumps([result.to_dict() for result in results], indent=2, ensure_ascii=False, default=str))
        return 0

    table_data = [
        [
            result.order_sku,
            result.stock_sku or result.kit_sku or '-',
            result.ordered_quantity,
            result.fulfillment_status.label,
            result.supply_status.label,
            result.combined_status.label,
            result.diagnostic
        ]
        for result in results
    ]

    print("\nOrder readiness:")
    print(tabulate(table_data, headers=['Order SKU', 'Stock SKU', 'Qty', 'Fulfillment', 'Insumos', 'Status', 'Diagnostic']))

    ready = sum(1 for result in results if result.combined_status.is_ready)
    print(f"\nReady: {ready} of {len(results)}")
    return 0


def supply(args):
    """Validate insumos of stock SKUs."""
    engine = init_application()
    results = engine.validate_supply_batch(args.skus, args.location)

    table_data = [
        [sku, result.status.label, result.location_name or '-', result.diagnostic]
        for sku, result in results.items()
    ]

    print("\nInsumos:")
    print(tabulate(table_data, headers=['Stock SKU', 'Status', 'Location', 'Details']))
    return 0


def decrement(args):
    """Resolve an order and decrement the stock of its ready lines."""
    log = get_logger('decrement')
    engine = init_application()
    skus, quantities = collect_order_skus(args)

    results = engine.resolve_batch(skus, args.location, quantities)
    blocked = [result for result in results if not result.combined_status.is_ready]
    for result in blocked:
        log.warning(f"{result.order_sku} skipped: {result.combined_status.label}")

    if blocked and not args.partial:
        print("\nOrder not ready:")
        print(tabulate(
            [[result.order_sku, result.combined_status.label, result.diagnostic] for result in blocked],
            headers=['Order SKU', 'Status', 'Diagnostic']
        ))
        return 1

    ready = [result for result in results if result.combined_status.is_ready]
    report = engine.decrement_for_order(engine.plan_decrement(ready), order_id=args.order_id)

    if args.with_insumos and report.succeeded:
        stock_skus = [result.stock_sku or result.kit_sku for result in ready]
        report.merge(engine.consume_insumos(stock_skus, args.location))

    table_data = [
        [item.sku, item.location_id, item.quantity, item.new_quantity_at_location, item.new_aggregate_quantity]
        for item in report.succeeded
    ]
    print("\nDecremented:")
    print(tabulate(table_data, headers=['SKU', 'Location', 'Qty', 'Left at location', 'Total']))

    if report.failed:
        print("\nFailed:")
        print(tabulate([[item['sku'], item['reason']] for item in report.failed], headers=['SKU', 'Reason']))

    return 0 if report.success else 1


def main(argv=None):
    """Main entry point for the command line interface."""
    parser = argparse.ArgumentParser(description='Fulfillment Readiness CLI')
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Database setup command
    init_parser = subparsers.add_parser('init-db', help='Create the database tables')
    init_parser.add_argument('--drop', action='store_true', help='Drop existing tables first')

    # Resolve command
    resolve_parser = subparsers.add_parser('resolve', help='Resolve order SKUs to a readiness status')
    resolve_parser.add_argument('skus', nargs='*', help='Order SKUs')
    resolve_parser.add_argument('--location', help='Stock location ID')
    resolve_parser.add_argument('--qty', action='append', help='Ordered quantity as SKU=N (repeatable)')
    resolve_parser.add_argument('--note', help='Order note such as "SKU123 (2x), SKU456"')
    resolve_parser.add_argument('--json', action='store_true', help='Output in JSON format')

    # Supply command
    supply_parser = subparsers.add_parser('supply', help='Validate insumos of stock SKUs')
    supply_parser.add_argument('skus', nargs='+', help='Stock SKUs')
    supply_parser.add_argument('--location', help='Stock location ID')

    # Decrement command
    decrement_parser = subparsers.add_parser('decrement', help='Decrement stock for an order')
    decrement_parser.add_argument('skus', nargs='*', help='Order SKUs')
    decrement_parser.add_argument('--location', required=True, help='Stock location ID')
    decrement_parser.add_argument('--qty', action='append', help='Ordered quantity as SKU=N (repeatable)')
    decrement_parser.add_argument('--note', help='Order note such as "SKU123 (2x), SKU456"')
    decrement_parser.add_argument('--order-id', help='Unique order ID, refused if already processed')
    decrement_parser.add_argument('--with-insumos', action='store_true', help='Also decrement insumos')
    decrement_parser.add_argument('--partial', action='store_true', help='Decrement ready lines even if others are blocked')

    args = parser.parse_args(argv)

    commands = {
        'init-db': init_db,
        'resolve': resolve,
        'supply': supply,
        'decrement': decrement
    }

    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 1

    try:
        return command(args)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    except FulfillmentError as e:
        log_exception('app', e, f"Command {args.command} failed")
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == '__main__':
    sys.exit(main())
