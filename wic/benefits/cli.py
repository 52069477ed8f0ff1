"""CLI entry point for the benefits module."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from .config import load_config
from .db import ApprovedFoodCatalog, BenefitLedger, StoreDB
from .eligibility.units import format_quantity
from .lookup import create_lookup
from .models import BenefitCategory
from .periods import current_period, previous_period
from .scanner import BenefitScanner

_STATUS_ICONS = {
    "approved": "✅",
    "approved_exceeds_limit": "⚠️ ",
    "not_approved": "❌",
}


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="wic-benefits",
        description="WIC benefit balances and product eligibility",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to the configuration file (TOML)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    sub = parser.add_subparsers(dest="command")

    # seed
    sub.add_parser("seed", help="Load demo stores, catalog and test cards")

    # benefits
    ben_parser = sub.add_parser("benefits", help="Show a card's balances")
    ben_parser.add_argument("card", help="WIC card number")
    ben_parser.add_argument("--period", default=None, help="Month period (YYYY-MM)")
    ben_parser.add_argument("--json", action="store_true", help="Output JSON")

    # scan
    scan_parser = sub.add_parser("scan", help="Check a UPC/PLU for WIC approval")
    scan_parser.add_argument("code", help="UPC or PLU code")
    scan_parser.add_argument("--card", default=None, help="WIC card number")
    scan_parser.add_argument(
        "--category",
        choices=[c.value for c in BenefitCategory],
        default=None,
        help="Expected benefit category",
    )
    scan_parser.add_argument(
        "--price", type=float, default=None, help="Shelf price (fruits/vegetables)"
    )
    scan_parser.add_argument(
        "--buy", action="store_true", help="Apply the product to the card's balance"
    )
    scan_parser.add_argument("--store", type=int, default=None, help="Store ID")
    scan_parser.add_argument("--json", action="store_true", help="Output JSON")

    # purchase
    buy_parser = sub.add_parser("purchase", help="Record a purchase")
    buy_parser.add_argument("card", help="WIC card number")
    buy_parser.add_argument("category", choices=[c.value for c in BenefitCategory])
    buy_parser.add_argument("quantity", type=float)
    buy_parser.add_argument("unit", help="gallons / oz / lbs / dollars")
    buy_parser.add_argument("--product", default="", help="Product name")
    buy_parser.add_argument("--store", type=int, default=None, help="Store ID")
    buy_parser.add_argument("--period", default=None, help="Month period (YYYY-MM)")

    # rollover
    roll_parser = sub.add_parser("rollover", help="Open a new month period")
    roll_parser.add_argument("card", nargs="?", default=None, help="WIC card number")
    roll_parser.add_argument("--all", action="store_true", help="Roll over every card")
    roll_parser.add_argument("--from", dest="from_period", default=None)
    roll_parser.add_argument("--to", dest="to_period", default=None)

    # history
    hist_parser = sub.add_parser("history", help="Show recent transactions")
    hist_parser.add_argument("card", help="WIC card number")
    hist_parser.add_argument("--limit", type=int, default=20)

    # stores
    store_parser = sub.add_parser("stores", help="List WIC-authorized stores")
    store_parser.add_argument("--zip", default=None, help="Filter by ZIP code")

    # scheduler
    sub.add_parser("scheduler", help="Run the monthly rollover scheduler")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)

    match args.command:
        case "seed":
            _cmd_seed(config)
        case "benefits":
            _cmd_benefits(config, args)
        case "scan":
            if args.buy and not args.card:
                print("--buy requires --card", file=sys.stderr)
                sys.exit(1)
            if not asyncio.run(_cmd_scan(config, args)):
                sys.exit(1)
        case "purchase":
            _cmd_purchase(config, args)
        case "rollover":
            _cmd_rollover(config, args)
        case "history":
            _cmd_history(config, args)
        case "stores":
            _cmd_stores(config, args)
        case "scheduler":
            if not config.scheduler.enabled:
                print("Scheduler is disabled; set [scheduler] enabled = true", file=sys.stderr)
                sys.exit(1)
            asyncio.run(_cmd_scheduler(config))


def _open_ledger(config) -> BenefitLedger:
    return BenefitLedger(config.database.path, default_allotments=config.allotments)


def _cmd_seed(config) -> None:
    from .seed import seed_database

    summary = seed_database(config.database.path)
    print(f"Seeded {config.database.path}:")
    for kind, count in summary.items():
        print(f"  {kind:<15} {count}")


def _cmd_benefits(config, args) -> None:
    ledger = _open_ledger(config)
    try:
        period = args.period or current_period()
        benefits = ledger.get_benefits(args.card, period)
    finally:
        ledger.close()

    if args.json:
        data = [
            {
                "category": b.category.value,
                "total": b.total_amount,
                "remaining": b.remaining_amount,
                "unit": b.unit,
                "month_period": b.month_period,
                "expires_at": b.expires_at,
            }
            for b in benefits
        ]
        print(json.dumps(data, indent=2))
        return

    if not benefits:
        print(f"No benefits for card {args.card} in {period}.")
        return
    print(f"Benefits for card {args.card} ({period}, expires {benefits[0].expires_at}):")
    for b in benefits:
        used = b.used_amount / b.total_amount if b.total_amount else 0.0
        bar = "█" * int((1 - used) * 10)
        print(
            f"  {b.category.value:<11} "
            f"{format_quantity(b.remaining_amount, b.unit):>14} of "
            f"{format_quantity(b.total_amount, b.unit):<14} {bar}"
        )


async def _cmd_scan(config, args) -> bool:
    """Scan a code; returns False if a requested purchase was rejected."""
    catalog = ApprovedFoodCatalog(config.database.path)
    ledger = _open_ledger(config) if args.card else None
    scanner = BenefitScanner(create_lookup(config, catalog), catalog, ledger)
    try:
        result = await scanner.scan(
            args.code, args.card, category=args.category, price=args.price
        )
        purchase = None
        if args.buy:
            purchase = scanner.purchase(result, args.card, store_id=args.store)
    finally:
        await scanner.aclose()
        catalog.close()
        if ledger is not None:
            ledger.close()

    if args.json:
        data = result.to_dict()
        if purchase is not None:
            data["purchase"] = {
                "accepted": purchase.accepted,
                "reason": purchase.reason.value if purchase.reason else None,
                "message": purchase.message,
                "transaction_id": purchase.transaction_id,
            }
        print(json.dumps(data, indent=2))
    else:
        ev = result.evaluation
        icon = _STATUS_ICONS[ev.status.value]
        if result.product is not None:
            p = result.product
            print(f"{p.name} ({p.brand}) {p.size_text}")
        print(f"{icon} {ev.message}")
        if ev.suggestion:
            print(f"   💡 {ev.suggestion}")
        if ev.max_quantity is not None:
            print(f"   Balance covers {ev.max_quantity} of this package")
        if purchase is not None:
            _print_purchase(purchase)

    return purchase is None or purchase.accepted


def _cmd_purchase(config, args) -> None:
    ledger = _open_ledger(config)
    try:
        result = ledger.apply_purchase(
            args.card,
            args.category,
            args.quantity,
            args.unit,
            args.period,
            store_id=args.store,
            product_name=args.product,
        )
    finally:
        ledger.close()

    _print_purchase(result)
    if not result.accepted:
        sys.exit(1)


def _print_purchase(result) -> None:
    if not result.accepted:
        print(f"Purchase rejected ({result.reason.value}): {result.message}", file=sys.stderr)
        return
    print(f"Purchase recorded (transaction {result.transaction_id})")
    for b in result.balances:
        print(
            f"  {b.category.value:<11} "
            f"{format_quantity(b.remaining_amount, b.unit)} left"
        )


def _cmd_rollover(config, args) -> None:
    to_period = args.to_period or current_period()
    from_period = args.from_period or previous_period(to_period)

    if not args.all and not args.card:
        print("Give a card number or --all", file=sys.stderr)
        sys.exit(1)

    ledger = _open_ledger(config)
    try:
        if args.all:
            result = ledger.rollover_all(from_period, to_period)
        else:
            result = {args.card: ledger.rollover_period(args.card, from_period, to_period)}
    finally:
        ledger.close()

    print(f"Rollover {from_period} → {to_period}: {len(result)} card(s)")
    for card, rows in result.items():
        print(f"  {card}: {len(rows)} categories")


def _cmd_history(config, args) -> None:
    ledger = _open_ledger(config)
    try:
        transactions = ledger.get_transactions(args.card, limit=args.limit)
    finally:
        ledger.close()

    if not transactions:
        print(f"No transactions for card {args.card}.")
        return
    for t in transactions:
        store = f" @ {t.store_name}" if t.store_name else ""
        print(f"#{t.id} {t.created_at}{store} ({t.total_items} items)")
        for item in t.items:
            name = item.product_name or item.category.value
            print(f"    {name:<24} {format_quantity(item.quantity, item.unit)}")


def _cmd_stores(config, args) -> None:
    db = StoreDB(config.database.path)
    try:
        stores = db.list_stores(zip_code=args.zip)
    finally:
        db.close()

    if not stores:
        print("No stores found.")
        return
    print(f"WIC stores: {len(stores)}")
    for s in stores:
        print(f"  [{s.id}] {s.name:<22} {s.address}, {s.city} {s.state} {s.zip_code}  {s.phone}")


async def _cmd_scheduler(config) -> None:
    from .scheduler import RolloverScheduler

    scheduler = RolloverScheduler(config)
    scheduler.start()
    print("Scheduler running. Press Ctrl+C to stop.")
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.stop()
