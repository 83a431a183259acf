"""Command-line edge for the stock ledger.

Parses arguments into the validated commands consumed by the services and
prints results as JSON. Callers identify themselves with ``--account``; the
owner of the catalog is resolved from it before any service is called.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from stockledger import __version__
from stockledger.application.container import AppContainer, build_container
from stockledger.config import get_app_paths, get_log_level
from stockledger.domain.commands import EntryCommand, ExitCommand, PaymentCommand
from stockledger.domain.errors import AppError
from stockledger.logging_config import setup_logging

log = logging.getLogger(__name__)


def to_jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def _owner(app: AppContainer, args: argparse.Namespace) -> int:
    return app.owners.resolve_owner_id(args.account)


def cmd_add_account(app: AppContainer, args: argparse.Namespace):
    return app.owners.register_account(args.name, role=args.role, parent_id=args.parent)


def cmd_add_product(app: AppContainer, args: argparse.Namespace):
    return app.catalog.create_product(
        _owner(app, args), args.name, args.sku, min_stock=args.min_stock, sale_price=args.sale_price
    )


def cmd_products(app: AppContainer, args: argparse.Namespace):
    owner = _owner(app, args)
    if args.low_stock:
        return app.catalog.low_stock_products(owner)
    return app.catalog.list_products(owner)


def cmd_set_price(app: AppContainer, args: argparse.Namespace):
    return app.catalog.update_sale_price(args.product, args.sale_price)


def cmd_delete_product(app: AppContainer, args: argparse.Namespace):
    app.catalog.delete_product(args.product)
    return {"deleted": args.product}


def cmd_entry(app: AppContainer, args: argparse.Namespace):
    cmd = EntryCommand.from_payload(
        {"product_id": args.product, "quantity": args.qty, "unit_cost": args.unit_cost, "expiry_date": args.expiry}
    )
    return app.ledger.post_entry(cmd)


def cmd_exit(app: AppContainer, args: argparse.Namespace):
    cmd = ExitCommand.from_payload(
        {
            "product_id": args.product,
            "quantity": args.qty,
            "unit_price": args.unit_price,
            "status": args.status,
            "client_name": args.client,
        }
    )
    return app.ledger.post_exit(cmd)


def cmd_history(app: AppContainer, args: argparse.Namespace):
    return app.ledger.list_transactions(args.product)


def cmd_pay(app: AppContainer, args: argparse.Namespace):
    cmd = PaymentCommand.from_payload({"transaction_id": args.tx, "amount": args.amount})
    return app.receivables.record_payment(cmd.transaction_id, cmd.amount)


def cmd_receivables(app: AppContainer, args: argparse.Namespace):
    return app.receivables.list_receivables(_owner(app, args))


def cmd_stats(app: AppContainer, args: argparse.Namespace):
    owner = _owner(app, args)
    return {
        "profit": app.stats.get_stats(owner),
        "sales": app.stats.get_sales_summary(owner),
        "outstanding": app.receivables.total_outstanding(owner),
    }


def cmd_product_stats(app: AppContainer, args: argparse.Namespace):
    return app.stats.get_product_stats(_owner(app, args))


def cmd_evolution(app: AppContainer, args: argparse.Namespace):
    return app.stats.get_profit_evolution(
        _owner(app, args),
        period=args.period,
        range_=args.range,
        start_date=args.start,
        end_date=args.end,
    )


def cmd_check(app: AppContainer, args: argparse.Namespace):
    db_file = Path(app.repo.db_path)
    return {
        "sqlite_integrity": app.repo.integrity_check(),
        "db_size_bytes": db_file.stat().st_size if db_file.exists() else 0,
        "backups": len(app.backup.list_backups()),
    }


def cmd_backup(app: AppContainer, args: argparse.Namespace):
    return app.backup.create_backup()


def cmd_import_excel(app: AppContainer, args: argparse.Namespace):
    return app.excel.import_restock_excel(str(args.path), _owner(app, args))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stockledger", description="Inventory and sales ledger.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--db", type=Path, default=None, help="Database file (defaults to the app data dir).")
    sub = parser.add_subparsers(dest="command", required=True, title="commands")

    def add(name: str, handler: Callable, help_text: str, account: bool = False) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=help_text)
        if account:
            p.add_argument("--account", type=int, required=True, help="Calling account id.")
        p.set_defaults(handler=handler)
        return p

    p = add("add-account", cmd_add_account, "Register a manager or collaborator account.")
    p.add_argument("--name", required=True)
    p.add_argument("--role", choices=["manager", "collaborator"], default="manager")
    p.add_argument("--parent", type=int, default=None, help="Manager id for collaborators.")

    p = add("add-product", cmd_add_product, "Register a product in the catalog.", account=True)
    p.add_argument("--name", required=True)
    p.add_argument("--sku", required=True)
    p.add_argument("--min-stock", type=int, default=5)
    p.add_argument("--sale-price", type=float, default=0.0)

    p = add("products", cmd_products, "List catalog products.", account=True)
    p.add_argument("--low-stock", action="store_true", help="Only products at or below minimum stock.")

    p = add("set-price", cmd_set_price, "Change a product's sale price.")
    p.add_argument("--product", type=int, required=True)
    p.add_argument("--sale-price", type=float, required=True)

    p = add("delete-product", cmd_delete_product, "Delete a product and its ledger history.")
    p.add_argument("--product", type=int, required=True)

    p = add("entry", cmd_entry, "Record a purchase (ENTRY).")
    p.add_argument("--product", type=int, required=True)
    p.add_argument("--qty", required=True)
    p.add_argument("--unit-cost", required=True)
    p.add_argument("--expiry", default=None, help="YYYY-MM-DD")

    p = add("exit", cmd_exit, "Record a sale (EXIT).")
    p.add_argument("--product", type=int, required=True)
    p.add_argument("--qty", required=True)
    p.add_argument("--unit-price", required=True)
    p.add_argument("--status", choices=["PAID", "PENDING"], default="PAID")
    p.add_argument("--client", default=None)

    p = add("history", cmd_history, "Ledger rows of a product, newest first.")
    p.add_argument("--product", type=int, required=True)

    p = add("pay", cmd_pay, "Register a payment against a pending sale.")
    p.add_argument("--tx", type=int, required=True)
    p.add_argument("--amount", default=None, help="Omit to settle in full.")

    add("receivables", cmd_receivables, "Pending sales with expected profit.", account=True)
    add("stats", cmd_stats, "Realized and pending profit.", account=True)
    add("product-stats", cmd_product_stats, "Units sold and profit per product.", account=True)

    p = add("evolution", cmd_evolution, "Realized profit per period.", account=True)
    p.add_argument("--period", choices=["day", "week", "month", "quarter", "custom"], default="month")
    p.add_argument("--range", type=int, default=12)
    p.add_argument("--start", default=None)
    p.add_argument("--end", default=None)

    add("backup", cmd_backup, "Copy the database into the backups directory.")
    add("check", cmd_check, "Run the SQLite integrity check.")

    p = add("import-excel", cmd_import_excel, "Bulk restock from an .xlsx workbook.", account=True)
    p.add_argument("--path", type=Path, required=True)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.db is not None:
        db_path = Path(args.db)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        logs_dir = db_path.parent / "logs"
        backups_dir = db_path.parent / "backups"
    else:
        paths = get_app_paths()
        db_path, logs_dir, backups_dir = paths.db_path, paths.logs_dir, paths.backups_dir
    setup_logging(logs_dir, level=get_log_level())

    app = build_container(db_path, backup_dir=backups_dir)
    try:
        result = args.handler(app, args)
    except AppError as e:
        log.warning("command_failed command=%s error=%s", args.command, e)
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(to_jsonable(result), ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
