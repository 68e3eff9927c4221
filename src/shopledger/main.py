from __future__ import annotations

import argparse
import logging
import sys

from shopledger.application.container import AppContainer, build_container
from shopledger.application.seed import seed_demo_data
from shopledger.config import get_app_paths, load_settings
from shopledger.domain.errors import AppError
from shopledger.logging_config import setup_logging


def bootstrap() -> AppContainer:
    paths = get_app_paths()
    setup_logging(paths.logs_dir, level=logging.INFO)
    settings = load_settings()

    container = build_container(paths.db_path, settings)
    if settings.seed_demo:
        seed_demo_data(container)
    return container


def _print_summary(container: AppContainer) -> None:
    s = container.reporting.sales_summary()
    profile = container.profiles.get_profile()
    if profile:
        print(f"{profile.shop_name} ({profile.name})")
    print(f"Invoices:        {s.invoice_count}")
    print(f"Total sales:     {s.total_sales:,.2f}")
    print(f"Gross profit:    {s.gross_profit:,.2f}")
    print(f"Receivables:     {s.total_outstanding:,.2f}")
    print(f"Payables:        {s.total_payables:,.2f}")
    print(f"Inventory value: {s.inventory_value:,.2f}")
    print(f"Low stock:       {s.low_stock_count}")
    print(f"Next invoice:    {container.profiles.peek_next_invoice_number()}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="shopledger")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("summary")
    imp = sub.add_parser("import-products")
    imp.add_argument("path")
    exp = sub.add_parser("export-report")
    exp.add_argument("path")
    exp.add_argument("--from", dest="date_from")
    exp.add_argument("--to", dest="date_to")
    ask = sub.add_parser("ask")
    ask.add_argument("question")
    args = parser.parse_args(argv)

    container = bootstrap()
    try:
        if args.command == "import-products":
            ok, skipped = container.excel.import_products_excel(args.path)
            print(f"Imported {ok} rows, skipped {skipped}.")
        elif args.command == "export-report":
            container.reporting.export_summary_excel(args.path, args.date_from, args.date_to)
            print(f"Report written to {args.path}")
        elif args.command == "ask":
            print(container.insights.ask(args.question))
        else:
            _print_summary(container)
    except AppError as e:
        logging.getLogger(__name__).warning("command_failed command=%s error=%s", args.command, e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
