"""Command line entry point for the waiter POS order engine."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional, Sequence

from .core import paths
from .core.auth import authenticate
from .core.errors import OrderError
from .services.billing import group_units
from .services.orders import get_order_manager
from .services.printer import PrinterService
from .services.reports import build_daily_report
from .utils.currency import format_amount

LOGGER = logging.getLogger("waiter_pos")


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError("Invalid date format. Please use YYYY-MM-DD") from None


def _cmd_tables(args) -> int:
    manager = get_order_manager()
    for row in manager.table_overview():
        badge = f" [{row.active_tickets}]" if row.active_tickets else ""
        print(f"Table {row.table}: {row.state.value}{badge}")
    return 0


def _cmd_kitchen(args) -> int:
    manager = get_order_manager()
    tickets = manager.tickets(args.status)
    if not tickets:
        print("No active orders")
        return 0
    for ticket in tickets:
        when = ticket.timestamp.strftime("%H:%M")
        print(f"#{ticket.id} Table {ticket.table} {when} {ticket.status.value.upper()}")
        lines, _ = group_units(ticket.items)
        for line in lines:
            print(f"   {line.quantity}x {line.item.name}")
    return 0


def _cmd_report(args) -> int:
    manager = get_order_manager()
    report = build_daily_report(manager.bills(), args.date)
    path = PrinterService(args.output).render_daily_report(report)
    print(f"Report for {report.day.isoformat()}: {report.bill_count} bills, {format_amount(report.grand_total)}")
    print(path)
    return 0


def _cmd_bill_pdf(args) -> int:
    manager = get_order_manager()
    bill = manager.get_bill(args.bill_id)
    print(PrinterService(args.output).render_bill(bill))
    return 0


def _cmd_reset_availability(args) -> int:
    auth = authenticate(args.password)
    if auth is None:
        print("Incorrect password", file=sys.stderr)
        return 2
    get_order_manager().reset_availability(auth)
    print("All items reset to AVAILABLE")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="waiter-pos", description=__doc__)
    parser.add_argument("--data-root", type=Path, help="Storage folder (defaults to WAITER_POS_DATA_ROOT)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    tables = sub.add_parser("tables", help="Show table occupancy")
    tables.set_defaults(func=_cmd_tables)

    kitchen = sub.add_parser("kitchen", help="List kitchen tickets")
    kitchen.add_argument("--status", choices=["pending", "preparing", "ready", "served"])
    kitchen.set_defaults(func=_cmd_kitchen)

    report = sub.add_parser("report", help="Render the daily sales report PDF")
    report.add_argument("--date", type=_parse_day, default=date.today(), help="YYYY-MM-DD (default: today)")
    report.add_argument("--output", type=Path, help="Folder for the PDF")
    report.set_defaults(func=_cmd_report)

    bill_pdf = sub.add_parser("bill-pdf", help="Render one bill as a PDF receipt")
    bill_pdf.add_argument("bill_id", type=int)
    bill_pdf.add_argument("--output", type=Path, help="Folder for the PDF")
    bill_pdf.set_defaults(func=_cmd_bill_pdf)

    reset = sub.add_parser("reset-availability", help="Mark every menu item available again")
    reset.add_argument("--password", required=True)
    reset.set_defaults(func=_cmd_reset_availability)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.data_root:
        paths.use_base_dir(args.data_root)
    try:
        return args.func(args)
    except OrderError as exc:
        LOGGER.debug("%s failed", args.command, exc_info=True)
        print(str(exc), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
