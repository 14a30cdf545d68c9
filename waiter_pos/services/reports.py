"""Daily sales summary grouped by table."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Dict, Iterable, List, Optional

from ..core.errors import NoBillsForDay
from ..utils.currency import format_amount
from .billing import Bill


@dataclass(slots=True)
class ReportLine:
    name: str
    quantity: int
    unit_price: int

    @property
    def total(self) -> int:
        return self.unit_price * self.quantity


@dataclass(slots=True)
class TableSummary:
    table: int
    lines: List[ReportLine] = field(default_factory=list)
    bill_count: int = 0

    @property
    def subtotal(self) -> int:
        return sum(line.total for line in self.lines)


@dataclass(slots=True)
class DailyReport:
    day: date
    tables: List[TableSummary]

    @property
    def grand_total(self) -> int:
        return sum(summary.subtotal for summary in self.tables)

    @property
    def bill_count(self) -> int:
        return sum(summary.bill_count for summary in self.tables)

    def as_dict(self) -> Dict[str, object]:
        return {
            "day": self.day.isoformat(),
            "bill_count": self.bill_count,
            "grand_total": format_amount(self.grand_total),
            "tables": [
                {
                    "table": summary.table,
                    "subtotal": format_amount(summary.subtotal),
                    "items": [
                        {"name": line.name, "quantity": line.quantity, "total": format_amount(line.total)}
                        for line in summary.lines
                    ],
                }
                for summary in self.tables
            ],
        }


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Local-time start and end instants of *day*."""
    start = datetime.combine(day, time.min).astimezone()
    end = datetime.combine(day, time.max).astimezone()
    return start, end


def bills_on(bills: Iterable[Bill], day: date) -> List[Bill]:
    start, end = day_bounds(day)
    return [bill for bill in bills if start <= bill.timestamp <= end]


def build_daily_report(bills: Iterable[Bill], day: Optional[date] = None) -> DailyReport:
    target = day or date.today()
    selected = bills_on(bills, target)
    if not selected:
        raise NoBillsForDay(f"No bills found for {target.isoformat()}")

    by_table: Dict[int, TableSummary] = {}
    for bill in selected:
        summary = by_table.setdefault(bill.table, TableSummary(table=bill.table))
        summary.bill_count += 1
        for line in bill.lines:
            summary.lines.append(
                ReportLine(name=line.item.name, quantity=line.quantity, unit_price=line.item.price)
            )
    return DailyReport(day=target, tables=[by_table[t] for t in sorted(by_table)])
