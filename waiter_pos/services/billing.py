"""Bills produced when a table is vacated, and the owner's bill ledger."""
from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Iterable, List

from ..core.errors import BillNotFound
from .kitchen import KitchenTicket, parse_timestamp
from .menu import MenuItem


@dataclass(slots=True, frozen=True)
class BillLine:
    item: MenuItem
    quantity: int = 1

    @property
    def total(self) -> int:
        return self.item.price * self.quantity

    def as_dict(self) -> dict:
        data = self.item.as_dict()
        data["quantity"] = self.quantity
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "BillLine":
        return cls(item=MenuItem.from_dict(data), quantity=int(data.get("quantity") or 1))


def group_units(units: Iterable[MenuItem]) -> tuple[list[BillLine], int]:
    """Collapse single units into bill lines keyed by item id and price.

    The total is accumulated one unit price at a time, the same way the lines
    are counted, so it always matches ``sum(line.total)``. Units of one item
    captured at different prices (a menu edit between sends) stay on separate
    lines.
    """
    grouped: OrderedDict[tuple, list] = OrderedDict()
    grand_total = 0
    for item in units:
        key = (item.id, item.price)
        entry = grouped.get(key)
        if entry is None:
            grouped[key] = [item, 1]
        else:
            entry[1] += 1
        grand_total += item.price
    lines = [BillLine(item=item, quantity=qty) for item, qty in grouped.values()]
    return lines, grand_total


def group_ticket_items(tickets: Iterable[KitchenTicket]) -> tuple[list[BillLine], int]:
    return group_units(item for ticket in tickets for item in ticket.items)


@dataclass(slots=True, frozen=True)
class PendingVacation:
    """A staged bill waiting for the waiter to confirm the table is leaving."""

    table: int
    tickets: tuple
    lines: tuple
    grand_total: int

    @property
    def ticket_ids(self) -> frozenset:
        return frozenset(t.id for t in self.tickets)

    @classmethod
    def stage(cls, table: int, tickets: Iterable[KitchenTicket]) -> "PendingVacation":
        staged = tuple(tickets)
        lines, grand_total = group_ticket_items(staged)
        return cls(table=table, tickets=staged, lines=tuple(lines), grand_total=grand_total)


@dataclass(slots=True, frozen=True)
class Bill:
    id: int
    table: int
    timestamp: datetime
    lines: tuple
    grand_total: int
    tickets: tuple = field(default=())
    payment_status: str = "pending"

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "table": self.table,
            "timestamp": self.timestamp.isoformat(),
            "orders": [t.as_dict() for t in self.tickets],
            "items": [line.as_dict() for line in self.lines],
            "grandTotal": self.grand_total,
            "paymentStatus": self.payment_status,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Bill":
        return cls(
            id=int(data["id"]),
            table=int(data["table"]),
            timestamp=parse_timestamp(data.get("timestamp") or data["id"]),
            lines=tuple(BillLine.from_dict(row) for row in data.get("items") or []),
            grand_total=int(data.get("grandTotal") or 0),
            tickets=tuple(KitchenTicket.from_dict(row) for row in data.get("orders") or []),
            payment_status=str(data.get("paymentStatus") or "pending"),
        )


class BillLedger:
    __slots__ = ("_bills",)

    def __init__(self, bills: Iterable[Bill] = ()):
        self._bills: List[Bill] = list(bills)

    def __len__(self) -> int:
        return len(self._bills)

    def _index(self, bill_id: int) -> int:
        for idx, bill in enumerate(self._bills):
            if bill.id == bill_id:
                return idx
        raise BillNotFound(f"Bill {bill_id} not found")

    def append(self, bill: Bill) -> None:
        self._bills.append(bill)

    def get(self, bill_id: int) -> Bill:
        return self._bills[self._index(bill_id)]

    def delete(self, bill_id: int) -> Bill:
        return self._bills.pop(self._index(bill_id))

    def delete_line(self, bill_id: int, line_index: int) -> Bill:
        idx = self._index(bill_id)
        bill = self._bills[idx]
        if not 0 <= line_index < len(bill.lines):
            raise BillNotFound(f"Bill {bill_id} has no line {line_index}")
        removed = bill.lines[line_index]
        lines = bill.lines[:line_index] + bill.lines[line_index + 1 :]
        grand_total = 0 if not lines else max(0, bill.grand_total - removed.total)
        updated = replace(bill, lines=lines, grand_total=grand_total)
        self._bills[idx] = updated
        return updated

    def add_unit(self, bill_id: int, item: MenuItem) -> Bill:
        idx = self._index(bill_id)
        bill = self._bills[idx]
        lines = list(bill.lines)
        for pos, line in enumerate(lines):
            if line.item.name == item.name and line.item.price == item.price:
                lines[pos] = replace(line, quantity=line.quantity + 1)
                break
        else:
            lines.append(BillLine(item=item, quantity=1))
        updated = replace(bill, lines=tuple(lines), grand_total=bill.grand_total + item.price)
        self._bills[idx] = updated
        return updated

    def newest_first(self) -> List[Bill]:
        return sorted(self._bills, key=lambda b: (b.timestamp, b.id), reverse=True)

    def last_id(self) -> int:
        return max((b.id for b in self._bills), default=0)

    def as_list(self) -> List[dict]:
        return [b.as_dict() for b in self._bills]
