"""Kitchen tickets and their one-way status progression."""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional

from ..core.errors import InvalidTransition, TicketNotFound, UnknownStatus
from .menu import MenuItem


class TicketStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"

    @property
    def next(self) -> Optional["TicketStatus"]:
        return _NEXT_STATUS.get(self)


_NEXT_STATUS = {
    TicketStatus.PENDING: TicketStatus.PREPARING,
    TicketStatus.PREPARING: TicketStatus.READY,
    TicketStatus.READY: TicketStatus.SERVED,
}


def parse_timestamp(raw) -> datetime:
    # Older documents stored epoch milliseconds.
    if isinstance(raw, (int, float)):
        return datetime.fromtimestamp(raw / 1000).astimezone()
    parsed = datetime.fromisoformat(str(raw))
    return parsed if parsed.tzinfo else parsed.astimezone()


@dataclass(slots=True, frozen=True)
class KitchenTicket:
    id: int
    table: int
    items: tuple
    timestamp: datetime
    status: TicketStatus = TicketStatus.PENDING

    @property
    def total(self) -> int:
        return sum(item.price for item in self.items)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "table": self.table,
            "items": [item.as_dict() for item in self.items],
            "timestamp": self.timestamp.isoformat(),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "KitchenTicket":
        return cls(
            id=int(data["id"]),
            table=int(data["table"]),
            items=tuple(MenuItem.from_dict(row) for row in data.get("items") or []),
            timestamp=parse_timestamp(data.get("timestamp") or data["id"]),
            status=TicketStatus(data.get("status") or TicketStatus.PENDING.value),
        )


class KitchenQueue:
    """Tickets in the order they were sent; status is the only mutable part."""

    __slots__ = ("_tickets",)

    def __init__(self, tickets: Iterable[KitchenTicket] = ()):
        self._tickets: List[KitchenTicket] = list(tickets)

    def __len__(self) -> int:
        return len(self._tickets)

    def add(self, ticket: KitchenTicket) -> None:
        self._tickets.append(ticket)

    def get(self, ticket_id: int) -> KitchenTicket:
        for ticket in self._tickets:
            if ticket.id == ticket_id:
                return ticket
        raise TicketNotFound(f"Ticket {ticket_id} not found")

    def advance(self, ticket_id: int, next_status) -> KitchenTicket:
        try:
            target = TicketStatus(next_status)
        except ValueError:
            raise InvalidTransition(f"Unknown ticket status: {next_status}") from None
        for idx, ticket in enumerate(self._tickets):
            if ticket.id != ticket_id:
                continue
            if ticket.status.next is not target:
                raise InvalidTransition(
                    f"Cannot move ticket {ticket_id} from {ticket.status.value} to {target.value}"
                )
            updated = replace(ticket, status=target)
            self._tickets[idx] = updated
            return updated
        raise TicketNotFound(f"Ticket {ticket_id} not found")

    def serve_ready(self, table: int) -> List[KitchenTicket]:
        served: List[KitchenTicket] = []
        for idx, ticket in enumerate(self._tickets):
            if ticket.table == table and ticket.status is TicketStatus.READY:
                updated = replace(ticket, status=TicketStatus.SERVED)
                self._tickets[idx] = updated
                served.append(updated)
        return served

    def remove(self, ticket_ids: Iterable[int]) -> int:
        doomed = set(ticket_ids)
        before = len(self._tickets)
        self._tickets = [t for t in self._tickets if t.id not in doomed]
        return before - len(self._tickets)

    def filtered(self, status=None) -> List[KitchenTicket]:
        if status is None or status == "all":
            return list(self._tickets)
        try:
            wanted = TicketStatus(status)
        except ValueError:
            raise UnknownStatus(f"Unknown ticket status: {status}") from None
        return [t for t in self._tickets if t.status is wanted]

    def for_table(self, table: int) -> List[KitchenTicket]:
        return [t for t in self._tickets if t.table == table]

    def newest_first(self, table: int) -> List[KitchenTicket]:
        return sorted(self.for_table(table), key=lambda t: (t.timestamp, t.id), reverse=True)

    def active_count(self, table: int) -> int:
        return sum(1 for t in self._tickets if t.table == table and t.status is not TicketStatus.SERVED)

    def last_id(self) -> int:
        return max((t.id for t in self._tickets), default=0)

    def as_list(self) -> List[dict]:
        return [t.as_dict() for t in self._tickets]
