"""Order lifecycle: table drafts, kitchen tickets, vacation and bills."""

import logging
import sqlite3
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from ..core.auth import AuthContext, require_admin
from ..core.bus import EventBus, bus
from ..core.config_store import get_table_count
from ..core.db import log_action
from ..core.errors import (
    EmptyDraft,
    InvalidItem,
    InvalidTable,
    NoOrdersToBill,
    NoPendingVacation,
    NoReadyTickets,
    NoTableSelected,
    PersistenceFailure,
)
from .availability import AvailabilityRegistry
from .billing import Bill, BillLedger, BillLine, PendingVacation, group_units
from .kitchen import KitchenQueue, KitchenTicket, TicketStatus
from .menu import Category, MenuCatalog, MenuItem, default_menu
from .reports import bills_on
from .state_store import load_state, load_theme, parse_rows, save_state, save_theme

LOGGER = logging.getLogger(__name__)


class TableState(str, Enum):
    ACTIVE = "active"
    VACATED = "vacated"


@dataclass(slots=True)
class OrderDraft:
    table: int
    items: List[MenuItem] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {"table": self.table, "items": [item.as_dict() for item in self.items]}


@dataclass(slots=True, frozen=True)
class TableOverview:
    table: int
    state: TableState
    active_tickets: int

    @property
    def occupied(self) -> bool:
        return self.active_tickets > 0


def _today() -> date:
    return date.today()


def _now() -> datetime:
    return datetime.now().astimezone()


def _drafts_from(data) -> Tuple[Dict[int, OrderDraft], int]:
    if data is None:
        return {}, 0
    if not isinstance(data, dict):
        raise TypeError(f"Stored drafts have type {type(data).__name__}")
    drafts: Dict[int, OrderDraft] = {}
    skipped = 0
    for key, row in data.items():
        try:
            table = int(key)
        except (TypeError, ValueError):
            LOGGER.warning("Skipping draft for unknown table %r", key)
            skipped += 1
            continue
        rows = row.get("items") if isinstance(row, dict) else None
        items, bad = parse_rows(rows, MenuItem.from_dict, "draft item")
        drafts[table] = OrderDraft(table, items)
        skipped += bad
    return drafts, skipped


def _catalog_from(data) -> Tuple[MenuCatalog, int]:
    if data is None:
        return MenuCatalog(), 0
    if not isinstance(data, dict):
        raise TypeError(f"Stored menu has type {type(data).__name__}")
    items: Dict[Category, List[MenuItem]] = {}
    skipped = 0
    for key, rows in data.items():
        try:
            category = Category(key)
        except ValueError:
            LOGGER.warning("Skipping unknown menu category %r", key)
            skipped += 1
            continue
        items[category], bad = parse_rows(rows, MenuItem.from_dict, "menu item")
        skipped += bad
    return MenuCatalog(items), skipped


class OrderManager:
    """Single owner of the restaurant state.

    Callers read snapshots and invoke the operations below; every mutating
    operation persists the whole document before returning and then emits
    bus events for whatever renders the state.
    """

    __slots__ = (
        "_catalog",
        "_availability",
        "_drafts",
        "_kitchen",
        "_ledger",
        "_table_status",
        "_current_table",
        "_pending_vacation",
        "_last_stamp",
        "_bus",
        "table_count",
    )

    def __init__(self, *, table_count: Optional[int] = None, event_bus: Optional[EventBus] = None):
        self.table_count = table_count or get_table_count()
        self._bus = event_bus or bus
        self._catalog = MenuCatalog()
        self._availability = AvailabilityRegistry()
        self._drafts: Dict[int, OrderDraft] = {}
        self._kitchen = KitchenQueue()
        self._ledger = BillLedger()
        self._table_status: Dict[int, TableState] = {}
        self._current_table: Optional[int] = None
        self._pending_vacation: Optional[PendingVacation] = None
        self._last_stamp = 0

    # ----- lifecycle -----
    def load(self, today: Optional[date] = None) -> "OrderManager":
        try:
            document = load_state()
        except PersistenceFailure:
            LOGGER.exception("Could not load stored state; starting empty")
            document = None
        complete = self._apply_document(document) if document else True

        seeded = self._catalog.is_empty()
        if seeded:
            LOGGER.info("Initializing default menu data")
            self._catalog = MenuCatalog(default_menu())

        if complete:
            if seeded:
                self._persist()
            self.check_daily_reset(today)
        else:
            LOGGER.warning("Stored state was only partly readable; leaving it untouched until the next change")
            self._availability.check_daily_reset(today or _today())
        # Stuck "vacated" flags from a previous run are dropped on every start.
        self._table_status = {}
        return self

    def _apply_document(self, document: dict) -> bool:
        """Take every section and record of *document* that parses.

        Returns False when something was left out, meaning the stored document
        still holds records this process could not read.
        """
        sections = (
            ("currentOrders", _drafts_from),
            ("kitchenOrders", lambda raw: parse_rows(raw, KitchenTicket.from_dict, "kitchen ticket")),
            ("ownerBills", lambda raw: parse_rows(raw, Bill.from_dict, "bill")),
            ("menu", _catalog_from),
        )
        parsed = {}
        skipped = 0
        for key, parse in sections:
            try:
                parsed[key], bad = parse(document.get(key))
            except (KeyError, TypeError, ValueError, AttributeError):
                LOGGER.exception("Stored %s could not be parsed; keeping defaults", key)
                skipped += 1
                continue
            skipped += bad

        if "currentOrders" in parsed:
            self._drafts = parsed["currentOrders"]
        if "kitchenOrders" in parsed:
            self._kitchen = KitchenQueue(parsed["kitchenOrders"])
        if "ownerBills" in parsed:
            self._ledger = BillLedger(parsed["ownerBills"])
        if "menu" in parsed:
            self._catalog = parsed["menu"]
        self._availability = AvailabilityRegistry.from_dict(
            document.get("unavailableItems"), document.get("lastResetDate")
        )
        self._last_stamp = max(self._kitchen.last_id(), self._ledger.last_id())
        return skipped == 0

    def to_document(self) -> dict:
        return {
            "currentOrders": {str(table): draft.as_dict() for table, draft in self._drafts.items()},
            "kitchenOrders": self._kitchen.as_list(),
            "tableStatus": {str(table): state.value for table, state in self._table_status.items()},
            "ownerBills": self._ledger.as_list(),
            **self._availability.as_dict(),
            "menu": self._catalog.as_dict(),
        }

    def _persist(self) -> bool:
        try:
            save_state(self.to_document())
        except PersistenceFailure as exc:
            LOGGER.error("Error saving state: %s", exc)
            self._bus.emit("persistence_failed", str(exc))
            return False
        return True

    def _next_stamp(self) -> int:
        stamp = int(time.time() * 1000)
        self._last_stamp = max(stamp, self._last_stamp + 1)
        return self._last_stamp

    def _audit(self, auth: AuthContext, action: str, entity_type: str, entity_name, old_value=None, new_value=None):
        try:
            log_action(auth.username, action, entity_type, str(entity_name), old_value, new_value)
        except (sqlite3.Error, SQLAlchemyError):
            LOGGER.warning("Could not record audit entry for %s", action, exc_info=True)

    # ----- tables -----
    def tables(self) -> List[int]:
        return list(range(1, self.table_count + 1))

    def _check_table(self, table) -> int:
        try:
            number = int(table)
        except (TypeError, ValueError):
            raise InvalidTable(f"Unknown table: {table}") from None
        if not 1 <= number <= self.table_count:
            raise InvalidTable(f"Unknown table: {table}")
        return number

    def _resolve_table(self, table=None) -> int:
        if table is None:
            table = self._current_table
        if table is None:
            raise NoTableSelected()
        return self._check_table(table)

    @property
    def current_table(self) -> Optional[int]:
        return self._current_table

    def select_table(self, table: int) -> None:
        table = self._check_table(table)
        if self._table_status.get(table) is TableState.VACATED:
            self._table_status[table] = TableState.ACTIVE
            self._bus.emit("table_state_changed", table, TableState.ACTIVE.value)
        self._current_table = table
        self._drafts.setdefault(table, OrderDraft(table))
        self._persist()
        self._bus.emit("table_selected", table)

    def deselect_table(self) -> None:
        self._current_table = None
        self._bus.emit("table_selected", None)

    def table_state(self, table: int) -> TableState:
        return self._table_status.get(self._check_table(table), TableState.ACTIVE)

    def is_occupied(self, table: int) -> bool:
        return self._kitchen.active_count(self._check_table(table)) > 0

    def table_overview(self) -> List[TableOverview]:
        return [
            TableOverview(
                table=table,
                state=self._table_status.get(table, TableState.ACTIVE),
                active_tickets=self._kitchen.active_count(table),
            )
            for table in self.tables()
        ]

    # ----- drafts -----
    def add_item(self, item_id: int, table: Optional[int] = None) -> MenuItem:
        table = self._resolve_table(table)
        self._rollover()
        item = self._catalog.get(item_id)
        if item is None:
            raise InvalidItem(f"Menu item {item_id} not found")
        if item_id in self._availability:
            raise InvalidItem(f"{item.name} is unavailable")
        self._drafts.setdefault(table, OrderDraft(table)).items.append(item)
        self._persist()
        self._bus.emit("draft_changed", table)
        return item

    def clear_draft(self, table: Optional[int] = None) -> None:
        table = self._resolve_table(table)
        self._drafts.setdefault(table, OrderDraft(table)).items.clear()
        self._persist()
        self._bus.emit("draft_changed", table)

    def draft_items(self, table: Optional[int] = None) -> tuple:
        table = self._resolve_table(table)
        draft = self._drafts.get(table)
        return tuple(draft.items) if draft else ()

    def draft_summary(self, table: Optional[int] = None) -> tuple[List[BillLine], int]:
        return group_units(self.draft_items(table))

    # ----- kitchen -----
    def send_to_kitchen(self, table: Optional[int] = None) -> KitchenTicket:
        table = self._resolve_table(table)
        draft = self._drafts.get(table)
        if not draft or not draft.items:
            raise EmptyDraft()
        ticket = KitchenTicket(
            id=self._next_stamp(),
            table=table,
            items=tuple(draft.items),
            timestamp=_now(),
            status=TicketStatus.PENDING,
        )
        self._kitchen.add(ticket)
        draft.items = []
        self._persist()
        LOGGER.info("Sent ticket %s for table %s (%d items)", ticket.id, table, len(ticket.items))
        self._bus.emit("draft_changed", table)
        self._bus.emit("tickets_changed", table)
        return ticket

    def advance_status(self, ticket_id: int, next_status) -> KitchenTicket:
        ticket = self._kitchen.advance(ticket_id, next_status)
        self._persist()
        self._bus.emit("tickets_changed", ticket.table)
        return ticket

    def mark_ready_served(self, table: Optional[int] = None) -> List[KitchenTicket]:
        table = self._resolve_table(table)
        served = self._kitchen.serve_ready(table)
        if not served:
            raise NoReadyTickets()
        self._persist()
        self._bus.emit("tickets_changed", table)
        return served

    def ticket(self, ticket_id: int) -> KitchenTicket:
        return self._kitchen.get(ticket_id)

    def tickets(self, status=None) -> List[KitchenTicket]:
        return self._kitchen.filtered(status)

    def table_tickets(self, table: int) -> List[KitchenTicket]:
        return self._kitchen.newest_first(self._check_table(table))

    def active_ticket_count(self, table: int) -> int:
        return self._kitchen.active_count(self._check_table(table))

    # ----- vacation -----
    @property
    def pending_vacation(self) -> Optional[PendingVacation]:
        return self._pending_vacation

    def initiate_vacation(self, table: Optional[int] = None) -> PendingVacation:
        table = self._resolve_table(table)
        tickets = self._kitchen.for_table(table)
        if not tickets:
            raise NoOrdersToBill()
        self._pending_vacation = PendingVacation.stage(table, tickets)
        self._bus.emit("vacation_staged", self._pending_vacation)
        return self._pending_vacation

    def cancel_vacation(self) -> None:
        self._pending_vacation = None
        self._bus.emit("vacation_staged", None)

    def confirm_vacation(self) -> Bill:
        pending = self._pending_vacation
        if pending is None:
            raise NoPendingVacation()
        table = pending.table
        # Items were frozen at staging; statuses may have moved on since.
        current = {t.id: t for t in self._kitchen.for_table(table)}
        bill = Bill(
            id=self._next_stamp(),
            table=table,
            timestamp=_now(),
            lines=pending.lines,
            grand_total=pending.grand_total,
            tickets=tuple(current.get(t.id, t) for t in pending.tickets),
        )
        self._table_status[table] = TableState.VACATED
        self._bus.emit("table_state_changed", table, TableState.VACATED.value)
        self._ledger.append(bill)
        self._table_status[table] = TableState.ACTIVE
        self._drafts[table] = OrderDraft(table)
        # Only the staged tickets are archived; anything sent after staging stays queued.
        self._kitchen.remove(pending.ticket_ids)
        self._pending_vacation = None
        self._persist()
        LOGGER.info("Table %s vacated, bill %s total %s", table, bill.id, bill.grand_total)

        self._bus.emit("vacation_staged", None)
        self._bus.emit("table_state_changed", table, TableState.ACTIVE.value)
        self._bus.emit("tickets_changed", table)
        self._bus.emit("draft_changed", table)
        self._bus.emit("bills_changed")
        if self._current_table == table:
            self.deselect_table()
        return bill

    # ----- bills -----
    def bills(self) -> List[Bill]:
        return self._ledger.newest_first()

    def get_bill(self, bill_id: int) -> Bill:
        return self._ledger.get(bill_id)

    def bills_for_day(self, day: date) -> List[Bill]:
        return bills_on(self.bills(), day)

    def delete_bill(self, bill_id: int, auth: AuthContext) -> Bill:
        require_admin(auth)
        removed = self._ledger.delete(bill_id)
        self._persist()
        self._audit(auth, "delete_bill", "bill", bill_id, str(removed.grand_total), None)
        self._bus.emit("bills_changed")
        return removed

    def delete_bill_item(self, bill_id: int, line_index: int, auth: AuthContext) -> Bill:
        require_admin(auth)
        before = self._ledger.get(bill_id)
        updated = self._ledger.delete_line(bill_id, line_index)
        self._persist()
        self._audit(
            auth,
            "delete_bill_item",
            "bill",
            bill_id,
            str(before.grand_total),
            str(updated.grand_total),
        )
        self._bus.emit("bills_changed")
        return updated

    def add_item_to_bill(
        self,
        bill_id: int,
        item_ref,
        auth: AuthContext,
        *,
        price: Optional[int] = None,
        save_to_menu: bool = False,
    ) -> Bill:
        """Add one unit to a finalised bill.

        *item_ref* is a menu id or an exact (case-insensitive) item name. When
        neither matches, a custom line is created from *price*; with
        *save_to_menu* it is also added to the main course category.
        """
        require_admin(auth)
        before = self._ledger.get(bill_id)
        item = self._resolve_bill_item(item_ref)
        if item is None:
            item = self._custom_bill_item(item_ref, price, save_to_menu)
        updated = self._ledger.add_unit(bill_id, item)
        self._persist()
        self._audit(
            auth,
            "add_bill_item",
            "bill",
            bill_id,
            str(before.grand_total),
            f"{item.name}:{updated.grand_total}",
        )
        self._bus.emit("bills_changed")
        return updated

    def _resolve_bill_item(self, item_ref) -> Optional[MenuItem]:
        if isinstance(item_ref, int):
            return self._catalog.get(item_ref)
        text = str(item_ref or "").strip()
        if text.isdigit():
            found = self._catalog.get(int(text))
            if found is not None:
                return found
        return self._catalog.find_by_name(text)

    def _custom_bill_item(self, item_ref, price, save_to_menu: bool) -> MenuItem:
        name = str(item_ref or "").strip()
        if not name or price is None:
            raise InvalidItem(f"Item {item_ref!r} is not on the menu and has no price")
        try:
            unit_price = int(price)
        except (TypeError, ValueError):
            raise InvalidItem(f"Invalid price for {name}") from None
        if unit_price < 0:
            raise InvalidItem(f"Invalid price for {name}")
        if save_to_menu:
            item = self._catalog.add(name, unit_price, Category.MAIN)
            self._bus.emit("catalog_changed")
            return item
        return MenuItem.custom(self._next_stamp(), name, unit_price)

    # ----- availability -----
    def is_available(self, item_id: int) -> bool:
        return item_id not in self._availability

    def unavailable_items(self) -> tuple:
        return self._availability.unavailable()

    @property
    def last_reset_date(self) -> Optional[date]:
        return self._availability.last_reset_date

    def toggle_availability(self, item_id: int) -> bool:
        self._rollover()
        if self._catalog.get(item_id) is None and item_id not in self._availability:
            raise InvalidItem(f"Menu item {item_id} not found")
        unavailable = self._availability.toggle(item_id)
        self._persist()
        self._bus.emit("availability_changed", item_id, not unavailable)
        return unavailable

    def reset_availability(self, auth: AuthContext, today: Optional[date] = None) -> None:
        require_admin(auth)
        before = len(self._availability.unavailable())
        self._availability.reset(today or _today())
        self._persist()
        self._audit(auth, "reset_availability", "menu", "all", str(before), "0")
        self._bus.emit("availability_changed", None, True)

    def check_daily_reset(self, today: Optional[date] = None) -> bool:
        """Clear sold-out flags once per calendar day; True when flags were cleared."""
        today = today or _today()
        if self._availability.last_reset_date == today:
            return False
        cleared = self._availability.check_daily_reset(today)
        self._persist()
        if cleared:
            LOGGER.info("Menu items reset for new day - all items available")
            self._bus.emit("availability_changed", None, True)
        return cleared

    def _rollover(self) -> None:
        if self._availability.last_reset_date != _today():
            self.check_daily_reset()

    # ----- menu -----
    def menu(self) -> Dict[Category, tuple]:
        return self._catalog.categories()

    def menu_item(self, item_id: int) -> Optional[MenuItem]:
        return self._catalog.get(item_id)

    def search_menu(self, text: str) -> List[MenuItem]:
        return self._catalog.search(text)

    def add_menu_item(self, name: str, price, category, image: Optional[str] = None) -> MenuItem:
        item = self._catalog.add(name, price, category, image=image)
        self._persist()
        self._bus.emit("catalog_changed")
        return item

    def edit_menu_item(self, item_id: int, name: str, price) -> MenuItem:
        updated = self._catalog.update(item_id, name, price)
        if updated is None:
            raise InvalidItem(f"Menu item {item_id} not found")
        self._persist()
        self._bus.emit("catalog_changed")
        return updated

    def delete_menu_item(self, item_id: int, auth: AuthContext) -> MenuItem:
        require_admin(auth)
        removed = self._catalog.remove(item_id)
        if removed is None:
            raise InvalidItem(f"Menu item {item_id} not found")
        self._persist()
        self._audit(auth, "delete_menu_item", "menu_item", removed.name, str(removed.price), None)
        self._bus.emit("catalog_changed")
        return removed

    # ----- theme -----
    def theme(self) -> str:
        return load_theme()

    def set_theme(self, name: str) -> str:
        try:
            return save_theme(name)
        except PersistenceFailure as exc:
            LOGGER.error("Error saving theme: %s", exc)
            return (name or "").strip()


_manager: Optional[OrderManager] = None


def get_order_manager() -> OrderManager:
    global _manager
    if _manager is None:
        _manager = OrderManager().load()
    return _manager


def reset_order_manager() -> None:
    global _manager
    _manager = None
