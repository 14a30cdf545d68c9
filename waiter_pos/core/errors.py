"""Recoverable failures raised by the order manager.

Every error here is meant to be caught by the caller and shown as a short
notification; none of them leave the in-memory state half-updated.
"""


class OrderError(Exception):
    __slots__ = ()
    message = "Operation failed"

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.message)


class NoTableSelected(OrderError):
    __slots__ = ()
    message = "Please select a table first"


class InvalidTable(OrderError):
    __slots__ = ()
    message = "Unknown table"


class InvalidItem(OrderError):
    __slots__ = ()
    message = "Item is unknown or unavailable"


class EmptyDraft(OrderError):
    __slots__ = ()
    message = "No items to send"


class TicketNotFound(OrderError):
    __slots__ = ()
    message = "Kitchen ticket not found"


class InvalidTransition(OrderError):
    __slots__ = ()
    message = "Ticket status can only move one step forward"


class UnknownStatus(OrderError):
    __slots__ = ()
    message = "Unknown ticket status"


class NoReadyTickets(OrderError):
    __slots__ = ()
    message = "No ready items to mark as served"


class NoOrdersToBill(OrderError):
    __slots__ = ()
    message = "No orders to bill for this table"


class NoPendingVacation(OrderError):
    __slots__ = ()
    message = "No pending vacation"


class BillNotFound(OrderError):
    __slots__ = ()
    message = "Bill not found"


class NoBillsForDay(OrderError):
    __slots__ = ()
    message = "No bills found for this date"


class AdminRequired(OrderError):
    __slots__ = ()
    message = "Admin password required"


class PersistenceFailure(OrderError):
    __slots__ = ()
    message = "Could not read or write the local store"
