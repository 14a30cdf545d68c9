"""Currency formatting helpers for the waiter POS.

Menu prices and bill totals are whole rupees stored as integers, so the
helpers here only deal with grouping and the currency label.
"""

from __future__ import annotations

from ..core.config_store import get_currency_symbol


def format_amount(amount: int | None, currency: str | None = None) -> str:
    """Return ``Rs.1,250`` style text; a negative amount keeps its sign."""

    value = int(amount or 0)
    label = get_currency_symbol() if currency is None else currency
    sign = "-" if value < 0 else ""
    return f"{sign}{label}{abs(value):,}"
