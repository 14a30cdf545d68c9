"""Per-item "sold out for today" flags with a once-a-day automatic reset."""
from __future__ import annotations

from datetime import date
from typing import Iterable, Optional


class AvailabilityRegistry:
    __slots__ = ("_unavailable", "last_reset_date")

    def __init__(self, unavailable: Iterable[int] = (), last_reset_date: Optional[date] = None):
        self._unavailable: list[int] = []
        for item_id in unavailable:
            if item_id not in self._unavailable:
                self._unavailable.append(int(item_id))
        self.last_reset_date = last_reset_date

    def __contains__(self, item_id: int) -> bool:
        return item_id in self._unavailable

    def unavailable(self) -> tuple:
        return tuple(self._unavailable)

    def toggle(self, item_id: int) -> bool:
        """Flip the flag; returns True when the item is now unavailable."""
        if item_id in self._unavailable:
            self._unavailable.remove(item_id)
            return False
        self._unavailable.append(item_id)
        return True

    def reset(self, today: date) -> None:
        self._unavailable.clear()
        self.last_reset_date = today

    def check_daily_reset(self, today: date) -> bool:
        """Clear the flags on the first check of a new day.

        Returns True when flags were actually cleared. A new day with nothing
        flagged only moves the stamp.
        """
        if self.last_reset_date == today:
            return False
        cleared = bool(self._unavailable)
        self.reset(today)
        return cleared

    def as_dict(self) -> dict:
        return {
            "unavailableItems": list(self._unavailable),
            "lastResetDate": self.last_reset_date.isoformat() if self.last_reset_date else None,
        }

    @classmethod
    def from_dict(cls, unavailable, last_reset) -> "AvailabilityRegistry":
        ids = []
        for raw in unavailable or []:
            try:
                ids.append(int(raw))
            except (TypeError, ValueError):
                continue
        stamp = None
        if last_reset:
            try:
                stamp = date.fromisoformat(str(last_reset)[:10])
            except ValueError:
                stamp = None
        return cls(ids, stamp)
