"""Calendar-month windows.

Every month-scoped computation takes a ``MonthWindow`` explicitly; the
caller resolves "current month" before invoking the engine.
"""
from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date

_MONTH_KEY = re.compile(r"^(\d{4})-(\d{2})$")

EARLIEST_SELECTABLE_YEAR = 2025


@dataclass(frozen=True)
class MonthWindow:
    """Inclusive ``[start, end]`` calendar month."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be 1..12, got {self.month}")

    @classmethod
    def from_key(cls, key: str) -> "MonthWindow":
        match = _MONTH_KEY.match(key or "")
        if not match:
            raise ValueError(f"Invalid month key {key!r}, expected YYYY-MM")
        return cls(int(match.group(1)), int(match.group(2)))

    @classmethod
    def for_date(cls, day: date) -> "MonthWindow":
        return cls(day.year, day.month)

    @property
    def key(self) -> str:
        return f"{self.year}-{self.month:02d}"

    @property
    def start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    @property
    def start_iso(self) -> str:
        return self.start.isoformat()

    @property
    def end_iso(self) -> str:
        return self.end.isoformat()

    @property
    def label(self) -> str:
        return f"{calendar.month_name[self.month]} {self.year}"

    @property
    def short_label(self) -> str:
        return f"{calendar.month_abbr[self.month]} {self.year}"

    def contains(self, iso_day: str | None) -> bool:
        """String comparison on ``YYYY-MM-DD`` days; None never matches."""
        if not iso_day:
            return False
        return self.start_iso <= iso_day <= self.end_iso

    def previous(self) -> "MonthWindow":
        if self.month == 1:
            return MonthWindow(self.year - 1, 12)
        return MonthWindow(self.year, self.month - 1)

    def next(self) -> "MonthWindow":
        if self.month == 12:
            return MonthWindow(self.year + 1, 1)
        return MonthWindow(self.year, self.month + 1)

    def __str__(self) -> str:
        return self.key


def parse_month_key(value: str | None, today: date) -> MonthWindow:
    """Month from a ``YYYY-MM`` query value, falling back to ``today``'s month."""
    match = _MONTH_KEY.match(value or "")
    if match:
        year, month = int(match.group(1)), int(match.group(2))
        if year >= EARLIEST_SELECTABLE_YEAR and 1 <= month <= 12:
            return MonthWindow(year, month)
    return MonthWindow.for_date(today)


def available_months(first_key: str, today: date) -> list[dict]:
    """Selectable months from ``first_key`` through ``today``'s month."""
    window = MonthWindow.from_key(first_key)
    last = MonthWindow.for_date(today)
    months = []
    while (window.year, window.month) <= (last.year, last.month):
        months.append({"value": window.key, "label": window.short_label})
        window = window.next()
    return months
