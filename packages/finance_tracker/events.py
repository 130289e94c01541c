"""Intent events accepted by :class:`~finance_tracker.container.RecordStateContainer`.

Events are immutable values. ``RecordEvent`` is the closed union of every
event the container understands.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from .models import FinanceRecord


@dataclass(frozen=True, slots=True)
class Load:
    """Load the record list from scratch (shows ``Loading``)."""


@dataclass(frozen=True, slots=True)
class Refresh:
    """Reload the record list; skips ``Loading`` when data is already shown."""


@dataclass(frozen=True, slots=True)
class Add:
    title: str
    amount: Decimal | float | int | str
    is_expense: bool


@dataclass(frozen=True, slots=True)
class AddInstallments:
    title: str
    amount: Decimal | float | int | str
    is_expense: bool
    installments: int
    payment_day: int
    start: datetime | None = None


@dataclass(frozen=True, slots=True)
class Update:
    record: FinanceRecord


@dataclass(frozen=True, slots=True)
class Delete:
    record_id: int


@dataclass(frozen=True, slots=True)
class ClearAll:
    pass


@dataclass(frozen=True, slots=True)
class Search:
    query: str


@dataclass(frozen=True, slots=True)
class FilterByDateRange:
    start: date | datetime
    end: date | datetime


@dataclass(frozen=True, slots=True)
class FilterByType:
    # None = both kinds, True = expenses only, False = income only
    is_expense: bool | None


@dataclass(frozen=True, slots=True)
class ClearFilters:
    pass


type RecordEvent = (
    Load
    | Refresh
    | Add
    | AddInstallments
    | Update
    | Delete
    | ClearAll
    | Search
    | FilterByDateRange
    | FilterByType
    | ClearFilters
)


__all__ = [
    "Load",
    "Refresh",
    "Add",
    "AddInstallments",
    "Update",
    "Delete",
    "ClearAll",
    "Search",
    "FilterByDateRange",
    "FilterByType",
    "ClearFilters",
    "RecordEvent",
]
