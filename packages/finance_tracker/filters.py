"""Filter criteria and their composition.

The active criteria combine with logical AND. Filtering is always recomputed
from the full record list; there is no incremental narrowing.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime

from .models import FinanceRecord


def _as_day(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


@dataclass(frozen=True, slots=True)
class DateRange:
    """Inclusive day-granular range. A range with ``start > end`` matches nothing."""

    start: date
    end: date

    @classmethod
    def of(cls, start: date | datetime, end: date | datetime) -> DateRange:
        return cls(start=_as_day(start), end=_as_day(end))

    def contains(self, moment: date | datetime) -> bool:
        return self.start <= _as_day(moment) <= self.end


@dataclass(frozen=True, slots=True)
class FilterCriteria:
    search_query: str | None = None
    date_range: DateRange | None = None
    # None = both kinds, True = expenses only, False = income only
    type_filter: bool | None = None

    @property
    def has_search(self) -> bool:
        return bool(self.search_query and self.search_query.strip())

    @property
    def is_active(self) -> bool:
        return self.has_search or self.date_range is not None or self.type_filter is not None

    def apply(self, records: Iterable[FinanceRecord]) -> list[FinanceRecord]:
        """Search text, then date range, then type; each narrows the previous step."""

        filtered = list(records)
        needle = (self.search_query or "").strip().casefold()
        if needle:
            filtered = [r for r in filtered if needle in r.title.casefold()]
        if self.date_range is not None:
            rng = self.date_range
            filtered = [r for r in filtered if rng.contains(r.occurred_at)]
        if self.type_filter is not None:
            filtered = [r for r in filtered if r.is_expense == self.type_filter]
        return filtered


NO_FILTERS = FilterCriteria()


def apply_filters(
    records: Iterable[FinanceRecord], criteria: FilterCriteria
) -> tuple[FinanceRecord, ...]:
    """Return the records matching ``criteria``; empty when no filter is active."""

    if not criteria.is_active:
        return ()
    return tuple(criteria.apply(records))


__all__ = ["DateRange", "FilterCriteria", "NO_FILTERS", "apply_filters"]
