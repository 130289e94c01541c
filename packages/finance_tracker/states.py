"""State snapshots emitted by the record container.

``ContainerState`` is a closed union of five variants; consumers handle it
with ``match`` and can rely on ``typing.assert_never`` for exhaustiveness.
``Loaded`` is the steady state and carries the full record list together with
the active filter criteria and the records matching them.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from .calculations import calculate_balance, summarize
from .errors import ErrorKind, FinanceError
from .filters import NO_FILTERS, DateRange, FilterCriteria, apply_filters
from .models import FinanceRecord, FinancialSummary, OperationKind, Records


@dataclass(frozen=True, slots=True)
class Initial:
    """Nothing has been loaded yet."""


@dataclass(frozen=True, slots=True)
class Loading:
    """A load is outstanding and there is no data to show."""


@dataclass(frozen=True, slots=True)
class InFlight:
    adding: bool = False
    updating: bool = False
    deleting: bool = False

    @property
    def any(self) -> bool:
        return self.adding or self.updating or self.deleting


@dataclass(frozen=True, slots=True)
class Loaded:
    records: Records = ()
    # Derived from ``records`` and the three filter fields; empty when no
    # filter is active. Build through ``of``/``with_*`` to keep it in sync.
    filtered_records: Records = ()
    adding: bool = False
    updating: bool = False
    deleting: bool = False
    search_query: str | None = None
    date_range: DateRange | None = None
    type_filter: bool | None = None

    @classmethod
    def of(
        cls, records: Iterable[FinanceRecord], criteria: FilterCriteria = NO_FILTERS
    ) -> Loaded:
        recs = tuple(records)
        return cls(
            records=recs,
            filtered_records=apply_filters(recs, criteria),
            search_query=criteria.search_query,
            date_range=criteria.date_range,
            type_filter=criteria.type_filter,
        )

    def with_records(self, records: Iterable[FinanceRecord]) -> Loaded:
        """New snapshot over ``records``: same filters, no operation in flight."""

        return Loaded.of(records, self.criteria)

    def with_in_flight(self, in_flight: InFlight) -> Loaded:
        return dataclasses.replace(
            self,
            adding=in_flight.adding,
            updating=in_flight.updating,
            deleting=in_flight.deleting,
        )

    def with_criteria(self, criteria: FilterCriteria) -> Loaded:
        return dataclasses.replace(
            self,
            filtered_records=apply_filters(self.records, criteria),
            search_query=criteria.search_query,
            date_range=criteria.date_range,
            type_filter=criteria.type_filter,
        )

    @property
    def criteria(self) -> FilterCriteria:
        return FilterCriteria(
            search_query=self.search_query,
            date_range=self.date_range,
            type_filter=self.type_filter,
        )

    @property
    def in_flight(self) -> InFlight:
        return InFlight(adding=self.adding, updating=self.updating, deleting=self.deleting)

    @property
    def has_records(self) -> bool:
        return bool(self.records)

    @property
    def has_filters(self) -> bool:
        return self.criteria.is_active

    @property
    def display_records(self) -> Records:
        return self.filtered_records if self.has_filters else self.records

    # Totals follow what is displayed, so a filtered view shows filtered totals.
    @property
    def balance(self) -> Decimal:
        return calculate_balance(self.display_records)

    @property
    def summary(self) -> FinancialSummary:
        return summarize(self.display_records)

    @property
    def total_income(self) -> Decimal:
        return self.summary.income

    @property
    def total_expenses(self) -> Decimal:
        return self.summary.expenses


@dataclass(frozen=True, slots=True)
class OperationSucceeded:
    """Transient marker; always followed by a ``Loaded`` with the same records."""

    message: str
    operation: OperationKind
    records: Records = ()


@dataclass(frozen=True, slots=True)
class Failed:
    error: FinanceError
    # Last known records, so a UI can keep showing them next to the error
    records: Records = ()

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def details(self) -> str | None:
        return self.error.details

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind


type ContainerState = Initial | Loading | Loaded | OperationSucceeded | Failed


__all__ = [
    "Initial",
    "Loading",
    "InFlight",
    "Loaded",
    "OperationSucceeded",
    "Failed",
    "ContainerState",
]
