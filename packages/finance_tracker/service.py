"""Business rules around the record store.

``RecordService`` is the only component that talks to a ``RecordStore`` and
the only place where raw store exceptions become typed ``FinanceError``s.
Mutations validate their input first (collecting every complaint), then
persist. The calculation helpers are pure; the only one that can fail is
:meth:`RecordService.recent_within_days`, for a non-positive day count.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from . import calculations
from .errors import FinanceError, ValidationError, translate_exception
from .installments import InstallmentPlan, plan_installments
from .logging_setup import get_logger
from .messages import RECORD_NOT_PERSISTED
from .models import (
    RECENT_DAYS_DEFAULT,
    ZERO,
    BalanceIndicator,
    FinanceRecord,
    FinancialSummary,
)
from .store import RecordStore
from .validation import (
    validate_installment_plan,
    validate_record_id,
    validate_record_input,
)

_logger = get_logger("finance_tracker.service")


def _utc_now() -> datetime:
    return datetime.now(UTC)


@contextmanager
def _translated(operation: str) -> Iterator[None]:
    """Re-raise anything but ``FinanceError`` as its translated counterpart."""

    try:
        yield
    except FinanceError:
        raise
    except Exception as exc:
        error = translate_exception(exc)
        _logger.warning("%s failed (%s): %s", operation, error.kind, error.details or error)
        raise error from exc


def _is_well_formed(record: FinanceRecord) -> bool:
    # Only empty titles and negative amounts are screened out on read; other
    # out-of-range values can only appear through direct store tampering.
    return bool(record.title.strip()) and record.amount >= ZERO


class RecordService:
    def __init__(
        self,
        store: RecordStore,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._clock = clock

    @property
    def store(self) -> RecordStore:
        return self._store

    # ---- persistence -------------------------------------------------------

    async def list_all(self) -> list[FinanceRecord]:
        """Return every well-formed stored record in store order.

        Store failures propagate as typed errors; malformed individual records
        are dropped (and logged), never reported as a failure.
        """

        with _translated("list"):
            records = await self._store.list_all()
        kept = [r for r in records if _is_well_formed(r)]
        dropped = len(records) - len(kept)
        if dropped:
            _logger.warning("Dropped %d malformed record(s) read from the store", dropped)
        return kept

    async def add(self, title: str, amount: Any, is_expense: bool) -> FinanceRecord:
        clean_title, clean_amount = validate_record_input(title, amount)
        record = FinanceRecord(
            id=None,
            title=clean_title,
            amount=clean_amount,
            occurred_at=self._clock(),
            is_expense=bool(is_expense),
        )
        with _translated("add"):
            saved = await self._store.add(record)
        _logger.info(
            "Added %s #%s %r (%s)",
            "expense" if saved.is_expense else "income",
            saved.id,
            saved.title,
            saved.amount,
        )
        return saved

    async def update(self, record: FinanceRecord) -> FinanceRecord:
        """Persist ``record`` under its existing id as a new, validated value."""

        if not record.is_persisted:
            raise ValidationError(RECORD_NOT_PERSISTED)
        record_id = validate_record_id(record.id)
        clean_title, clean_amount = validate_record_input(record.title, record.amount)
        revised = record.revise(title=clean_title, amount=clean_amount)
        with _translated("update"):
            await self._store.update(record_id, revised)
        _logger.info("Updated record #%s", record_id)
        return revised

    async def delete(self, record_id: int) -> None:
        record_id = validate_record_id(record_id)
        with _translated("delete"):
            await self._store.delete(record_id)
        _logger.info("Deleted record #%s", record_id)

    async def clear_all(self) -> None:
        """Irreversibly delete every record in the store."""

        with _translated("clear"):
            await self._store.clear()
        _logger.info("Cleared all records")

    async def add_installments(
        self,
        title: str,
        amount: Any,
        is_expense: bool,
        *,
        installments: int,
        payment_day: int,
        start: datetime | None = None,
    ) -> list[FinanceRecord]:
        """Validate a recurring plan and persist one record per installment."""

        clean_title, clean_amount = validate_installment_plan(
            title, amount, installments=installments, payment_day=payment_day
        )
        plan = InstallmentPlan(
            title=clean_title,
            amount=clean_amount,
            is_expense=bool(is_expense),
            installments=installments,
            start=start or self._clock(),
            payment_day=payment_day,
        )
        # One store transaction: a plan is persisted whole or not at all
        with _translated("add installments"):
            saved = await self._store.add_many(plan_installments(plan))
        _logger.info("Added %d installment(s) of %r", len(saved), clean_title)
        return saved

    # ---- calculations ------------------------------------------------------

    @staticmethod
    def calculate_balance(records: Iterable[FinanceRecord]) -> Decimal:
        return calculations.calculate_balance(records)

    @staticmethod
    def summarize(records: Iterable[FinanceRecord]) -> FinancialSummary:
        return calculations.summarize(records)

    @staticmethod
    def filter_by_type(
        records: Iterable[FinanceRecord], *, is_expense: bool
    ) -> list[FinanceRecord]:
        return calculations.filter_by_type(records, is_expense=is_expense)

    def recent_within_days(
        self, records: Iterable[FinanceRecord], days: int = RECENT_DAYS_DEFAULT
    ) -> list[FinanceRecord]:
        return calculations.recent_within_days(records, days, now=self._clock())

    @staticmethod
    def balance_indicator(balance: Decimal | float | int) -> BalanceIndicator:
        return calculations.balance_indicator(balance)


__all__ = ["RecordService"]
