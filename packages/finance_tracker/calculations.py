"""Pure calculations over record collections.

None of these functions touch the store; they are safe to call from state
snapshots and renderers. Amounts are summed as ``Decimal`` so balances are
exact to the cent.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from decimal import Decimal

from .models import ZERO, BalanceIndicator, FinanceRecord, FinancialSummary
from .validation import validate_days


def calculate_balance(records: Iterable[FinanceRecord]) -> Decimal:
    """Sum of inflows minus sum of outflows; ``0`` for no records."""

    return sum((r.signed_amount for r in records), ZERO)


def summarize(records: Iterable[FinanceRecord]) -> FinancialSummary:
    """Aggregate income, expenses and balance.

    Records with a negative amount are skipped; validation should have kept
    them out of the store but persisted data is not trusted here.
    """

    counted = [r for r in records if r.amount >= ZERO]
    if not counted:
        return FinancialSummary.empty()
    income = sum((r.amount for r in counted if not r.is_expense), ZERO)
    expenses = sum((r.amount for r in counted if r.is_expense), ZERO)
    return FinancialSummary(income=income, expenses=expenses, balance=income - expenses)


def filter_by_type(records: Iterable[FinanceRecord], *, is_expense: bool) -> list[FinanceRecord]:
    return [r for r in records if r.is_expense == is_expense]


def recent_within_days(
    records: Iterable[FinanceRecord], days: int, *, now: datetime
) -> list[FinanceRecord]:
    """Records strictly newer than ``now - days``; ``days`` must be positive."""

    cutoff = now - timedelta(days=validate_days(days))
    return [r for r in records if r.occurred_at > cutoff]


def balance_indicator(balance: Decimal | float | int) -> BalanceIndicator:
    if balance > 0:
        return BalanceIndicator.POSITIVE
    if balance < 0:
        return BalanceIndicator.NEGATIVE
    return BalanceIndicator.NEUTRAL


__all__ = [
    "calculate_balance",
    "summarize",
    "filter_by_type",
    "recent_within_days",
    "balance_indicator",
]
