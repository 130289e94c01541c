"""Recurring (installment) plans and their expansion into records.

A plan of ``N`` installments becomes ``N`` ordinary records titled
``"<title> (i/N)"``, one per month starting at the start date's month, each on
the plan's payment day (clamped to the last day of shorter months) and at the
start date's time of day.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from .models import FinanceRecord


@dataclass(frozen=True, slots=True)
class InstallmentPlan:
    title: str
    amount: Decimal
    is_expense: bool
    installments: int
    start: datetime
    payment_day: int


def installment_date(start: datetime, months_ahead: int, payment_day: int) -> datetime:
    month_index = start.month - 1 + months_ahead
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return start.replace(year=year, month=month, day=min(payment_day, last_day))


def plan_installments(plan: InstallmentPlan) -> list[FinanceRecord]:
    """Expand ``plan`` into unsaved records (``id=None``), in payment order."""

    n = plan.installments
    return [
        FinanceRecord(
            id=None,
            title=f"{plan.title} ({i}/{n})",
            amount=plan.amount,
            occurred_at=installment_date(plan.start, i - 1, plan.payment_day),
            is_expense=plan.is_expense,
        )
        for i in range(1, n + 1)
    ]


__all__ = ["InstallmentPlan", "installment_date", "plan_installments"]
