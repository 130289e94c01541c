"""Data models for ``finance_tracker``.

Records are immutable values. Updates never mutate a record in place: callers
build a revised copy (same ``id``) and hand it to the service, which persists
it by id.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import StrEnum
from typing import Any

# ---------------------------------------------------------------------------
# Limits
# ---------------------------------------------------------------------------

MAX_TITLE_LENGTH: int = 100
MAX_AMOUNT: Decimal = Decimal("999999999.99")
RECENT_DAYS_DEFAULT: int = 30

_CENTS = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal_2(raw: Any) -> Decimal | None:
    """Parse ``raw`` into a 2-dp ``Decimal``; ``None`` when it isn't a finite number.

    Values too large to carry cents in the default context come back
    unrounded; they are far above ``MAX_AMOUNT`` either way.
    """

    if raw is None or isinstance(raw, bool):
        return None
    try:
        d = raw if isinstance(raw, Decimal) else Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    if not d.is_finite():
        return None
    try:
        return d.quantize(_CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return d


# ---------------------------------------------------------------------------
# Core record
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FinanceRecord:
    """One income or expense entry.

    ``id`` is assigned by the store on first persistence and is ``None``
    before that; a record without an id can be neither updated nor deleted.
    ``occurred_at`` is timezone-aware (UTC).
    """

    id: int | None
    title: str
    amount: Decimal
    occurred_at: datetime
    is_expense: bool

    @property
    def is_persisted(self) -> bool:
        return self.id is not None

    @property
    def signed_amount(self) -> Decimal:
        return -self.amount if self.is_expense else self.amount

    def with_id(self, record_id: int) -> FinanceRecord:
        return dataclasses.replace(self, id=record_id)

    def revise(
        self,
        *,
        title: str | None = None,
        amount: Decimal | None = None,
        is_expense: bool | None = None,
        occurred_at: datetime | None = None,
    ) -> FinanceRecord:
        """Return a new record with the given fields replaced and the same ``id``."""

        changes: dict[str, Any] = {}
        if title is not None:
            changes["title"] = title
        if amount is not None:
            changes["amount"] = amount
        if is_expense is not None:
            changes["is_expense"] = is_expense
        if occurred_at is not None:
            changes["occurred_at"] = occurred_at
        return dataclasses.replace(self, **changes)


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FinancialSummary:
    income: Decimal
    expenses: Decimal
    balance: Decimal

    @classmethod
    def empty(cls) -> FinancialSummary:
        return cls(income=ZERO, expenses=ZERO, balance=ZERO)


class BalanceIndicator(StrEnum):
    """Classification of a balance; UIs map it to an image or colour."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class OperationKind(StrEnum):
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"
    CLEAR = "clear"


type Records = tuple[FinanceRecord, ...]
"""The container's ordered, immutable record collection (store iteration order)."""


__all__ = [
    "MAX_TITLE_LENGTH",
    "MAX_AMOUNT",
    "RECENT_DAYS_DEFAULT",
    "ZERO",
    "to_decimal_2",
    "FinanceRecord",
    "FinancialSummary",
    "BalanceIndicator",
    "OperationKind",
    "Records",
]
