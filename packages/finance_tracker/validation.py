"""Input validation for record mutations.

Checks collect every problem before failing so a UI can show them all in one
pass; the raised ``ValidationError`` joins the complaints with newlines.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from . import messages
from .errors import ValidationError
from .models import MAX_AMOUNT, MAX_TITLE_LENGTH, ZERO, to_decimal_2

MAX_INSTALLMENTS = 360


def normalize_title(title: str) -> str:
    return title.strip()


@dataclass(frozen=True, slots=True)
class RecordValidation:
    title: str
    amount: Decimal | None
    problems: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.problems


def check_record_input(title: Any, amount: Any) -> RecordValidation:
    """Normalize ``title``/``amount`` and list every invariant they violate.

    Rules
    -----
    - Title is trimmed; it must be non-empty and at most 100 characters.
    - Amount is parsed and rounded to cents; it must be > 0 and <= 999,999,999.99.
    """

    problems: list[str] = []

    t = normalize_title(title) if isinstance(title, str) else ""
    if not t:
        problems.append(messages.TITLE_EMPTY)
    elif len(t) > MAX_TITLE_LENGTH:
        problems.append(messages.TITLE_TOO_LONG)

    a = to_decimal_2(amount)
    if a is None:
        problems.append(messages.AMOUNT_NOT_A_NUMBER)
    elif a <= ZERO:
        problems.append(messages.AMOUNT_NOT_POSITIVE)
    elif a > MAX_AMOUNT:
        problems.append(messages.AMOUNT_TOO_LARGE)

    return RecordValidation(title=t, amount=a, problems=tuple(problems))


def _accepted(
    title: str, amount: Decimal | None, problems: list[str] | tuple[str, ...]
) -> tuple[str, Decimal]:
    if problems or amount is None:
        raise ValidationError("\n".join(problems))
    return title, amount


def validate_record_input(title: Any, amount: Any) -> tuple[str, Decimal]:
    """Return the normalized ``(title, amount)`` or raise ``ValidationError``."""

    result = check_record_input(title, amount)
    return _accepted(result.title, result.amount, result.problems)


def validate_record_id(record_id: Any) -> int:
    # bool is an int subclass; True/False are never meaningful ids
    if isinstance(record_id, bool) or not isinstance(record_id, int) or record_id < 0:
        raise ValidationError(messages.INVALID_RECORD_ID)
    return record_id


def validate_days(days: Any) -> int:
    if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
        raise ValidationError(messages.DAYS_NOT_POSITIVE)
    return days


def validate_installment_plan(
    title: Any,
    amount: Any,
    *,
    installments: Any,
    payment_day: Any,
) -> tuple[str, Decimal]:
    """Validate a recurring plan; title/amount rules plus count and payment day."""

    result = check_record_input(title, amount)
    problems = list(result.problems)

    if isinstance(installments, bool) or not isinstance(installments, int) or installments <= 0:
        problems.append(messages.INSTALLMENTS_NOT_POSITIVE)
    elif installments > MAX_INSTALLMENTS:
        problems.append(messages.INSTALLMENTS_TOO_MANY)
    elif result.title and messages.TITLE_TOO_LONG not in problems:
        # Expanded titles carry a " (i/N)" suffix and must still fit
        suffix = f" ({installments}/{installments})"
        if len(result.title) + len(suffix) > MAX_TITLE_LENGTH:
            problems.append(messages.TITLE_TOO_LONG)

    if (
        isinstance(payment_day, bool)
        or not isinstance(payment_day, int)
        or not 1 <= payment_day <= 31
    ):
        problems.append(messages.PAYMENT_DAY_OUT_OF_RANGE)

    return _accepted(result.title, result.amount, problems)


__all__ = [
    "MAX_INSTALLMENTS",
    "RecordValidation",
    "check_record_input",
    "normalize_title",
    "validate_record_input",
    "validate_record_id",
    "validate_days",
    "validate_installment_plan",
]
