"""Typed error taxonomy and the exception-translation policy.

Three kinds of failure reach consumers:

- ``ValidationError``: caller-supplied data violates a record invariant. The
  message lists every complaint and is safe to show as-is.
- ``StorageError``: the persistence engine failed (not initialized, medium
  unavailable, unknown id, corrupt read). Retrying or re-loading may help.
- ``UnknownError``: anything else.

``RecordService`` is the translation boundary: exceptions raised by a
``RecordStore`` are converted with :func:`translate_exception` before they
leave the service. The state container applies the same function again to
whatever it catches; already-typed errors pass through unchanged.
"""

from __future__ import annotations

from enum import StrEnum

from sqlalchemy.exc import SQLAlchemyError

from . import messages


class ErrorKind(StrEnum):
    VALIDATION = "validation"
    STORAGE = "storage"
    UNKNOWN = "unknown"


class FinanceError(Exception):
    """Base class: a user-facing ``message`` plus optional technical ``details``."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, *, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"{type(self).__name__}(message={self.message!r}, details={self.details!r})"


class ValidationError(FinanceError):
    kind = ErrorKind.VALIDATION


class StorageError(FinanceError):
    kind = ErrorKind.STORAGE


class UnknownError(FinanceError):
    kind = ErrorKind.UNKNOWN


# ----------------------------------------------------------------------------
# Translation
# ----------------------------------------------------------------------------

_STORAGE_TYPES: tuple[type[BaseException], ...] = (SQLAlchemyError, OSError, LookupError)
_STORAGE_KEYWORDS = ("database", "storage", "store", "sqlite", "box", "not initialized")
_VALIDATION_KEYWORDS = ("title", "amount", "empty", "invalid")


def translate_exception(exc: BaseException) -> FinanceError:
    """Classify ``exc`` into the tracker's error taxonomy.

    Type checks come first; the keyword heuristic on the message only decides
    for exceptions of otherwise unrecognized types.
    """

    if isinstance(exc, FinanceError):
        return exc

    text = str(exc)
    details = f"{type(exc).__name__}: {text}" if text else type(exc).__name__
    if isinstance(exc, _STORAGE_TYPES):
        return StorageError(messages.STORAGE_FAILED, details=details)

    lowered = text.lower()
    if any(k in lowered for k in _STORAGE_KEYWORDS):
        return StorageError(messages.STORAGE_FAILED, details=details)
    if any(k in lowered for k in _VALIDATION_KEYWORDS):
        return ValidationError(text)
    return UnknownError(messages.UNKNOWN_FAILED, details=details)


__all__ = [
    "ErrorKind",
    "FinanceError",
    "ValidationError",
    "StorageError",
    "UnknownError",
    "translate_exception",
]
