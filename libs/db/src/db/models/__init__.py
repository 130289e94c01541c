"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the finance record model used by ``finance_tracker``.
"""

from .finance import Base, FinanceRecordRow

__all__ = [
    "Base",
    "FinanceRecordRow",
]
