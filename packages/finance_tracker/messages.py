"""User-facing message catalog.

Every string a consumer may show verbatim lives here so the wording stays in
one place. Validation complaints are joined with newlines when several apply.
"""

from __future__ import annotations

# Success
EXPENSE_ADDED = "Expense added successfully!"
INCOME_ADDED = "Income added successfully!"
RECORD_UPDATED = "Transaction updated successfully!"
RECORD_REMOVED = "Transaction removed successfully!"
ALL_CLEARED = "All transactions were removed successfully."


def installments_added(count: int) -> str:
    return f"{count} installment(s) added successfully!"


# Validation
TITLE_EMPTY = "Title cannot be empty"
TITLE_TOO_LONG = "Title cannot be longer than 100 characters"
AMOUNT_NOT_A_NUMBER = "Amount must be a valid number"
AMOUNT_NOT_POSITIVE = "Amount must be greater than zero"
AMOUNT_TOO_LARGE = "Amount is too large"
INVALID_RECORD_ID = "Invalid transaction id"
RECORD_NOT_PERSISTED = "Invalid transaction for update: missing id"
DAYS_NOT_POSITIVE = "Number of days must be positive"
INSTALLMENTS_NOT_POSITIVE = "Number of installments must be greater than zero"
INSTALLMENTS_TOO_MANY = "Number of installments cannot exceed 360 (30 years)"
PAYMENT_DAY_OUT_OF_RANGE = "Payment day must be between 1 and 31"

# Failures
STORAGE_FAILED = "Storage error. Please try again."
UNKNOWN_FAILED = "Something went wrong. Please try again."
