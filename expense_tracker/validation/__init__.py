"""Manual entry validation package."""

from expense_tracker.validation.validator import (
    MONTH_PATTERN,
    ValidationIssue,
    is_valid_month,
    reasons,
    validate_budget_entry,
    validate_expense_entry,
    validate_income_entry,
    validate_limit,
    validate_name,
)

__all__ = [
    "MONTH_PATTERN",
    "ValidationIssue",
    "is_valid_month",
    "reasons",
    "validate_budget_entry",
    "validate_expense_entry",
    "validate_income_entry",
    "validate_limit",
    "validate_name",
]
