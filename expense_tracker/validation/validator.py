"""
Manual Entry Validation

Checks what a user typed into the add/edit forms before it becomes a
record.

DESIGN DECISION: Validation reports issues; it never fixes them. The
ledger treats any issue as "ignore this entry" (a silent no-op), while the
dashboard can show the messages next to the form.

Stored and imported data is NOT validated here. Loading is tolerant (see
models.finance) and aggregation clamps bad numbers to zero.
"""

import math
import re
from typing import Any, Optional

from pydantic import BaseModel, Field


MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

MAX_TITLE_LENGTH = 200
MAX_NAME_LENGTH = 60


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'duplicate')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )


def is_valid_month(value: Any) -> bool:
    """True for a zero-padded "YYYY-MM" string."""
    return isinstance(value, str) and bool(MONTH_PATTERN.match(value))


def _positive_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def _check_amount(issues: list[ValidationIssue], value: Any, field: str = "amount") -> None:
    if _positive_number(value) is None:
        issues.append(ValidationIssue(
            field=field,
            issue_type="invalid_value",
            message="Amount must be a number greater than zero",
        ))


def _check_frequency(issues: list[ValidationIssue], value: Any) -> None:
    number = _positive_number(value)
    if number is None or number != int(number):
        issues.append(ValidationIssue(
            field="freq_months",
            issue_type="invalid_value",
            message="Frequency must be a whole number of months (1 or more)",
        ))


def _check_start_month(issues: list[ValidationIssue], value: Any) -> None:
    if value in (None, ""):
        return
    if not is_valid_month(value):
        issues.append(ValidationIssue(
            field="start_month",
            issue_type="invalid_format",
            message="Start month must look like YYYY-MM",
        ))


def validate_income_entry(
    type: Any,
    amount: Any,
    freq_months: Any = 1,
    start_month: Any = "",
) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if not isinstance(type, str) or not type.strip():
        issues.append(ValidationIssue(
            field="type",
            issue_type="missing",
            message="Income type is required",
        ))
    _check_amount(issues, amount)
    _check_frequency(issues, freq_months)
    _check_start_month(issues, start_month)
    return issues


def validate_expense_entry(
    title: Any,
    amount: Any,
    freq_months: Any = 1,
    start_month: Any = "",
) -> list[ValidationIssue]:
    """
    Check a new or edited expense.

    An empty title or a non-positive amount are the common failures.
    category and person are not checked against the snapshot; orphaned
    references are tolerated everywhere.
    """
    issues: list[ValidationIssue] = []
    if not isinstance(title, str) or not title.strip():
        issues.append(ValidationIssue(
            field="title",
            issue_type="missing",
            message="Title is required",
        ))
    elif len(title.strip()) > MAX_TITLE_LENGTH:
        issues.append(ValidationIssue(
            field="title",
            issue_type="too_long",
            message=f"Title must be at most {MAX_TITLE_LENGTH} characters",
        ))
    _check_amount(issues, amount)
    _check_frequency(issues, freq_months)
    _check_start_month(issues, start_month)
    return issues


def validate_budget_entry(
    category: Any,
    monthly_planned: Any,
    start_month: Any = "",
) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if not isinstance(category, str) or not category.strip():
        issues.append(ValidationIssue(
            field="category",
            issue_type="missing",
            message="Category is required",
        ))
    _check_amount(issues, monthly_planned, field="monthly_planned")
    _check_start_month(issues, start_month)
    return issues


def validate_limit(value: Any, field: str) -> list[ValidationIssue]:
    """Limits may be zero (meaning "no limit") but never negative."""
    if value in (None, ""):
        return []
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = float("nan")
    if not math.isfinite(number) or number < 0:
        return [ValidationIssue(
            field=field,
            issue_type="invalid_value",
            message="Limit must be zero or a positive number",
        )]
    return []


def validate_name(name: Any, existing: list[str], field: str = "name") -> list[ValidationIssue]:
    """Category and family member names: non-empty after stripping, unique."""
    if not isinstance(name, str) or not name.strip():
        return [ValidationIssue(field=field, issue_type="missing", message="Name is required")]
    cleaned = name.strip()
    if len(cleaned) > MAX_NAME_LENGTH:
        return [ValidationIssue(
            field=field,
            issue_type="too_long",
            message=f"Name must be at most {MAX_NAME_LENGTH} characters",
        )]
    if cleaned in existing:
        return [ValidationIssue(
            field=field,
            issue_type="duplicate",
            message=f"'{cleaned}' already exists",
        )]
    return []


def reasons(issues: list[ValidationIssue]) -> list[str]:
    return [f"{issue.field}: {issue.message}" for issue in issues]
