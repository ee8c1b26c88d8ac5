"""
Core Data Models for Expense Tracker

These models define the schemas for everything stored in a profile:
incomes, recurring expenses, category budgets and the snapshot that
holds them together.

DESIGN DECISION: Models serialise with camelCase aliases. The JSON written
to storage and to backup files keeps the same shape the browser version of
the tracker used (familyMembers, freqMonths, startMonth, ...), so older
backups restore without conversion.

Loading is tolerant: a record saved by an older version that lacks a field
gets that field's default instead of failing. That field-default pattern is
the whole migration story; there is no schema versioning.
"""

import math
from datetime import date
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# CONSTANTS
# =============================================================================

SELF_MEMBER = "Me"
"""Family member that always exists and owns orphaned expenses."""

IMPORT_CATEGORY = "Other"
"""Category given to every imported bank transaction."""

DEFAULT_CATEGORIES = [
    "Groceries",
    "Food",
    "Petrol",
    "Utilities",
    "Rent",
    "EMI",
    "Insurance",
    "Investments",
    "Shopping",
    IMPORT_CATEGORY,
]


def current_month() -> str:
    """Today's month as a zero-padded "YYYY-MM" string."""
    return date.today().strftime("%Y-%m")


def new_record_id() -> str:
    return uuid4().hex


class TrackerModel(BaseModel):
    """Base for every persisted model: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_storage_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# SHARED FIELD COERCION
# =============================================================================

def _coerce_id(value: Any) -> str:
    if value is None or value == "":
        return new_record_id()
    return str(value)


def _coerce_amount(value: Any) -> Any:
    # Empty form fields were stored as "" or null by older versions
    if value is None or value == "":
        return 0.0
    return value


def _coerce_frequency(value: Any) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 1
    if not math.isfinite(number):
        return 1
    return int(number)


# =============================================================================
# RECORDS
# =============================================================================

class RecordModel(TrackerModel):
    """A stored record with a unique string id (older data used numeric ids)."""

    id: str = Field(default_factory=new_record_id)

    @field_validator("id", mode="before")
    @classmethod
    def ensure_string_id(cls, v: Any) -> str:
        return _coerce_id(v)


class IncomeRecord(RecordModel):
    """
    A recurring income.

    The record applies to every month at or after start_month.
    freq_months is the recurrence period: 1 = monthly, 12 = yearly.
    """

    type: str = Field(
        default="",
        max_length=200,
        description="Free-text label (Salary, Rent received, ...)"
    )
    amount: float = Field(
        default=0.0,
        description="Amount received once per period"
    )
    freq_months: int = Field(
        default=1,
        description="Recurrence period in months"
    )
    start_month: str = Field(
        default="",
        description="First month (YYYY-MM) the income counts in; empty = always"
    )

    @field_validator("amount", mode="before")
    @classmethod
    def blank_amount_is_zero(cls, v: Any) -> Any:
        return _coerce_amount(v)

    @field_validator("freq_months", mode="before")
    @classmethod
    def unreadable_frequency_is_monthly(cls, v: Any) -> int:
        return _coerce_frequency(v)


class ExpenseRecord(RecordModel):
    """
    A recurring expense owned by one family member.

    category and person are free strings; they normally reference an entry
    of the snapshot's categories/family_members but orphans are tolerated.
    reminder_notified flips to True once the reminder for reminder_date
    has been delivered.
    """

    title: str = Field(
        default="",
        max_length=200,
    )
    amount: float = 0.0
    category: str = IMPORT_CATEGORY
    freq_months: int = 1
    start_month: str = ""
    person: str = SELF_MEMBER
    reminder_date: Optional[date] = None
    reminder_notified: bool = False

    @field_validator("amount", mode="before")
    @classmethod
    def blank_amount_is_zero(cls, v: Any) -> Any:
        return _coerce_amount(v)

    @field_validator("freq_months", mode="before")
    @classmethod
    def unreadable_frequency_is_monthly(cls, v: Any) -> int:
        return _coerce_frequency(v)

    @field_validator("reminder_date", mode="before")
    @classmethod
    def empty_reminder_is_none(cls, v: Any) -> Any:
        if v == "":
            return None
        return v

    @field_validator("person", mode="before")
    @classmethod
    def missing_person_is_self(cls, v: Any) -> Any:
        if v is None or v == "":
            return SELF_MEMBER
        return v


class BudgetRecord(RecordModel):
    """
    Planned monthly spend for one category from start_month onwards.

    Several records may exist per category; the one with the latest
    start_month that is not after the viewed month is the active one.
    """

    category: str
    monthly_planned: float = Field(
        default=0.0,
        description="Planned spend per month"
    )
    start_month: str = ""

    @field_validator("monthly_planned", mode="before")
    @classmethod
    def blank_amount_is_zero(cls, v: Any) -> Any:
        return _coerce_amount(v)


# =============================================================================
# SNAPSHOT
# =============================================================================

def _unique(items: list[str]) -> list[str]:
    seen = set()
    result = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            result.append(item)
    return result


class FinanceSnapshot(TrackerModel):
    """
    Everything stored for one profile.

    CRITICAL: "Me" is always a family member. It is re-inserted on load if a
    stored snapshot lost it.
    """

    categories: list[str] = Field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    family_members: list[str] = Field(default_factory=lambda: [SELF_MEMBER])
    month: str = Field(default_factory=current_month)
    incomes: list[IncomeRecord] = Field(default_factory=list)
    expenses: list[ExpenseRecord] = Field(default_factory=list)
    planned: list[BudgetRecord] = Field(default_factory=list)
    monthly_limit: float = 0.0
    yearly_limit: float = 0.0

    @field_validator("incomes", "expenses", "planned", mode="before")
    @classmethod
    def null_list_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("monthly_limit", "yearly_limit", mode="before")
    @classmethod
    def limit_defaults_to_zero(cls, v: Any) -> Any:
        if v is None or v == "":
            return 0.0
        return v

    @model_validator(mode="after")
    def normalise_names(self) -> "FinanceSnapshot":
        categories = _unique(self.categories)
        members = _unique(self.family_members)
        if SELF_MEMBER not in members:
            members.insert(0, SELF_MEMBER)
        self.categories = categories
        self.family_members = members
        return self

    @classmethod
    def default(cls, month: Optional[str] = None) -> "FinanceSnapshot":
        """A fresh snapshot: default categories, only "Me", nothing recorded."""
        if month:
            return cls(month=month)
        return cls()

    def find_expense(self, expense_id: str) -> Optional[ExpenseRecord]:
        for expense in self.expenses:
            if expense.id == expense_id:
                return expense
        return None
