"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker.
Everything stored for a profile conforms to these schemas.
"""

from expense_tracker.models.finance import (
    DEFAULT_CATEGORIES,
    IMPORT_CATEGORY,
    SELF_MEMBER,
    BudgetRecord,
    ExpenseRecord,
    FinanceSnapshot,
    IncomeRecord,
    current_month,
    new_record_id,
)
from expense_tracker.models.summary import (
    BudgetOverview,
    BudgetStatus,
    CategoryBudgetRow,
    FinanceSummary,
    LimitLevel,
    LimitStatus,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "DEFAULT_CATEGORIES",
    "IMPORT_CATEGORY",
    "SELF_MEMBER",
    "BudgetRecord",
    "ExpenseRecord",
    "FinanceSnapshot",
    "IncomeRecord",
    "current_month",
    "new_record_id",
    # Derived models
    "BudgetOverview",
    "BudgetStatus",
    "CategoryBudgetRow",
    "FinanceSummary",
    "LimitLevel",
    "LimitStatus",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
