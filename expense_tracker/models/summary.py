"""
Derived Result Models

Budget rows, limit statuses and the dashboard summary are computed from a
FinanceSnapshot on demand. They are never persisted.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class BudgetStatus(str, Enum):
    """Three-level tag for planned-vs-actual comparisons."""
    OK = "ok"
    WARN = "warn"
    DANGER = "danger"


class LimitLevel(str, Enum):
    """Status of spend against a plain numeric limit."""
    NONE = "none"      # No limit configured
    OK = "ok"          # At most 80% of the limit used
    WARN = "warn"      # Above 80%, at most 100%
    DANGER = "danger"  # Over the limit


class CategoryBudgetRow(BaseModel):
    """Planned vs actual monthly-equivalent spend for one category."""

    category: str
    planned: float = Field(ge=0.0)
    actual: float = Field(ge=0.0)
    diff: float = Field(
        description="actual - planned; positive means overspent"
    )
    pct: float = Field(
        description="diff as a percentage of planned; 0 when nothing is planned"
    )
    status: BudgetStatus


class BudgetOverview(BaseModel):
    """All category rows plus the aggregate comparison for one month."""

    month: str
    rows: list[CategoryBudgetRow] = Field(default_factory=list)
    total_planned: float = 0.0
    total_actual: float = 0.0
    over_amount: float = Field(
        default=0.0,
        ge=0.0,
        description="max(0, total_actual - total_planned)"
    )
    over_pct: float = Field(
        default=0.0,
        ge=0.0,
        description="over_amount as a percentage of total_planned"
    )
    status: BudgetStatus = BudgetStatus.OK

    def row_for(self, category: str) -> Optional[CategoryBudgetRow]:
        for row in self.rows:
            if row.category == category:
                return row
        return None


class LimitStatus(BaseModel):
    """Spend compared against monthly_limit or yearly_limit."""

    limit: float
    actual: float
    used_pct: float = Field(
        description="actual as a percentage of limit; 0 when no limit is set"
    )
    level: LimitLevel


class FinanceSummary(BaseModel):
    """
    Everything the dashboard shows for one viewed month.

    All monetary figures are monthly-equivalents, except the yearly ones,
    which add up the monthly totals of January..December of the viewed year.
    """

    month: str
    monthly_income: float = 0.0
    monthly_expenses: float = 0.0
    monthly_savings: float = 0.0
    yearly_income: float = 0.0
    yearly_expenses: float = 0.0
    expenses_by_category: dict[str, float] = Field(default_factory=dict)
    expenses_by_person: dict[str, float] = Field(default_factory=dict)
    monthly_limit: LimitStatus
    yearly_limit: LimitStatus
    budgets: BudgetOverview
