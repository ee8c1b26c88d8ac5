"""
Budget Evaluator

Compares normalized actual spend to normalized planned spend, per category
and in aggregate, and tags the result ok / warn / danger.

IMPORTANT: the classification bands are kept exactly as the tracker has
always shown them:

    diff <= 0                 -> ok
    10% <= overspend <= 15%   -> warn
    overspend > 20%           -> danger
    anything else             -> warn   (0-10% and 15-20%)

The fallback makes the scale non-monotonic between the bands. Changing it
needs a decision from the product owner; see DESIGN.md.
"""

from typing import Iterable, Optional

from expense_tracker.analytics.recurrence import (
    applies_in_month,
    monthly_equivalent,
    monthly_total,
    safe_amount,
)
from expense_tracker.models.finance import BudgetRecord, ExpenseRecord, FinanceSnapshot
from expense_tracker.models.summary import (
    BudgetOverview,
    BudgetStatus,
    CategoryBudgetRow,
    LimitLevel,
    LimitStatus,
)


LIMIT_WARN_RATIO = 0.8


def classify_budget(diff: float, pct: float) -> BudgetStatus:
    """Tag an overspend of diff (pct percent of plan)."""
    if diff <= 0:
        return BudgetStatus.OK
    if 10 <= pct <= 15:
        return BudgetStatus.WARN
    if pct > 20:
        return BudgetStatus.DANGER
    return BudgetStatus.WARN


def overspend_pct(diff: float, planned: float) -> float:
    if planned == 0:
        return 0.0
    return diff / planned * 100


def active_budgets(
    planned: Iterable[BudgetRecord],
    month: str,
) -> dict[str, BudgetRecord]:
    """
    The governing budget per category for month (most-recent-wins).

    Among records whose start month is not after month, the one with the
    latest start month wins; on equal start months the one seen last wins.
    """
    active: dict[str, BudgetRecord] = {}
    for budget in planned:
        if not applies_in_month(budget.start_month, month):
            continue
        current = active.get(budget.category)
        if current is None or budget.start_month >= current.start_month:
            active[budget.category] = budget
    return active


def actual_by_category(
    expenses: Iterable[ExpenseRecord],
    month: str,
) -> dict[str, float]:
    """Monthly-equivalent spend per category for month."""
    totals: dict[str, float] = {}
    for expense in expenses:
        if not applies_in_month(expense.start_month, month):
            continue
        totals[expense.category] = totals.get(expense.category, 0.0) + monthly_equivalent(
            expense.amount, expense.freq_months
        )
    return totals


def evaluate_category(category: str, planned: float, actual: float) -> CategoryBudgetRow:
    planned = safe_amount(planned)
    actual = safe_amount(actual)
    diff = actual - planned
    pct = overspend_pct(diff, planned)
    return CategoryBudgetRow(
        category=category,
        planned=planned,
        actual=actual,
        diff=diff,
        pct=pct,
        status=classify_budget(diff, pct),
    )


def _ordered_categories(known: list[str], *groups: Iterable[str]) -> list[str]:
    """Known categories first, in snapshot order, then orphaned ones in first-seen order."""
    present = []
    for group in groups:
        for category in group:
            if category not in present:
                present.append(category)
    ordered = [c for c in known if c in present]
    ordered.extend(c for c in present if c not in ordered)
    return ordered


def evaluate_budgets(snapshot: FinanceSnapshot, month: Optional[str] = None) -> BudgetOverview:
    """
    Per-category rows and the aggregate comparison for month.

    A category gets a row when it has an active budget or any spend in the
    month. Aggregate actual spend covers every expense, budgeted or not.
    """
    month = month or snapshot.month
    plans = active_budgets(snapshot.planned, month)
    actuals = actual_by_category(snapshot.expenses, month)

    rows = [
        evaluate_category(
            category,
            plans[category].monthly_planned if category in plans else 0.0,
            actuals.get(category, 0.0),
        )
        for category in _ordered_categories(snapshot.categories, plans, actuals)
    ]

    total_planned = sum(safe_amount(b.monthly_planned) for b in plans.values())
    total_actual = monthly_total(snapshot.expenses, month)
    diff = total_actual - total_planned
    over_amount = max(0.0, diff)

    return BudgetOverview(
        month=month,
        rows=rows,
        total_planned=total_planned,
        total_actual=total_actual,
        over_amount=over_amount,
        over_pct=overspend_pct(over_amount, total_planned),
        status=classify_budget(diff, overspend_pct(diff, total_planned)),
    )


def limit_status(actual: float, limit: float) -> LimitStatus:
    """
    Spend against a plain limit.

    none when no limit is set, ok up to 80% of it, warn up to 100%,
    danger beyond.
    """
    limit = safe_amount(limit)
    actual = safe_amount(actual)
    if limit == 0:
        return LimitStatus(limit=0.0, actual=actual, used_pct=0.0, level=LimitLevel.NONE)

    if actual <= limit * LIMIT_WARN_RATIO:
        level = LimitLevel.OK
    elif actual <= limit:
        level = LimitLevel.WARN
    else:
        level = LimitLevel.DANGER

    return LimitStatus(
        limit=limit,
        actual=actual,
        used_pct=actual / limit * 100,
        level=level,
    )
