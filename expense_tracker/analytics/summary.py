"""
Dashboard Summary

Builds the FinanceSummary for a viewed month: income, spend, savings,
breakdowns, yearly rollups, limit statuses and the budget overview.

Summaries are pure functions of (snapshot, month). SummaryCache memoizes
them per snapshot version so a page render that asks several times does
the arithmetic once; a mutation bumps the version and invalidates it.
"""

from typing import Optional

from expense_tracker.analytics.budget import evaluate_budgets, limit_status
from expense_tracker.analytics.recurrence import (
    applies_in_month,
    monthly_equivalent,
    monthly_total,
    months_of_year,
)
from expense_tracker.models.finance import FinanceSnapshot
from expense_tracker.models.summary import FinanceSummary


def _breakdown(snapshot: FinanceSnapshot, month: str, attribute: str) -> dict[str, float]:
    totals: dict[str, float] = {}
    for expense in snapshot.expenses:
        if not applies_in_month(expense.start_month, month):
            continue
        key = getattr(expense, attribute)
        totals[key] = totals.get(key, 0.0) + monthly_equivalent(
            expense.amount, expense.freq_months
        )
    return totals


def yearly_total(records, month: str) -> float:
    """Sum of the monthly totals for every month of month's year."""
    records = list(records)
    return sum(monthly_total(records, m) for m in months_of_year(month))


def build_summary(snapshot: FinanceSnapshot, month: Optional[str] = None) -> FinanceSummary:
    month = month or snapshot.month

    monthly_income = monthly_total(snapshot.incomes, month)
    monthly_expenses = monthly_total(snapshot.expenses, month)
    yearly_expenses = yearly_total(snapshot.expenses, month)

    return FinanceSummary(
        month=month,
        monthly_income=monthly_income,
        monthly_expenses=monthly_expenses,
        monthly_savings=monthly_income - monthly_expenses,
        yearly_income=yearly_total(snapshot.incomes, month),
        yearly_expenses=yearly_expenses,
        expenses_by_category=_breakdown(snapshot, month, "category"),
        expenses_by_person=_breakdown(snapshot, month, "person"),
        monthly_limit=limit_status(monthly_expenses, snapshot.monthly_limit),
        yearly_limit=limit_status(yearly_expenses, snapshot.yearly_limit),
        budgets=evaluate_budgets(snapshot, month),
    )


class SummaryCache:
    """Memoizes build_summary keyed by (snapshot version, month)."""

    def __init__(self):
        self._version: Optional[int] = None
        self._entries: dict[str, FinanceSummary] = {}

    def get(self, snapshot: FinanceSnapshot, version: int, month: str) -> FinanceSummary:
        if version != self._version:
            self._entries.clear()
            self._version = version
        summary = self._entries.get(month)
        if summary is None:
            summary = build_summary(snapshot, month)
            self._entries[month] = summary
        return summary

    def clear(self) -> None:
        self._entries.clear()
        self._version = None
