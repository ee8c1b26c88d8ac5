"""Normalization, budget evaluation and dashboard summaries."""

from expense_tracker.analytics.budget import (
    active_budgets,
    actual_by_category,
    classify_budget,
    evaluate_budgets,
    evaluate_category,
    limit_status,
)
from expense_tracker.analytics.recurrence import (
    applies_in_month,
    monthly_equivalent,
    monthly_total,
    safe_amount,
    safe_frequency,
)
from expense_tracker.analytics.summary import SummaryCache, build_summary

__all__ = [
    "SummaryCache",
    "active_budgets",
    "actual_by_category",
    "applies_in_month",
    "build_summary",
    "classify_budget",
    "evaluate_budgets",
    "evaluate_category",
    "limit_status",
    "monthly_equivalent",
    "monthly_total",
    "safe_amount",
    "safe_frequency",
]
