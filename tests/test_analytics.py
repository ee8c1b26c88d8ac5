"""
Tests for recurrence normalization, budget evaluation and summaries.
"""

import math

import pytest

from expense_tracker.analytics import (
    SummaryCache,
    active_budgets,
    actual_by_category,
    applies_in_month,
    build_summary,
    classify_budget,
    evaluate_budgets,
    evaluate_category,
    limit_status,
    monthly_equivalent,
    monthly_total,
    safe_amount,
    safe_frequency,
)
from expense_tracker.models.finance import (
    BudgetRecord,
    ExpenseRecord,
    FinanceSnapshot,
    IncomeRecord,
)
from expense_tracker.models.summary import BudgetStatus, LimitLevel


class TestRecurrence:
    """Tests for the monthly-equivalent normalizer."""

    def test_yearly_amount_is_divided_by_twelve(self):
        """Test a yearly income of 12000 counts as 1000 a month."""
        assert monthly_equivalent(12000, 12) == 1000

    def test_quarterly_amount(self):
        assert monthly_equivalent(900, 3) == 300

    @pytest.mark.parametrize("freq", [0, -3, None, "abc", float("nan"), float("inf")])
    def test_unusable_frequency_is_monthly(self, freq):
        """Test non-positive or non-finite frequencies are treated as 1."""
        assert safe_frequency(freq) == 1
        assert monthly_equivalent(500, freq) == 500

    @pytest.mark.parametrize("amount", [-50, float("nan"), float("inf"), None, "x"])
    def test_unusable_amount_is_zero(self, amount):
        """Test negative or non-finite amounts contribute nothing."""
        assert safe_amount(amount) == 0
        assert monthly_equivalent(amount, 1) == 0

    def test_applies_in_month(self):
        """Test the start-month filter."""
        assert applies_in_month("", "2024-05")
        assert applies_in_month(None, "2024-05")
        assert applies_in_month("2024-05", "2024-05")
        assert applies_in_month("2023-12", "2024-01")
        assert not applies_in_month("2024-06", "2024-05")

    def test_monthly_total_skips_future_records(self):
        """Test that records starting after the viewed month are excluded."""
        records = [
            ExpenseRecord(title="a", amount=100, start_month="2024-01"),
            ExpenseRecord(title="b", amount=1200, freq_months=12),
            ExpenseRecord(title="c", amount=999, start_month="2024-07"),
        ]
        assert monthly_total(records, "2024-05") == 200


class TestBudgetClassification:
    """Tests for the ok / warn / danger tag."""

    @pytest.mark.parametrize("planned,actual,expected", [
        (1000, 1000, BudgetStatus.OK),      # diff = 0
        (1000, 800, BudgetStatus.OK),       # under plan
        (1000, 1050, BudgetStatus.WARN),    # 5% over
        (1000, 1120, BudgetStatus.WARN),    # 12% over
        (1000, 1180, BudgetStatus.WARN),    # 18% over
        (1000, 1250, BudgetStatus.DANGER),  # 25% over
    ])
    def test_classification_table(self, planned, actual, expected):
        """Test the status bands at category level."""
        assert evaluate_category("Food", planned, actual).status == expected

    def test_band_edges(self):
        """Test the exact band boundaries."""
        assert classify_budget(100, 10) == BudgetStatus.WARN
        assert classify_budget(150, 15) == BudgetStatus.WARN
        assert classify_budget(200, 20) == BudgetStatus.WARN
        assert classify_budget(201, 20.1) == BudgetStatus.DANGER

    def test_spend_without_plan(self):
        """Test spend in a category with nothing planned reads as warn (pct 0)."""
        row = evaluate_category("Shopping", 0, 300)
        assert row.diff == 300
        assert row.pct == 0
        assert row.status == BudgetStatus.WARN

    def test_row_figures(self):
        row = evaluate_category("Food", 1000, 1250)
        assert row.planned == 1000
        assert row.actual == 1250
        assert row.diff == 250
        assert row.pct == 25


class TestActiveBudgets:
    """Tests for most-recent-wins budget selection."""

    def test_most_recent_start_month_wins(self):
        """Test Petrol 500@2024-01 and 800@2024-04 viewed at 2024-05 gives 800."""
        planned = [
            BudgetRecord(category="Petrol", monthly_planned=500, start_month="2024-01"),
            BudgetRecord(category="Petrol", monthly_planned=800, start_month="2024-04"),
        ]
        assert active_budgets(planned, "2024-05")["Petrol"].monthly_planned == 800

    def test_earlier_month_uses_older_plan(self):
        planned = [
            BudgetRecord(category="Petrol", monthly_planned=800, start_month="2024-04"),
            BudgetRecord(category="Petrol", monthly_planned=500, start_month="2024-01"),
        ]
        assert active_budgets(planned, "2024-02")["Petrol"].monthly_planned == 500

    def test_future_only_plan_is_inactive(self):
        planned = [BudgetRecord(category="Rent", monthly_planned=100, start_month="2025-01")]
        assert active_budgets(planned, "2024-05") == {}

    def test_tie_goes_to_last_record(self):
        """Test that equal start months are won by the record seen last."""
        planned = [
            BudgetRecord(category="Food", monthly_planned=100, start_month="2024-01"),
            BudgetRecord(category="Food", monthly_planned=200, start_month="2024-01"),
        ]
        assert active_budgets(planned, "2024-03")["Food"].monthly_planned == 200

    def test_actual_by_category_normalizes(self):
        expenses = [
            ExpenseRecord(title="Fuel", amount=3000, category="Petrol"),
            ExpenseRecord(title="Service", amount=6000, category="Petrol", freq_months=6),
        ]
        assert actual_by_category(expenses, "2024-05") == {"Petrol": 4000}


class TestEvaluateBudgets:
    """Tests for the per-category rows and aggregate figures."""

    def _snapshot(self) -> FinanceSnapshot:
        return FinanceSnapshot(
            categories=["Groceries", "Food", "Petrol"],
            month="2024-05",
            planned=[
                BudgetRecord(category="Food", monthly_planned=1000, start_month="2024-01"),
                BudgetRecord(category="Petrol", monthly_planned=2000, start_month="2024-01"),
            ],
            expenses=[
                ExpenseRecord(title="Dinner", amount=1250, category="Food"),
                ExpenseRecord(title="Fuel", amount=1500, category="Petrol"),
                ExpenseRecord(title="Gift", amount=500, category="Gifts"),
            ],
        )

    def test_rows_follow_category_order_then_orphans(self):
        overview = evaluate_budgets(self._snapshot())
        assert [row.category for row in overview.rows] == ["Food", "Petrol", "Gifts"]

    def test_row_statuses(self):
        overview = evaluate_budgets(self._snapshot())
        assert overview.row_for("Food").status == BudgetStatus.DANGER
        assert overview.row_for("Petrol").status == BudgetStatus.OK
        assert overview.row_for("Groceries") is None

    def test_aggregate_figures(self):
        """Test totals include unbudgeted spend."""
        overview = evaluate_budgets(self._snapshot())
        assert overview.total_planned == 3000
        assert overview.total_actual == 3250
        assert overview.over_amount == 250
        assert math.isclose(overview.over_pct, 250 / 3000 * 100)
        assert overview.status == BudgetStatus.WARN

    def test_under_budget_aggregate(self):
        snapshot = FinanceSnapshot(
            month="2024-05",
            planned=[BudgetRecord(category="Food", monthly_planned=1000)],
            expenses=[ExpenseRecord(title="Lunch", amount=400, category="Food")],
        )
        overview = evaluate_budgets(snapshot)
        assert overview.over_amount == 0
        assert overview.over_pct == 0
        assert overview.status == BudgetStatus.OK

    def test_nothing_planned(self):
        """Test zero total plan gives zero over_pct."""
        snapshot = FinanceSnapshot(
            month="2024-05",
            expenses=[ExpenseRecord(title="Lunch", amount=400, category="Food")],
        )
        overview = evaluate_budgets(snapshot)
        assert overview.total_planned == 0
        assert overview.over_amount == 400
        assert overview.over_pct == 0


class TestLimitStatus:
    """Tests for the plain monthly/yearly limits."""

    @pytest.mark.parametrize("actual,limit,expected", [
        (500, 0, LimitLevel.NONE),
        (800, 1000, LimitLevel.OK),
        (801, 1000, LimitLevel.WARN),
        (1000, 1000, LimitLevel.WARN),
        (1001, 1000, LimitLevel.DANGER),
    ])
    def test_levels(self, actual, limit, expected):
        assert limit_status(actual, limit).level == expected

    def test_used_pct(self):
        assert limit_status(250, 1000).used_pct == 25


class TestSummary:
    """Tests for the dashboard summary."""

    def _snapshot(self) -> FinanceSnapshot:
        return FinanceSnapshot(
            month="2024-05",
            family_members=["Me", "Wife"],
            incomes=[
                IncomeRecord(type="Salary", amount=50000),
                IncomeRecord(type="Bonus", amount=12000, freq_months=12),
            ],
            expenses=[
                ExpenseRecord(title="Rent", amount=15000, category="Rent"),
                ExpenseRecord(title="Salon", amount=600, category="Shopping", person="Wife"),
                ExpenseRecord(title="Course", amount=3000, category="Other", start_month="2024-04"),
            ],
            monthly_limit=30000,
            yearly_limit=100000,
        )

    def test_monthly_figures(self):
        """Test yearly income of 12000 contributes 1000 per month."""
        summary = build_summary(self._snapshot())
        assert summary.month == "2024-05"
        assert summary.monthly_income == 51000
        assert summary.monthly_expenses == 18600
        assert summary.monthly_savings == 32400

    def test_breakdowns(self):
        summary = build_summary(self._snapshot())
        assert summary.expenses_by_category == {"Rent": 15000, "Shopping": 600, "Other": 3000}
        assert summary.expenses_by_person == {"Me": 18000, "Wife": 600}

    def test_yearly_figures_sum_each_month(self):
        """Test yearly totals add the twelve monthly totals of the viewed year."""
        summary = build_summary(self._snapshot())
        assert summary.yearly_income == 51000 * 12
        # Course starts in April: 9 months of 3000
        assert summary.yearly_expenses == 15600 * 12 + 3000 * 9

    def test_limits(self):
        summary = build_summary(self._snapshot())
        assert summary.monthly_limit.level == LimitLevel.OK
        assert summary.yearly_limit.level == LimitLevel.DANGER

    def test_other_month(self):
        summary = build_summary(self._snapshot(), "2024-03")
        assert summary.monthly_expenses == 15600


class TestSummaryCache:
    """Tests for version-keyed summary caching."""

    def test_same_version_and_month_is_cached(self):
        cache = SummaryCache()
        snapshot = FinanceSnapshot(month="2024-05")
        first = cache.get(snapshot, 1, "2024-05")
        assert cache.get(snapshot, 1, "2024-05") is first

    def test_new_version_recomputes(self):
        cache = SummaryCache()
        snapshot = FinanceSnapshot(month="2024-05")
        first = cache.get(snapshot, 1, "2024-05")
        snapshot.expenses.append(ExpenseRecord(title="Rent", amount=100))
        second = cache.get(snapshot, 2, "2024-05")
        assert second is not first
        assert second.monthly_expenses == 100

    def test_months_are_cached_separately(self):
        cache = SummaryCache()
        snapshot = FinanceSnapshot(month="2024-05")
        may = cache.get(snapshot, 1, "2024-05")
        june = cache.get(snapshot, 1, "2024-06")
        assert may.month == "2024-05"
        assert june.month == "2024-06"
