"""
Profile Ledger

All changes to one profile's data go through a ProfileLedger. Every
mutation is applied to the in-memory snapshot and persisted immediately;
there is no "save" button and no unsaved state.

DESIGN DECISION: Manual entries that fail validation are silent no-ops.
The method returns None/False, the snapshot is untouched and nothing is
written. The dashboard can call the validators itself to show why.

CRITICAL: "Me" can never be removed. Removing any other family member
reassigns that member's expenses to "Me" so no expense is left without
an owner.
"""

from datetime import date
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from expense_tracker.analytics.summary import SummaryCache
from expense_tracker.audit import AuditLogger
from expense_tracker.models.audit import AuditEventBuilder, AuditEventType
from expense_tracker.models.finance import (
    IMPORT_CATEGORY,
    SELF_MEMBER,
    BudgetRecord,
    ExpenseRecord,
    FinanceSnapshot,
    IncomeRecord,
)
from expense_tracker.models.summary import FinanceSummary
from expense_tracker.services.storage.interface import SnapshotRepository, StorageError
from expense_tracker.validation import (
    is_valid_month,
    reasons,
    validate_budget_entry,
    validate_expense_entry,
    validate_income_entry,
    validate_limit,
    validate_name,
)


class ProfileLedger:
    """
    Mutations and derived figures for one profile.

    Usage:
        ledger = ProfileLedger("Default", repository)
        ledger.add_expense("Rent", 15000, category="Rent")
        summary = ledger.summary()
    """

    def __init__(
        self,
        profile: str,
        repository: SnapshotRepository,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._profile = profile
        self._repository = repository
        self._audit_logger = audit_logger or AuditLogger(profile)
        self._snapshot = repository.load(profile)
        self._version = 0
        self._cache = SummaryCache()

    @property
    def profile(self) -> str:
        return self._profile

    @property
    def snapshot(self) -> FinanceSnapshot:
        """The current snapshot. Treat it as read-only; mutate through the ledger."""
        return self._snapshot

    @property
    def version(self) -> int:
        """Incremented by every mutation."""
        return self._version

    @property
    def month(self) -> str:
        return self._snapshot.month

    def _persist(self) -> bool:
        """
        Bump the version and write the snapshot.

        A failed write is logged; the in-memory change stays so the user
        doesn't lose what they just entered.
        """
        self._version += 1
        try:
            self._repository.save(self._profile, self._snapshot)
        except StorageError as e:
            self._audit_logger.log(AuditEventBuilder.save_failed(self._profile, str(e)))
            return False
        self._audit_logger.log(AuditEventBuilder.snapshot_saved(self._profile, self._version))
        return True

    def _ignore(self, entity_type: str, issues) -> None:
        self._audit_logger.log_entry_ignored(entity_type, reasons(issues))

    # =========================================================================
    # VIEWED MONTH AND LIMITS
    # =========================================================================

    def set_month(self, month: str) -> bool:
        if not is_valid_month(month):
            return False
        if month == self._snapshot.month:
            return True
        self._snapshot.month = month
        self._persist()
        return True

    def set_limits(
        self,
        monthly_limit: Optional[Any] = None,
        yearly_limit: Optional[Any] = None,
    ) -> bool:
        """Update either limit; 0 means no limit. Passing None leaves a limit as is."""
        issues = validate_limit(monthly_limit, "monthly_limit") + validate_limit(
            yearly_limit, "yearly_limit"
        )
        if issues:
            self._ignore("limits", issues)
            return False

        if monthly_limit not in (None, ""):
            self._snapshot.monthly_limit = float(monthly_limit)
        if yearly_limit not in (None, ""):
            self._snapshot.yearly_limit = float(yearly_limit)
        self._persist()
        return True

    # =========================================================================
    # INCOMES
    # =========================================================================

    def add_income(
        self,
        type: str,
        amount: Any,
        freq_months: Any = 1,
        start_month: str = "",
    ) -> Optional[IncomeRecord]:
        issues = validate_income_entry(type, amount, freq_months, start_month)
        if issues:
            self._ignore("income", issues)
            return None

        income = IncomeRecord(
            type=type,
            amount=float(amount),
            freq_months=int(float(freq_months)),
            start_month=start_month or "",
        )
        self._snapshot.incomes.append(income)
        self._persist()
        self._audit_logger.log_record_added("income", income.id, {"amount": income.amount})
        return income

    def remove_income(self, income_id: str) -> bool:
        before = len(self._snapshot.incomes)
        self._snapshot.incomes = [i for i in self._snapshot.incomes if i.id != income_id]
        if len(self._snapshot.incomes) == before:
            return False
        self._persist()
        self._audit_logger.log_record_removed("income", income_id)
        return True

    # =========================================================================
    # EXPENSES
    # =========================================================================

    def add_expense(
        self,
        title: str,
        amount: Any,
        category: str = IMPORT_CATEGORY,
        freq_months: Any = 1,
        start_month: str = "",
        person: str = SELF_MEMBER,
        reminder_date: Optional[date] = None,
    ) -> Optional[ExpenseRecord]:
        issues = validate_expense_entry(title, amount, freq_months, start_month)
        if issues:
            self._ignore("expense", issues)
            return None

        expense = ExpenseRecord(
            title=title,
            amount=float(amount),
            category=category or IMPORT_CATEGORY,
            freq_months=int(float(freq_months)),
            start_month=start_month or "",
            person=person or SELF_MEMBER,
            reminder_date=reminder_date,
        )
        self._snapshot.expenses.append(expense)
        self._persist()
        self._audit_logger.log_record_added(
            "expense", expense.id, {"amount": expense.amount, "category": expense.category}
        )
        return expense

    def update_expense(self, expense_id: str, **changes: Any) -> Optional[ExpenseRecord]:
        """
        Edit an expense in place.

        Accepts any ExpenseRecord field by its Python name. Moving the
        reminder date re-arms the reminder.
        """
        current = self._snapshot.find_expense(expense_id)
        if current is None:
            return None

        merged = current.model_dump()
        merged.update({k: v for k, v in changes.items() if k in ExpenseRecord.model_fields})
        merged["id"] = current.id

        issues = validate_expense_entry(
            merged["title"], merged["amount"], merged["freq_months"], merged["start_month"]
        )
        if issues:
            self._ignore("expense", issues)
            return None

        try:
            updated = ExpenseRecord.model_validate(merged)
        except ValidationError as e:
            self._audit_logger.log_entry_ignored("expense", [str(err["msg"]) for err in e.errors()])
            return None

        # Compare after coercion: "2024-06-01" and date(2024, 6, 1) are the same reminder
        if "reminder_date" in changes and updated.reminder_date != current.reminder_date:
            updated.reminder_notified = False

        index = self._snapshot.expenses.index(current)
        self._snapshot.expenses[index] = updated
        self._persist()
        self._audit_logger.log_record_updated("expense", expense_id)
        return updated

    def remove_expense(self, expense_id: str) -> bool:
        before = len(self._snapshot.expenses)
        self._snapshot.expenses = [e for e in self._snapshot.expenses if e.id != expense_id]
        if len(self._snapshot.expenses) == before:
            return False
        self._persist()
        self._audit_logger.log_record_removed("expense", expense_id)
        return True

    def add_expenses(self, expenses: Iterable[ExpenseRecord]) -> int:
        """
        Append already-built expenses (e.g. from a bank import) with one write.

        Records without a positive amount are dropped. Returns how many
        were added.
        """
        accepted = [e for e in expenses if e.amount > 0]
        if not accepted:
            return 0
        self._snapshot.expenses.extend(accepted)
        self._persist()
        return len(accepted)

    def mark_reminder_notified(self, expense_id: str) -> bool:
        expense = self._snapshot.find_expense(expense_id)
        if expense is None or expense.reminder_notified:
            return False
        expense.reminder_notified = True
        self._persist()
        return True

    # =========================================================================
    # CATEGORIES AND FAMILY MEMBERS
    # =========================================================================

    def add_category(self, name: str) -> bool:
        issues = validate_name(name, self._snapshot.categories, field="category")
        if issues:
            self._ignore("category", issues)
            return False
        self._snapshot.categories.append(name.strip())
        self._persist()
        self._audit_logger.log_record_added("category", name.strip())
        return True

    def remove_category(self, name: str) -> bool:
        """Expenses and budgets that use the category keep it as an orphan."""
        if name not in self._snapshot.categories:
            return False
        self._snapshot.categories.remove(name)
        self._persist()
        self._audit_logger.log_record_removed("category", name)
        return True

    def add_family_member(self, name: str) -> bool:
        issues = validate_name(name, self._snapshot.family_members, field="family_member")
        if issues:
            self._ignore("family_member", issues)
            return False
        self._snapshot.family_members.append(name.strip())
        self._persist()
        self._audit_logger.log_record_added("family_member", name.strip())
        return True

    def remove_family_member(self, name: str) -> bool:
        if name == SELF_MEMBER or name not in self._snapshot.family_members:
            return False

        reassigned = 0
        for expense in self._snapshot.expenses:
            if expense.person == name:
                expense.person = SELF_MEMBER
                reassigned += 1
        self._snapshot.family_members.remove(name)
        self._persist()
        self._audit_logger.log(AuditEventBuilder.member_removed(self._profile, name, reassigned))
        return True

    # =========================================================================
    # BUDGETS
    # =========================================================================

    def set_budget(
        self,
        category: str,
        monthly_planned: Any,
        start_month: Optional[str] = None,
    ) -> Optional[BudgetRecord]:
        """
        Plan monthly spend for a category starting at start_month.

        start_month defaults to the viewed month. A plan for the same
        category and start month is replaced; earlier plans stay, so
        history before start_month keeps its old figure.
        """
        if start_month is None:
            start_month = self._snapshot.month
        issues = validate_budget_entry(category, monthly_planned, start_month)
        if issues:
            self._ignore("budget", issues)
            return None

        category = category.strip()
        for existing in self._snapshot.planned:
            if existing.category == category and existing.start_month == start_month:
                existing.monthly_planned = float(monthly_planned)
                self._persist()
                self._audit_logger.log_record_updated("budget", existing.id)
                return existing

        budget = BudgetRecord(
            category=category,
            monthly_planned=float(monthly_planned),
            start_month=start_month,
        )
        self._snapshot.planned.append(budget)
        self._persist()
        self._audit_logger.log_record_added("budget", budget.id, {"category": category})
        return budget

    def remove_budget(self, budget_id: str) -> bool:
        before = len(self._snapshot.planned)
        self._snapshot.planned = [b for b in self._snapshot.planned if b.id != budget_id]
        if len(self._snapshot.planned) == before:
            return False
        self._persist()
        self._audit_logger.log_record_removed("budget", budget_id)
        return True

    # =========================================================================
    # WHOLE-SNAPSHOT OPERATIONS
    # =========================================================================

    def replace_snapshot(self, snapshot: FinanceSnapshot) -> None:
        """Swap in a restored snapshot wholesale."""
        self._snapshot = snapshot
        self._persist()
        self._audit_logger.log(
            AuditEventBuilder.backup_restored(self._profile, len(snapshot.expenses))
        )

    def reset(self) -> FinanceSnapshot:
        """Throw away everything in this profile and start from defaults."""
        self._snapshot = FinanceSnapshot.default()
        self._persist()
        self._audit_logger.log_profile_changed(AuditEventType.SNAPSHOT_RESET, self._profile)
        return self._snapshot

    def reload(self) -> FinanceSnapshot:
        """Re-read the stored snapshot, discarding the in-memory copy."""
        self._snapshot = self._repository.load(self._profile)
        self._version += 1
        return self._snapshot

    # =========================================================================
    # DERIVED FIGURES
    # =========================================================================

    def summary(self, month: Optional[str] = None) -> FinanceSummary:
        return self._cache.get(self._snapshot, self._version, month or self._snapshot.month)
