"""
Streamlit Frontend for Expense Tracker

The dashboard a signed-in user works in: pick a profile and a month, see
where the money goes, add entries, import statements and receipts, and
back everything up.

DESIGN PRINCIPLES:
1. The UI only calls the ledger and the flows; no arithmetic lives here
2. Every change is saved the moment it is made
3. Failures show a notice and leave the data as it was
4. Scanned and imported values are always shown before they count
"""

import asyncio
from datetime import date

import streamlit as st

from expense_tracker.config import get_settings, validate_all_settings
from expense_tracker.ledger import ProfileLedger
from expense_tracker.models.finance import IMPORT_CATEGORY, SELF_MEMBER
from expense_tracker.models.summary import BudgetStatus, LimitLevel
from expense_tracker.orchestrator import (
    BackupFlow,
    CSVImportFlow,
    ReceiptScanFlow,
    ReminderFlow,
    create_app_components,
    open_ledger,
)
from expense_tracker.services.identity import (
    GateState,
    StreamlitIdentity,
    build_logout_url,
    display_name,
    gate,
)
from expense_tracker.services.storage import StorageError
from expense_tracker.validation import is_valid_month


# Page configuration
st.set_page_config(
    page_title="Expense Tracker",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

STATUS_ICONS = {
    BudgetStatus.OK: "🟢",
    BudgetStatus.WARN: "🟡",
    BudgetStatus.DANGER: "🔴",
}

LIMIT_ICONS = {
    LimitLevel.NONE: "⚪",
    LimitLevel.OK: "🟢",
    LimitLevel.WARN: "🟡",
    LimitLevel.DANGER: "🔴",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create the profile directory (cached)."""
    return create_app_components()


@st.cache_resource
def get_receipt_flow():
    """None when OCR isn't configured."""
    try:
        return ReceiptScanFlow()
    except Exception:
        return None


def get_ledger(profile: str) -> ProfileLedger:
    """One ledger per profile per browser session."""
    directory, _ = get_components()
    ledgers = st.session_state.setdefault("ledgers", {})
    if profile not in ledgers:
        ledgers[profile] = open_ledger(directory, profile)
    return ledgers[profile]


def money(value: float) -> str:
    return f"₹{value:,.2f}"


def require_login() -> bool:
    """
    Gate the app behind OIDC sign-in when an identity provider is configured.

    Returns True if the page may render.
    """
    if not validate_all_settings().get("identity"):
        return True

    identity = StreamlitIdentity()
    state = gate(identity)
    if state == GateState.LOADING:
        st.info("Loading...")
        return False
    if state == GateState.ERROR:
        st.error(f"Error: {identity.error}")
        return False
    if state == GateState.REDIRECTING:
        st.info("Redirecting to login...")
        return False

    st.sidebar.markdown(f"Signed in as **{display_name(identity.claims)}**")
    if st.sidebar.button("Sign out"):
        identity.remove_user()
    st.sidebar.link_button(
        "Sign out of all devices", build_logout_url(get_settings().identity)
    )
    return True


def main():
    """Main application entry point."""
    if not require_login():
        st.stop()

    directory, _ = get_components()

    # Sidebar: profile and month
    st.sidebar.title("💰 Expense Tracker")
    st.sidebar.markdown("---")

    profiles = directory.list_profiles()
    current = directory.current_profile()
    selected = st.sidebar.selectbox("Profile", profiles, index=profiles.index(current))
    if selected != current:
        directory.select_profile(selected)
        st.rerun()

    with st.sidebar.expander("New profile"):
        new_name = st.text_input("Profile name", key="new_profile_name")
        if st.button("Create profile"):
            try:
                directory.select_profile(directory.create_profile(new_name))
                st.rerun()
            except StorageError as e:
                st.error(str(e))

    ledger = get_ledger(selected)
    month = st.sidebar.text_input("Month (YYYY-MM)", value=ledger.month)
    if month != ledger.month:
        if is_valid_month(month):
            ledger.set_month(month)
            st.rerun()
        else:
            st.sidebar.error("Month must look like YYYY-MM")

    st.sidebar.markdown("---")
    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "➕ Add Entries", "📥 Import", "💾 Backup", "⚙️ Settings"],
        index=0,
    )

    # Route to appropriate page
    if page == "📊 Dashboard":
        render_dashboard_page(ledger)
    elif page == "➕ Add Entries":
        render_entries_page(ledger)
    elif page == "📥 Import":
        render_import_page(ledger)
    elif page == "💾 Backup":
        render_backup_page(ledger)
    elif page == "⚙️ Settings":
        render_settings_page(ledger)


def render_dashboard_page(ledger: ProfileLedger):
    """Summary figures, budgets and the record lists."""
    summary = ledger.summary()
    st.title(f"📊 {ledger.profile} · {summary.month}")

    col1, col2, col3 = st.columns(3)
    col1.metric("Monthly income", money(summary.monthly_income))
    col2.metric("Monthly expenses", money(summary.monthly_expenses))
    col3.metric("Monthly savings", money(summary.monthly_savings))

    col1, col2 = st.columns(2)
    for col, label, status in (
        (col1, "Monthly limit", summary.monthly_limit),
        (col2, "Yearly limit", summary.yearly_limit),
    ):
        if status.level == LimitLevel.NONE:
            col.caption(f"{LIMIT_ICONS[status.level]} {label}: not set")
        else:
            col.caption(
                f"{LIMIT_ICONS[status.level]} {label}: {money(status.actual)} "
                f"of {money(status.limit)} ({status.used_pct:.0f}%)"
            )
    st.caption(
        f"Yearly income {money(summary.yearly_income)} · "
        f"yearly expenses {money(summary.yearly_expenses)}"
    )

    st.markdown("### Budgets")
    budgets = summary.budgets
    if budgets.rows:
        st.dataframe(
            [
                {
                    "": STATUS_ICONS[row.status],
                    "Category": row.category,
                    "Planned": row.planned,
                    "Actual": row.actual,
                    "Over by": max(row.diff, 0.0),
                    "Over %": round(row.pct, 1),
                }
                for row in budgets.rows
            ],
            use_container_width=True,
            hide_index=True,
        )
        st.markdown(
            f"{STATUS_ICONS[budgets.status]} Total planned {money(budgets.total_planned)}, "
            f"spent {money(budgets.total_actual)}"
            + (f", over by {money(budgets.over_amount)} ({budgets.over_pct:.1f}%)"
               if budgets.over_amount > 0 else "")
        )
    else:
        st.info("No budgets or spending for this month yet.")

    col1, col2 = st.columns(2)
    with col1:
        st.markdown("### By category")
        st.bar_chart(summary.expenses_by_category)
    with col2:
        st.markdown("### By person")
        st.bar_chart(summary.expenses_by_person)

    st.markdown("### Expenses")
    for expense in ledger.snapshot.expenses:
        cols = st.columns([4, 2, 2, 2, 1])
        cols[0].write(expense.title)
        cols[1].write(money(expense.amount))
        cols[2].write(expense.category)
        cols[3].write(expense.person)
        if cols[4].button("🗑️", key=f"del_expense_{expense.id}"):
            ledger.remove_expense(expense.id)
            st.rerun()
        with st.expander(f"✏️ Edit {expense.title}"):
            if render_expense_edit_form(ledger, expense):
                st.rerun()

    st.markdown("### Incomes")
    for income in ledger.snapshot.incomes:
        cols = st.columns([4, 2, 2, 1])
        cols[0].write(income.type)
        cols[1].write(money(income.amount))
        cols[2].write(f"every {income.freq_months} month(s)")
        if cols[3].button("🗑️", key=f"del_income_{income.id}"):
            ledger.remove_income(income.id)
            st.rerun()


def render_expense_form(ledger: ProfileLedger, key: str, amount: float = 0.0, category: str = ""):
    """Expense form, optionally prefilled from a scan."""
    snapshot = ledger.snapshot
    categories = snapshot.categories or [IMPORT_CATEGORY]
    category_index = categories.index(category) if category in categories else 0

    with st.form(key, clear_on_submit=True):
        title = st.text_input("Title")
        amount = st.number_input("Amount", min_value=0.0, value=float(amount), step=100.0)
        category = st.selectbox("Category", categories, index=category_index)
        person = st.selectbox("Person", snapshot.family_members)
        freq_months = st.number_input("Every N months", min_value=1, value=1, step=1)
        start_month = st.text_input("Start month (YYYY-MM, blank = always)", value=snapshot.month)
        remind = st.checkbox("Remind me")
        reminder_date = st.date_input("Reminder date", value=date.today())

        if st.form_submit_button("Add expense", type="primary"):
            added = ledger.add_expense(
                title=title,
                amount=amount,
                category=category,
                freq_months=freq_months,
                start_month=start_month,
                person=person or SELF_MEMBER,
                reminder_date=reminder_date if remind else None,
            )
            if added:
                st.success(f"Added {added.title}")
                return True
    return False


def render_expense_edit_form(ledger: ProfileLedger, expense) -> bool:
    """Edit one expense in place. Orphaned categories and people stay selectable."""
    snapshot = ledger.snapshot
    categories = list(snapshot.categories)
    if expense.category not in categories:
        categories.append(expense.category)
    members = list(snapshot.family_members)
    if expense.person not in members:
        members.append(expense.person)

    with st.form(f"edit_expense_{expense.id}"):
        title = st.text_input("Title", value=expense.title)
        amount = st.number_input("Amount", min_value=0.0, value=float(expense.amount), step=100.0)
        category = st.selectbox("Category", categories, index=categories.index(expense.category))
        person = st.selectbox("Person", members, index=members.index(expense.person))
        freq_months = st.number_input("Every N months", min_value=1, value=int(expense.freq_months), step=1)
        start_month = st.text_input("Start month (YYYY-MM, blank = always)", value=expense.start_month)
        remind = st.checkbox("Remind me", value=expense.reminder_date is not None)
        reminder_date = st.date_input("Reminder date", value=expense.reminder_date or date.today())

        if st.form_submit_button("Save changes"):
            updated = ledger.update_expense(
                expense.id,
                title=title,
                amount=amount,
                category=category,
                person=person,
                freq_months=freq_months,
                start_month=start_month,
                reminder_date=reminder_date if remind else None,
            )
            if updated is None:
                st.error("Check the title, amount and start month.")
                return False
            return True
    return False


def render_entries_page(ledger: ProfileLedger):
    """Forms for incomes, expenses, budgets, limits, categories and family."""
    st.title("➕ Add Entries")
    snapshot = ledger.snapshot

    tab_expense, tab_income, tab_budget, tab_lists = st.tabs(
        ["Expense", "Income", "Budgets & limits", "Categories & family"]
    )

    with tab_expense:
        render_expense_form(ledger, "expense_form")

    with tab_income:
        with st.form("income_form", clear_on_submit=True):
            income_type = st.text_input("Type", placeholder="Salary")
            amount = st.number_input("Amount", min_value=0.0, step=1000.0)
            freq_months = st.number_input("Every N months", min_value=1, value=1, step=1)
            start_month = st.text_input("Start month", value=snapshot.month)
            if st.form_submit_button("Add income", type="primary"):
                if ledger.add_income(income_type, amount, freq_months, start_month):
                    st.success("Income added")

    with tab_budget:
        with st.form("budget_form", clear_on_submit=True):
            category = st.selectbox("Category", snapshot.categories)
            planned = st.number_input("Planned per month", min_value=0.0, step=500.0)
            start_month = st.text_input("From month", value=snapshot.month)
            if st.form_submit_button("Set budget", type="primary"):
                if ledger.set_budget(category, planned, start_month):
                    st.success(f"Budget set for {category}")

        for budget in snapshot.planned:
            cols = st.columns([3, 2, 2, 1])
            cols[0].write(budget.category)
            cols[1].write(money(budget.monthly_planned))
            cols[2].write(budget.start_month or "always")
            if cols[3].button("🗑️", key=f"del_budget_{budget.id}"):
                ledger.remove_budget(budget.id)
                st.rerun()

        st.markdown("#### Limits (0 = none)")
        with st.form("limits_form"):
            monthly_limit = st.number_input(
                "Monthly limit", min_value=0.0, value=snapshot.monthly_limit, step=1000.0
            )
            yearly_limit = st.number_input(
                "Yearly limit", min_value=0.0, value=snapshot.yearly_limit, step=10000.0
            )
            if st.form_submit_button("Save limits"):
                ledger.set_limits(monthly_limit, yearly_limit)
                st.success("Limits saved")

    with tab_lists:
        col1, col2 = st.columns(2)
        with col1:
            st.markdown("#### Categories")
            new_category = st.text_input("New category")
            if st.button("Add category") and ledger.add_category(new_category):
                st.rerun()
            for name in snapshot.categories:
                if st.button(f"Remove {name}", key=f"del_cat_{name}"):
                    ledger.remove_category(name)
                    st.rerun()
        with col2:
            st.markdown("#### Family members")
            new_member = st.text_input("New member")
            if st.button("Add member") and ledger.add_family_member(new_member):
                st.rerun()
            for name in snapshot.family_members:
                if name == SELF_MEMBER:
                    st.write(name)
                elif st.button(f"Remove {name}", key=f"del_member_{name}"):
                    ledger.remove_family_member(name)
                    st.rerun()


def render_import_page(ledger: ProfileLedger):
    """Bank statement import and receipt scanning."""
    st.title("📥 Import")

    st.markdown("### Bank statement (CSV)")
    statement = st.file_uploader("Choose a CSV export", type=["csv"])
    if statement and st.button("Import statement", type="primary"):
        result, ok, message = CSVImportFlow(ledger).import_statement(statement.getvalue())
        if ok:
            st.success(message)
            if result.skipped_rows:
                st.caption(f"{result.skipped_rows} rows were skipped")
        else:
            st.warning(message)

    st.markdown("---")
    st.markdown("### Receipt")
    receipt_flow = get_receipt_flow()
    if receipt_flow is None:
        st.info("Receipt scanning needs OCR_API_KEY in your .env file.")
        return

    receipt = st.file_uploader(
        "Choose a receipt photo",
        type=get_settings().app.supported_formats_list,
        help="Take a clear, well-lit photo of the receipt",
    )
    if receipt and st.button("🔍 Scan receipt"):
        with st.spinner("Reading your receipt..."):
            fields, ok, message = run_async(
                receipt_flow.scan(receipt.getvalue(), receipt.type, receipt.name)
            )
        if fields is not None:
            st.session_state.receipt_fields = fields
        if ok:
            st.info(message)
        else:
            st.error(message)

    fields = st.session_state.get("receipt_fields")
    if fields is not None:
        with st.expander("Recognised text"):
            st.text(fields.raw_text)
        if render_expense_form(
            ledger,
            "receipt_expense_form",
            amount=fields.amount or 0.0,
            category=fields.category or "",
        ):
            st.session_state.receipt_fields = None


def render_backup_page(ledger: ProfileLedger):
    """Export, restore and reset."""
    st.title("💾 Backup")
    flow = BackupFlow(ledger)

    filename, content = flow.export()
    st.download_button(
        "⬇️ Download backup",
        data=content,
        file_name=filename,
        mime="application/json",
    )

    st.markdown("### Restore")
    backup = st.file_uploader("Choose a backup file", type=["json"])
    if backup and st.button("Restore backup"):
        _, ok, message = flow.restore(backup.getvalue())
        if ok:
            st.success(message)
        else:
            st.error(message)

    st.markdown("### Reset")
    confirm = st.checkbox(f"I want to erase everything in {ledger.profile}")
    if st.button("Reset profile", disabled=not confirm):
        flow.reset()
        st.success("Profile reset")
        st.rerun()


def render_settings_page(ledger: ProfileLedger):
    """Service status, reminders and profile management."""
    st.title("⚙️ Settings")
    directory, _ = get_components()

    st.markdown("### Connection Status")
    status = validate_all_settings()
    services = [
        ("OCR.space (Receipt scanning)", "ocr"),
        ("Google Sheets (Storage)", "google_sheets"),
        ("OIDC (Sign-in)", "identity"),
        ("Reminders", "reminders"),
    ]
    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.warning(f"⚠️ {name} - {error}")

    st.markdown("### Reminders")
    if st.button("Send due reminders"):
        sent, failed = ReminderFlow(ledger).run()
        st.info(f"{sent} sent, {failed} failed")

    st.markdown("### Profile")
    new_name = st.text_input("Rename profile to", value=ledger.profile)
    if st.button("Rename") and new_name != ledger.profile:
        try:
            directory.rename_profile(ledger.profile, new_name)
            st.session_state.get("ledgers", {}).pop(ledger.profile, None)
            st.rerun()
        except StorageError as e:
            st.error(str(e))

    if st.button("Delete profile"):
        try:
            directory.delete_profile(ledger.profile)
            st.session_state.get("ledgers", {}).pop(ledger.profile, None)
            st.rerun()
        except StorageError as e:
            st.error(str(e))

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your API keys. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
