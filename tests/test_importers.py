"""
Tests for the bank CSV importer, receipt field extractor and backups.
"""

import json

import pytest

from expense_tracker.importers import (
    BackupFormatError,
    CSVImportError,
    backup_filename,
    export_backup,
    extract_receipt_fields,
    parse_backup,
    parse_bank_csv,
    parse_statement_month,
)
from expense_tracker.importers.bank_csv import DEFAULT_TITLE, is_debit, parse_amount
from expense_tracker.models.finance import (
    BudgetRecord,
    ExpenseRecord,
    FinanceSnapshot,
    IncomeRecord,
)


class TestStatementDates:
    """Tests for statement date → YYYY-MM."""

    def test_day_first(self):
        """Test a first token above 12 is read as the day."""
        assert parse_statement_month("15/03/2024", "2000-01") == "2024-03"

    def test_month_first(self):
        assert parse_statement_month("03/15/2024", "2000-01") == "2024-03"

    def test_ambiguous_is_month_first(self):
        assert parse_statement_month("05-06-2024", "2000-01") == "2024-05"

    def test_year_first(self):
        assert parse_statement_month("2024-03-15", "2000-01") == "2024-03"

    def test_two_digit_year(self):
        assert parse_statement_month("15/03/24", "2000-01") == "2024-03"

    def test_time_suffix_is_ignored(self):
        assert parse_statement_month("15/03/2024 10:32", "2000-01") == "2024-03"

    @pytest.mark.parametrize("value", ["", "yesterday", "15.03.2024", "2024/03", "1/2/3/4", "15/13/2024"])
    def test_unreadable_falls_back(self, value):
        assert parse_statement_month(value, "2024-06") == "2024-06"


class TestStatementAmounts:
    """Tests for amount and type parsing."""

    @pytest.mark.parametrize("value,expected", [
        ("1200", 1200.0),
        ("1,200.50", 1200.5),
        ("₹ 300", 300.0),
        ("Rs. 45", 45.0),
        ("-250", -250.0),
        ("(45.00)", -45.0),
    ])
    def test_parse_amount(self, value, expected):
        assert parse_amount(value) == expected

    @pytest.mark.parametrize("value", ["", "abc", "nan", "inf"])
    def test_unparseable_amount(self, value):
        assert parse_amount(value) is None

    @pytest.mark.parametrize("value", ["DEBIT", "ATM Withdrawal", "POS Purchase", "Bill Payment"])
    def test_debit_markers(self, value):
        assert is_debit(value)

    @pytest.mark.parametrize("value", ["Credit", "Salary", "", "Refund"])
    def test_non_debit(self, value):
        assert not is_debit(value)


class TestBankCSV:
    """Tests for the full statement import."""

    def test_pos_purchase_row(self):
        """Test a POS row with a day-first date becomes an Other expense."""
        content = "Date,Amount,Type\n15/03/2024,1200,POS Purchase\n"
        result = parse_bank_csv(content, "2024-06")
        assert result.imported_count == 1
        expense = result.expenses[0]
        assert expense.amount == 1200
        assert expense.start_month == "2024-03"
        assert expense.category == "Other"
        assert expense.freq_months == 1
        assert expense.person == "Me"
        assert expense.title == DEFAULT_TITLE

    def test_column_aliases(self):
        content = (
            "Transaction Date,Narration,Withdrawal,Mode\n"
            "2024-02-01,Swiggy order,\"1,450.00\",UPI Payment\n"
        )
        result = parse_bank_csv(content, "2024-06")
        expense = result.expenses[0]
        assert expense.title == "Swiggy order"
        assert expense.amount == 1450
        assert expense.start_month == "2024-02"

    def test_first_non_empty_alias_wins(self):
        content = "Date,Amount,Debit Amount,Type\n01/02/2024,,300,Debit\n"
        result = parse_bank_csv(content, "2024-06")
        assert result.expenses[0].amount == 300

    def test_negative_amount_stored_as_absolute(self):
        content = "Date,Description,Amount,Type\n01/02/2024,ATM,-500,ATM\n"
        result = parse_bank_csv(content, "2024-06")
        assert result.expenses[0].amount == 500

    def test_credits_and_bad_rows_are_skipped(self):
        content = (
            "Date,Description,Amount,Type\n"
            "01/03/2024,Salary,50000,Credit\n"
            "02/03/2024,Coffee,abc,Debit\n"
            "03/03/2024,Zero,0,Debit\n"
            "04/03/2024,Groceries,850,Debit\n"
        )
        result = parse_bank_csv(content, "2024-06")
        assert result.total_rows == 4
        assert result.skipped_rows == 3
        assert [e.title for e in result.expenses] == ["Groceries"]

    def test_unreadable_date_uses_fallback(self):
        content = "Date,Amount,Type\nsometime,99,Debit\n"
        result = parse_bank_csv(content, "2024-06")
        assert result.expenses[0].start_month == "2024-06"

    def test_bytes_with_bom(self):
        content = "\ufeffDate,Amount,Type\n15/03/2024,10,Debit\n".encode("utf-8")
        result = parse_bank_csv(content, "2024-06")
        assert result.imported_count == 1

    def test_no_debits(self):
        """Test a file with no usable rows parses to an empty result."""
        content = "Date,Amount,Type\n15/03/2024,10,Credit\n"
        result = parse_bank_csv(content, "2024-06")
        assert result.imported_count == 0
        assert result.skipped_rows == 1

    def test_empty_file_raises(self):
        with pytest.raises(CSVImportError):
            parse_bank_csv("", "2024-06")

    def test_binary_file_raises(self):
        with pytest.raises(CSVImportError):
            parse_bank_csv(b"\xff\xfe\x00\x81", "2024-06")


class TestReceiptExtractor:
    """Tests for amount and category extraction from OCR text."""

    def test_amount_and_grocery(self):
        fields = extract_receipt_fields("FRESH SUPERMARKET\nTotal ₹ 450.50\nThank you")
        assert fields.amount == 450.5
        assert fields.category == "Groceries"
        assert fields.amount_detected

    def test_first_match_wins(self):
        """Test the rule order: grocery beats food."""
        fields = extract_receipt_fields("Grocery and food court 120")
        assert fields.category == "Groceries"

    @pytest.mark.parametrize("text,category", [
        ("Blue Tokai Cafe", "Food"),
        ("HP petrol pump", "Petrol"),
        ("Electricity BILL", "Utilities"),
        ("Hardware store", None),
    ])
    def test_categories(self, text, category):
        assert extract_receipt_fields(text).category == category

    def test_comma_decimal(self):
        assert extract_receipt_fields("Summe € 12,50").amount == 12.5

    @pytest.mark.parametrize("text,amount", [
        ("TOTAL ₹1,250.00", 1250.0),
        ("Grand total Rs. 1,25,000", 125000.0),
        ("Amount $12,345,678.90", 12345678.9),
        ("TOTAL 12,500", 12500.0),
    ])
    def test_thousands_separators(self, text, amount):
        """Test grouping commas are not read as a decimal point."""
        assert extract_receipt_fields(text).amount == amount

    def test_no_amount(self):
        """Test that text without digits is an outcome, not an error."""
        fields = extract_receipt_fields("Thank you for shopping")
        assert fields.amount is None
        assert not fields.amount_detected

    def test_empty_text(self):
        fields = extract_receipt_fields("")
        assert fields.amount is None
        assert fields.category is None


class TestBackup:
    """Tests for backup export and restore."""

    def _snapshot(self) -> FinanceSnapshot:
        return FinanceSnapshot(
            categories=["Food", "Rent"],
            family_members=["Me", "Wife"],
            month="2024-03",
            incomes=[IncomeRecord(type="Salary", amount=50000)],
            expenses=[ExpenseRecord(title="Rent", amount=15000, category="Rent", person="Wife")],
            planned=[BudgetRecord(category="Food", monthly_planned=5000, start_month="2024-01")],
            monthly_limit=30000,
        )

    def test_export_then_import_is_equal(self):
        """Test a backup restores to an equal snapshot."""
        snapshot = self._snapshot()
        assert parse_backup(export_backup(snapshot)).model_dump() == snapshot.model_dump()

    def test_export_uses_camel_case(self):
        data = json.loads(export_backup(self._snapshot()))
        assert data["familyMembers"] == ["Me", "Wife"]
        assert data["monthlyLimit"] == 30000
        assert data["expenses"][0]["freqMonths"] == 1

    def test_minimal_backup_gets_defaults(self):
        """Test an old backup with only the required fields loads."""
        snapshot = parse_backup('{"categories": ["Food"], "familyMembers": [], "month": "2023-01"}')
        assert snapshot.family_members == ["Me"]
        assert snapshot.expenses == []
        assert snapshot.yearly_limit == 0

    def test_accepts_bytes(self):
        snapshot = parse_backup(export_backup(self._snapshot()).encode("utf-8"))
        assert snapshot.month == "2024-03"

    @pytest.mark.parametrize("text", [
        "not json",
        "[1, 2, 3]",
        '{"categories": [], "month": "2024-01"}',
        '{"familyMembers": [], "month": "2024-01"}',
        '{"categories": [], "familyMembers": []}',
        '{"categories": "Food", "familyMembers": [], "month": "2024-01"}',
    ])
    def test_rejects_invalid_backup(self, text):
        with pytest.raises(BackupFormatError):
            parse_backup(text)

    def test_backup_filename(self):
        assert backup_filename("My Family", "2024-03") == "expense_tracker_My_Family_2024-03.json"
