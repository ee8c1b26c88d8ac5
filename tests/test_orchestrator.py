"""
Integration tests for the orchestrator flows.

OCR and reminder delivery are replaced with fakes; storage is in memory.
"""

from datetime import date

import pytest

from expense_tracker.config.settings import AppSettings
from expense_tracker.ledger import ProfileLedger
from expense_tracker.orchestrator import (
    NO_TRANSACTIONS_MESSAGE,
    SUPERSEDED_MESSAGE,
    BackupFlow,
    CSVImportFlow,
    ReceiptScanFlow,
    ReminderFlow,
    create_app_components,
    create_store,
    open_ledger,
)
from expense_tracker.importers import NO_AMOUNT_MESSAGE, export_backup
from expense_tracker.models.finance import ExpenseRecord, FinanceSnapshot
from expense_tracker.services.notifications import NotificationError, ReminderNotifier
from expense_tracker.services.ocr import ImageRejectedError, OCRProcessingError
from expense_tracker.services.storage import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueSnapshotRepository,
)


class FakeOCRService:
    """Returns canned text, or raises, without touching the network."""

    def __init__(self, text="", error=None, during=None):
        self.text = text
        self.error = error
        self.during = during
        self.calls = 0

    async def parse_image(self, image_bytes, mime_type="image/jpeg"):
        self.calls += 1
        if self.during:
            self.during()
        if self.error:
            raise self.error
        return self.text


class RecordingNotifier(ReminderNotifier):
    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def notify(self, profile, expense):
        if expense.title in self.fail_for:
            raise NotificationError("smtp down")
        self.sent.append((profile, expense.title))


@pytest.fixture
def ledger():
    ledger = ProfileLedger("Default", KeyValueSnapshotRepository(InMemoryKeyValueStore()))
    ledger.set_month("2024-06")
    return ledger


class TestReceiptScanFlow:
    """Tests for the receipt scan flow."""

    @pytest.mark.asyncio
    async def test_successful_scan(self):
        flow = ReceiptScanFlow(FakeOCRService("BIG BAZAAR GROCERY\nTOTAL 450.50"))
        fields, ok, message = await flow.scan(b"image", filename="r.jpg")
        assert ok is True
        assert fields.amount == 450.5
        assert fields.category == "Groceries"
        assert "Check the amount" in message

    @pytest.mark.asyncio
    async def test_no_amount_is_still_ok(self):
        flow = ReceiptScanFlow(FakeOCRService("Thank you"))
        fields, ok, message = await flow.scan(b"image")
        assert ok is True
        assert fields.amount is None
        assert message == NO_AMOUNT_MESSAGE

    @pytest.mark.asyncio
    async def test_rejected_image(self):
        flow = ReceiptScanFlow(FakeOCRService(error=ImageRejectedError("Image is empty")))
        fields, ok, message = await flow.scan(b"")
        assert fields is None
        assert ok is False
        assert message == "Image is empty"

    @pytest.mark.asyncio
    async def test_ocr_failure(self):
        flow = ReceiptScanFlow(FakeOCRService(error=OCRProcessingError("No text found in image")))
        fields, ok, message = await flow.scan(b"image")
        assert fields is None
        assert ok is False
        assert message.startswith("Receipt scan failed")

    @pytest.mark.asyncio
    async def test_superseded_result_is_discarded(self):
        """Test a response arriving after a newer scan started is dropped."""
        service = FakeOCRService("TOTAL 99")
        flow = ReceiptScanFlow(service)
        service.during = flow.cancel
        fields, ok, message = await flow.scan(b"image")
        assert fields is None
        assert ok is False
        assert message == SUPERSEDED_MESSAGE

    @pytest.mark.asyncio
    async def test_superseded_error_is_discarded(self):
        service = FakeOCRService(error=OCRProcessingError("boom"))
        flow = ReceiptScanFlow(service)
        service.during = flow.cancel
        _, ok, message = await flow.scan(b"image")
        assert ok is False
        assert message == SUPERSEDED_MESSAGE

    @pytest.mark.asyncio
    async def test_tokens_increase(self):
        flow = ReceiptScanFlow(FakeOCRService("TOTAL 1"))
        await flow.scan(b"a")
        await flow.scan(b"b")
        assert flow.latest_token == 2
        assert flow.is_latest(2)
        assert not flow.is_latest(1)


class TestCSVImportFlow:
    """Tests for statement import into a ledger."""

    def test_import_adds_expenses(self, ledger):
        content = (
            "Date,Description,Amount,Type\n"
            "15/03/2024,Groceries,850,Debit\n"
            "16/03/2024,Salary,50000,Credit\n"
            "17/03/2024,Fuel,1200,POS Purchase\n"
        )
        result, ok, message = CSVImportFlow(ledger).import_statement(content)
        assert ok is True
        assert message == "Imported 2 transactions."
        assert result.skipped_rows == 1
        assert [e.title for e in ledger.snapshot.expenses] == ["Groceries", "Fuel"]

    def test_no_debits(self, ledger):
        result, ok, message = CSVImportFlow(ledger).import_statement(
            "Date,Amount,Type\n15/03/2024,10,Credit\n"
        )
        assert ok is False
        assert message == NO_TRANSACTIONS_MESSAGE
        assert ledger.snapshot.expenses == []

    def test_unreadable_file(self, ledger):
        result, ok, message = CSVImportFlow(ledger).import_statement("")
        assert result is None
        assert ok is False
        assert message.startswith("Could not read file")


class TestBackupFlow:
    """Tests for export, restore and reset."""

    def test_export(self, ledger):
        ledger.add_expense("Rent", 15000)
        filename, content = BackupFlow(ledger).export()
        assert filename == "expense_tracker_Default_2024-06.json"
        assert '"Rent"' in content

    def test_restore(self, ledger):
        backup = export_backup(FinanceSnapshot(
            month="2023-01",
            expenses=[ExpenseRecord(title="Old rent", amount=9000)],
        ))
        snapshot, ok, _ = BackupFlow(ledger).restore(backup)
        assert ok is True
        assert snapshot.month == "2023-01"
        assert ledger.snapshot.expenses[0].title == "Old rent"

    def test_invalid_restore_leaves_profile_untouched(self, ledger):
        ledger.add_expense("Rent", 15000)
        snapshot, ok, message = BackupFlow(ledger).restore("not json")
        assert snapshot is None
        assert ok is False
        assert message.startswith("Invalid backup file")
        assert ledger.snapshot.expenses[0].title == "Rent"

    def test_reset(self, ledger):
        ledger.add_expense("Rent", 15000)
        BackupFlow(ledger).reset()
        assert ledger.snapshot.expenses == []


class TestReminderFlow:
    """Tests for reminder delivery."""

    def test_due_reminders_are_sent_once(self, ledger):
        ledger.add_expense("Insurance", 12000, reminder_date=date(2024, 6, 1))
        ledger.add_expense("Car tax", 3000, reminder_date=date(2024, 9, 1))
        notifier = RecordingNotifier()
        flow = ReminderFlow(ledger, notifier=notifier)

        assert flow.run(today=date(2024, 6, 10)) == (1, 0)
        assert notifier.sent == [("Default", "Insurance")]
        assert flow.run(today=date(2024, 6, 11)) == (0, 0)

    def test_failed_delivery_is_retried_next_run(self, ledger):
        """Test a failed reminder stays unnotified."""
        expense = ledger.add_expense("Insurance", 12000, reminder_date=date(2024, 6, 1))
        failing = ReminderFlow(ledger, notifier=RecordingNotifier(fail_for={"Insurance"}))
        assert failing.run(today=date(2024, 6, 10)) == (0, 1)
        assert ledger.snapshot.find_expense(expense.id).reminder_notified is False

        assert ReminderFlow(ledger, notifier=RecordingNotifier()).run(today=date(2024, 6, 10)) == (1, 0)
        assert ledger.snapshot.find_expense(expense.id).reminder_notified is True


class TestAppComponents:
    """Tests for store selection and the component factory."""

    def test_memory_store(self):
        assert isinstance(create_store(AppSettings(storage_backend="memory")), InMemoryKeyValueStore)

    def test_file_store(self, tmp_path):
        store = create_store(AppSettings(storage_backend="file", data_dir=tmp_path))
        assert isinstance(store, JsonFileKeyValueStore)

    def test_unconfigured_sheets_falls_back_to_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        store = create_store(AppSettings(storage_backend="google_sheets", data_dir=tmp_path))
        assert isinstance(store, JsonFileKeyValueStore)

    def test_components_and_ledger(self):
        directory, _ = create_app_components(
            AppSettings(storage_backend="memory", default_profile="Home")
        )
        assert directory.current_profile() == "Home"
        ledger = open_ledger(directory)
        assert ledger.profile == "Home"
        ledger.add_expense("Rent", 100)
        assert open_ledger(directory, "Home").snapshot.expenses[0].title == "Rent"
