"""
Main Orchestrator for Expense Tracker

This module ties the ledger to the outside world and defines the
end-to-end flows for:
1. Receipt scan (image → OCR → field extraction → prefill the form)
2. Bank statement import (CSV → draft expenses → ledger)
3. Backup export / restore / reset
4. Expense reminders (due reminders → notifier → mark notified)

DESIGN DECISION: Flows return (result, ok, message) so the dashboard can
show a notice without catching anything. Nothing here is fatal: a failure
leaves the profile as it was and explains why.

CRITICAL: A receipt scan that has been superseded by a newer one is
discarded when it completes. A slow OCR response must never overwrite a
form the user has already moved on from.
"""

from datetime import date
from typing import Optional

import structlog

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.config import get_settings
from expense_tracker.config.settings import AppSettings
from expense_tracker.importers import (
    NO_AMOUNT_MESSAGE,
    BackupFormatError,
    CSVImportError,
    CSVImportResult,
    ReceiptFields,
    backup_filename,
    export_backup,
    extract_receipt_fields,
    parse_backup,
    parse_bank_csv,
)
from expense_tracker.ledger import ProfileLedger
from expense_tracker.models.audit import AuditEventBuilder, AuditEventType
from expense_tracker.models.finance import FinanceSnapshot
from expense_tracker.services.notifications import (
    NotificationError,
    ReminderNotifier,
    create_notifier,
    due_reminders,
)
from expense_tracker.services.ocr import ImageRejectedError, OCRError, OCRSpaceService
from expense_tracker.services.storage import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
    ProfileDirectory,
)
from expense_tracker.services.storage.google_sheets import GoogleSheetsKeyValueStore


logger = structlog.get_logger(__name__)

SUPERSEDED_MESSAGE = "A newer scan is in progress; this result was discarded."
NO_TRANSACTIONS_MESSAGE = "No debit transactions found in this file."


class ReceiptScanFlow:
    """
    Orchestrates receipt scanning.

    Flow:
    1. Issue a request token (newest scan wins)
    2. OCR the image
    3. Drop the result if a newer scan was started meanwhile
    4. Extract amount and category from the text

    The extracted fields are only a suggestion for the expense form.
    Nothing is saved here.
    """

    def __init__(
        self,
        ocr_service: Optional[OCRSpaceService] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ocr_service = ocr_service or OCRSpaceService()
        self._audit_logger = audit_logger or AuditLogger()
        self._latest_token = 0

    @property
    def latest_token(self) -> int:
        return self._latest_token

    def is_latest(self, token: int) -> bool:
        return token == self._latest_token

    def cancel(self) -> None:
        """Invalidate any scan still in flight."""
        self._latest_token += 1

    async def scan(
        self,
        image_bytes: bytes,
        mime_type: str = "image/jpeg",
        filename: str = "",
    ) -> tuple[Optional[ReceiptFields], bool, str]:
        """
        Scan a receipt image.

        Returns:
            (fields, ok, message)

        fields is None when the scan failed or was superseded.
        """
        self._latest_token += 1
        token = self._latest_token
        correlation_id = create_correlation_id()

        self._audit_logger.log(AuditEventBuilder.receipt_scan(
            AuditEventType.RECEIPT_SCAN_STARTED,
            token,
            correlation_id,
            {"filename": filename, "size_bytes": len(image_bytes)},
        ))

        try:
            text = await self._ocr_service.parse_image(image_bytes, mime_type)
        except ImageRejectedError as e:
            if not self.is_latest(token):
                return self._superseded(token, correlation_id)
            return None, False, str(e)
        except OCRError as e:
            self._audit_logger.log_external_service_error(
                service="ocr.space",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            if not self.is_latest(token):
                return self._superseded(token, correlation_id)
            return None, False, f"Receipt scan failed: {e}"

        if not self.is_latest(token):
            return self._superseded(token, correlation_id)

        fields = extract_receipt_fields(text)
        self._audit_logger.log(AuditEventBuilder.receipt_scan(
            AuditEventType.RECEIPT_SCANNED,
            token,
            correlation_id,
            {"amount_detected": fields.amount_detected, "category": fields.category},
        ))

        if not fields.amount_detected:
            return fields, True, NO_AMOUNT_MESSAGE
        return fields, True, "Receipt scanned. Check the amount before saving."

    def _superseded(self, token, correlation_id) -> tuple[None, bool, str]:
        self._audit_logger.log(AuditEventBuilder.receipt_scan(
            AuditEventType.RECEIPT_SCAN_SUPERSEDED,
            token,
            correlation_id,
            {"latest_token": self._latest_token},
        ))
        return None, False, SUPERSEDED_MESSAGE


class CSVImportFlow:
    """
    Imports a bank statement into a profile.

    Every usable debit row becomes an expense in one write. Rows that
    can't be read are skipped; only a file with no usable rows at all is
    reported as a failure.
    """

    def __init__(
        self,
        ledger: ProfileLedger,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._audit_logger = audit_logger or AuditLogger(ledger.profile)

    def import_statement(
        self,
        content: str | bytes,
    ) -> tuple[Optional[CSVImportResult], bool, str]:
        """
        Returns:
            (result, ok, message)
        """
        correlation_id = create_correlation_id()

        try:
            result = parse_bank_csv(content, fallback_month=self._ledger.month)
        except CSVImportError as e:
            self._audit_logger.log(AuditEventBuilder.csv_import_failed(
                self._ledger.profile, str(e), correlation_id
            ))
            return None, False, f"Could not read file: {e}"

        if result.imported_count == 0:
            self._audit_logger.log(AuditEventBuilder.csv_import_failed(
                self._ledger.profile, NO_TRANSACTIONS_MESSAGE, correlation_id
            ))
            return result, False, NO_TRANSACTIONS_MESSAGE

        added = self._ledger.add_expenses(result.expenses)
        self._audit_logger.log(AuditEventBuilder.csv_imported(
            self._ledger.profile, added, result.skipped_rows, correlation_id
        ))
        return result, True, f"Imported {added} transactions."


class BackupFlow:
    """Backup export, restore and reset for one profile."""

    def __init__(
        self,
        ledger: ProfileLedger,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._audit_logger = audit_logger or AuditLogger(ledger.profile)

    def export(self) -> tuple[str, str]:
        """
        Returns:
            (suggested filename, backup JSON)
        """
        snapshot = self._ledger.snapshot
        self._audit_logger.log_profile_changed(
            AuditEventType.BACKUP_EXPORTED, self._ledger.profile
        )
        return backup_filename(self._ledger.profile, snapshot.month), export_backup(snapshot)

    def restore(self, content: str | bytes) -> tuple[Optional[FinanceSnapshot], bool, str]:
        """
        Replace the profile's data with a backup.

        An invalid file leaves the profile untouched.
        """
        try:
            snapshot = parse_backup(content)
        except BackupFormatError as e:
            self._audit_logger.log(
                AuditEventBuilder.backup_rejected(self._ledger.profile, str(e))
            )
            return None, False, f"Invalid backup file: {e}"

        self._ledger.replace_snapshot(snapshot)
        return snapshot, True, "Backup restored."

    def reset(self) -> FinanceSnapshot:
        return self._ledger.reset()


class ReminderFlow:
    """
    Delivers due expense reminders.

    An expense is marked notified only after its reminder went out, so a
    failed delivery is retried on the next run.
    """

    def __init__(
        self,
        ledger: ProfileLedger,
        notifier: Optional[ReminderNotifier] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._notifier = notifier or create_notifier(get_settings().reminders)
        self._audit_logger = audit_logger or AuditLogger(ledger.profile)

    def run(self, today: Optional[date] = None) -> tuple[int, int]:
        """
        Returns:
            (sent, failed)
        """
        today = today or date.today()
        sent = failed = 0

        for expense in due_reminders(self._ledger.snapshot, today):
            try:
                self._notifier.notify(self._ledger.profile, expense)
            except NotificationError as e:
                failed += 1
                self._audit_logger.log(AuditEventBuilder.reminder_failed(
                    self._ledger.profile, expense.id, str(e)
                ))
                continue

            self._ledger.mark_reminder_notified(expense.id)
            sent += 1
            self._audit_logger.log(AuditEventBuilder.reminder_sent(
                self._ledger.profile, expense.id, expense.title
            ))

        return sent, failed


def create_store(app_settings: Optional[AppSettings] = None) -> KeyValueStore:
    """
    Build the key-value store selected by STORAGE_BACKEND.

    If Google Sheets is selected but not configured, the local JSON file
    is used instead.
    """
    app_settings = app_settings or get_settings().app

    if app_settings.storage_backend == "memory":
        return InMemoryKeyValueStore()

    if app_settings.storage_backend == "google_sheets":
        try:
            return GoogleSheetsKeyValueStore()
        except Exception as e:
            # Storage not configured - continue with the local file
            logger.warning("google_sheets_unavailable", error=str(e))

    return JsonFileKeyValueStore(app_settings.store_path)


def create_app_components(
    app_settings: Optional[AppSettings] = None,
    store: Optional[KeyValueStore] = None,
) -> tuple[ProfileDirectory, AuditLogger]:
    """
    Factory function to create the profile directory.

    Returns:
        (profile_directory, audit_logger)
    """
    app_settings = app_settings or get_settings().app
    audit_logger = AuditLogger()
    directory = ProfileDirectory(
        store or create_store(app_settings),
        audit_logger=audit_logger,
        default_profile=app_settings.default_profile,
    )
    return directory, audit_logger


def open_ledger(directory: ProfileDirectory, profile: Optional[str] = None) -> ProfileLedger:
    """Ledger for profile, or for the currently selected profile."""
    profile = profile or directory.current_profile()
    return ProfileLedger(profile, directory.repository, AuditLogger(profile))
