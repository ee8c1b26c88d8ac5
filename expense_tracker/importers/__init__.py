"""Importers: bank statements, receipt text and backup files."""

from expense_tracker.importers.backup import (
    BackupFormatError,
    backup_filename,
    export_backup,
    parse_backup,
)
from expense_tracker.importers.bank_csv import (
    CSVImportError,
    CSVImportResult,
    parse_bank_csv,
    parse_statement_month,
)
from expense_tracker.importers.receipt import (
    NO_AMOUNT_MESSAGE,
    ReceiptFields,
    extract_receipt_fields,
)

__all__ = [
    "BackupFormatError",
    "CSVImportError",
    "CSVImportResult",
    "NO_AMOUNT_MESSAGE",
    "ReceiptFields",
    "backup_filename",
    "export_backup",
    "extract_receipt_fields",
    "parse_backup",
    "parse_bank_csv",
    "parse_statement_month",
]
