"""
Bank Statement CSV Importer

Turns a bank's CSV export into draft ExpenseRecords.

Banks name their columns differently, so each field is looked up through a
list of aliases and the first non-empty one wins. Only debit-like rows
(card payments, ATM withdrawals, transfers out) become expenses; credits and
anything unreadable are skipped without complaint.

Every imported expense lands in "Other", recurs monthly and belongs to "Me".
The user re-categorises afterwards.
"""

import csv
import math
import re
from io import StringIO
from typing import Optional, Union

from pydantic import BaseModel, Field

from expense_tracker.models.finance import IMPORT_CATEGORY, SELF_MEMBER, ExpenseRecord


DATE_COLUMNS = ("Date", "Transaction Date")
DESCRIPTION_COLUMNS = ("Description", "Narration", "Transaction Description")
AMOUNT_COLUMNS = ("Amount", "Debit Amount", "Withdrawal", "Debit")
TYPE_COLUMNS = ("Type", "Transaction Type", "Mode")

DEBIT_MARKERS = ("debit", "withdrawal", "payment", "pos", "atm")

DEFAULT_TITLE = "Imported transaction"

_CURRENCY_NOISE = re.compile(r"(₹|rs\.?|inr|\$|€|£|,|\s)", re.IGNORECASE)
_DATE_SEPARATORS = re.compile(r"[-/]")


class CSVImportError(Exception):
    """The file could not be read as CSV at all."""
    pass


class CSVImportResult(BaseModel):
    """Outcome of one statement import."""

    expenses: list[ExpenseRecord] = Field(default_factory=list)
    total_rows: int = 0
    skipped_rows: int = 0

    @property
    def imported_count(self) -> int:
        return len(self.expenses)


def _first_value(row: dict[str, str], aliases: tuple[str, ...]) -> str:
    for alias in aliases:
        value = row.get(alias)
        if value is not None and value.strip():
            return value.strip()
    return ""


def parse_amount(value: str) -> Optional[float]:
    """
    Parse a statement amount such as "1,200.50", "₹ 300" or "(45.00)".

    Returns None when the value is empty or not a number.
    """
    clean = _CURRENCY_NOISE.sub("", value or "")
    negative = clean.startswith("(") and clean.endswith(")")
    clean = clean.strip("()")
    if not clean:
        return None
    try:
        amount = float(clean)
    except ValueError:
        return None
    if not math.isfinite(amount):
        return None
    return -amount if negative else amount


def parse_statement_month(value: str, fallback_month: str) -> str:
    """
    Reduce a statement date to "YYYY-MM".

    The date must have three parts separated by "-" or "/". A four-digit
    first part means year-first (2024-03-15). Otherwise a first part above
    12 can only be a day (15/03/2024); anything else is read month-first
    (03/15/2024). Two-digit years are taken as 20YY. Whatever can't be read
    falls back to fallback_month.
    """
    text = (value or "").strip().split(" ")[0]
    parts = _DATE_SEPARATORS.split(text)
    if len(parts) != 3:
        return fallback_month
    try:
        first, second, third = (int(part) for part in parts)
    except ValueError:
        return fallback_month

    if len(parts[0]) == 4:
        year, month = first, second
    elif first > 12:
        month, year = second, third
    else:
        month, year = first, third

    if year < 100:
        year += 2000
    if not 1 <= month <= 12:
        return fallback_month
    return f"{year:04d}-{month:02d}"


def is_debit(type_value: str) -> bool:
    lowered = type_value.lower()
    return any(marker in lowered for marker in DEBIT_MARKERS)


def _row_to_expense(row: dict[str, str], fallback_month: str) -> Optional[ExpenseRecord]:
    amount = parse_amount(_first_value(row, AMOUNT_COLUMNS))
    if not amount:
        return None
    if not is_debit(_first_value(row, TYPE_COLUMNS)):
        return None

    return ExpenseRecord(
        title=(_first_value(row, DESCRIPTION_COLUMNS) or DEFAULT_TITLE)[:200],
        amount=abs(amount),
        category=IMPORT_CATEGORY,
        freq_months=1,
        start_month=parse_statement_month(_first_value(row, DATE_COLUMNS), fallback_month),
        person=SELF_MEMBER,
    )


def parse_bank_csv(content: Union[str, bytes], fallback_month: str) -> CSVImportResult:
    """
    Parse a bank statement into draft expenses.

    Args:
        content: The CSV file, as text or raw bytes
        fallback_month: Month used for rows whose date can't be read

    Raises:
        CSVImportError: If the content isn't text or has no header row
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise CSVImportError("File is not a UTF-8 text file") from exc

    reader = csv.DictReader(StringIO(content))
    try:
        if not reader.fieldnames:
            raise CSVImportError("File has no header row")

        result = CSVImportResult()
        for raw in reader:
            result.total_rows += 1
            row = {
                key.strip(): (value or "")
                for key, value in raw.items()
                if isinstance(key, str) and isinstance(value, str)
            }
            try:
                expense = _row_to_expense(row, fallback_month)
            except ValueError:
                expense = None
            if expense is None:
                result.skipped_rows += 1
                continue
            result.expenses.append(expense)
    except csv.Error as exc:
        raise CSVImportError(f"Malformed CSV: {exc}") from exc

    return result
