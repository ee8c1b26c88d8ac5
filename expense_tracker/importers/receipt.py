"""
Receipt Field Extractor

Pulls an amount and a category guess out of OCR text.

This is a SUGGESTION only: the fields prefill the expense form and the user
edits them before saving. Simple rules, first match wins:

- amount: the first currency-like number in the text
- category: the first keyword rule that matches, case-insensitively
"""

import re
from typing import Optional

from pydantic import BaseModel


AMOUNT_PATTERN = re.compile(
    r"(?:₹|rs\.?|inr|\$|€|£)?\s*(\d{1,3}(?:,\d{2,3})*,\d{3}(?:\.\d+)?|\d+(?:[.,]\d+)?)",
    re.IGNORECASE,
)

# "1,250.00" and "1,25,000" use grouping commas; "12,50" is a decimal comma
GROUPED_AMOUNT = re.compile(r"\d{1,3}(?:,\d{2,3})*,\d{3}(?:\.\d+)?")

CATEGORY_RULES: list[tuple[tuple[str, ...], str]] = [
    (("grocery", "supermarket"), "Groceries"),
    (("restaurant", "cafe", "food"), "Food"),
    (("petrol", "fuel"), "Petrol"),
    (("electricity", "bill"), "Utilities"),
]

NO_AMOUNT_MESSAGE = "Could not detect amount. Please enter it manually."


class ReceiptFields(BaseModel):
    """Fields suggested from one scanned receipt."""

    amount: Optional[float] = None
    category: Optional[str] = None
    raw_text: str = ""

    @property
    def amount_detected(self) -> bool:
        return self.amount is not None


def extract_amount(text: str) -> Optional[float]:
    match = AMOUNT_PATTERN.search(text or "")
    if match is None:
        return None
    value = match.group(1)
    if GROUPED_AMOUNT.fullmatch(value):
        return float(value.replace(",", ""))
    return float(value.replace(",", "."))


def guess_category(text: str) -> Optional[str]:
    lowered = (text or "").lower()
    for keywords, category in CATEGORY_RULES:
        if any(keyword in lowered for keyword in keywords):
            return category
    return None


def extract_receipt_fields(text: str) -> ReceiptFields:
    return ReceiptFields(
        amount=extract_amount(text),
        category=guess_category(text),
        raw_text=text or "",
    )
