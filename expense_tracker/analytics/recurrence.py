"""
Recurrence Normalizer

Every amount is compared on a per-month basis. A yearly insurance premium
of 12000 counts as 1000 a month; a quarterly bill of 900 as 300.

A record counts towards a viewed month when its start month is empty or not
after the viewed month. Months are zero-padded "YYYY-MM" strings, so plain
string comparison orders them correctly.
"""

import math
from typing import Any, Iterable, Protocol


class Recurring(Protocol):
    amount: float
    freq_months: int
    start_month: str


def safe_amount(value: Any) -> float:
    """Amount usable in a sum: negative, non-finite or non-numeric becomes 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def safe_frequency(freq_months: Any) -> float:
    """Recurrence period in months; anything unusable or non-positive becomes 1."""
    try:
        number = float(freq_months)
    except (TypeError, ValueError):
        return 1.0
    if not math.isfinite(number) or number <= 0:
        return 1.0
    return number


def monthly_equivalent(amount: Any, freq_months: Any = 1) -> float:
    """
    Normalize an amount paid once every freq_months months to a monthly rate.

    monthly_equivalent(12000, 12) == 1000.0
    monthly_equivalent(500, 0) == 500.0
    """
    return safe_amount(amount) / safe_frequency(freq_months)


def applies_in_month(start_month: str | None, month: str) -> bool:
    """True if a record starting at start_month is active in month."""
    if not start_month:
        return True
    return start_month <= month


def active_records(records: Iterable[Recurring], month: str) -> list:
    return [r for r in records if applies_in_month(r.start_month, month)]


def monthly_total(records: Iterable[Recurring], month: str) -> float:
    """Sum of the monthly-equivalents of every record active in month."""
    return sum(
        monthly_equivalent(r.amount, r.freq_months)
        for r in records
        if applies_in_month(r.start_month, month)
    )


def months_of_year(month: str) -> list[str]:
    """The twelve "YYYY-MM" months of the year that month belongs to."""
    year = month[:4]
    return [f"{year}-{m:02d}" for m in range(1, 13)]
