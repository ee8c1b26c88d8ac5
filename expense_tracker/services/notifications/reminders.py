"""
Expense Reminders

An expense can carry a reminder_date. Once that date has arrived the
reminder is delivered through a ReminderNotifier and the expense is marked
reminder_notified so it is sent only once.

Delivery is pluggable:
- LoggingReminderNotifier writes the reminder to the structured log
  (default when no webhook is configured)
- WebhookReminderNotifier POSTs JSON to an endpoint that sends the email
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

import requests
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_tracker.config.settings import ReminderSettings
from expense_tracker.models.finance import ExpenseRecord, FinanceSnapshot


class NotificationError(Exception):
    """A reminder could not be delivered."""
    pass


def due_reminders(snapshot: FinanceSnapshot, today: date) -> list[ExpenseRecord]:
    """Expenses whose reminder date has arrived and that haven't been notified."""
    return [
        expense
        for expense in snapshot.expenses
        if expense.reminder_date is not None
        and expense.reminder_date <= today
        and not expense.reminder_notified
    ]


def reminder_payload(profile: str, expense: ExpenseRecord) -> dict:
    return {
        "profile": profile,
        "expenseId": expense.id,
        "title": expense.title,
        "amount": expense.amount,
        "category": expense.category,
        "person": expense.person,
        "reminderDate": expense.reminder_date.isoformat() if expense.reminder_date else None,
    }


class ReminderNotifier(ABC):
    """Delivers one reminder."""

    @abstractmethod
    def notify(self, profile: str, expense: ExpenseRecord) -> None:
        """
        Send a reminder for an expense.

        Raises:
            NotificationError: If delivery failed
        """
        pass


class LoggingReminderNotifier(ReminderNotifier):
    """Writes reminders to the log instead of sending them anywhere."""

    def __init__(self):
        self._logger = structlog.get_logger("expense_tracker.reminders")

    def notify(self, profile: str, expense: ExpenseRecord) -> None:
        self._logger.info("expense_reminder", **reminder_payload(profile, expense))


class WebhookReminderNotifier(ReminderNotifier):
    """POSTs each reminder as JSON to a configured webhook."""

    def __init__(
        self,
        settings: ReminderSettings,
        session: Optional[requests.Session] = None,
    ):
        if not settings.webhook_url:
            raise ValueError("WebhookReminderNotifier needs REMINDER_WEBHOOK_URL")
        self._settings = settings
        self._session = session or requests.Session()

    @retry(
        retry=retry_if_exception_type(requests.ConnectionError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _post(self, payload: dict) -> None:
        response = self._session.post(
            self._settings.webhook_url,
            json=payload,
            timeout=self._settings.timeout_secs,
        )
        response.raise_for_status()

    def notify(self, profile: str, expense: ExpenseRecord) -> None:
        try:
            self._post(reminder_payload(profile, expense))
        except requests.RequestException as e:
            raise NotificationError(f"Reminder webhook failed: {e}")


def create_notifier(settings: ReminderSettings) -> ReminderNotifier:
    if settings.webhook_url:
        return WebhookReminderNotifier(settings)
    return LoggingReminderNotifier()
