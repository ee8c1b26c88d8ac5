"""Reminder notification package."""

from expense_tracker.services.notifications.reminders import (
    LoggingReminderNotifier,
    NotificationError,
    ReminderNotifier,
    WebhookReminderNotifier,
    create_notifier,
    due_reminders,
    reminder_payload,
)

__all__ = [
    "LoggingReminderNotifier",
    "NotificationError",
    "ReminderNotifier",
    "WebhookReminderNotifier",
    "create_notifier",
    "due_reminders",
    "reminder_payload",
]
