"""
Audit Models for Expense Tracker

Every mutation of a profile and every importer or OCR outcome is recorded as
an AuditEvent. Events are written to the structured log; they are append-only
and never edited.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Grouped by the part of the app that raises them.
    """
    # Profiles
    PROFILE_CREATED = "profile_created"
    PROFILE_DELETED = "profile_deleted"
    PROFILE_RENAMED = "profile_renamed"
    PROFILE_SELECTED = "profile_selected"

    # Snapshot persistence
    SNAPSHOT_SAVED = "snapshot_saved"
    SNAPSHOT_CORRUPT = "snapshot_corrupt"
    SNAPSHOT_RESET = "snapshot_reset"
    SAVE_FAILED = "save_failed"

    # Manual entry
    RECORD_ADDED = "record_added"
    RECORD_UPDATED = "record_updated"
    RECORD_REMOVED = "record_removed"
    ENTRY_IGNORED = "entry_ignored"
    MEMBER_REMOVED = "member_removed"

    # Import / export
    BACKUP_EXPORTED = "backup_exported"
    BACKUP_RESTORED = "backup_restored"
    BACKUP_REJECTED = "backup_rejected"
    CSV_IMPORTED = "csv_imported"
    CSV_IMPORT_FAILED = "csv_import_failed"

    # Receipt scanning
    RECEIPT_SCAN_STARTED = "receipt_scan_started"
    RECEIPT_SCANNED = "receipt_scanned"
    RECEIPT_SCAN_SUPERSEDED = "receipt_scan_superseded"

    # Reminders
    REMINDER_SENT = "reminder_sent"
    REMINDER_FAILED = "reminder_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - which profile and which record is this about?
    profile: Optional[str] = Field(
        default=None,
        description="Profile the event belongs to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'income', 'expense', 'budget')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one receipt scan)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "profile": self.profile,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_added("Default", "expense", expense.id)
        event = AuditEventBuilder.csv_imported("Default", 12, 3, correlation_id)
    """

    @staticmethod
    def profile_changed(
        event_type: AuditEventType,
        profile: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            profile=profile,
            entity_type="profile",
            description=f"Profile {event_type.value.split('_', 1)[1]}: {profile}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def snapshot_saved(profile: str, version: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_SAVED,
            severity=AuditSeverity.DEBUG,
            profile=profile,
            entity_type="snapshot",
            description=f"Snapshot saved for {profile}",
            details={"version": version},
        )

    @staticmethod
    def snapshot_corrupt(profile: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_CORRUPT,
            severity=AuditSeverity.WARNING,
            profile=profile,
            entity_type="snapshot",
            description=f"Stored snapshot for {profile} is unreadable; using defaults",
            error_message=error_message,
        )

    @staticmethod
    def save_failed(profile: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            profile=profile,
            entity_type="snapshot",
            description=f"Could not save snapshot for {profile}",
            error_message=error_message,
        )

    @staticmethod
    def record_added(
        profile: str,
        entity_type: str,
        entity_id: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_ADDED,
            profile=profile,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} added",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def record_updated(profile: str, entity_type: str, entity_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            profile=profile,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} updated",
            is_user_action=True,
        )

    @staticmethod
    def record_removed(profile: str, entity_type: str, entity_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_REMOVED,
            profile=profile,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} removed",
            is_user_action=True,
        )

    @staticmethod
    def entry_ignored(profile: str, entity_type: str, reasons: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_IGNORED,
            severity=AuditSeverity.DEBUG,
            profile=profile,
            entity_type=entity_type,
            description=f"Invalid {entity_type} entry ignored",
            details={"reasons": reasons},
            is_user_action=True,
        )

    @staticmethod
    def member_removed(profile: str, member: str, reassigned: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMBER_REMOVED,
            profile=profile,
            entity_type="family_member",
            entity_id=member,
            description=f"Family member {member} removed; {reassigned} expenses reassigned",
            details={"reassigned_expenses": reassigned},
            is_user_action=True,
        )

    @staticmethod
    def backup_restored(profile: str, expense_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_RESTORED,
            profile=profile,
            entity_type="snapshot",
            description=f"Backup restored into {profile}",
            details={"expenses": expense_count},
            is_user_action=True,
        )

    @staticmethod
    def backup_rejected(profile: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_REJECTED,
            severity=AuditSeverity.WARNING,
            profile=profile,
            entity_type="snapshot",
            description="Backup file rejected",
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def csv_imported(
        profile: str,
        imported: int,
        skipped: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_IMPORTED,
            profile=profile,
            entity_type="expense",
            correlation_id=correlation_id,
            description=f"Imported {imported} bank transactions",
            details={"imported": imported, "skipped": skipped},
            is_user_action=True,
        )

    @staticmethod
    def csv_import_failed(
        profile: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_IMPORT_FAILED,
            severity=AuditSeverity.WARNING,
            profile=profile,
            correlation_id=correlation_id,
            description="Bank statement could not be imported",
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def receipt_scan(
        event_type: AuditEventType,
        token: int,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            severity=(
                AuditSeverity.WARNING
                if event_type == AuditEventType.RECEIPT_SCAN_SUPERSEDED
                else AuditSeverity.INFO
            ),
            entity_type="receipt",
            correlation_id=correlation_id,
            description=f"Receipt scan #{token}: {event_type.value.replace('_', ' ')}",
            details={"token": token, **(details or {})},
        )

    @staticmethod
    def reminder_sent(profile: str, expense_id: str, title: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDER_SENT,
            profile=profile,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Reminder sent: {title}",
        )

    @staticmethod
    def reminder_failed(profile: str, expense_id: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDER_FAILED,
            severity=AuditSeverity.WARNING,
            profile=profile,
            entity_type="expense",
            entity_id=expense_id,
            description="Reminder could not be delivered",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
