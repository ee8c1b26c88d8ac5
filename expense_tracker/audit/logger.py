"""
Audit Logger

Every profile mutation, import and OCR call is logged as a structured event.

The audit logger:
- Writes events to the structured (JSON) log
- Never raises into the caller; a logging failure is not a business failure
- Supports correlation IDs to trace the steps of one user action
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Holds the profile name so callers don't have to repeat it; flows that
    switch profiles create a logger per profile with for_profile().
    """

    def __init__(self, profile: Optional[str] = None):
        self._profile = profile
        self._logger = structlog.get_logger("expense_tracker.audit")

    @property
    def profile(self) -> Optional[str]:
        return self._profile

    def for_profile(self, profile: str) -> "AuditLogger":
        return AuditLogger(profile)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be written.
        """
        if event.profile is None and self._profile is not None:
            event = event.model_copy(update={"profile": self._profile})

        try:
            log_dict = event.to_log_dict()
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            return False
        return True

    # Convenience wrappers for the events raised from several places

    def log_record_added(
        self,
        entity_type: str,
        entity_id: str,
        details: Optional[dict] = None,
    ) -> None:
        self.log(AuditEventBuilder.record_added(
            profile=self._profile or "",
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
        ))

    def log_record_updated(self, entity_type: str, entity_id: str) -> None:
        self.log(AuditEventBuilder.record_updated(
            profile=self._profile or "",
            entity_type=entity_type,
            entity_id=entity_id,
        ))

    def log_record_removed(self, entity_type: str, entity_id: str) -> None:
        self.log(AuditEventBuilder.record_removed(
            profile=self._profile or "",
            entity_type=entity_type,
            entity_id=entity_id,
        ))

    def log_entry_ignored(self, entity_type: str, reasons: list[str]) -> None:
        self.log(AuditEventBuilder.entry_ignored(
            profile=self._profile or "",
            entity_type=entity_type,
            reasons=reasons,
        ))

    def log_profile_changed(
        self,
        event_type: AuditEventType,
        profile: str,
        details: Optional[dict] = None,
    ) -> None:
        self.log(AuditEventBuilder.profile_changed(event_type, profile, details))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a receipt scan)
    and pass it through all subsequent operations.
    """
    return uuid4()
