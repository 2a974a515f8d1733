"""Best-effort recorder for audit events."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookkeeper.models.audit_event import AuditEvent
from bookkeeper.models.audit_log import AuditLog
from bookkeeper.repositories.audit_log_repository import AuditLogRepository

logger = logging.getLogger(__name__)


class AuditLogRecorder:
    """
    Appends audit events to the audit_logs table.

    Services call record() after their own write has committed, so the
    audit insert runs in a separate commit. A storage failure is rolled
    back, logged and swallowed: an audit outage never blocks a business
    operation.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = AuditLogRepository(db)

    def record(self, event: AuditEvent) -> AuditLog | None:
        """
        Append one audit entry.

        Args:
            event: The event to persist

        Returns:
            The stored AuditLog, or None if the write failed
        """
        entry = AuditLog(
            organization_id=event.organization_id,
            user_id=event.user_id,
            action=event.action,
            table_name=event.table_name,
            record_id=event.record_id,
            old_values=event.old_values,
            new_values=event.new_values,
        )
        try:
            return self.repo.create(entry)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(
                "Failed to record audit event action=%s table=%s record_id=%s organization_id=%s",
                event.action.value,
                event.table_name,
                event.record_id,
                event.organization_id,
            )
            return None
