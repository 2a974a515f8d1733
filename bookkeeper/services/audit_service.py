import math
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from bookkeeper.core.exceptions import ValidationException
from bookkeeper.core.permissions import Permission
from bookkeeper.models.audit_event import AuditEvent
from bookkeeper.models.audit_log import AuditAction
from bookkeeper.models.base import as_naive_utc
from bookkeeper.models.user import User
from bookkeeper.repositories.audit_log_repository import AuditLogRepository
from bookkeeper.repositories.user_repository import UserRepository
from bookkeeper.services.audit_recorder import AuditLogRecorder
from bookkeeper.services.membership_service import MembershipService

MAX_PAGE_SIZE = 100

# Permission a caller needs to report each client-side action
MANUAL_ACTION_PERMISSIONS = {
    AuditAction.LOGIN: Permission.RECORD_AUDIT_EVENT,
    AuditAction.LOGOUT: Permission.RECORD_AUDIT_EVENT,
    AuditAction.INVITE_SENT: Permission.INVITE_USERS,
    AuditAction.ROLE_CHANGED: Permission.CHANGE_ROLES,
}


class AuditService:
    """Service layer for reading and reporting audit events"""

    def __init__(self, db: Session, recorder: AuditLogRecorder | None = None):
        self.db = db
        self.audit_repo = AuditLogRepository(db)
        self.user_repo = UserRepository(db)
        self.recorder = recorder or AuditLogRecorder(db)
        self.memberships = MembershipService(db, self.recorder)

    def query(
        self,
        organization_id: int,
        user: User,
        action: Optional[AuditAction] = None,
        table_name: Optional[str] = None,
        user_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        """
        Page through an organization's audit trail, newest first.

        Args:
            organization_id: Organization whose trail to read
            user: Acting user (must be a member)
            page: 1-based page number
            limit: Page size, 1 to 100

        Returns:
            Dict with data and pagination

        Raises:
            ForbiddenException: If the caller is not a member
            ValidationException: If paging or the date range is invalid
        """
        if page < 1:
            raise ValidationException("Page must be 1 or greater")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationException(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
        start_date = as_naive_utc(start_date)
        end_date = as_naive_utc(end_date)
        if start_date and end_date and start_date > end_date:
            raise ValidationException("startDate must not be after endDate")

        self.memberships.require_permission(user, organization_id, Permission.VIEW_AUDIT_LOGS)

        entries, total = self.audit_repo.get_with_filters(
            organization_id=organization_id,
            action=action,
            table_name=table_name,
            user_id=user_id,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
            offset=(page - 1) * limit,
        )

        # Resolve actor emails once per distinct user
        emails: dict[int, str | None] = {}
        for entry in entries:
            if entry.user_id is not None and entry.user_id not in emails:
                actor = self.user_repo.get_by_id(entry.user_id)
                emails[entry.user_id] = actor.email if actor else None

        total_pages = math.ceil(total / limit) if total else 0
        return {
            "data": [
                {
                    "id": entry.id,
                    "organization_id": entry.organization_id,
                    "user_id": entry.user_id,
                    "user_email": emails.get(entry.user_id),
                    "action": entry.action,
                    "table_name": entry.table_name,
                    "record_id": entry.record_id,
                    "old_values": entry.old_values,
                    "new_values": entry.new_values,
                    "created_at": entry.created_at,
                }
                for entry in entries
            ],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": total_pages,
                "has_next": page < total_pages,
                "has_prev": page > 1,
            },
        }

    def record_manual(
        self,
        organization_id: int,
        action: AuditAction,
        table_name: str,
        user: User,
        record_id: Optional[int] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Record a client-reported event.

        login/logout need membership; invite_sent and role_changed need
        admin or higher.

        Returns:
            True if the entry was stored

        Raises:
            ValidationException: If action is not client-reportable
            ForbiddenException: If the caller's role is insufficient
        """
        permission = MANUAL_ACTION_PERMISSIONS.get(action)
        if permission is None:
            raise ValidationException(f"Action '{action.value}' cannot be recorded manually")

        self.memberships.require_permission(
            user,
            organization_id,
            permission,
            f"Insufficient role to record '{action.value}' events",
        )

        entry = self.recorder.record(
            AuditEvent(
                organization_id=organization_id,
                user_id=user.id,
                action=action,
                table_name=table_name,
                record_id=record_id,
                new_values=metadata,
            )
        )
        return entry is not None
