"""Repository for AuditLog model operations (insert and read only)."""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from bookkeeper.models.audit_log import AuditLog, AuditAction


class AuditLogRepository:
    """Repository for append-only audit log access"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, entry: AuditLog) -> AuditLog:
        """Append a new audit entry"""
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def get_with_filters(
        self,
        organization_id: int,
        action: Optional[AuditAction] = None,
        table_name: Optional[str] = None,
        user_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[AuditLog], int]:
        """
        Get audit entries with filters, scoped to one organization.

        Args:
            organization_id: Organization ID for isolation
            action: Optional action filter
            table_name: Optional table filter
            user_id: Optional acting user filter
            start_date: Optional lower bound on created_at (inclusive)
            end_date: Optional upper bound on created_at (inclusive)
            limit: Maximum number of results
            offset: Pagination offset

        Returns:
            Tuple of (entries list, total count)
        """
        query = self.db.query(AuditLog).filter(AuditLog.organization_id == organization_id)

        if action is not None:
            query = query.filter(AuditLog.action == action)

        if table_name is not None:
            query = query.filter(AuditLog.table_name == table_name)

        if user_id is not None:
            query = query.filter(AuditLog.user_id == user_id)

        if start_date is not None:
            query = query.filter(AuditLog.created_at >= start_date)

        if end_date is not None:
            query = query.filter(AuditLog.created_at <= end_date)

        # Get total count before pagination
        total = query.count()

        entries = (
            query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )

        return entries, total
