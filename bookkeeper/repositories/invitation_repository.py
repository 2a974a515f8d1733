"""Repository for Invitation model operations."""

from datetime import datetime

from sqlalchemy import case, func, update
from sqlalchemy.orm import Session

from bookkeeper.models.invitation import Invitation


class InvitationRepository:
    """Repository for Invitation data access"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, invitation_id: int) -> Invitation | None:
        """Get invitation by ID"""
        return self.db.query(Invitation).filter(Invitation.id == invitation_id).first()

    def get_by_code(self, code: str) -> Invitation | None:
        """Get invitation by its code"""
        return self.db.query(Invitation).filter(Invitation.code == code).first()

    def code_exists(self, code: str) -> bool:
        """Check whether any invitation (used or not) already carries code"""
        return self.db.query(Invitation.id).filter(Invitation.code == code).first() is not None

    def get_by_organization(self, organization_id: int) -> list[Invitation]:
        """Get all invitations for an organization, newest first"""
        return (
            self.db.query(Invitation)
            .filter(Invitation.organization_id == organization_id)
            .order_by(Invitation.created_at.desc(), Invitation.id.desc())
            .all()
        )

    def get_pending_for_email(
        self, organization_id: int, email: str, now: datetime
    ) -> Invitation | None:
        """
        Get the unused, unexpired invitation for (organization, email), if any.

        Args:
            organization_id: Organization ID
            email: Invitee email (compared case-insensitively)
            now: Reference time for expiry

        Returns:
            Pending Invitation or None
        """
        return (
            self.db.query(Invitation)
            .filter(
                Invitation.organization_id == organization_id,
                func.lower(Invitation.email) == email.strip().lower(),
                Invitation.used_at.is_(None),
                Invitation.expires_at >= now,
            )
            .first()
        )

    def create(self, invitation: Invitation) -> Invitation:
        """
        Create a new invitation.

        Raises:
            IntegrityError: If the code collides with an existing invitation
        """
        self.db.add(invitation)
        self.db.commit()
        self.db.refresh(invitation)
        return invitation

    def update(self, invitation: Invitation) -> Invitation:
        """Update an invitation"""
        self.db.commit()
        self.db.refresh(invitation)
        return invitation

    def delete(self, invitation: Invitation) -> None:
        """Delete an invitation"""
        self.db.delete(invitation)
        self.db.commit()

    def claim(self, invitation_id: int, now: datetime) -> bool:
        """
        Mark an invitation used if, and only if, it is still unused.

        Single conditional UPDATE; does not commit. Of two concurrent
        claims on the same row exactly one sees a row count of 1.

        Args:
            invitation_id: Invitation ID
            now: Timestamp to store in used_at

        Returns:
            True if this call claimed the invitation
        """
        result = self.db.execute(
            update(Invitation)
            .where(Invitation.id == invitation_id, Invitation.used_at.is_(None))
            .values(used_at=now)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1

    def count_expired_unused_by_organization(self, cutoff: datetime) -> dict[int, int]:
        """Count unused invitations that expired before cutoff, per organization"""
        rows = (
            self.db.query(Invitation.organization_id, func.count(Invitation.id))
            .filter(Invitation.used_at.is_(None), Invitation.expires_at < cutoff)
            .group_by(Invitation.organization_id)
            .all()
        )
        return {organization_id: count for organization_id, count in rows}

    def delete_expired_unused(self, cutoff: datetime) -> int:
        """
        Delete unused invitations that expired before cutoff.

        Used invitations are never touched.

        Returns:
            Number of deleted rows
        """
        deleted = (
            self.db.query(Invitation)
            .filter(Invitation.used_at.is_(None), Invitation.expires_at < cutoff)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted

    def count_by_status(
        self, now: datetime, organization_id: int | None = None
    ) -> dict[str, int]:
        """
        Count invitations by derived status.

        Args:
            now: Reference time for expiry
            organization_id: Optional organization filter

        Returns:
            Dict with total, accepted, pending and expired counts
        """
        unused = Invitation.used_at.is_(None)
        query = self.db.query(
            func.count(Invitation.id),
            func.sum(case((Invitation.used_at.is_not(None), 1), else_=0)),
            func.sum(case((unused & (Invitation.expires_at >= now), 1), else_=0)),
            func.sum(case((unused & (Invitation.expires_at < now), 1), else_=0)),
        )
        if organization_id is not None:
            query = query.filter(Invitation.organization_id == organization_id)

        total, accepted, pending, expired = query.one()
        return {
            "total": total or 0,
            "accepted": int(accepted or 0),
            "pending": int(pending or 0),
            "expired": int(expired or 0),
        }
