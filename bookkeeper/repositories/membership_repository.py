"""Repository for Membership model operations."""

from sqlalchemy.orm import Session
from bookkeeper.models.membership import Membership
from bookkeeper.models.role import OrganizationRole


class MembershipRepository:
    """Repository for Membership model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, membership_id: int) -> Membership | None:
        """Get membership by ID"""
        return self.db.query(Membership).filter(Membership.id == membership_id).first()

    def get_membership(self, user_id: int, organization_id: int) -> Membership | None:
        """
        Get membership for a specific user in a specific organization.

        Args:
            user_id: User ID
            organization_id: Organization ID

        Returns:
            Membership object or None if not found
        """
        return (
            self.db.query(Membership)
            .filter(
                Membership.user_id == user_id,
                Membership.organization_id == organization_id,
            )
            .first()
        )

    def get_organization_members(self, organization_id: int) -> list[Membership]:
        """
        Get all memberships for an organization, oldest first.

        Args:
            organization_id: Organization ID

        Returns:
            List of Membership objects for the organization
        """
        return (
            self.db.query(Membership)
            .filter(Membership.organization_id == organization_id)
            .order_by(Membership.created_at.asc(), Membership.id.asc())
            .all()
        )

    def get_user_memberships(
        self, user_id: int, organization_ids: list[int] | None = None
    ) -> list[Membership]:
        """
        Get all memberships for a user (all organizations they belong to).

        Args:
            user_id: User ID
            organization_ids: Optional restriction to these organizations

        Returns:
            List of Membership objects for the user, newest first
        """
        query = self.db.query(Membership).filter(Membership.user_id == user_id)
        if organization_ids is not None:
            query = query.filter(Membership.organization_id.in_(organization_ids))
        return query.order_by(Membership.created_at.desc(), Membership.id.desc()).all()

    def create_no_commit(self, membership: Membership) -> Membership:
        """Add membership and flush without committing (for atomic ops)"""
        self.db.add(membership)
        self.db.flush()
        return membership

    def update_role(self, membership: Membership, new_role: OrganizationRole) -> Membership:
        """
        Update a member's role.

        Args:
            membership: Membership object to update
            new_role: New role to assign

        Returns:
            Updated Membership object
        """
        membership.role = new_role
        self.db.commit()
        self.db.refresh(membership)
        return membership

    def delete(self, membership: Membership) -> None:
        """
        Remove a user from an organization.

        Args:
            membership: Membership object to delete
        """
        self.db.delete(membership)
        self.db.commit()
