"""Repository for Organization model operations."""

from sqlalchemy import func
from sqlalchemy.orm import Session
from bookkeeper.models.organization import Organization


class OrganizationRepository:
    """Repository for Organization model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, organization_id: int) -> Organization | None:
        """
        Get organization by ID.

        Args:
            organization_id: Organization ID

        Returns:
            Organization object or None if not found
        """
        return self.db.query(Organization).filter(Organization.id == organization_id).first()

    def get_by_name(self, name: str) -> Organization | None:
        """Get organization by name (case-insensitive)"""
        return (
            self.db.query(Organization)
            .filter(func.lower(Organization.name) == name.strip().lower())
            .first()
        )

    def create_no_commit(self, organization: Organization) -> Organization:
        """
        Add organization and flush to assign its ID.

        Caller commits, so the organization and its owner membership land in
        one transaction.
        """
        self.db.add(organization)
        self.db.flush()
        return organization

    def update(self, organization: Organization) -> Organization:
        """
        Update an existing organization.

        Args:
            organization: Organization object with updated fields

        Returns:
            Updated Organization object
        """
        self.db.commit()
        self.db.refresh(organization)
        return organization
