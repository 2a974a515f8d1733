import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bookkeeper.core.exceptions import ConflictException, ForbiddenException
from bookkeeper.core.permissions import Permission
from bookkeeper.models.audit_event import AuditEvent
from bookkeeper.models.audit_log import AuditAction
from bookkeeper.models.membership import Membership
from bookkeeper.models.organization import Organization
from bookkeeper.models.role import OrganizationRole
from bookkeeper.models.user import User
from bookkeeper.repositories.membership_repository import MembershipRepository
from bookkeeper.repositories.organization_repository import OrganizationRepository
from bookkeeper.schemas.organization_schemas import OrganizationCreate, OrganizationUpdate
from bookkeeper.services.audit_recorder import AuditLogRecorder
from bookkeeper.services.membership_service import MembershipService

logger = logging.getLogger(__name__)

NAME_TAKEN = "An organization with this name already exists"


class OrganizationService:
    """Service layer for organization management business logic"""

    def __init__(self, db: Session, recorder: AuditLogRecorder | None = None):
        self.db = db
        self.organization_repo = OrganizationRepository(db)
        self.membership_repo = MembershipRepository(db)
        self.recorder = recorder or AuditLogRecorder(db)
        self.memberships = MembershipService(db, self.recorder)

    def create_organization(self, data: OrganizationCreate, user: User) -> Organization:
        """
        Create an organization with the caller as its OWNER.

        The organization and the owner membership are committed together.

        Args:
            data: Name and currency
            user: Founding user

        Returns:
            Created organization

        Raises:
            ConflictException: If the name is taken
        """
        if self.organization_repo.get_by_name(data.name):
            raise ConflictException(NAME_TAKEN)

        try:
            organization = self.organization_repo.create_no_commit(
                Organization(name=data.name, currency=data.currency, created_by=user.id)
            )
            membership = self.membership_repo.create_no_commit(
                Membership(
                    organization_id=organization.id,
                    user_id=user.id,
                    role=OrganizationRole.OWNER,
                )
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictException(NAME_TAKEN)

        self.db.refresh(organization)
        logger.info("Organization %s created by user %s", organization.id, user.id)

        self.recorder.record(
            AuditEvent(
                organization_id=organization.id,
                user_id=user.id,
                action=AuditAction.CREATE,
                table_name="organizations",
                record_id=organization.id,
                new_values={"name": organization.name, "currency": organization.currency},
            )
        )
        self.recorder.record(
            AuditEvent(
                organization_id=organization.id,
                user_id=user.id,
                action=AuditAction.CREATE,
                table_name="memberships",
                record_id=membership.id,
                new_values=membership.snapshot(),
            )
        )
        return organization

    def list_user_organizations(self, user: User) -> list[dict]:
        """
        List all organizations that a user belongs to.

        Args:
            user: Authenticated user

        Returns:
            List of organizations with user's role in each
        """
        result = []
        for membership in self.membership_repo.get_user_memberships(user.id):
            organization = membership.organization
            result.append(
                {
                    "id": organization.id,
                    "name": organization.name,
                    "currency": organization.currency,
                    "role": membership.role,
                    "created_at": organization.created_at,
                    "updated_at": organization.updated_at,
                }
            )
        return result

    def get_organization(self, organization_id: int, user: User) -> Organization:
        """Get organization details (any member)"""
        context = self.memberships.require_permission(
            user, organization_id, Permission.VIEW_ORGANIZATION
        )
        return context.organization

    def update_organization(
        self, organization_id: int, data: OrganizationUpdate, user: User
    ) -> Organization:
        """
        Rename an organization (OWNER only).

        Raises:
            ForbiddenException: If user is not OWNER
            ConflictException: If the new name is taken
        """
        context = self.memberships.get_context(user, organization_id)
        if not context.can(Permission.MANAGE_ORGANIZATION):
            raise ForbiddenException("Only owner can update organization details")

        organization = context.organization
        existing = self.organization_repo.get_by_name(data.name)
        if existing and existing.id != organization.id:
            raise ConflictException(NAME_TAKEN)

        old_name = organization.name
        organization.name = data.name
        try:
            organization = self.organization_repo.update(organization)
        except IntegrityError:
            self.db.rollback()
            raise ConflictException(NAME_TAKEN)

        self.recorder.record(
            AuditEvent(
                organization_id=organization.id,
                user_id=user.id,
                action=AuditAction.UPDATE,
                table_name="organizations",
                record_id=organization.id,
                old_values={"name": old_name},
                new_values={"name": organization.name},
            )
        )
        return organization
