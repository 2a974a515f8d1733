"""Organization context for request authorization."""

from dataclasses import dataclass
from bookkeeper.core.permissions import Permission, check_permission
from bookkeeper.models.user import User
from bookkeeper.models.organization import Organization
from bookkeeper.models.membership import Membership
from bookkeeper.models.role import OrganizationRole


@dataclass
class OrganizationContext:
    """
    Complete organization context for request authorization.

    Contains the acting user, the organization being accessed and the
    user's membership in it, verified against the database. Every
    permission check goes through core.permissions so the role lattice has
    a single source of truth.

    Attributes:
        user: The authenticated User object
        organization: The Organization the user is accessing
        membership: The user's membership row in this organization
    """

    user: User
    organization: Organization
    membership: Membership

    @property
    def role(self) -> OrganizationRole:
        return self.membership.role

    def can(self, permission: Permission) -> bool:
        """Check a named permission against the static permission table."""
        return check_permission(self.role, permission)

    def __repr__(self) -> str:
        return (
            f"<OrganizationContext(user_id={self.user.id}, "
            f"organization_id={self.organization.id}, role={self.role.value})>"
        )
