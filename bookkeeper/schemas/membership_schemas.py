from datetime import datetime
from typing import Optional
from pydantic import Field, field_validator
from bookkeeper.models.role import OrganizationRole
from bookkeeper.schemas.base import APIModel
from bookkeeper.schemas.organization_schemas import OrganizationSummary


class MembershipResponse(APIModel):
    """
    Membership with member identity details.

    organization is included when listing a user's memberships across
    organizations.
    """

    id: int
    organization_id: int
    user_id: int
    auth_user_id: str
    email: Optional[str] = None
    role: OrganizationRole
    created_at: datetime
    organization: Optional[OrganizationSummary] = None


class MembershipListResponse(APIModel):
    """List of memberships"""

    memberships: list[MembershipResponse]
    total: int


class MembershipRoleUpdate(APIModel):
    """Change a member's role"""

    membership_id: int = Field(..., gt=0)
    role: OrganizationRole = Field(..., description="New role (admin or member)")

    @field_validator("role")
    @classmethod
    def reject_owner(cls, value: OrganizationRole) -> OrganizationRole:
        if value == OrganizationRole.OWNER:
            raise ValueError("The owner role cannot be assigned")
        return value


class MembershipUpdateResponse(APIModel):
    """Response after a role change"""

    membership: MembershipResponse
    message: str


class MembershipRemoveResponse(APIModel):
    """Response after removing a member"""

    message: str
    removed_membership_id: int
    removed_user_id: int
