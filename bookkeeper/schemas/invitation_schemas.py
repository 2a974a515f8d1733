import re
from datetime import datetime
from pydantic import Field, field_validator
from bookkeeper.models.invitation import InvitationStatus
from bookkeeper.models.role import OrganizationRole, INVITABLE_ROLES
from bookkeeper.schemas.base import APIModel
from bookkeeper.schemas.organization_schemas import OrganizationSummary

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _invitable_role(value: OrganizationRole) -> OrganizationRole:
    if value not in INVITABLE_ROLES:
        raise ValueError("Invitations can only grant the admin or member role")
    return value


class InvitationCreate(APIModel):
    """Invite an email address to join an organization"""

    organization_id: int = Field(..., gt=0)
    email: str = Field(..., min_length=3, max_length=255)
    role: OrganizationRole = Field(
        default=OrganizationRole.MEMBER, description="Role to grant (default: member)"
    )

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email address")
        return value

    @field_validator("role")
    @classmethod
    def check_role(cls, value: OrganizationRole) -> OrganizationRole:
        return _invitable_role(value)


class InvitationUpdate(APIModel):
    """Change the role a pending invitation grants"""

    role: OrganizationRole

    @field_validator("role")
    @classmethod
    def check_role(cls, value: OrganizationRole) -> OrganizationRole:
        return _invitable_role(value)


class InvitationAccept(APIModel):
    """Accept an invitation by code"""

    code: str = Field(..., min_length=6, max_length=50, pattern=r"^[A-Z0-9\-]+$")

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, value):
        return value.strip().upper() if isinstance(value, str) else value


class InvitationResponse(APIModel):
    """Invitation as seen by organization admins"""

    id: int
    organization_id: int
    email: str
    role: OrganizationRole
    code: str
    status: InvitationStatus
    expires_at: datetime
    used_at: datetime | None = None
    created_by: int | None = None
    created_at: datetime


class InvitationCreateResponse(APIModel):
    """Response after creating an invitation"""

    invitation: InvitationResponse
    message: str


class InvitationListResponse(APIModel):
    """Invitations of an organization, newest first"""

    invitations: list[InvitationResponse]
    total: int


class InvitationDetailsResponse(APIModel):
    """Public invitation summary, looked up by code"""

    id: int
    email: str
    role: OrganizationRole
    code: str
    status: InvitationStatus
    expires_at: datetime
    used_at: datetime | None = None
    created_at: datetime
    organization: OrganizationSummary


class InvitationAcceptResponse(APIModel):
    """Response after accepting an invitation"""

    organization: OrganizationSummary
    membership_id: int
    role: OrganizationRole
    membership_created: bool
    message: str


class InvitationMessageResponse(APIModel):
    """Plain confirmation"""

    message: str


class InvitationStats(APIModel):
    """Counts derived from invitation timestamps"""

    total: int
    accepted: int
    pending: int
    expired: int
    acceptance_rate: int = Field(..., description="Accepted share of total, in percent")


class InvitationStatsResponse(APIModel):
    """Invitation statistics"""

    stats: InvitationStats
    message: str


class InvitationCleanupRequest(APIModel):
    """Options for a scheduled cleanup run"""

    days_old: int = Field(default=30, gt=0, le=3650)


class InvitationCleanupResponse(APIModel):
    """Result of a cleanup run"""

    success: bool
    deleted_count: int
    stats: InvitationStats
    message: str
