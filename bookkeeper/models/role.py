"""Organization role enum for role-based access control."""

from enum import Enum as PyEnum


class OrganizationRole(str, PyEnum):
    """
    Membership roles on a strict ordinal scale.

    Role Hierarchy (highest to lowest):
    1. OWNER - Founding user; manages admins and the organization itself
    2. ADMIN - Invites members, changes/removes members (never admins or owner)
    3. MEMBER - Reads organization data, cannot manage users

    The owner role is assigned once, at organization creation, and is never
    reassigned or removed through the membership or invitation flows.
    """

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"

    @property
    def ordinal(self) -> int:
        return ROLE_HIERARCHY[self]


ROLE_HIERARCHY: dict[OrganizationRole, int] = {
    OrganizationRole.MEMBER: 1,
    OrganizationRole.ADMIN: 2,
    OrganizationRole.OWNER: 3,
}

# Roles an invitation may carry; invitations never create owners
INVITABLE_ROLES = (OrganizationRole.ADMIN, OrganizationRole.MEMBER)
