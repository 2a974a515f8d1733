"""
Permission evaluator for the organization role lattice.

Pure, storage-agnostic decisions over the ordinal role scale
MEMBER (1) < ADMIN (2) < OWNER (3). Every component asks these functions;
nothing else compares roles directly. Denials are booleans - callers turn a
False into ForbiddenException at the service boundary.
"""

from enum import Enum as PyEnum

from bookkeeper.models.role import OrganizationRole


class ManagementAction(str, PyEnum):
    """Actions an actor can take against another member"""

    CHANGE_ROLE = "change_role"
    REMOVE = "remove"
    INVITE = "invite"


class Permission(str, PyEnum):
    """Named organization-level permissions"""

    VIEW_ORGANIZATION = "view_organization"
    VIEW_MEMBERS = "view_members"
    VIEW_AUDIT_LOGS = "view_audit_logs"
    RECORD_AUDIT_EVENT = "record_audit_event"
    MANAGE_MEMBERS = "manage_members"
    INVITE_USERS = "invite_users"
    REMOVE_MEMBERS = "remove_members"
    CHANGE_ROLES = "change_roles"
    MANAGE_ADMINS = "manage_admins"
    MANAGE_ORGANIZATION = "manage_organization"


# Minimum role for each permission
PERMISSION_REQUIREMENTS: dict[Permission, OrganizationRole] = {
    Permission.VIEW_ORGANIZATION: OrganizationRole.MEMBER,
    Permission.VIEW_MEMBERS: OrganizationRole.MEMBER,
    Permission.VIEW_AUDIT_LOGS: OrganizationRole.MEMBER,
    Permission.RECORD_AUDIT_EVENT: OrganizationRole.MEMBER,
    Permission.MANAGE_MEMBERS: OrganizationRole.ADMIN,
    Permission.INVITE_USERS: OrganizationRole.ADMIN,
    Permission.REMOVE_MEMBERS: OrganizationRole.ADMIN,
    Permission.CHANGE_ROLES: OrganizationRole.ADMIN,
    Permission.MANAGE_ADMINS: OrganizationRole.OWNER,
    Permission.MANAGE_ORGANIZATION: OrganizationRole.OWNER,
}


def ordinal(role: OrganizationRole) -> int:
    """Position of a role on the ordinal scale"""
    return OrganizationRole(role).ordinal


def has_role(actor_role: OrganizationRole, required_role: OrganizationRole) -> bool:
    """
    Check if actor_role meets or exceeds required_role.

    Args:
        actor_role: Role of the acting user
        required_role: Minimum role required for the operation

    Returns:
        True if ordinal(actor_role) >= ordinal(required_role)
    """
    return ordinal(actor_role) >= ordinal(required_role)


def required_role_for(permission: Permission) -> OrganizationRole:
    """Minimum role for a named permission"""
    return PERMISSION_REQUIREMENTS[Permission(permission)]


def check_permission(actor_role: OrganizationRole, permission: Permission) -> bool:
    """Check a named permission against the static permission table"""
    return has_role(actor_role, required_role_for(permission))


def can_manage(
    actor_role: OrganizationRole,
    target_role: OrganizationRole | None,
    action: ManagementAction,
    *,
    is_self: bool = False,
) -> bool:
    """
    Decide whether an actor may act on a target member.

    For INVITE, target_role is the role the invitation would grant.

    Rules:
    - Nobody changes their own role or removes themselves
    - OWNER may act on admins and members, never change_role/remove another
      owner; may always invite
    - ADMIN may change_role/remove members only, and may invite members
      only (admin invitations are owner-only)
    - MEMBER may do nothing

    Args:
        actor_role: Role of the acting user
        target_role: Current role of the target (or invited role)
        action: The management action requested
        is_self: True when the actor targets their own membership

    Returns:
        True if the action is allowed
    """
    action = ManagementAction(action)

    if is_self and action in (ManagementAction.CHANGE_ROLE, ManagementAction.REMOVE):
        return False

    actor_role = OrganizationRole(actor_role)

    if actor_role == OrganizationRole.OWNER:
        if action == ManagementAction.INVITE:
            return True
        return target_role != OrganizationRole.OWNER

    if actor_role == OrganizationRole.ADMIN:
        return target_role == OrganizationRole.MEMBER

    return False


def can_assign_role(actor_role: OrganizationRole, new_role: OrganizationRole) -> bool:
    """
    Check whether an actor may grant new_role through an invitation or a
    role change.

    Only an owner may produce an admin; nobody produces an owner.
    """
    new_role = OrganizationRole(new_role)
    if new_role == OrganizationRole.OWNER:
        return False
    if new_role == OrganizationRole.ADMIN:
        return OrganizationRole(actor_role) == OrganizationRole.OWNER
    return has_role(actor_role, OrganizationRole.ADMIN)
