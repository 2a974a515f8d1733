from sqlalchemy.orm import Session

from bookkeeper.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
)
from bookkeeper.core.permissions import (
    ManagementAction,
    Permission,
    can_assign_role,
    can_manage,
    check_permission,
    required_role_for,
)
from bookkeeper.models.audit_event import AuditEvent
from bookkeeper.models.audit_log import AuditAction
from bookkeeper.models.membership import Membership
from bookkeeper.models.organization_context import OrganizationContext
from bookkeeper.models.role import OrganizationRole
from bookkeeper.models.user import User
from bookkeeper.repositories.membership_repository import MembershipRepository
from bookkeeper.repositories.organization_repository import OrganizationRepository
from bookkeeper.services.audit_recorder import AuditLogRecorder

NOT_A_MEMBER = "You are not a member of this organization"


class MembershipService:
    """Service layer for the membership registry"""

    def __init__(self, db: Session, recorder: AuditLogRecorder | None = None):
        self.db = db
        self.membership_repo = MembershipRepository(db)
        self.organization_repo = OrganizationRepository(db)
        self.recorder = recorder or AuditLogRecorder(db)

    def get_context(self, user: User, organization_id: int) -> OrganizationContext:
        """
        Resolve the caller's context in an organization.

        Unknown organizations and non-members get the same 403 so that
        organization ids cannot be probed.

        Raises:
            ForbiddenException: If the user is not a member
        """
        organization = self.organization_repo.get_by_id(organization_id)
        if not organization:
            raise ForbiddenException(NOT_A_MEMBER)

        membership = self.membership_repo.get_membership(user.id, organization_id)
        if not membership:
            raise ForbiddenException(NOT_A_MEMBER)

        return OrganizationContext(user=user, organization=organization, membership=membership)

    def require_permission(
        self,
        user: User,
        organization_id: int,
        permission: Permission,
        message: str | None = None,
    ) -> OrganizationContext:
        """
        Resolve the caller's context and check a named permission.

        Raises:
            ForbiddenException: If not a member or the role is insufficient
        """
        context = self.get_context(user, organization_id)
        if not context.can(permission):
            required = required_role_for(permission).value
            raise ForbiddenException(message or f"Requires {required} role or higher")
        return context

    def member_view(self, membership: Membership, with_organization: bool = False) -> dict:
        """Membership enriched with the member's identity"""
        user = membership.user
        view = {
            "id": membership.id,
            "organization_id": membership.organization_id,
            "user_id": membership.user_id,
            "auth_user_id": user.auth_user_id if user else "unknown",
            "email": user.email if user else None,
            "role": membership.role,
            "created_at": membership.created_at,
        }
        if with_organization:
            view["organization"] = membership.organization
        return view

    def list_for_organization(
        self, organization_id: int, user: User, user_id: int | None = None
    ) -> list[dict]:
        """
        List all members of an organization with user details.

        Any member may see fellow members.

        Args:
            organization_id: Organization ID
            user: Acting user
            user_id: Optional restriction to one member
        """
        self.require_permission(user, organization_id, Permission.VIEW_MEMBERS)
        memberships = self.membership_repo.get_organization_members(organization_id)
        return [
            self.member_view(m)
            for m in memberships
            if user_id is None or m.user_id == user_id
        ]

    def list_for_user(self, user: User, target_user_id: int | None = None) -> list[dict]:
        """
        List a user's memberships with their organizations.

        Callers always see their own memberships. Another user's memberships
        are visible only within organizations where the caller is an admin
        or owner.

        Raises:
            ForbiddenException: If the caller administers no organization
        """
        own = self.membership_repo.get_user_memberships(user.id)
        if target_user_id is None or target_user_id == user.id:
            memberships = own
        else:
            managed = [
                m.organization_id
                for m in own
                if check_permission(m.role, Permission.MANAGE_MEMBERS)
            ]
            if not managed:
                raise ForbiddenException(
                    "Only admins and owners can view other users' memberships"
                )
            memberships = self.membership_repo.get_user_memberships(target_user_id, managed)

        return [self.member_view(m, with_organization=True) for m in memberships]

    def _load_target(self, membership_id: int) -> Membership:
        membership = self.membership_repo.get_by_id(membership_id)
        if not membership:
            raise NotFoundException("Membership not found")
        return membership

    def update_role(self, membership_id: int, new_role: OrganizationRole, user: User) -> Membership:
        """
        Change a member's role.

        Order of checks: actor must be admin+ in the target's organization;
        the owner's role is immutable; nobody changes their own role; the
        lattice must allow the actor to manage the target; only the owner
        grants admin.

        Raises:
            NotFoundException: If the membership does not exist
            ForbiddenException: If the lattice denies the change
            ConflictException: If the actor targets their own membership
        """
        target = self._load_target(membership_id)
        context = self.require_permission(
            user,
            target.organization_id,
            Permission.CHANGE_ROLES,
            "Only admins and owners can change member roles",
        )

        if target.role == OrganizationRole.OWNER:
            raise ForbiddenException("Cannot change the owner's role")

        if target.user_id == user.id:
            raise ConflictException("You cannot change your own role")

        if not can_manage(context.role, target.role, ManagementAction.CHANGE_ROLE):
            raise ForbiddenException("Admins can only manage members")

        if not can_assign_role(context.role, new_role):
            raise ForbiddenException("Only the owner can assign the admin role")

        old_role = target.role
        if old_role == new_role:
            return target

        updated = self.membership_repo.update_role(target, new_role)

        self.recorder.record(
            AuditEvent(
                organization_id=updated.organization_id,
                user_id=user.id,
                action=AuditAction.ROLE_CHANGED,
                table_name="memberships",
                record_id=updated.id,
                old_values={"user_id": updated.user_id, "role": old_role.value},
                new_values={"user_id": updated.user_id, "role": new_role.value},
            )
        )
        return updated

    def remove(self, membership_id: int, user: User) -> dict:
        """
        Remove a member from an organization.

        Raises:
            NotFoundException: If the membership does not exist
            ForbiddenException: If the target is the owner or the lattice denies it
            ConflictException: If the actor targets their own membership
        """
        target = self._load_target(membership_id)
        context = self.require_permission(
            user,
            target.organization_id,
            Permission.REMOVE_MEMBERS,
            "Only admins and owners can remove members",
        )

        if target.role == OrganizationRole.OWNER:
            raise ForbiddenException("Cannot remove the owner from the organization")

        if target.user_id == user.id:
            raise ConflictException("You cannot remove yourself from the organization")

        if not can_manage(context.role, target.role, ManagementAction.REMOVE):
            raise ForbiddenException("Only the owner can remove administrators")

        snapshot = target.snapshot()
        organization_id, record_id = target.organization_id, target.id
        self.membership_repo.delete(target)

        self.recorder.record(
            AuditEvent(
                organization_id=organization_id,
                user_id=user.id,
                action=AuditAction.DELETE,
                table_name="memberships",
                record_id=record_id,
                old_values=snapshot,
            )
        )
        return {"id": record_id, **snapshot}

    def validate_permissions(
        self,
        user: User,
        organization_id: int,
        permissions: list[Permission] | None = None,
        target_user_id: int | None = None,
        action: ManagementAction | None = None,
    ) -> dict:
        """
        Evaluate named permissions and, optionally, management of a target
        user for the caller.

        Returns:
            Dict with permissions map, caller role and, when a target and
            action are given, can_manage_target and management_reason
        """
        context = self.require_permission(user, organization_id, Permission.VIEW_ORGANIZATION)

        result = {
            "permissions": {p.value: context.can(p) for p in permissions or []},
            "user_role": context.role,
        }

        if target_user_id is not None and action is not None:
            allowed, reason = self._evaluate_target(context, target_user_id, action)
            result["permissions"][f"can_{action.value}_{target_user_id}"] = allowed
            result["can_manage_target"] = allowed
            result["management_reason"] = reason

        return result

    def _evaluate_target(
        self, context: OrganizationContext, target_user_id: int, action: ManagementAction
    ) -> tuple[bool, str | None]:
        target = self.membership_repo.get_membership(target_user_id, context.organization.id)
        is_self = target_user_id == context.user.id

        if action == ManagementAction.INVITE:
            if target is not None:
                return False, "User is already a member of this organization"
            allowed = can_manage(context.role, OrganizationRole.MEMBER, action)
            return allowed, None if allowed else "Only admins and owners can invite"

        if target is None:
            return False, "User is not a member of this organization"

        if can_manage(context.role, target.role, action, is_self=is_self):
            return True, None
        if is_self:
            return False, "You cannot manage your own membership"
        if target.role == OrganizationRole.OWNER:
            return False, "The owner cannot be managed"
        return False, "Insufficient role to manage this member"
