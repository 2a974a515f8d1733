import itertools

import pytest

from bookkeeper.core.permissions import (
    ManagementAction,
    Permission,
    PERMISSION_REQUIREMENTS,
    can_assign_role,
    can_manage,
    check_permission,
    has_role,
    ordinal,
)
from bookkeeper.models.role import OrganizationRole
from tests.conftest import add_member, auth_header, make_user

OWNER = OrganizationRole.OWNER
ADMIN = OrganizationRole.ADMIN
MEMBER = OrganizationRole.MEMBER
ALL_ROLES = [OWNER, ADMIN, MEMBER]


class TestRoleLattice:
    """Tests for the ordinal role scale"""

    def test_ordinals(self):
        assert ordinal(MEMBER) == 1
        assert ordinal(ADMIN) == 2
        assert ordinal(OWNER) == 3

    @pytest.mark.parametrize("actor,required", list(itertools.product(ALL_ROLES, ALL_ROLES)))
    def test_has_role_matches_ordinal_order(self, actor, required):
        assert has_role(actor, required) == (ordinal(actor) >= ordinal(required))

    def test_has_role_accepts_plain_strings(self):
        assert has_role("owner", "admin")
        assert not has_role("member", "admin")

    def test_every_permission_has_a_requirement(self):
        assert set(PERMISSION_REQUIREMENTS) == set(Permission)

    def test_check_permission(self):
        assert check_permission(MEMBER, Permission.VIEW_AUDIT_LOGS)
        assert not check_permission(MEMBER, Permission.INVITE_USERS)
        assert check_permission(ADMIN, Permission.INVITE_USERS)
        assert not check_permission(ADMIN, Permission.MANAGE_ORGANIZATION)
        assert check_permission(OWNER, Permission.MANAGE_ADMINS)


class TestCanManage:
    """Tests for actor-on-target management decisions"""

    @pytest.mark.parametrize(
        "actor,target,expected",
        [
            (OWNER, OWNER, False),
            (OWNER, ADMIN, True),
            (OWNER, MEMBER, True),
            (ADMIN, OWNER, False),
            (ADMIN, ADMIN, False),
            (ADMIN, MEMBER, True),
            (MEMBER, OWNER, False),
            (MEMBER, ADMIN, False),
            (MEMBER, MEMBER, False),
        ],
    )
    @pytest.mark.parametrize("action", [ManagementAction.CHANGE_ROLE, ManagementAction.REMOVE])
    def test_change_role_and_remove(self, actor, target, expected, action):
        assert can_manage(actor, target, action) is expected

    @pytest.mark.parametrize("actor", ALL_ROLES)
    @pytest.mark.parametrize("action", [ManagementAction.CHANGE_ROLE, ManagementAction.REMOVE])
    def test_self_is_never_managed(self, actor, action):
        assert can_manage(actor, MEMBER, action, is_self=True) is False

    def test_invite(self):
        assert can_manage(OWNER, ADMIN, ManagementAction.INVITE)
        assert can_manage(OWNER, MEMBER, ManagementAction.INVITE)
        assert can_manage(ADMIN, MEMBER, ManagementAction.INVITE)
        assert not can_manage(ADMIN, ADMIN, ManagementAction.INVITE)
        assert not can_manage(MEMBER, MEMBER, ManagementAction.INVITE)

    @pytest.mark.parametrize("target", ALL_ROLES)
    @pytest.mark.parametrize("action", list(ManagementAction))
    def test_member_actor_is_always_denied(self, target, action):
        assert can_manage(MEMBER, target, action) is False


class TestCanAssignRole:
    """Tests for which roles an actor may grant"""

    @pytest.mark.parametrize("actor", ALL_ROLES)
    def test_nobody_grants_owner(self, actor):
        assert can_assign_role(actor, OWNER) is False

    def test_only_owner_grants_admin(self):
        assert can_assign_role(OWNER, ADMIN)
        assert not can_assign_role(ADMIN, ADMIN)
        assert not can_assign_role(MEMBER, ADMIN)

    def test_admin_or_higher_grants_member(self):
        assert can_assign_role(OWNER, MEMBER)
        assert can_assign_role(ADMIN, MEMBER)
        assert not can_assign_role(MEMBER, MEMBER)


class TestValidatePermissionsEndpoint:
    """Tests for POST /api/permissions/validate"""

    def test_member_permissions(self, client, organization, member_membership, member_headers):
        response = client.post(
            "/api/permissions/validate",
            json={
                "organizationId": organization.id,
                "actions": ["view_audit_logs", "invite_users", "manage_organization"],
            },
            headers=member_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["userRole"] == "member"
        assert data["permissions"] == {
            "view_audit_logs": True,
            "invite_users": False,
            "manage_organization": False,
        }
        assert data["canManageTarget"] is None

    def test_admin_can_remove_member(
        self, client, organization, admin_membership, member_membership, admin_headers, member
    ):
        response = client.post(
            "/api/permissions/validate",
            json={"organizationId": organization.id, "targetUserId": member.id, "action": "remove"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["canManageTarget"] is True
        assert data["permissions"][f"can_remove_{member.id}"] is True

    def test_admin_cannot_change_owner(
        self, client, organization, admin_membership, admin_headers, owner
    ):
        response = client.post(
            "/api/permissions/validate",
            json={
                "organizationId": organization.id,
                "targetUserId": owner.id,
                "action": "change_role",
            },
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["canManageTarget"] is False
        assert data["managementReason"] == "The owner cannot be managed"

    def test_self_target_is_denied(self, client, organization, owner_headers, owner):
        response = client.post(
            "/api/permissions/validate",
            json={"organizationId": organization.id, "targetUserId": owner.id, "action": "remove"},
            headers=owner_headers,
        )

        assert response.status_code == 200
        assert response.json()["canManageTarget"] is False

    def test_non_member_is_forbidden(self, client, organization, outsider_headers):
        response = client.post(
            "/api/permissions/validate",
            json={"organizationId": organization.id, "actions": ["view_organization"]},
            headers=outsider_headers,
        )

        assert response.status_code == 403

    def test_unknown_permission_is_rejected(self, client, organization, owner_headers):
        response = client.post(
            "/api/permissions/validate",
            json={"organizationId": organization.id, "actions": ["launch_rockets"]},
            headers=owner_headers,
        )

        assert response.status_code == 400
        assert response.json()["errors"]

    def test_admins_in_two_organizations_are_independent(self, client, db_session, organization, owner):
        """A role in one organization grants nothing in another"""
        from bookkeeper.models.organization import Organization

        other = Organization(name="Globex", currency="USD", created_by=owner.id)
        db_session.add(other)
        db_session.commit()
        add_member(db_session, other, owner, OWNER)

        admin_elsewhere = make_user(db_session, "cross-admin", "cross@acme.test")
        add_member(db_session, other, admin_elsewhere, ADMIN)
        add_member(db_session, organization, admin_elsewhere, MEMBER)

        response = client.post(
            "/api/permissions/validate",
            json={"organizationId": organization.id, "actions": ["invite_users"]},
            headers=auth_header("cross-admin", "cross@acme.test"),
        )

        assert response.status_code == 200
        assert response.json()["permissions"] == {"invite_users": False}
