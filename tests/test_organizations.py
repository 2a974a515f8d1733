from bookkeeper.models.audit_log import AuditAction
from bookkeeper.models.membership import Membership
from bookkeeper.models.organization import Organization
from bookkeeper.models.role import OrganizationRole
from tests.conftest import audit_rows, auth_header


class TestCreateOrganization:
    """Tests for POST /api/organizations"""

    def test_creator_becomes_owner(self, client, db_session):
        headers = auth_header("founder-1", "founder@acme.test")

        response = client.post(
            "/api/organizations", json={"name": "  Acme Corp.  ", "currency": "usd"}, headers=headers
        )

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Acme Corp."
        assert data["currency"] == "USD"

        membership = db_session.query(Membership).filter_by(organization_id=data["id"]).one()
        assert membership.role == OrganizationRole.OWNER
        assert membership.user.auth_user_id == "founder-1"
        assert data["createdBy"] == membership.user_id

        tables = [e.table_name for e in audit_rows(db_session, action=AuditAction.CREATE)]
        assert tables == ["organizations", "memberships"]

    def test_default_currency(self, client):
        response = client.post(
            "/api/organizations", json={"name": "Colmado"}, headers=auth_header("founder-1")
        )

        assert response.status_code == 201
        assert response.json()["currency"] == "DOP"

    def test_duplicate_name_conflicts(self, client, db_session, organization):
        response = client.post(
            "/api/organizations", json={"name": "ACME"}, headers=auth_header("founder-2")
        )

        assert response.status_code == 409
        assert db_session.query(Organization).count() == 1

    def test_invalid_name(self, client):
        response = client.post(
            "/api/organizations", json={"name": "<script>"}, headers=auth_header("founder-1")
        )

        assert response.status_code == 400

    def test_invalid_currency(self, client):
        response = client.post(
            "/api/organizations",
            json={"name": "Acme", "currency": "US1"},
            headers=auth_header("founder-1"),
        )

        assert response.status_code == 400


class TestReadOrganizations:
    """Tests for GET /api/organizations"""

    def test_list_with_roles(self, client, db_session, organization, admin, admin_membership, admin_headers):
        other = Organization(name="Globex", currency="USD")
        db_session.add(other)
        db_session.commit()
        db_session.add(Membership(organization_id=other.id, user_id=admin.id, role=OrganizationRole.MEMBER))
        db_session.commit()

        response = client.get("/api/organizations", headers=admin_headers)

        assert response.status_code == 200
        roles = {o["name"]: o["role"] for o in response.json()}
        assert roles == {"Acme": "admin", "Globex": "member"}

    def test_get_as_member(self, client, organization, member_membership, member_headers):
        response = client.get(f"/api/organizations/{organization.id}", headers=member_headers)

        assert response.status_code == 200
        assert response.json()["name"] == "Acme"

    def test_get_as_outsider(self, client, organization, outsider_headers):
        response = client.get(f"/api/organizations/{organization.id}", headers=outsider_headers)

        assert response.status_code == 403


class TestUpdateOrganization:
    """Tests for PATCH /api/organizations/{id}"""

    def test_owner_renames(self, client, db_session, organization, owner_headers):
        response = client.patch(
            f"/api/organizations/{organization.id}", json={"name": "Acme Holdings"}, headers=owner_headers
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Acme Holdings"
        event = audit_rows(db_session, table_name="organizations", action=AuditAction.UPDATE)[0]
        assert event.old_values == {"name": "Acme"}
        assert event.new_values == {"name": "Acme Holdings"}

    def test_admin_cannot_rename(self, client, organization, admin_membership, admin_headers):
        response = client.patch(
            f"/api/organizations/{organization.id}", json={"name": "Hijacked"}, headers=admin_headers
        )

        assert response.status_code == 403

    def test_rename_to_taken_name(self, client, db_session, organization, owner_headers):
        db_session.add(Organization(name="Globex", currency="USD"))
        db_session.commit()

        response = client.patch(
            f"/api/organizations/{organization.id}", json={"name": "globex"}, headers=owner_headers
        )

        assert response.status_code == 409

    def test_rename_keeping_own_name(self, client, organization, owner_headers):
        response = client.patch(
            f"/api/organizations/{organization.id}", json={"name": "ACME"}, headers=owner_headers
        )

        assert response.status_code == 200
        assert response.json()["name"] == "ACME"
