import os

# Settings are read at import time; configure the test environment first
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_bookkeeper.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-jwt-signing")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")

import pytest
from datetime import datetime, timedelta, UTC
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from jose import jwt

from bookkeeper.database import get_db
from bookkeeper.dependencies import get_invitation_notifier
from bookkeeper.models.base import Base
from bookkeeper.config import settings
# Import all model classes to ensure they're registered with SQLAlchemy
from bookkeeper.models.user import User
from bookkeeper.models.organization import Organization
from bookkeeper.models.membership import Membership
from bookkeeper.models.invitation import Invitation
from bookkeeper.models.audit_log import AuditLog
from bookkeeper.models.role import OrganizationRole
from bookkeeper.services.invitation_notifier import InvitationNotifier
# Import FastAPI app AFTER model imports
from bookkeeper.main import app

# Test database (SQLite in-memory for speed)
# Use StaticPool to ensure all connections share the same in-memory database
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

CRON_HEADERS = {"Authorization": f"Bearer {settings.CRON_SECRET}"}


class RecordingNotifier(InvitationNotifier):
    """Collects invitations instead of delivering them"""

    def __init__(self):
        self.sent = []

    def send_invitation(self, invitation, organization):
        self.sent.append((invitation.email, invitation.code, organization.name))


@pytest.fixture(scope="function")
def db_session():
    """Create fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture(scope="function")
def client(db_session, notifier):
    """FastAPI test client with test database"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_invitation_notifier] = lambda: notifier
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def create_test_token(
    user_id: str = "test-user-123", email: str | None = None, expired: bool = False
) -> str:
    """
    Generate valid JWT token for testing.

    Args:
        user_id: User ID to embed in 'sub' claim
        email: Optional 'email' claim
        expired: If True, create expired token

    Returns:
        Encoded JWT token
    """
    if expired:
        exp = datetime.now(UTC) - timedelta(minutes=5)
    else:
        exp = datetime.now(UTC) + timedelta(minutes=15)

    payload = {"sub": user_id, "exp": exp, "iat": datetime.now(UTC)}
    if email is not None:
        payload["email"] = email

    token = jwt.encode(payload, settings.SECRET_KEY, algorithm="HS256")
    return token


def auth_header(user_id: str, email: str | None = None) -> dict:
    return {"Authorization": f"Bearer {create_test_token(user_id, email)}"}


def make_user(db_session, auth_user_id: str, email: str | None = None) -> User:
    user = User(auth_user_id=auth_user_id, email=email)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def add_member(db_session, organization: Organization, user: User, role: OrganizationRole) -> Membership:
    membership = Membership(organization_id=organization.id, user_id=user.id, role=role)
    db_session.add(membership)
    db_session.commit()
    db_session.refresh(membership)
    return membership


@pytest.fixture
def owner(db_session):
    return make_user(db_session, "owner-1", "owner@acme.test")


@pytest.fixture
def admin(db_session):
    return make_user(db_session, "admin-1", "admin@acme.test")


@pytest.fixture
def member(db_session):
    return make_user(db_session, "member-1", "member@acme.test")


@pytest.fixture
def outsider(db_session):
    return make_user(db_session, "outsider-1", "outsider@other.test")


@pytest.fixture
def organization(db_session, owner):
    """Acme with its owner"""
    org = Organization(name="Acme", currency="DOP", created_by=owner.id)
    db_session.add(org)
    db_session.commit()
    db_session.refresh(org)
    add_member(db_session, org, owner, OrganizationRole.OWNER)
    return org


@pytest.fixture
def admin_membership(db_session, organization, admin):
    return add_member(db_session, organization, admin, OrganizationRole.ADMIN)


@pytest.fixture
def member_membership(db_session, organization, member):
    return add_member(db_session, organization, member, OrganizationRole.MEMBER)


@pytest.fixture
def owner_membership(db_session, organization, owner):
    return (
        db_session.query(Membership)
        .filter_by(organization_id=organization.id, user_id=owner.id)
        .one()
    )


@pytest.fixture
def owner_headers(owner):
    return auth_header(owner.auth_user_id, owner.email)


@pytest.fixture
def admin_headers(admin):
    return auth_header(admin.auth_user_id, admin.email)


@pytest.fixture
def member_headers(member):
    return auth_header(member.auth_user_id, member.email)


@pytest.fixture
def outsider_headers(outsider):
    return auth_header(outsider.auth_user_id, outsider.email)


@pytest.fixture
def make_invitation(db_session, organization, owner):
    """Factory inserting invitations directly, bypassing the service"""
    counter = {"n": 0}

    def _make(
        email: str = "invitee@acme.test",
        role: OrganizationRole = OrganizationRole.MEMBER,
        expires_in: timedelta = timedelta(days=7),
        used_at: datetime | None = None,
        organization_id: int | None = None,
    ) -> Invitation:
        counter["n"] += 1
        now = datetime.now(UTC).replace(tzinfo=None)
        invitation = Invitation(
            organization_id=organization_id or organization.id,
            email=email,
            role=role,
            code=f"TESTCODE{counter['n']:04d}",
            expires_at=now + expires_in,
            used_at=used_at,
            created_by=owner.id,
        )
        db_session.add(invitation)
        db_session.commit()
        db_session.refresh(invitation)
        return invitation

    return _make


def audit_rows(db_session, **filters) -> list[AuditLog]:
    return db_session.query(AuditLog).filter_by(**filters).order_by(AuditLog.id).all()
