from typing import Optional

from fastapi import Depends, Header
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from bookkeeper.config import settings
from bookkeeper.core.security import decode_jwt, verify_shared_secret
from bookkeeper.core.exceptions import UnauthorizedException
from bookkeeper.database import get_db
from bookkeeper.repositories.user_repository import UserRepository
from bookkeeper.models.user import User
from bookkeeper.services.audit_recorder import AuditLogRecorder
from bookkeeper.services.invitation_notifier import InvitationNotifier, get_default_notifier

# auto_error=False so a missing header yields our own 401 rather than 403
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    FastAPI dependency to validate JWT and get/create user.

    Flow:
    1. Extract token from Authorization: Bearer <token>
    2. Validate JWT using shared SECRET_KEY
    3. Extract auth_user_id from 'sub' and the optional 'email' claim
    4. Get or auto-create User record, refreshing its email
    5. Return User object for use in endpoints

    Raises:
        UnauthorizedException: If token missing, invalid or expired
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException("Not authenticated")

    payload = decode_jwt(credentials.credentials)

    user_repo = UserRepository(db)
    return user_repo.get_or_create_by_auth_id(payload["sub"], payload.get("email"))


def get_audit_recorder(db: Session = Depends(get_db)) -> AuditLogRecorder:
    """Audit recorder bound to the request session"""
    return AuditLogRecorder(db)


def get_invitation_notifier() -> InvitationNotifier:
    """Invitation delivery channel (overridden in tests)"""
    return get_default_notifier()


async def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """
    Guard for scheduler-only endpoints.

    Expects Authorization: Bearer <CRON_SECRET>. When CRON_SECRET is not
    configured every request is rejected.

    Raises:
        UnauthorizedException: If the secret is missing or wrong
    """
    token = None
    if authorization:
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == "bearer":
            token = value.strip()

    if not verify_shared_secret(token, settings.CRON_SECRET):
        raise UnauthorizedException("Invalid or missing cron secret")
