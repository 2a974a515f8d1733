from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bookkeeper.database import get_db
from bookkeeper.dependencies import get_current_user
from bookkeeper.models.user import User
from bookkeeper.services.membership_service import MembershipService
from bookkeeper.schemas.permission_schemas import (
    PermissionValidateRequest,
    PermissionValidateResponse,
)

router = APIRouter()


@router.post("/validate", response_model=PermissionValidateResponse)
async def validate_permissions(
    data: PermissionValidateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Report which permissions the caller holds in an organization.

    Optionally evaluates whether the caller may perform a management
    action (change_role, remove, invite) on targetUserId.
    """
    service = MembershipService(db)
    return service.validate_permissions(
        user,
        data.organization_id,
        permissions=data.actions,
        target_user_id=data.target_user_id,
        action=data.action,
    )
