from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bookkeeper.database import get_db
from bookkeeper.dependencies import get_audit_recorder, get_current_user
from bookkeeper.models.user import User
from bookkeeper.services.audit_recorder import AuditLogRecorder
from bookkeeper.services.membership_service import MembershipService
from bookkeeper.schemas.membership_schemas import (
    MembershipListResponse,
    MembershipRemoveResponse,
    MembershipRoleUpdate,
    MembershipUpdateResponse,
)

router = APIRouter()


def get_membership_service(
    db: Session = Depends(get_db),
    recorder: AuditLogRecorder = Depends(get_audit_recorder),
) -> MembershipService:
    return MembershipService(db, recorder=recorder)


@router.get("", response_model=MembershipListResponse)
async def list_memberships(
    organization_id: Optional[int] = Query(None, alias="organizationId", gt=0),
    user_id: Optional[int] = Query(None, alias="userId", gt=0),
    user: User = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
):
    """
    List memberships.

    - With organizationId: members of that organization (any member)
    - Without: the caller's own memberships, or userId's memberships within
      organizations the caller administers
    """
    if organization_id is not None:
        memberships = service.list_for_organization(organization_id, user, user_id)
    else:
        memberships = service.list_for_user(user, user_id)
    return {"memberships": memberships, "total": len(memberships)}


@router.put("", response_model=MembershipUpdateResponse)
async def update_membership_role(
    data: MembershipRoleUpdate,
    user: User = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
):
    """
    Change a member's role.

    - **Requires ADMIN or OWNER permissions**
    - Only OWNER can grant or revoke ADMIN
    - Cannot change the OWNER's role or your own
    """
    membership = service.update_role(data.membership_id, data.role, user)
    return {
        "membership": service.member_view(membership),
        "message": "Member role updated successfully",
    }


@router.delete("/{membership_id}", response_model=MembershipRemoveResponse)
async def remove_membership(
    membership_id: int,
    user: User = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
):
    """
    Remove a member from an organization.

    - **Requires ADMIN or OWNER permissions**
    - Only OWNER can remove ADMINs
    - Cannot remove the OWNER or yourself
    """
    removed = service.remove(membership_id, user)
    return {
        "message": "Member removed successfully",
        "removed_membership_id": removed["id"],
        "removed_user_id": removed["user_id"],
    }
