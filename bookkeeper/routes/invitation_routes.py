from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from bookkeeper.database import get_db
from bookkeeper.dependencies import (
    get_audit_recorder,
    get_current_user,
    get_invitation_notifier,
    verify_cron_secret,
)
from bookkeeper.models.user import User
from bookkeeper.services.audit_recorder import AuditLogRecorder
from bookkeeper.services.invitation_notifier import InvitationNotifier
from bookkeeper.services.invitation_service import InvitationService
from bookkeeper.schemas.invitation_schemas import (
    InvitationAccept,
    InvitationAcceptResponse,
    InvitationCleanupRequest,
    InvitationCleanupResponse,
    InvitationCreate,
    InvitationCreateResponse,
    InvitationDetailsResponse,
    InvitationListResponse,
    InvitationMessageResponse,
    InvitationResponse,
    InvitationStatsResponse,
    InvitationUpdate,
)

router = APIRouter()


def get_invitation_service(
    db: Session = Depends(get_db),
    recorder: AuditLogRecorder = Depends(get_audit_recorder),
    notifier: InvitationNotifier = Depends(get_invitation_notifier),
) -> InvitationService:
    return InvitationService(db, recorder=recorder, notifier=notifier)


@router.post("", response_model=InvitationCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_invitation(
    data: InvitationCreate,
    user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    """
    Invite an email address to an organization.

    - **Requires ADMIN or OWNER permissions**
    - Only OWNER can invite as ADMIN
    - Code is valid for 7 days and can be used once
    """
    invitation = service.create(data.organization_id, data.email, data.role, user)
    return {"invitation": invitation, "message": "Invitation created successfully"}


@router.get("", response_model=InvitationListResponse)
async def list_invitations(
    organization_id: int = Query(..., alias="organizationId", gt=0),
    user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    """List an organization's invitations, newest first (ADMIN or OWNER)"""
    invitations = service.list_for_organization(organization_id, user)
    return {"invitations": invitations, "total": len(invitations)}


@router.get("/details", response_model=InvitationDetailsResponse)
async def get_invitation_details(
    code: str = Query(..., min_length=1, max_length=50),
    service: InvitationService = Depends(get_invitation_service),
):
    """
    Public invitation summary by code.

    Lets the invitee see which organization and role they are being
    offered before signing in.
    """
    return service.get_details(code)


@router.post("/accept", response_model=InvitationAcceptResponse)
async def accept_invitation(
    data: InvitationAccept,
    user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    """
    Accept an invitation as the authenticated user.

    - The token's email must match the invitation email
    - Expired invitations return 410, used ones 409
    """
    invitation, membership, created = service.accept(data.code, user)
    message = (
        "Invitation accepted successfully"
        if created
        else "Invitation accepted; you were already a member of this organization"
    )
    return {
        "organization": invitation.organization,
        "membership_id": membership.id,
        "role": membership.role,
        "membership_created": created,
        "message": message,
    }


@router.post(
    "/cleanup",
    response_model=InvitationCleanupResponse,
    dependencies=[Depends(verify_cron_secret)],
)
async def cleanup_invitations(
    data: Optional[InvitationCleanupRequest] = None,
    service: InvitationService = Depends(get_invitation_service),
):
    """
    Delete unused invitations that expired more than daysOld days ago.

    Scheduler-only: requires Authorization: Bearer <CRON_SECRET>.
    """
    data = data or InvitationCleanupRequest()
    deleted = service.cleanup(data.days_old)
    return {
        "success": True,
        "deleted_count": deleted,
        "stats": service.stats(),
        "message": f"Deleted {deleted} expired invitation(s)",
    }


@router.get(
    "/cleanup",
    response_model=InvitationStatsResponse,
    dependencies=[Depends(verify_cron_secret)],
)
async def cleanup_stats(service: InvitationService = Depends(get_invitation_service)):
    """Global invitation statistics for the scheduler"""
    return {"stats": service.stats(), "message": "Invitation statistics"}


@router.get("/stats", response_model=InvitationStatsResponse)
async def invitation_stats(
    organization_id: int = Query(..., alias="organizationId", gt=0),
    user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    """Invitation statistics for one organization (ADMIN or OWNER)"""
    stats = service.stats_for_organization(organization_id, user)
    return {"stats": stats, "message": "Invitation statistics"}


@router.get("/{invitation_id}", response_model=InvitationResponse)
async def get_invitation(
    invitation_id: int,
    user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    """Get one invitation (ADMIN or OWNER of its organization)"""
    return service.get(invitation_id, user)


@router.put("/{invitation_id}", response_model=InvitationResponse)
async def update_invitation(
    invitation_id: int,
    data: InvitationUpdate,
    user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    """
    Change the role of a pending invitation.

    - **Requires ADMIN or OWNER permissions**
    - Used invitations cannot be modified
    """
    return service.update(invitation_id, data.role, user)


@router.delete("/{invitation_id}", response_model=InvitationMessageResponse)
async def cancel_invitation(
    invitation_id: int,
    user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    """
    Cancel a pending invitation.

    - **Requires ADMIN or OWNER permissions**
    - Used invitations cannot be cancelled
    """
    service.cancel(invitation_id, user)
    return {"message": "Invitation cancelled successfully"}
