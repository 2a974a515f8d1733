from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from bookkeeper.database import get_db
from bookkeeper.dependencies import get_audit_recorder, get_current_user
from bookkeeper.models.user import User
from bookkeeper.services.audit_recorder import AuditLogRecorder
from bookkeeper.services.organization_service import OrganizationService
from bookkeeper.schemas.organization_schemas import (
    OrganizationCreate,
    OrganizationResponse,
    OrganizationUpdate,
    UserOrganizationResponse,
)

router = APIRouter()


def get_organization_service(
    db: Session = Depends(get_db),
    recorder: AuditLogRecorder = Depends(get_audit_recorder),
) -> OrganizationService:
    return OrganizationService(db, recorder=recorder)


@router.post("", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
async def create_organization(
    data: OrganizationCreate,
    user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    """
    Create an organization.

    The authenticated user becomes its OWNER.
    """
    return service.create_organization(data, user)


@router.get("", response_model=list[UserOrganizationResponse])
async def list_user_organizations(
    user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    """
    List all organizations the authenticated user belongs to.

    Returns each organization with the user's role in it, which is useful
    for organization switching.
    """
    return service.list_user_organizations(user)


@router.get("/{organization_id}", response_model=OrganizationResponse)
async def get_organization(
    organization_id: int,
    user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    """Get organization details (any member)"""
    return service.get_organization(organization_id, user)


@router.patch("/{organization_id}", response_model=OrganizationResponse)
async def update_organization(
    organization_id: int,
    data: OrganizationUpdate,
    user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    """
    Rename an organization.

    - **Requires OWNER permissions**
    - Only the name can be updated via this endpoint
    """
    return service.update_organization(organization_id, data, user)
