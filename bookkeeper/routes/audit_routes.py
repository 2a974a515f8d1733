from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bookkeeper.database import get_db
from bookkeeper.dependencies import get_audit_recorder, get_current_user
from bookkeeper.models.audit_log import AuditAction
from bookkeeper.models.user import User
from bookkeeper.services.audit_recorder import AuditLogRecorder
from bookkeeper.services.audit_service import AuditService
from bookkeeper.schemas.audit_schemas import (
    AuditLogPage,
    ManualAuditRequest,
    ManualAuditResponse,
)

router = APIRouter()


def get_audit_service(
    db: Session = Depends(get_db),
    recorder: AuditLogRecorder = Depends(get_audit_recorder),
) -> AuditService:
    return AuditService(db, recorder=recorder)


@router.get("", response_model=AuditLogPage)
async def list_audit_logs(
    organization_id: int = Query(..., alias="organizationId", gt=0),
    action: Optional[AuditAction] = Query(None),
    table_name: Optional[str] = Query(None, alias="tableName", max_length=50),
    user_id: Optional[int] = Query(None, alias="userId", gt=0),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    service: AuditService = Depends(get_audit_service),
):
    """
    Page through an organization's audit trail, newest first.

    Available to all members of the organization.
    """
    return service.query(
        organization_id,
        user,
        action=action,
        table_name=table_name,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )


@router.post("/manual", response_model=ManualAuditResponse)
async def record_manual_audit(
    data: ManualAuditRequest,
    user: User = Depends(get_current_user),
    service: AuditService = Depends(get_audit_service),
):
    """
    Record a client-side event (login, logout, invite_sent, role_changed).

    login/logout need membership; the others need ADMIN or OWNER.
    """
    success = service.record_manual(
        data.organization_id,
        data.action,
        data.table_name,
        user,
        record_id=data.record_id,
        metadata=data.metadata,
    )
    return {"success": success}
