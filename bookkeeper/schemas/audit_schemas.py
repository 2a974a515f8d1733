from datetime import datetime
from typing import Any, Optional
from pydantic import Field, field_validator
from bookkeeper.models.audit_log import AuditAction
from bookkeeper.schemas.base import APIModel

# Actions clients may record directly; data mutations are recorded by the server
MANUAL_AUDIT_ACTIONS = (
    AuditAction.LOGIN,
    AuditAction.LOGOUT,
    AuditAction.INVITE_SENT,
    AuditAction.ROLE_CHANGED,
)


class AuditLogResponse(APIModel):
    """One audit entry"""

    id: int
    organization_id: int
    user_id: Optional[int] = None
    user_email: Optional[str] = None
    action: AuditAction
    table_name: str
    record_id: Optional[int] = None
    old_values: Optional[dict[str, Any]] = None
    new_values: Optional[dict[str, Any]] = None
    created_at: datetime


class Pagination(APIModel):
    """Page metadata for list views"""

    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class AuditLogPage(APIModel):
    """Paginated audit entries, newest first"""

    data: list[AuditLogResponse]
    pagination: Pagination


class ManualAuditRequest(APIModel):
    """Client-reported audit event"""

    organization_id: int = Field(..., gt=0)
    action: AuditAction
    table_name: str = Field(..., min_length=1, max_length=50)
    record_id: Optional[int] = Field(None, gt=0)
    metadata: Optional[dict[str, Any]] = None

    @field_validator("action")
    @classmethod
    def check_action(cls, value: AuditAction) -> AuditAction:
        if value not in MANUAL_AUDIT_ACTIONS:
            allowed = ", ".join(a.value for a in MANUAL_AUDIT_ACTIONS)
            raise ValueError(f"Action must be one of: {allowed}")
        return value


class ManualAuditResponse(APIModel):
    """Result of a manual audit write"""

    success: bool
