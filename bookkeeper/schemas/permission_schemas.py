from typing import Optional
from pydantic import Field
from bookkeeper.core.permissions import ManagementAction, Permission
from bookkeeper.models.role import OrganizationRole
from bookkeeper.schemas.base import APIModel


class PermissionValidateRequest(APIModel):
    """Ask which permissions the caller holds in an organization"""

    organization_id: int = Field(..., gt=0)
    actions: Optional[list[Permission]] = None
    target_user_id: Optional[int] = Field(None, gt=0)
    action: Optional[ManagementAction] = None


class PermissionValidateResponse(APIModel):
    """Permission decisions for the caller"""

    permissions: dict[str, bool]
    user_role: OrganizationRole
    can_manage_target: Optional[bool] = None
    management_reason: Optional[str] = None
