from pydantic import Field, field_validator
from datetime import datetime
from bookkeeper.config import settings
from bookkeeper.models.role import OrganizationRole
from bookkeeper.schemas.base import APIModel

ORGANIZATION_NAME_PATTERN = r"^[\w\s\-.]+$"


class OrganizationSummary(APIModel):
    """Organization fields embedded in other responses"""

    id: int
    name: str
    currency: str


class OrganizationResponse(APIModel):
    """Organization details response"""

    id: int
    name: str
    currency: str
    created_by: int | None = None
    created_at: datetime
    updated_at: datetime


class UserOrganizationResponse(APIModel):
    """Organization the caller belongs to, with the caller's role"""

    id: int
    name: str
    currency: str
    role: OrganizationRole
    created_at: datetime
    updated_at: datetime


class OrganizationCreate(APIModel):
    """Create an organization; the caller becomes its OWNER"""

    name: str = Field(..., min_length=2, max_length=100, pattern=ORGANIZATION_NAME_PATTERN)
    currency: str = Field(default=settings.DEFAULT_CURRENCY, min_length=3, max_length=3)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, value: str) -> str:
        if not value.isalpha():
            raise ValueError("Currency must be a 3-letter code")
        return value.upper()


class OrganizationUpdate(APIModel):
    """Rename organization (OWNER only)"""

    name: str = Field(..., min_length=2, max_length=100, pattern=ORGANIZATION_NAME_PATTERN)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value
