"""Invitation model for onboarding members through single-use codes."""

from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import (
    String,
    Integer,
    ForeignKey,
    Enum,
    DateTime,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from bookkeeper.models.base import Base, CreatedAtMixin, utcnow
from bookkeeper.models.role import OrganizationRole

if TYPE_CHECKING:
    from bookkeeper.models.organization import Organization


class InvitationStatus(str, PyEnum):
    """
    Derived invitation lifecycle status.

    Only used_at and expires_at are stored; status is computed at read time.
    Cancelled invitations are deleted and therefore have no status.
    """

    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


class Invitation(Base, CreatedAtMixin):
    """
    Time-limited, single-use invitation to join an organization.

    Lifecycle: PENDING -> ACCEPTED (used_at set exactly once) or CANCELLED
    (row deleted). EXPIRED is derived: unused and now > expires_at. Expired
    rows stay in place until cleanup removes them; accepted rows are kept
    forever as acceptance history.

    Constraints:
    - code is globally unique across all invitations, used or not
    - role is ADMIN or MEMBER - an invitation never creates an owner
    - at most one pending invitation per (organization_id, email), enforced
      by the invitation service
    """

    __tablename__ = "invitations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Stored lower-cased
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    role: Mapped[OrganizationRole] = mapped_column(
        Enum(OrganizationRole, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=OrganizationRole.MEMBER,
    )
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    organization: Mapped["Organization"] = relationship("Organization", back_populates="invitations")

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'member')", name="ck_invitations_role"),
        Index("ix_invitations_expires_at_used_at", "expires_at", "used_at"),
        Index("ix_invitations_organization_email", "organization_id", "email"),
    )

    @property
    def is_used(self) -> bool:
        return self.used_at is not None

    def is_expired(self, now: datetime | None = None) -> bool:
        """Unused and past its expiry"""
        now = now or utcnow()
        return self.used_at is None and now > self.expires_at

    def status_at(self, now: datetime | None = None) -> InvitationStatus:
        if self.used_at is not None:
            return InvitationStatus.ACCEPTED
        if self.is_expired(now):
            return InvitationStatus.EXPIRED
        return InvitationStatus.PENDING

    @property
    def status(self) -> InvitationStatus:
        return self.status_at()

    def snapshot(self) -> dict:
        """Plain-value view used for audit old/new values"""
        return {
            "organization_id": self.organization_id,
            "email": self.email,
            "role": self.role.value,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "used_at": self.used_at.isoformat() if self.used_at else None,
        }

    def __repr__(self) -> str:
        return (
            f"<Invitation(id={self.id}, organization_id={self.organization_id}, "
            f"email='{self.email}', role={self.role.value})>"
        )
