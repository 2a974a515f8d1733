"""Membership model linking users to organizations with roles."""

from sqlalchemy import Integer, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from bookkeeper.models.base import Base, TimestampMixin
from bookkeeper.models.role import OrganizationRole

if TYPE_CHECKING:
    from bookkeeper.models.user import User
    from bookkeeper.models.organization import Organization


class Membership(Base, TimestampMixin):
    """
    Join table linking users to organizations with roles.

    Created when an organization is founded (role=OWNER) or when an
    invitation is accepted (role=invitation.role). Updated only by role
    changes that pass the permission lattice, deleted only by member removal.

    Constraints:
    - Unique(organization_id, user_id) - one membership per user per organization
    - Exactly one OWNER per organization (enforced by service guards, not schema)
    """

    __tablename__ = "memberships"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[OrganizationRole] = mapped_column(
        Enum(OrganizationRole, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=OrganizationRole.MEMBER,
    )

    # Relationships
    organization: Mapped["Organization"] = relationship("Organization", back_populates="memberships")
    user: Mapped["User"] = relationship("User", back_populates="memberships")

    # Constraints
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_organization_user"),
    )

    def snapshot(self) -> dict:
        """Plain-value view used for audit old/new values"""
        return {
            "organization_id": self.organization_id,
            "user_id": self.user_id,
            "role": self.role.value,
        }

    def __repr__(self) -> str:
        return (
            f"<Membership(organization_id={self.organization_id}, "
            f"user_id={self.user_id}, role={self.role.value})>"
        )
