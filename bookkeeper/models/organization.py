"""Organization model - the tenant boundary."""

from sqlalchemy import String, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from bookkeeper.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from bookkeeper.models.membership import Membership
    from bookkeeper.models.invitation import Invitation


class Organization(Base, TimestampMixin):
    """
    Multi-tenant isolation boundary.

    An organization is a small business whose books are shared by its
    members. It is created by a founding user, who becomes its OWNER, and
    it is never deleted by the access core.

    All bookkeeping data (accounts, categories, transactions) is scoped to
    an organization; users reach it through memberships with a role.
    """

    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="DOP")
    created_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    memberships: Mapped[list["Membership"]] = relationship(
        "Membership",
        back_populates="organization",
        cascade="all, delete-orphan",
    )
    invitations: Mapped[list["Invitation"]] = relationship(
        "Invitation",
        back_populates="organization",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name='{self.name}')>"
