from sqlalchemy import String, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING
from bookkeeper.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from bookkeeper.models.membership import Membership


class User(Base, TimestampMixin):
    """
    Tracks users from the external identity provider.

    Only stores the JWT 'sub' and the email claim - no auth credentials.
    Auto-created on first API request with valid JWT.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    auth_user_id: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    # Lower-cased; refreshed from the token on every request
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    # Relationships
    memberships: Mapped[list["Membership"]] = relationship(
        "Membership",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, auth_user_id='{self.auth_user_id}')>"
