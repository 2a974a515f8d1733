from datetime import datetime, UTC

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Naive UTC timestamp (all stored datetimes are naive UTC)"""
    return datetime.now(UTC).replace(tzinfo=None)


def as_naive_utc(value: datetime | None) -> datetime | None:
    """Convert an offset-aware datetime to naive UTC; naive values are taken as UTC"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Declarative base for all ORM models"""

    pass


class CreatedAtMixin:
    """Adds an immutable creation timestamp"""

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class TimestampMixin(CreatedAtMixin):
    """Adds creation and last-update timestamps"""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )
