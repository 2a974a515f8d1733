"""Append-only audit log of privileged state changes."""

from enum import Enum as PyEnum
from typing import Any

from sqlalchemy import String, Integer, ForeignKey, Enum, JSON, Index, event
from sqlalchemy.orm import Mapped, mapped_column

from bookkeeper.models.base import Base, CreatedAtMixin


class AuditAction(str, PyEnum):
    """Actions recorded in the audit trail"""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    LOGIN = "login"
    LOGOUT = "logout"
    INVITE_SENT = "invite_sent"
    ROLE_CHANGED = "role_changed"


class AuditLog(Base, CreatedAtMixin):
    """
    One immutable audit record.

    Rows are only ever inserted; the ORM refuses updates and deletes (see
    the mapper events below). user_id is null for system actions such as
    scheduled cleanup.
    """

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    action: Mapped[AuditAction] = mapped_column(
        Enum(AuditAction, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        index=True,
    )
    table_name: Mapped[str] = mapped_column(String(50), nullable=False)
    record_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    old_values: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    new_values: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        Index("ix_audit_logs_organization_created", "organization_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, organization_id={self.organization_id}, "
            f"action={self.action.value}, table_name='{self.table_name}')>"
        )


class AuditLogImmutableError(RuntimeError):
    """Raised when code attempts to modify or delete an audit row"""


@event.listens_for(AuditLog, "before_update")
def _refuse_audit_update(mapper, connection, target):
    raise AuditLogImmutableError("Audit log entries are append-only")


@event.listens_for(AuditLog, "before_delete")
def _refuse_audit_delete(mapper, connection, target):
    raise AuditLogImmutableError("Audit log entries are append-only")
