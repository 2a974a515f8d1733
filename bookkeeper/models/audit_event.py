"""Outbound audit event emitted by the access core."""

from dataclasses import dataclass, field
from typing import Any

from bookkeeper.models.audit_log import AuditAction


@dataclass(frozen=True)
class AuditEvent:
    """
    Value describing one privileged mutation.

    Services build these and hand them to the audit recorder; the recorder
    decides how (and whether) they reach durable storage.

    Attributes:
        organization_id: Organization the change belongs to
        action: What happened
        table_name: Table of the affected record
        user_id: Acting user, None for system actions
        record_id: Affected record, if any
        old_values: Snapshot before the change
        new_values: Snapshot after the change
    """

    organization_id: int
    action: AuditAction
    table_name: str
    user_id: int | None = None
    record_id: int | None = None
    old_values: dict[str, Any] | None = field(default=None)
    new_values: dict[str, Any] | None = field(default=None)
