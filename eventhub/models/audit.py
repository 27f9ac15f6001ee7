"""Append-only change log written by the audit interceptor."""

from __future__ import annotations

import enum

from sqlalchemy import JSON, Column, Enum, Integer, Text, event

from ..core.errors import AuditLogImmutableError
from ..db.session import Base


class AuditAction(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class AuditLogEntry(Base):
    """One create/update/delete on a tracked entity.

    Rows are only ever inserted by ``eventhub.services.audit``; ORM updates and
    deletes of this model raise ``AuditLogImmutableError``.
    """

    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    entity_type = Column(Text, nullable=False, index=True)
    # Text so composite keys ("event_id:user_id") fit as well.
    record_id = Column(Text, nullable=False, index=True)
    action = Column(Enum(AuditAction, name="audit_action", native_enum=False, length=10), nullable=False)
    old_value = Column(JSON, nullable=True)
    new_value = Column(JSON, nullable=True)
    actor_user_id = Column(Integer, nullable=True, index=True)
    created_at = Column(Text, nullable=False, index=True)


@event.listens_for(AuditLogEntry, "before_update")
@event.listens_for(AuditLogEntry, "before_delete")
def _refuse_mutation(mapper, connection, target) -> None:
    raise AuditLogImmutableError(f"audit log entry {target.id} is append-only")


__all__ = ["AuditAction", "AuditLogEntry"]
