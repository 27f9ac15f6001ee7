"""Read side of the audit log."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import asc, desc, func, select
from sqlalchemy.orm import Session

from ..models.audit import AuditAction, AuditLogEntry

MAX_PAGE_SIZE = 500


@dataclass
class AuditPage:
    count: int
    entries: list[AuditLogEntry] = field(default_factory=list)


def _conditions(filters: dict[str, Any]) -> list[Any]:
    conditions = []
    if filters.get("entity_type"):
        conditions.append(AuditLogEntry.entity_type == filters["entity_type"])
    if filters.get("record_id") is not None:
        conditions.append(AuditLogEntry.record_id == str(filters["record_id"]))
    if filters.get("actor_user_id") is not None:
        conditions.append(AuditLogEntry.actor_user_id == filters["actor_user_id"])
    if filters.get("action"):
        raw = filters["action"]
        try:
            action = raw if isinstance(raw, AuditAction) else AuditAction(str(raw).upper())
        except ValueError as exc:
            raise ValueError(f"unknown audit action: {raw}") from exc
        conditions.append(AuditLogEntry.action == action)
    # created_at is ISO-8601 text, so string comparison orders correctly.
    if filters.get("start"):
        conditions.append(AuditLogEntry.created_at >= filters["start"])
    if filters.get("end"):
        conditions.append(AuditLogEntry.created_at <= filters["end"])
    return conditions


def query_audit_log(db: Session, filters: dict[str, Any] | None = None, limit: int = 50, page: int = 1) -> AuditPage:
    """
    Filtered, paginated audit entries plus the total number of matches.

    ``filters`` keys: ``entity_type``, ``record_id``, ``actor_user_id``,
    ``action``, ``start``/``end`` (inclusive) and ``sort`` (``ASC``/``DESC``,
    newest first by default). ``page`` is 1-based.
    """
    filters = filters or {}
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValueError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    if page < 1:
        raise ValueError("page must be 1 or greater")
    sort = str(filters.get("sort") or "DESC").upper()
    if sort not in ("ASC", "DESC"):
        raise ValueError("sort must be ASC or DESC")

    conditions = _conditions(filters)
    count = db.execute(select(func.count(AuditLogEntry.id)).where(*conditions)).scalar_one()

    direction = asc if sort == "ASC" else desc
    stmt = (
        select(AuditLogEntry)
        .where(*conditions)
        .order_by(direction(AuditLogEntry.created_at), direction(AuditLogEntry.id))
        .limit(limit)
        .offset((page - 1) * limit)
    )
    return AuditPage(count=count, entries=db.execute(stmt).scalars().all())
