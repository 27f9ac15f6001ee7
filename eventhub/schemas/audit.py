"""Pydantic schemas for searching the audit log."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from ..models.audit import AuditAction


class AuditSearch(BaseModel):
    entity_type: Optional[str] = None
    record_id: Optional[str] = None
    actor_user_id: Optional[int] = None
    action: Optional[AuditAction] = None
    # ISO-8601 UTC bounds, inclusive.
    start: Optional[str] = None
    end: Optional[str] = None
    sort: Literal["ASC", "DESC"] = "DESC"
    limit: int = Field(default=50, ge=1, le=500)
    page: int = Field(default=1, ge=1)


class AuditEntryOut(BaseModel):
    id: int
    entity_type: str
    record_id: str
    action: AuditAction
    old_value: Optional[dict[str, Any]] = None
    new_value: Optional[dict[str, Any]] = None
    actor_user_id: Optional[int] = None
    created_at: str

    class Config:
        from_attributes = True


class AuditPageOut(BaseModel):
    count: int
    page: int
    limit: int
    entries: list[AuditEntryOut] = Field(default_factory=list)
