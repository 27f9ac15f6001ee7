from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..crud.audit import query_audit_log
from ..db.session import get_db
from ..deps.auth import require_api_or_jwt
from ..schemas.audit import AuditPageOut, AuditSearch

router = APIRouter(prefix="/api/v1/audit-logs", tags=["audit"], dependencies=[Depends(require_api_or_jwt)])


@router.post("/search", response_model=AuditPageOut)
def api_search(payload: AuditSearch, db: Session = Depends(get_db)):
    filters = payload.model_dump(exclude={"limit", "page"}, exclude_none=True)
    try:
        result = query_audit_log(db, filters, limit=payload.limit, page=payload.page)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return {"count": result.count, "page": payload.page, "limit": payload.limit, "entries": result.entries}
