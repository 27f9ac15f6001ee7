from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from ..crud.sponsors import (
    add_sponsor_to_event,
    create_tier,
    get_tier,
    list_event_sponsors,
    list_tiers,
    remove_sponsor_from_event,
    sponsor_view,
    update_event_sponsor,
    update_tier,
)
from ..db.session import get_db
from ..deps.auth import get_audited_db, require_api_or_jwt
from ..schemas.sponsors import (
    EventSponsorList,
    EventSponsorOut,
    SponsorCreate,
    SponsorUpdate,
    TierCreate,
    TierDeleteResult,
    TierOut,
    TierUpdate,
)
from ..services.tier_reassignment import reassign_and_delete

router = APIRouter(prefix="/api/v1/sponsors", tags=["sponsors"], dependencies=[Depends(require_api_or_jwt)])


def _event_sponsors(db: Session, event_id: int) -> list[dict[str, object]]:
    return [sponsor_view(binding) for binding in list_event_sponsors(db, event_id)]


@router.get("", response_model=EventSponsorList)
def api_list(event_id: int = Query(...), db: Session = Depends(get_db)):
    sponsors = _event_sponsors(db, event_id)
    tiers = list(dict.fromkeys(s["tier"] for s in sponsors if s["tier"]))
    return {"sponsors": sponsors, "tiers": tiers}


@router.post("", response_model=EventSponsorOut, status_code=201)
def api_add(payload: SponsorCreate, db: Session = Depends(get_audited_db)):
    data = payload.model_dump(exclude={"event_id"})
    try:
        binding = add_sponsor_to_event(db, payload.event_id, data)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return sponsor_view(binding)


@router.patch("/{sponsor_id}", response_model=list[EventSponsorOut])
def api_update(sponsor_id: int, payload: SponsorUpdate, db: Session = Depends(get_audited_db)):
    # ``tier_id: null`` is meaningful (unassign), so keep explicitly-sent fields.
    data = payload.model_dump(exclude_unset=True, exclude={"event_id"})
    try:
        update_event_sponsor(db, sponsor_id, data, event_id=payload.event_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if payload.event_id is None:
        return []
    return _event_sponsors(db, payload.event_id)


@router.delete("/{sponsor_id}", status_code=204)
def api_remove(sponsor_id: int, event_id: int = Query(...), db: Session = Depends(get_audited_db)):
    if not remove_sponsor_from_event(db, sponsor_id, event_id):
        raise HTTPException(404, "Sponsor not associated with this event")
    return Response(status_code=204)


# ---------- tiers ----------


@router.get("/tiers", response_model=list[TierOut])
def api_list_tiers(db: Session = Depends(get_db)):
    return list_tiers(db)


@router.post("/tiers", response_model=TierOut, status_code=201)
def api_create_tier(payload: TierCreate, db: Session = Depends(get_audited_db)):
    try:
        return create_tier(db, payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.patch("/tiers/{tier_id}", response_model=TierOut)
def api_update_tier(tier_id: int, payload: TierUpdate, db: Session = Depends(get_audited_db)):
    tier = get_tier(db, tier_id)
    if not tier:
        raise HTTPException(404, "Not found")
    try:
        return update_tier(db, tier, payload.model_dump(exclude_none=True))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.delete("/tiers/{tier_id}", response_model=TierDeleteResult)
def api_delete_tier(tier_id: int, event_id: int | None = None, db: Session = Depends(get_audited_db)):
    """Reassign the tier's sponsors, delete it, and return the refreshed lists.

    A failed reassignment surfaces as ``TierReassignmentError`` (HTTP 500).
    """
    try:
        reassign_and_delete(db, tier_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {
        "message": "Sponsor tier removed and linked sponsors reassigned.",
        "sponsors": _event_sponsors(db, event_id) if event_id is not None else [],
        "tiers": list_tiers(db),
    }
