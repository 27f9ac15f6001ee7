from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..crud.events import (
    create_activity,
    create_category,
    create_event,
    delete_activity,
    delete_category,
    delete_event,
    get_active_event,
    get_activity,
    get_category,
    get_event,
    list_activities,
    list_categories,
    list_events,
    list_participants,
    register_participant,
    update_activity,
    update_category,
    update_event,
)
from ..db.session import get_db
from ..deps.auth import get_audited_db, require_api_or_jwt
from ..schemas.events import (
    ActivityCreate,
    ActivityOut,
    ActivityUpdate,
    CategoryIn,
    CategoryOut,
    EventCreate,
    EventOut,
    EventUpdate,
    ParticipantIn,
    ParticipantOut,
)

router = APIRouter(prefix="/api/v1/events", tags=["events"], dependencies=[Depends(require_api_or_jwt)])


def _get_or_404(db: Session, event_id: int):
    event = get_event(db, event_id)
    if not event:
        raise HTTPException(404, "Not found")
    return event


@router.get("", response_model=list[EventOut])
def api_list(db: Session = Depends(get_db)):
    return list_events(db)


@router.get("/active", response_model=EventOut)
def api_active(db: Session = Depends(get_db)):
    event = get_active_event(db)
    if not event:
        raise HTTPException(404, "No active event")
    return event


@router.get("/{event_id}", response_model=EventOut)
def api_get(event_id: int, db: Session = Depends(get_db)):
    return _get_or_404(db, event_id)


@router.post("", response_model=EventOut, status_code=201)
def api_create(payload: EventCreate, db: Session = Depends(get_audited_db)):
    try:
        return create_event(db, payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.patch("/{event_id}", response_model=EventOut)
def api_update(event_id: int, payload: EventUpdate, db: Session = Depends(get_audited_db)):
    event = _get_or_404(db, event_id)
    try:
        return update_event(db, event, payload.model_dump(exclude_none=True))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.delete("/{event_id}")
def api_delete(event_id: int, db: Session = Depends(get_audited_db)):
    delete_event(db, _get_or_404(db, event_id))
    return {"status": "deleted"}


@router.get("/{event_id}/participants", response_model=list[ParticipantOut])
def api_list_participants(event_id: int, unassigned: bool = False, db: Session = Depends(get_db)):
    _get_or_404(db, event_id)
    return [ParticipantOut.from_participant(p) for p in list_participants(db, event_id, unassigned_only=unassigned)]


@router.post("/{event_id}/participants", response_model=ParticipantOut, status_code=201)
def api_register(event_id: int, payload: ParticipantIn, db: Session = Depends(get_audited_db)):
    event = _get_or_404(db, event_id)
    try:
        participant = register_participant(db, event, payload.user_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return ParticipantOut.from_participant(participant)


# ---------- categories ----------


@router.get("/{event_id}/categories", response_model=list[CategoryOut])
def api_list_categories(event_id: int, db: Session = Depends(get_db)):
    _get_or_404(db, event_id)
    return list_categories(db, event_id)


@router.post("/{event_id}/categories", response_model=CategoryOut, status_code=201)
def api_create_category(event_id: int, payload: CategoryIn, db: Session = Depends(get_audited_db)):
    _get_or_404(db, event_id)
    try:
        return create_category(db, event_id, payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/categories/{category_id}", response_model=CategoryOut)
def api_get_category(category_id: int, db: Session = Depends(get_db)):
    category = get_category(db, category_id)
    if not category:
        raise HTTPException(404, "Not found")
    return category


@router.patch("/categories/{category_id}", response_model=CategoryOut)
def api_update_category(category_id: int, payload: CategoryIn, db: Session = Depends(get_audited_db)):
    category = get_category(db, category_id)
    if not category:
        raise HTTPException(404, "Not found")
    try:
        return update_category(db, category, payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.delete("/categories/{category_id}")
def api_delete_category(category_id: int, db: Session = Depends(get_audited_db)):
    category = get_category(db, category_id)
    if not category:
        raise HTTPException(404, "Not found")
    delete_category(db, category)
    return {"status": "deleted"}


# ---------- schedule ----------


@router.get("/{event_id}/activities", response_model=list[ActivityOut])
def api_list_activities(event_id: int, db: Session = Depends(get_db)):
    _get_or_404(db, event_id)
    return list_activities(db, event_id)


@router.post("/{event_id}/activities", response_model=ActivityOut, status_code=201)
def api_create_activity(event_id: int, payload: ActivityCreate, db: Session = Depends(get_audited_db)):
    _get_or_404(db, event_id)
    try:
        return create_activity(db, event_id, payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/activities/{activity_id}", response_model=ActivityOut)
def api_get_activity(activity_id: int, db: Session = Depends(get_db)):
    activity = get_activity(db, activity_id)
    if not activity:
        raise HTTPException(404, "Not found")
    return activity


@router.patch("/activities/{activity_id}", response_model=ActivityOut)
def api_update_activity(activity_id: int, payload: ActivityUpdate, db: Session = Depends(get_audited_db)):
    activity = get_activity(db, activity_id)
    if not activity:
        raise HTTPException(404, "Not found")
    try:
        return update_activity(db, activity, payload.model_dump(exclude_none=True))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.delete("/activities/{activity_id}")
def api_delete_activity(activity_id: int, db: Session = Depends(get_audited_db)):
    activity = get_activity(db, activity_id)
    if not activity:
        raise HTTPException(404, "Not found")
    delete_activity(db, activity)
    return {"status": "deleted"}
