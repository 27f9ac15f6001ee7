"""Event and participant-registration helpers."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..db.session import utcnow_iso
from ..models.event import Event, EventActivity, EventCategory, EventParticipant
from ..models.user import User

_EDITABLE = ("name", "start_date", "end_date", "can_change", "is_active")


def _parse_when(value: str) -> datetime:
    """Accept ``YYYY-MM-DD`` or ISO timestamps (``Z`` suffix allowed)."""

    text = (value or "").strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"invalid date: {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _check_window(start_date: str, end_date: str) -> None:
    if _parse_when(end_date) < _parse_when(start_date):
        raise ValueError("end_date must not be before start_date")


def _deactivate_others(db: Session, keep_id: int | None) -> None:
    # Only one event runs at a time.
    stmt = select(Event).where(Event.is_active.is_(True))
    for other in db.execute(stmt).scalars():
        if other.id != keep_id:
            other.is_active = False
            other.updated_at = utcnow_iso()


def list_events(db: Session) -> list[Event]:
    return db.execute(select(Event).order_by(Event.start_date.desc(), Event.id.desc())).scalars().all()


def get_event(db: Session, event_id: int) -> Event | None:
    return db.get(Event, event_id)


def get_active_event(db: Session) -> Event | None:
    return db.execute(select(Event).where(Event.is_active.is_(True)).order_by(Event.id)).scalars().first()


def is_submission_open(event: Event, now: datetime | None = None) -> bool:
    """Projects may be submitted until the event's end date."""

    try:
        end = _parse_when(event.end_date)
    except ValueError:
        return False
    return (now or datetime.now(timezone.utc)) < end


def create_event(db: Session, payload: dict) -> Event:
    data = {k: v for k, v in payload.items() if k in _EDITABLE}
    name = (data.get("name") or "").strip()
    if not name:
        raise ValueError("name is required for events")
    data["name"] = name
    if not data.get("start_date") or not data.get("end_date"):
        raise ValueError("start_date and end_date are required for events")
    _check_window(data["start_date"], data["end_date"])

    now = utcnow_iso()
    event = Event(**data, created_at=now, updated_at=now)
    if event.is_active:
        _deactivate_others(db, keep_id=None)
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


def update_event(db: Session, event: Event, payload: dict) -> Event:
    changed = False
    for key, value in payload.items():
        if key not in _EDITABLE or value is None:
            continue
        if key == "name":
            value = value.strip()
            if not value:
                raise ValueError("name is required for events")
        if getattr(event, key) != value:
            setattr(event, key, value)
            changed = True
    if not changed:
        return event
    _check_window(event.start_date, event.end_date)
    if event.is_active:
        _deactivate_others(db, keep_id=event.id)
    event.updated_at = utcnow_iso()
    db.commit()
    db.refresh(event)
    return event


def delete_event(db: Session, event: Event) -> None:
    db.delete(event)
    db.commit()


# ---------- participants ----------


def list_participants(db: Session, event_id: int, *, unassigned_only: bool = False) -> list[EventParticipant]:
    stmt = select(EventParticipant).where(EventParticipant.event_id == event_id)
    if unassigned_only:
        stmt = stmt.where(EventParticipant.team_id.is_(None))
    stmt = stmt.order_by(EventParticipant.user_id)
    return db.execute(stmt).unique().scalars().all()


def get_participant(db: Session, event_id: int, user_id: int) -> EventParticipant | None:
    return db.get(EventParticipant, (event_id, user_id))


def register_participant(db: Session, event: Event, user_id: int) -> EventParticipant:
    """
    Sign a user up for an event. Registering twice is a no-op.
    """
    if db.get(User, user_id) is None:
        raise LookupError("User not found")
    existing = get_participant(db, event.id, user_id)
    if existing:
        return existing
    if not event.can_change:
        raise ValueError("Registration for this event is closed")
    participant = EventParticipant(event_id=event.id, user_id=user_id)
    db.add(participant)
    db.commit()
    db.refresh(participant)
    return participant


# ---------- categories ----------

CATEGORY_NAME_MAX = 100


def _category_name(db: Session, event_id: int, value: str | None, exclude_id: int | None = None) -> str:
    name = (value or "").strip()
    if not name:
        raise ValueError("name is required for categories")
    if len(name) > CATEGORY_NAME_MAX:
        raise ValueError(f"category name must be at most {CATEGORY_NAME_MAX} characters")
    stmt = select(EventCategory.id).where(
        EventCategory.event_id == event_id, func.lower(EventCategory.name) == name.lower()
    )
    if exclude_id is not None:
        stmt = stmt.where(EventCategory.id != exclude_id)
    if db.execute(stmt).first() is not None:
        raise ValueError(f"A category named {name!r} already exists for this event")
    return name


def list_categories(db: Session, event_id: int) -> list[EventCategory]:
    stmt = select(EventCategory).where(EventCategory.event_id == event_id).order_by(EventCategory.id)
    return db.execute(stmt).scalars().all()


def get_category(db: Session, category_id: int) -> EventCategory | None:
    return db.get(EventCategory, category_id)


def create_category(db: Session, event_id: int, payload: dict) -> EventCategory:
    if db.get(Event, event_id) is None:
        raise LookupError("Event not found")
    category = EventCategory(event_id=event_id, name=_category_name(db, event_id, payload.get("name")))
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def update_category(db: Session, category: EventCategory, payload: dict) -> EventCategory:
    if payload.get("name") is None:
        return category
    name = _category_name(db, category.event_id, payload["name"], exclude_id=category.id)
    if name != category.name:
        category.name = name
        db.commit()
        db.refresh(category)
    return category


def delete_category(db: Session, category: EventCategory) -> None:
    db.delete(category)
    db.commit()


# ---------- schedule ----------

_ACTIVITY_FIELDS = ("name", "starts_at", "description")


def _normalize_when(value: str) -> str:
    return _parse_when(value).astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _clean_activity(key: str, value):
    if key == "name":
        value = (value or "").strip()
        if not value:
            raise ValueError("name is required for activities")
        return value
    if key == "starts_at":
        if not value:
            raise ValueError("starts_at is required for activities")
        return _normalize_when(value)
    return (value or "").strip() or None


def list_activities(db: Session, event_id: int) -> list[EventActivity]:
    stmt = (
        select(EventActivity)
        .where(EventActivity.event_id == event_id)
        .order_by(EventActivity.starts_at, EventActivity.id)
    )
    return db.execute(stmt).scalars().all()


def get_activity(db: Session, activity_id: int) -> EventActivity | None:
    return db.get(EventActivity, activity_id)


def create_activity(db: Session, event_id: int, payload: dict) -> EventActivity:
    if db.get(Event, event_id) is None:
        raise LookupError("Event not found")
    data = {key: _clean_activity(key, payload.get(key)) for key in _ACTIVITY_FIELDS}
    now = utcnow_iso()
    activity = EventActivity(event_id=event_id, created_at=now, updated_at=now, **data)
    db.add(activity)
    db.commit()
    db.refresh(activity)
    return activity


def update_activity(db: Session, activity: EventActivity, payload: dict) -> EventActivity:
    """
    Partial update; ``None`` leaves a field alone, a blank description clears it.
    """
    changed = False
    for key in _ACTIVITY_FIELDS:
        if payload.get(key) is None:
            continue
        value = _clean_activity(key, payload[key])
        if getattr(activity, key) != value:
            setattr(activity, key, value)
            changed = True
    if changed:
        activity.updated_at = utcnow_iso()
        db.commit()
        db.refresh(activity)
    return activity


def delete_activity(db: Session, activity: EventActivity) -> None:
    db.delete(activity)
    db.commit()
