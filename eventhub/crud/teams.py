from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..db.session import utcnow_iso
from ..models.event import Event, EventParticipant, Team
from .events import is_submission_open

_EDITABLE = ("name", "project_name", "project_description", "presentation_link", "github_link")
PROJECT_FIELDS = ("project_name", "project_description", "presentation_link", "github_link")


def list_teams(db: Session, event_id: int) -> list[Team]:
    stmt = select(Team).where(Team.event_id == event_id).order_by(Team.name, Team.id)
    return db.execute(stmt).scalars().all()


def get_team(db: Session, team_id: int) -> Team | None:
    return db.get(Team, team_id)


def _ensure_unique_name(db: Session, event_id: int, name: str, exclude_id: int | None = None) -> None:
    stmt = select(Team.id).where(Team.event_id == event_id, func.lower(Team.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(Team.id != exclude_id)
    if db.execute(stmt).first() is not None:
        raise ValueError(f"A team named {name!r} already exists for this event")


def _ensure_editable(event: Event) -> None:
    if not event.can_change:
        raise ValueError("Teams for this event are locked")


def create_team(db: Session, event_id: int, payload: dict) -> Team:
    event = db.get(Event, event_id)
    if event is None:
        raise LookupError("Event not found")
    _ensure_editable(event)
    name = (payload.get("name") or "").strip()
    if not name:
        raise ValueError("name is required for teams")
    _ensure_unique_name(db, event_id, name)

    data = {k: (v.strip() if isinstance(v, str) else v) for k, v in payload.items() if k in _EDITABLE}
    data["name"] = name
    now = utcnow_iso()
    team = Team(event_id=event_id, created_at=now, updated_at=now, **data)
    db.add(team)
    db.commit()
    db.refresh(team)
    return team


def update_team(db: Session, team: Team, payload: dict) -> Team:
    """
    Partial update of team and project details; blank strings clear a field.
    """
    changed = False
    for key, value in payload.items():
        if key not in _EDITABLE or value is None:
            continue
        value = value.strip()
        if key == "name":
            if not value:
                raise ValueError("name is required for teams")
            _ensure_unique_name(db, team.event_id, value, exclude_id=team.id)
        else:
            value = value or None
        if getattr(team, key) != value:
            setattr(team, key, value)
            changed = True
    if changed:
        team.updated_at = utcnow_iso()
        db.commit()
        db.refresh(team)
    return team


def delete_team(db: Session, team: Team) -> None:
    for member in list(team.members):
        member.team_id = None
    db.delete(team)
    db.commit()


def list_members(db: Session, team: Team) -> list[EventParticipant]:
    stmt = select(EventParticipant).where(EventParticipant.team_id == team.id).order_by(EventParticipant.user_id)
    return db.execute(stmt).unique().scalars().all()


def assign_member(db: Session, team: Team, user_id: int) -> EventParticipant:
    """
    Place a registered participant on ``team`` (moving them off any other).
    """
    participant = db.get(EventParticipant, (team.event_id, user_id))
    if participant is None:
        raise LookupError("User is not registered for this event")
    _ensure_editable(team.event)
    if participant.team_id != team.id:
        participant.team_id = team.id
        db.commit()
        db.refresh(participant)
    return participant


def remove_member(db: Session, team: Team, user_id: int) -> bool:
    participant = db.get(EventParticipant, (team.event_id, user_id))
    if participant is None or participant.team_id != team.id:
        return False
    _ensure_editable(team.event)
    participant.team_id = None
    db.commit()
    return True


def team_for_user(db: Session, event_id: int, user_id: int) -> int | None:
    """Team id of ``user_id`` at ``event_id``; ``None`` if unregistered or unassigned."""

    participant = db.get(EventParticipant, (event_id, user_id))
    return participant.team_id if participant else None


def get_project_details(team: Team) -> dict:
    return {key: getattr(team, key) for key in PROJECT_FIELDS}


def update_project_details(db: Session, team: Team, payload: dict, now: datetime | None = None) -> Team:
    """
    Submit or edit a team's project. Closed once the event has ended.
    """
    if not is_submission_open(team.event, now):
        raise PermissionError("Submissions are closed")
    return update_team(db, team, {k: v for k, v in payload.items() if k in PROJECT_FIELDS})
