from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..crud.events import get_event, list_participants
from ..crud.teams import (
    assign_member,
    create_team,
    delete_team,
    get_project_details,
    get_team,
    list_members,
    list_teams,
    remove_member,
    team_for_user,
    update_project_details,
    update_team,
)
from ..db.session import get_db
from ..deps.auth import get_audited_db, require_api_or_jwt
from ..schemas.events import ParticipantOut
from ..schemas.teams import (
    MemberIn,
    ProjectDetails,
    ProjectDetailsOut,
    TeamCreate,
    TeamOut,
    TeamUpdate,
    UserTeamOut,
)

router = APIRouter(prefix="/api/v1/teams", tags=["teams"], dependencies=[Depends(require_api_or_jwt)])


def _get_or_404(db: Session, team_id: int):
    team = get_team(db, team_id)
    if not team:
        raise HTTPException(404, "Not found")
    return team


@router.get("", response_model=list[TeamOut])
def api_list(event_id: int = Query(...), db: Session = Depends(get_db)):
    return list_teams(db, event_id)


@router.get("/unassigned", response_model=list[ParticipantOut])
def api_unassigned(event_id: int = Query(...), db: Session = Depends(get_db)):
    if not get_event(db, event_id):
        raise HTTPException(404, "Not found")
    return [ParticipantOut.from_participant(p) for p in list_participants(db, event_id, unassigned_only=True)]


@router.get("/users/{user_id}", response_model=UserTeamOut)
def api_user_team(user_id: int, event_id: int = Query(...), db: Session = Depends(get_db)):
    return UserTeamOut(event_id=event_id, user_id=user_id, team_id=team_for_user(db, event_id, user_id))


@router.get("/{team_id}", response_model=TeamOut)
def api_get(team_id: int, db: Session = Depends(get_db)):
    return _get_or_404(db, team_id)


@router.post("", response_model=TeamOut, status_code=201)
def api_create(payload: TeamCreate, db: Session = Depends(get_audited_db)):
    try:
        return create_team(db, payload.event_id, payload.model_dump(exclude={"event_id"}, exclude_none=True))
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.patch("/{team_id}", response_model=TeamOut)
def api_update(team_id: int, payload: TeamUpdate, db: Session = Depends(get_audited_db)):
    team = _get_or_404(db, team_id)
    try:
        return update_team(db, team, payload.model_dump(exclude_none=True))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.delete("/{team_id}")
def api_delete(team_id: int, db: Session = Depends(get_audited_db)):
    delete_team(db, _get_or_404(db, team_id))
    return {"status": "deleted"}


@router.get("/{team_id}/members", response_model=list[ParticipantOut])
def api_members(team_id: int, db: Session = Depends(get_db)):
    team = _get_or_404(db, team_id)
    return [ParticipantOut.from_participant(p) for p in list_members(db, team)]


@router.post("/{team_id}/members", response_model=ParticipantOut)
def api_assign(team_id: int, payload: MemberIn, db: Session = Depends(get_audited_db)):
    team = _get_or_404(db, team_id)
    try:
        return ParticipantOut.from_participant(assign_member(db, team, payload.user_id))
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.delete("/{team_id}/members/{user_id}")
def api_unassign(team_id: int, user_id: int, db: Session = Depends(get_audited_db)):
    team = _get_or_404(db, team_id)
    try:
        removed = remove_member(db, team, user_id)
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if not removed:
        raise HTTPException(404, "Not a member of this team")
    return {"status": "removed"}


@router.get("/{team_id}/project-details", response_model=ProjectDetailsOut)
def api_project_details(team_id: int, db: Session = Depends(get_db)):
    team = _get_or_404(db, team_id)
    return ProjectDetailsOut(team_id=team.id, **get_project_details(team))


@router.put("/{team_id}/project-details", response_model=ProjectDetailsOut)
def api_submit_project(team_id: int, payload: ProjectDetails, db: Session = Depends(get_audited_db)):
    team = _get_or_404(db, team_id)
    try:
        team = update_project_details(db, team, payload.model_dump(exclude_none=True))
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    return ProjectDetailsOut(team_id=team.id, **get_project_details(team))
