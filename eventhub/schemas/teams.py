from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class TeamBase(BaseModel):
    name: str
    project_name: Optional[str] = None
    project_description: Optional[str] = None
    presentation_link: Optional[str] = None
    github_link: Optional[str] = None


class TeamCreate(TeamBase):
    event_id: int


class TeamUpdate(BaseModel):
    name: Optional[str] = None
    project_name: Optional[str] = None
    project_description: Optional[str] = None
    presentation_link: Optional[str] = None
    github_link: Optional[str] = None


class TeamOut(TeamBase):
    id: int
    event_id: int
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class MemberIn(BaseModel):
    user_id: int


class ProjectDetails(BaseModel):
    project_name: Optional[str] = None
    project_description: Optional[str] = None
    presentation_link: Optional[str] = None
    github_link: Optional[str] = None


class ProjectDetailsOut(ProjectDetails):
    team_id: int


class UserTeamOut(BaseModel):
    event_id: int
    user_id: int
    team_id: Optional[int] = None
