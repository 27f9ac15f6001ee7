"""Pydantic schemas for events and registrations."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class EventBase(BaseModel):
    name: str
    start_date: str
    end_date: str
    can_change: bool = True
    is_active: bool = False


class EventCreate(EventBase):
    pass


class EventUpdate(BaseModel):
    name: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    can_change: Optional[bool] = None
    is_active: Optional[bool] = None


class EventOut(EventBase):
    id: int
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class ParticipantIn(BaseModel):
    user_id: int


class ParticipantOut(BaseModel):
    event_id: int
    user_id: int
    team_id: Optional[int] = None
    first_name: str = ""
    last_name: str = ""
    email: str = ""

    @classmethod
    def from_participant(cls, participant) -> "ParticipantOut":
        user = participant.user
        return cls(
            event_id=participant.event_id,
            user_id=participant.user_id,
            team_id=participant.team_id,
            first_name=user.first_name if user else "",
            last_name=user.last_name if user else "",
            email=user.email if user else "",
        )


class CategoryIn(BaseModel):
    name: str


class CategoryOut(BaseModel):
    id: int
    event_id: int
    name: str

    class Config:
        from_attributes = True


class ActivityCreate(BaseModel):
    name: str
    starts_at: str
    description: Optional[str] = None


class ActivityUpdate(BaseModel):
    name: Optional[str] = None
    starts_at: Optional[str] = None
    description: Optional[str] = None


class ActivityOut(ActivityCreate):
    id: int
    event_id: int
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True
