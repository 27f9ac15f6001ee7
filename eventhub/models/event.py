"""Events plus the people and teams that take part in them."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from ..db.session import Base


class Event(Base):
    """A single hackathon edition."""

    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    start_date = Column(Text, nullable=False)
    end_date = Column(Text, nullable=False)
    # Organisers lock registrations/teams once judging starts.
    can_change = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    teams = relationship("Team", back_populates="event", cascade="all, delete-orphan")
    participants = relationship("EventParticipant", back_populates="event", cascade="all, delete-orphan")
    sponsor_bindings = relationship("EventSponsor", back_populates="event", cascade="all, delete-orphan")
    categories = relationship(
        "EventCategory", back_populates="event", cascade="all, delete-orphan", order_by="EventCategory.id"
    )
    activities = relationship(
        "EventActivity",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="(EventActivity.starts_at, EventActivity.id)",
    )


class EventCategory(Base):
    """A judging category (e.g. "Best Hardware Hack") offered at an event."""

    __tablename__ = "event_categories"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)

    event = relationship("Event", back_populates="categories")


class EventActivity(Base):
    """One entry in an event's schedule."""

    __tablename__ = "event_activities"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    # ISO-8601 UTC, same format as every other timestamp column.
    starts_at = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    event = relationship("Event", back_populates="activities")


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    project_name = Column(Text, nullable=True)
    project_description = Column(Text, nullable=True)
    presentation_link = Column(Text, nullable=True)
    github_link = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    event = relationship("Event", back_populates="teams")
    members = relationship("EventParticipant", back_populates="team")


class EventParticipant(Base):
    """Registration of a user for an event, optionally placed on a team."""

    __tablename__ = "event_participants"

    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True, index=True)

    event = relationship("Event", back_populates="participants")
    team = relationship("Team", back_populates="members")
    user = relationship("User", lazy="joined")


__all__ = ["Event", "EventActivity", "EventCategory", "EventParticipant", "Team"]
