"""Pydantic schemas for sponsors and sponsorship tiers."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class SponsorCreate(BaseModel):
    event_id: int
    name: str
    website: Optional[str] = None
    image_url: Optional[str] = None
    amount: int = Field(default=0, ge=0)
    # Placed by amount when omitted.
    tier_id: Optional[int] = None


class SponsorUpdate(BaseModel):
    event_id: Optional[int] = None
    name: Optional[str] = None
    website: Optional[str] = None
    image_url: Optional[str] = None
    amount: Optional[int] = Field(default=None, ge=0)
    tier_id: Optional[int] = None


class EventSponsorOut(BaseModel):
    id: int
    binding_id: int
    event_id: int
    name: str
    website: str = ""
    image_url: str = ""
    amount: int = 0
    tier_id: Optional[int] = None
    tier: str = ""


class EventSponsorList(BaseModel):
    sponsors: list[EventSponsorOut] = Field(default_factory=list)
    # Names of the tiers in use for the event.
    tiers: list[str] = Field(default_factory=list)


class TierCreate(BaseModel):
    name: str
    lower_threshold: int = Field(ge=0)
    image_width: Optional[int] = Field(default=None, ge=0)
    image_height: Optional[int] = Field(default=None, ge=0)


class TierUpdate(BaseModel):
    name: Optional[str] = None
    lower_threshold: Optional[int] = Field(default=None, ge=0)
    image_width: Optional[int] = Field(default=None, ge=0)
    image_height: Optional[int] = Field(default=None, ge=0)


class TierOut(BaseModel):
    id: int
    name: str
    lower_threshold: int
    image_width: int
    image_height: int

    class Config:
        from_attributes = True


class TierDeleteResult(BaseModel):
    message: str
    sponsors: list[EventSponsorOut] = Field(default_factory=list)
    tiers: list[TierOut] = Field(default_factory=list)
