"""Sponsors, sponsorship tiers and the per-event binding between them."""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base


class Image(Base):
    """A stored logo; the upload itself lives in object storage."""

    __tablename__ = "images"

    id = Column(Integer, primary_key=True, index=True)
    url = Column(Text, nullable=False)
    created_at = Column(Text, nullable=False)


class Sponsor(Base):
    __tablename__ = "sponsors"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    website = Column(Text, nullable=False, default="")
    image_id = Column(Integer, ForeignKey("images.id", ondelete="SET NULL"), nullable=True)
    # Contribution in whole currency units; drives tier placement.
    amount = Column(Integer, nullable=False, default=0)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    image = relationship("Image", lazy="joined")
    bindings = relationship("EventSponsor", back_populates="sponsor", cascade="all, delete-orphan")

    @property
    def image_url(self) -> str:
        return self.image.url if self.image else ""


class SponsorTier(Base):
    """A sponsorship level. Placement picks the highest threshold <= amount."""

    __tablename__ = "sponsor_tiers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    lower_threshold = Column(Integer, nullable=False, default=0, index=True)
    image_width = Column(Integer, nullable=False, default=0)
    image_height = Column(Integer, nullable=False, default=0)


class EventSponsor(Base):
    """Binding of a sponsor to an event at a given tier.

    ``tier_id`` is only ever null when no tier exists at all.
    """

    __tablename__ = "event_sponsors"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    sponsor_id = Column(Integer, ForeignKey("sponsors.id", ondelete="CASCADE"), nullable=False, index=True)
    tier_id = Column(Integer, ForeignKey("sponsor_tiers.id", ondelete="SET NULL"), nullable=True, index=True)

    event = relationship("Event", back_populates="sponsor_bindings")
    sponsor = relationship("Sponsor", back_populates="bindings", lazy="joined")
    tier = relationship("SponsorTier", lazy="joined")


__all__ = ["EventSponsor", "Image", "Sponsor", "SponsorTier"]
