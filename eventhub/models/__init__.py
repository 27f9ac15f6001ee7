"""SQLAlchemy models.

Importing this package registers every table with ``Base.metadata``. Without
that step ``Base.metadata.create_all`` would not know about our tables.
"""

from __future__ import annotations

from .audit import AuditAction, AuditLogEntry
from .event import Event, EventActivity, EventCategory, EventParticipant, Team
from .hardware import HardwareImage, HardwareItem
from .sponsor import EventSponsor, Image, Sponsor, SponsorTier
from .user import User

# Every persisted entity, in the order the audit registry lists them.
ALL_MODELS = (
    User,
    Event,
    EventCategory,
    EventActivity,
    Team,
    EventParticipant,
    Image,
    Sponsor,
    SponsorTier,
    EventSponsor,
    HardwareItem,
    HardwareImage,
    AuditLogEntry,
)


def build_entity_registry():
    """Explicit list of entities the audit interceptor may track."""

    from ..services.audit import EntityRegistry

    registry = EntityRegistry()
    for model in ALL_MODELS:
        registry.register(model.__name__, model)
    return registry


__all__ = [
    "ALL_MODELS",
    "AuditAction",
    "AuditLogEntry",
    "Event",
    "EventActivity",
    "EventCategory",
    "EventParticipant",
    "EventSponsor",
    "HardwareImage",
    "HardwareItem",
    "Image",
    "Sponsor",
    "SponsorTier",
    "Team",
    "User",
    "build_entity_registry",
]
