"""Sponsor and sponsorship-tier persistence helpers."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.session import utcnow_iso
from ..models.event import Event
from ..models.sponsor import EventSponsor, Image, Sponsor, SponsorTier
from ..services.tier_reassignment import best_tier_for

# Logo box (px, square) used when a tier is created without explicit sizes.
DEFAULT_TIER_DIMENSIONS = {
    "bronze": 50,
    "silver": 100,
    "gold": 150,
    "platinum": 200,
}


def default_dimensions(tier_name: str | None) -> tuple[int, int]:
    size = DEFAULT_TIER_DIMENSIONS.get((tier_name or "").strip().lower(), 0)
    return size, size


def sponsor_view(binding: EventSponsor) -> dict[str, object]:
    """Flatten a binding into the row shape the sponsor page renders."""

    sponsor = binding.sponsor
    tier = binding.tier
    return {
        "id": sponsor.id,
        "binding_id": binding.id,
        "event_id": binding.event_id,
        "name": sponsor.name,
        "website": sponsor.website or "",
        "image_url": sponsor.image_url,
        "amount": sponsor.amount or 0,
        "tier_id": binding.tier_id,
        "tier": tier.name if tier else "",
    }


def list_event_sponsors(db: Session, event_id: int) -> list[EventSponsor]:
    stmt = (
        select(EventSponsor)
        .join(Sponsor, Sponsor.id == EventSponsor.sponsor_id)
        .where(EventSponsor.event_id == event_id)
        .order_by(Sponsor.amount.desc(), Sponsor.id)
    )
    return db.execute(stmt).unique().scalars().all()


def get_sponsor(db: Session, sponsor_id: int) -> Sponsor | None:
    return db.get(Sponsor, sponsor_id)


def _binding(db: Session, sponsor_id: int, event_id: int) -> EventSponsor | None:
    stmt = select(EventSponsor).where(
        EventSponsor.sponsor_id == sponsor_id,
        EventSponsor.event_id == event_id,
    )
    return db.execute(stmt).unique().scalars().first()


def _non_negative(value: object, field: str = "amount") -> int:
    try:
        number = int(value or 0)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field} must be a whole number") from exc
    if number < 0:
        raise ValueError(f"{field} must be a non-negative number")
    return number


def _tier(db: Session, tier_id: int | None) -> SponsorTier | None:
    if tier_id is None:
        return None
    tier = db.get(SponsorTier, tier_id)
    if not tier:
        raise LookupError("Tier not found")
    return tier


def _image(url: str | None) -> Image | None:
    url = (url or "").strip()
    return Image(url=url, created_at=utcnow_iso()) if url else None


def add_sponsor_to_event(db: Session, event_id: int, payload: dict) -> EventSponsor:
    """
    Create a sponsor and bind it to ``event_id``.

    Without an explicit ``tier_id`` the sponsor is placed by amount.
    """
    if db.get(Event, event_id) is None:
        raise LookupError("Event not found")
    name = (payload.get("name") or "").strip()
    if not name:
        raise ValueError("name is required for sponsors")
    amount = _non_negative(payload.get("amount"))

    tier = _tier(db, payload.get("tier_id"))
    if tier is None:
        tiers = db.execute(select(SponsorTier)).scalars().all()
        tier = best_tier_for(amount, tiers)

    now = utcnow_iso()
    sponsor = Sponsor(
        name=name,
        website=(payload.get("website") or "").strip(),
        amount=amount,
        image=_image(payload.get("image_url")),
        created_at=now,
        updated_at=now,
    )
    binding = EventSponsor(event_id=event_id, sponsor=sponsor, tier=tier)
    db.add(binding)
    db.commit()
    db.refresh(binding)
    return binding


def update_event_sponsor(db: Session, sponsor_id: int, payload: dict, event_id: int | None = None) -> Sponsor:
    """
    Update sponsor details and, for ``event_id``, its tier.
    """
    sponsor = db.get(Sponsor, sponsor_id)
    if not sponsor:
        raise LookupError("Sponsor not found")

    changed = False
    for key in ("name", "website"):
        if key in payload and payload[key] is not None:
            value = payload[key].strip()
            if key == "name" and not value:
                raise ValueError("name is required for sponsors")
            if getattr(sponsor, key) != value:
                setattr(sponsor, key, value)
                changed = True
    if "amount" in payload and payload["amount"] is not None:
        amount = _non_negative(payload["amount"])
        if sponsor.amount != amount:
            sponsor.amount = amount
            changed = True
    if payload.get("image_url") is not None and payload["image_url"].strip() != sponsor.image_url:
        sponsor.image = _image(payload["image_url"])
        changed = True
    if changed:
        sponsor.updated_at = utcnow_iso()

    if "tier_id" in payload:
        if event_id is None:
            raise ValueError("event_id is required to change a sponsor's tier")
        binding = _binding(db, sponsor_id, event_id)
        if not binding:
            raise LookupError("Sponsor is not associated with this event")
        tier = _tier(db, payload["tier_id"])
        binding.tier = tier
        binding.tier_id = tier.id if tier else None

    db.commit()
    db.refresh(sponsor)
    return sponsor


def remove_sponsor_from_event(db: Session, sponsor_id: int, event_id: int) -> bool:
    """
    Drop the sponsor from the event; a sponsor left without events is deleted.
    """
    binding = _binding(db, sponsor_id, event_id)
    if not binding:
        return False
    other = db.execute(
        select(EventSponsor.id).where(EventSponsor.sponsor_id == sponsor_id, EventSponsor.id != binding.id)
    ).first()
    if other is None:
        # The binding goes with it through the delete-orphan cascade.
        db.delete(binding.sponsor)
    else:
        db.delete(binding)
    db.commit()
    return True


# ---------- tiers ----------


def list_tiers(db: Session) -> list[SponsorTier]:
    stmt = select(SponsorTier).order_by(SponsorTier.lower_threshold, SponsorTier.id)
    return db.execute(stmt).scalars().all()


def get_tier(db: Session, tier_id: int) -> SponsorTier | None:
    return db.get(SponsorTier, tier_id)


def create_tier(db: Session, payload: dict) -> SponsorTier:
    name = (payload.get("name") or "").strip()
    if not name:
        raise ValueError("name is required for sponsor tiers")
    threshold = payload.get("lower_threshold")
    if threshold is None:
        raise ValueError("lower_threshold is required for sponsor tiers")
    threshold = _non_negative(threshold, "lower_threshold")

    width, height = payload.get("image_width"), payload.get("image_height")
    if not width and not height:
        width, height = default_dimensions(name)
    if not width or not height:
        raise ValueError("image_width and image_height are required for custom tiers")

    tier = SponsorTier(
        name=name,
        lower_threshold=threshold,
        image_width=_non_negative(width, "image_width"),
        image_height=_non_negative(height, "image_height"),
    )
    db.add(tier)
    db.commit()
    db.refresh(tier)
    return tier


def update_tier(db: Session, tier: SponsorTier, payload: dict) -> SponsorTier:
    """
    Partial update. Renaming a tier without sizes re-applies the defaults
    for known tier names.
    """
    data = {k: v for k, v in payload.items() if v is not None}
    if not data:
        raise ValueError("No valid fields provided for update")
    if "name" in data:
        name = data["name"].strip()
        if not name:
            raise ValueError("name is required for sponsor tiers")
        tier.name = name
        if "image_width" not in data and "image_height" not in data:
            width, height = default_dimensions(name)
            if width:
                data["image_width"], data["image_height"] = width, height
    if "lower_threshold" in data:
        tier.lower_threshold = _non_negative(data["lower_threshold"], "lower_threshold")
    if "image_width" in data:
        tier.image_width = _non_negative(data["image_width"], "image_width")
    if "image_height" in data:
        tier.image_height = _non_negative(data["image_height"], "image_height")
    db.commit()
    db.refresh(tier)
    return tier
