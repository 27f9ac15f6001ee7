"""Move sponsors off a tier that is being deleted.

Every sponsor bound to the doomed tier is placed in the best remaining tier
for its contribution: the highest ``lower_threshold`` not above the amount,
or the lowest tier when the amount is below every threshold. Bindings are
left without a tier only when no tier remains at all.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import TierReassignmentError
from ..models import EventSponsor, SponsorTier

logger = logging.getLogger(__name__)


def _ordered(tiers: Iterable[Any]) -> list[Any]:
    return sorted(tiers, key=lambda t: (t.lower_threshold or 0, t.id))


def best_tier_for(amount: int | None, tiers: Sequence[Any]) -> Any | None:
    """Highest tier whose threshold is <= ``amount``; lowest tier otherwise."""

    ordered = _ordered(tiers)
    if not ordered:
        return None
    amount = amount or 0
    chosen = ordered[0]
    for tier in ordered:
        if (tier.lower_threshold or 0) <= amount:
            chosen = tier
        else:
            break
    return chosen


def plan_reassignments(remaining_tiers: Sequence[Any], bindings: Iterable[Any]) -> dict[int, int | None]:
    """Map each binding id to its new tier id (``None`` when no tier is left).

    Bindings need ``id`` and ``sponsor.amount``.
    """

    ordered = _ordered(remaining_tiers)
    plan: dict[int, int | None] = {}
    for binding in bindings:
        sponsor = getattr(binding, "sponsor", None)
        tier = best_tier_for(getattr(sponsor, "amount", None), ordered)
        plan[binding.id] = tier.id if tier is not None else None
    return plan


def reassign_and_delete(db: Session, deleted_tier_id: int) -> dict[int, int | None]:
    """Re-bucket the tier's sponsors, then delete it, in one transaction.

    Raises ``LookupError`` for an unknown tier and ``TierReassignmentError``
    when anything fails while writing; in that case nothing is kept.
    """

    tier = db.get(SponsorTier, deleted_tier_id)
    if not tier:
        raise LookupError("Tier not found")

    remaining = db.scalars(
        select(SponsorTier)
        .where(SponsorTier.id != deleted_tier_id)
        .order_by(SponsorTier.lower_threshold, SponsorTier.id)
    ).all()
    bindings = db.scalars(
        select(EventSponsor).where(EventSponsor.tier_id == deleted_tier_id).order_by(EventSponsor.id)
    ).all()
    plan = plan_reassignments(remaining, bindings)
    by_id = {t.id: t for t in remaining}

    try:
        for binding in bindings:
            target_id = plan[binding.id]
            binding.tier = by_id.get(target_id) if target_id is not None else None
            binding.tier_id = target_id
        # Bindings must be written before the tier row goes away.
        db.flush()
        db.delete(tier)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "tier.reassignment_failed",
            extra={"extra_data": {"tier_id": deleted_tier_id, "bindings": len(bindings)}},
        )
        raise TierReassignmentError(deleted_tier_id) from exc

    logger.info(
        "tier.deleted",
        extra={
            "extra_data": {
                "tier_id": deleted_tier_id,
                "reassigned": sum(1 for v in plan.values() if v is not None),
                "unassigned": sum(1 for v in plan.values() if v is None),
            }
        },
    )
    return plan


__all__ = ["best_tier_for", "plan_reassignments", "reassign_and_delete"]
