"""Tests for moving sponsors off a deleted tier."""

import os
import random
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))
os.environ.setdefault("AUDIT_ENABLED", "false")

from eventhub.core.errors import TierReassignmentError
from eventhub.crud.events import create_event
from eventhub.crud.sponsors import add_sponsor_to_event, create_tier, list_tiers
from eventhub.db.session import Base
from eventhub.models import EventSponsor, SponsorTier
from eventhub.services.tier_reassignment import best_tier_for, plan_reassignments, reassign_and_delete


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def _tier(tier_id, threshold):
    return SimpleNamespace(id=tier_id, lower_threshold=threshold)


def _binding(binding_id, amount):
    return SimpleNamespace(id=binding_id, sponsor=SimpleNamespace(amount=amount))


def _event(db):
    return create_event(db, {"name": "HackWeek", "start_date": "2026-03-01", "end_date": "2026-03-03"})


def _sponsor(db, event, name, amount, tier):
    return add_sponsor_to_event(db, event.id, {"name": name, "amount": amount, "tier_id": tier.id})


def test_best_tier_picks_highest_qualifying_threshold():
    tiers = [_tier(3, 5000), _tier(1, 0), _tier(2, 1000)]

    assert best_tier_for(1500, tiers).id == 2
    assert best_tier_for(5000, tiers).id == 3
    assert best_tier_for(0, tiers).id == 1
    assert best_tier_for(None, tiers).id == 1


def test_best_tier_falls_back_to_lowest_tier():
    tiers = [_tier(4, 1000), _tier(5, 500)]

    assert best_tier_for(10, tiers).id == 5


def test_best_tier_without_tiers():
    assert best_tier_for(100, []) is None


def test_equal_thresholds_resolve_by_id():
    tiers = [_tier(9, 100), _tier(2, 100)]

    assert best_tier_for(150, tiers).id == 9
    assert best_tier_for(50, tiers).id == 2


def test_plan_matches_brute_force():
    rng = random.Random(1234)
    for _ in range(200):
        thresholds = sorted(rng.sample(range(0, 10000, 50), rng.randint(0, 5)))
        tiers = [_tier(i + 1, t) for i, t in enumerate(thresholds)]
        rng.shuffle(tiers)
        bindings = [_binding(b, rng.randint(0, 12000)) for b in range(10)]

        plan = plan_reassignments(tiers, bindings)

        for binding in bindings:
            amount = binding.sponsor.amount
            if not thresholds:
                expected = None
            else:
                qualifying = [t for t in tiers if t.lower_threshold <= amount]
                pick = max(qualifying, key=lambda t: t.lower_threshold) if qualifying else min(
                    tiers, key=lambda t: t.lower_threshold
                )
                expected = pick.id
            assert plan[binding.id] == expected


def test_deleting_middle_tier_moves_sponsor_down(db_session):
    event = _event(db_session)
    base = create_tier(db_session, {"name": "Bronze", "lower_threshold": 0})
    middle = create_tier(db_session, {"name": "Silver", "lower_threshold": 1000})
    top = create_tier(db_session, {"name": "Gold", "lower_threshold": 5000})
    binding = _sponsor(db_session, event, "Acme", 1500, middle)
    untouched = _sponsor(db_session, event, "Globex", 6000, top)

    plan = reassign_and_delete(db_session, middle.id)

    assert plan == {binding.id: base.id}
    db_session.expire_all()
    assert db_session.get(EventSponsor, binding.id).tier_id == base.id
    assert db_session.get(EventSponsor, untouched.id).tier_id == top.id
    assert [t.name for t in list_tiers(db_session)] == ["Bronze", "Gold"]


def test_deleting_last_tier_leaves_sponsors_unassigned(db_session):
    event = _event(db_session)
    only = create_tier(db_session, {"name": "Gold", "lower_threshold": 100})
    first = _sponsor(db_session, event, "Acme", 500, only)
    second = _sponsor(db_session, event, "Initech", 50, only)

    plan = reassign_and_delete(db_session, only.id)

    assert plan == {first.id: None, second.id: None}
    db_session.expire_all()
    assert list_tiers(db_session) == []
    assert db_session.get(EventSponsor, first.id).tier_id is None
    assert db_session.get(EventSponsor, second.id).tier_id is None


def test_no_binding_references_deleted_tier(db_session):
    event = _event(db_session)
    tiers = [
        create_tier(db_session, {"name": name, "lower_threshold": threshold})
        for name, threshold in (("Bronze", 0), ("Silver", 1000), ("Gold", 5000), ("Platinum", 20000))
    ]
    for index, amount in enumerate((0, 999, 1000, 4999, 5000, 25000)):
        _sponsor(db_session, event, f"Sponsor {index}", amount, tiers[2])

    doomed_id = tiers[2].id

    reassign_and_delete(db_session, doomed_id)

    db_session.expire_all()
    remaining = db_session.execute(select(EventSponsor.tier_id)).scalars().all()
    assert doomed_id not in remaining
    by_name = {
        b.sponsor.name: b.tier.name for b in db_session.execute(select(EventSponsor)).unique().scalars()
    }
    assert by_name == {
        "Sponsor 0": "Bronze",
        "Sponsor 1": "Bronze",
        "Sponsor 2": "Silver",
        "Sponsor 3": "Silver",
        "Sponsor 4": "Silver",
        "Sponsor 5": "Platinum",
    }


def test_unknown_tier_raises_lookup_error(db_session):
    with pytest.raises(LookupError):
        reassign_and_delete(db_session, 999)


def test_failed_write_rolls_everything_back(db_session, monkeypatch):
    event = _event(db_session)
    base = create_tier(db_session, {"name": "Bronze", "lower_threshold": 0})
    doomed = create_tier(db_session, {"name": "Silver", "lower_threshold": 1000})
    binding = _sponsor(db_session, event, "Acme", 1500, doomed)
    binding_id, doomed_id = binding.id, doomed.id

    def boom():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db_session, "commit", boom)

    with pytest.raises(TierReassignmentError) as excinfo:
        reassign_and_delete(db_session, doomed_id)

    assert excinfo.value.tier_id == doomed_id
    monkeypatch.undo()
    db_session.expire_all()
    assert db_session.get(SponsorTier, doomed_id) is not None
    assert db_session.get(EventSponsor, binding_id).tier_id == doomed_id
    assert base.id in [t.id for t in list_tiers(db_session)]
