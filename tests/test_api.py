"""HTTP-level tests for the JSON API."""

import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))
os.environ.setdefault("AUDIT_ENABLED", "false")

from eventhub.core.config import settings
from eventhub.core.errors import TierReassignmentError
from eventhub.core.security import issue_token_pair
from eventhub.crud.users import create_user
from eventhub.db.session import Base, get_db
from eventhub.main import app
from eventhub.models import build_entity_registry
from eventhub.routers import api_sponsors
from eventhub.services.audit import AuditInterceptor


@pytest.fixture()
def session_factory():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    return TestingSessionLocal


@pytest.fixture()
def client(session_factory, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "")

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def audit_hooks():
    hooks = AuditInterceptor()
    hooks.attach(build_entity_registry())
    try:
        yield hooks
    finally:
        hooks.detach()


def _user_id(session_factory, email="lender@example.com"):
    db = session_factory()
    try:
        return create_user(
            db, {"first_name": "Lin", "last_name": "Lender", "email": email, "password": "x$hash"}
        ).id
    finally:
        db.close()


def _event_id(client):
    resp = client.post(
        "/api/v1/events",
        json={"name": "HackWeek", "start_date": "2026-03-01", "end_date": "2026-03-03"},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


def test_health_and_headers(client):
    resp = client.get("/health")

    assert resp.json() == {"ok": True}
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Request-ID"]


def test_api_key_is_enforced_when_configured(client, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "s3cret")

    missing = client.get("/api/v1/hardware")
    wrong = client.get("/api/v1/hardware", headers={"X-API-Key": "nope"})
    ok = client.get("/api/v1/hardware", headers={"X-API-Key": "s3cret"})

    assert missing.status_code == 401
    assert missing.json()["code"] == "http_error"
    assert wrong.status_code == 401
    assert ok.status_code == 200


def test_hardware_flow(client, session_factory):
    user_id = _user_id(session_factory)
    created = client.post(
        "/api/v1/hardware",
        json={"name": "Raspberry Pi 4", "serial_number": "rpi-1", "image_urls": ["https://cdn/pi.png"]},
    )
    assert created.status_code == 201, created.text
    item = created.json()
    assert item["serial_number"] == "RPI-1"
    assert item["images"][0]["image_url"] == "https://cdn/pi.png"
    client.post("/api/v1/hardware", json={"name": "Raspberry Pi Zero", "serial_number": "rpi-2"})

    catalog = client.get("/api/v1/hardware").json()
    assert [f["title"] for f in catalog] == ["Raspberry Pi"]
    assert catalog[0]["items"][0]["image"] == "https://cdn/pi.png"

    lent = client.post(f"/api/v1/hardware/{item['id']}/checkout", json={"user_id": user_id})
    assert lent.json()["holder_id"] == user_id
    again = client.post(f"/api/v1/hardware/{item['id']}/checkout", json={"user_id": user_id})
    assert again.status_code == 409
    availability = client.get("/api/v1/hardware/availability").json()
    assert availability[0] == {"name": "Raspberry Pi 4", "serial_number": "RPI-1", "is_available": False}

    returned = client.post(f"/api/v1/hardware/{item['id']}/return")
    assert returned.json()["is_available"] is True

    patched = client.patch(f"/api/v1/hardware/{item['id']}", json={"description": "4GB"})
    assert patched.json()["description"] == "4GB"
    assert client.delete(f"/api/v1/hardware/{item['id']}").json() == {"status": "deleted"}
    assert client.get(f"/api/v1/hardware/{item['id']}").status_code == 404


def test_hardware_images(client):
    item = client.post("/api/v1/hardware", json={"name": "Oculus Rift", "serial_number": "OR-1"}).json()

    image = client.post(f"/api/v1/hardware/{item['id']}/images", json={"image_url": "https://cdn/rift.png"})
    assert image.status_code == 201
    listed = client.get(f"/api/v1/hardware/{item['id']}/images").json()
    assert [i["image_url"] for i in listed] == ["https://cdn/rift.png"]

    assert client.delete(f"/api/v1/hardware/images/{image.json()['id']}").status_code == 200
    assert client.delete(f"/api/v1/hardware/images/{image.json()['id']}").status_code == 404


def test_error_envelopes(client):
    missing = client.get("/api/v1/hardware/999")
    assert missing.status_code == 404
    assert missing.json() == {"code": "http_error", "message": "Not found"}

    invalid = client.post("/api/v1/hardware", json={"name": "No serial"})
    assert invalid.status_code == 422
    assert invalid.json()["code"] == "validation_error"

    blank = client.post("/api/v1/hardware", json={"name": "Blank", "serial_number": "  "})
    assert blank.status_code == 422
    assert "serial_number" in blank.json()["message"]


def test_sponsor_tier_deletion_returns_refreshed_lists(client):
    event_id = _event_id(client)
    bronze = client.post("/api/v1/sponsors/tiers", json={"name": "Bronze", "lower_threshold": 0}).json()
    silver = client.post("/api/v1/sponsors/tiers", json={"name": "Silver", "lower_threshold": 1000}).json()
    client.post("/api/v1/sponsors/tiers", json={"name": "Gold", "lower_threshold": 5000})
    assert silver["image_width"] == 100

    sponsor = client.post("/api/v1/sponsors", json={"event_id": event_id, "name": "Acme", "amount": 1500})
    assert sponsor.status_code == 201, sponsor.text
    assert sponsor.json()["tier"] == "Silver"

    listed = client.get("/api/v1/sponsors", params={"event_id": event_id}).json()
    assert listed["tiers"] == ["Silver"]

    resp = client.delete(f"/api/v1/sponsors/tiers/{silver['id']}", params={"event_id": event_id})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["sponsors"][0]["tier_id"] == bronze["id"]
    assert [t["name"] for t in body["tiers"]] == ["Bronze", "Gold"]

    assert client.delete(f"/api/v1/sponsors/tiers/{silver['id']}").status_code == 404


def test_failed_tier_deletion_is_reported(client, monkeypatch):
    tier = client.post("/api/v1/sponsors/tiers", json={"name": "Gold", "lower_threshold": 0}).json()

    def fail(db, tier_id):
        raise TierReassignmentError(tier_id)

    monkeypatch.setattr(api_sponsors, "reassign_and_delete", fail)

    resp = client.delete(f"/api/v1/sponsors/tiers/{tier['id']}")
    assert resp.status_code == 500
    assert resp.json()["code"] == "tier_reassignment_failed"
    assert resp.json()["details"] == {"tier_id": tier["id"]}


def test_sponsor_update_and_removal(client):
    event_id = _event_id(client)
    gold = client.post("/api/v1/sponsors/tiers", json={"name": "Gold", "lower_threshold": 0}).json()
    sponsor = client.post("/api/v1/sponsors", json={"event_id": event_id, "name": "Acme"}).json()

    updated = client.patch(
        f"/api/v1/sponsors/{sponsor['id']}",
        json={"event_id": event_id, "website": "https://acme.test", "tier_id": None},
    )
    assert updated.status_code == 200, updated.text
    assert updated.json()[0]["website"] == "https://acme.test"
    assert updated.json()[0]["tier_id"] is None
    assert gold["id"] != updated.json()[0]["tier_id"]

    removed = client.delete(f"/api/v1/sponsors/{sponsor['id']}", params={"event_id": event_id})
    assert removed.status_code == 204
    assert client.get("/api/v1/sponsors", params={"event_id": event_id}).json()["sponsors"] == []


def test_events_and_teams(client, session_factory):
    event_id = _event_id(client)
    user_id = _user_id(session_factory, "member@example.com")

    registered = client.post(f"/api/v1/events/{event_id}/participants", json={"user_id": user_id})
    assert registered.status_code == 201
    assert registered.json()["email"] == "member@example.com"

    team = client.post("/api/v1/teams", json={"event_id": event_id, "name": "Null Pointers"})
    assert team.status_code == 201, team.text
    team_id = team.json()["id"]
    member = client.post(f"/api/v1/teams/{team_id}/members", json={"user_id": user_id})
    assert member.json()["team_id"] == team_id

    teams = client.get("/api/v1/teams", params={"event_id": event_id}).json()
    assert [t["name"] for t in teams] == ["Null Pointers"]
    participants = client.get(f"/api/v1/events/{event_id}/participants").json()
    assert participants[0]["team_id"] == team_id

    assert client.post(f"/api/v1/teams/{team_id}/members", json={"user_id": 999}).status_code == 404


def test_audit_search_attributes_jwt_user(client, audit_hooks):
    token = issue_token_pair(17).access_token
    headers = {"Authorization": f"Bearer {token}"}

    created = client.post("/api/v1/hardware", json={"name": "Leap Motion", "serial_number": "LM-1"}, headers=headers)
    assert created.status_code == 201
    client.patch(f"/api/v1/hardware/{created.json()['id']}", json={"name": "Leap Motion 2"})

    resp = client.post("/api/v1/audit-logs/search", json={"entity_type": "HardwareItem", "sort": "ASC"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 2
    assert (body["page"], body["limit"]) == (1, 50)
    create, update = body["entries"]
    assert create["action"] == "CREATE"
    assert create["actor_user_id"] == 17
    assert create["old_value"] is None
    assert update["old_value"]["name"] == "Leap Motion"
    assert update["actor_user_id"] is None

    filtered = client.post("/api/v1/audit-logs/search", json={"actor_user_id": 17, "action": "CREATE"}).json()
    assert filtered["count"] == 1


def test_categories_and_schedule(client):
    event_id = _event_id(client)

    created = client.post(f"/api/v1/events/{event_id}/categories", json={"name": "Best Hardware Hack"})
    assert created.status_code == 201, created.text
    category_id = created.json()["id"]
    assert client.post(f"/api/v1/events/{event_id}/categories", json={"name": "best hardware hack"}).status_code == 422
    assert client.post("/api/v1/events/999/categories", json={"name": "Orphan"}).status_code == 404

    renamed = client.patch(f"/api/v1/events/categories/{category_id}", json={"name": "Best Use of Hardware"})
    assert renamed.json()["name"] == "Best Use of Hardware"
    assert client.get(f"/api/v1/events/categories/{category_id}").json()["event_id"] == event_id

    late = client.post(
        f"/api/v1/events/{event_id}/activities", json={"name": "Demos", "starts_at": "2026-03-03T17:00:00+01:00"}
    )
    assert late.status_code == 201, late.text
    assert late.json()["starts_at"] == "2026-03-03T16:00:00Z"
    early = client.post(f"/api/v1/events/{event_id}/activities", json={"name": "Kickoff", "starts_at": "2026-03-01"})
    assert client.post(
        f"/api/v1/events/{event_id}/activities", json={"name": "Lunch", "starts_at": "noon"}
    ).status_code == 422

    schedule = client.get(f"/api/v1/events/{event_id}/activities").json()
    assert [a["name"] for a in schedule] == ["Kickoff", "Demos"]

    moved = client.patch(
        f"/api/v1/events/activities/{early.json()['id']}", json={"description": "Doors open at eight"}
    )
    assert moved.json()["description"] == "Doors open at eight"
    assert moved.json()["starts_at"] == "2026-03-01T00:00:00Z"

    assert client.delete(f"/api/v1/events/activities/{late.json()['id']}").json() == {"status": "deleted"}
    assert client.delete(f"/api/v1/events/categories/{category_id}").json() == {"status": "deleted"}
    assert client.get(f"/api/v1/events/categories/{category_id}").status_code == 404
    assert [a["name"] for a in client.get(f"/api/v1/events/{event_id}/activities").json()] == ["Kickoff"]


def test_team_helpers_and_project_details(client, session_factory):
    ended_id = _event_id(client)
    running = client.post(
        "/api/v1/events", json={"name": "Forever Hack", "start_date": "2026-01-01", "end_date": "2999-12-31"}
    )
    running_id = running.json()["id"]
    first = _user_id(session_factory, "first@example.com")
    second = _user_id(session_factory, "second@example.com")
    for user_id in (first, second):
        client.post(f"/api/v1/events/{running_id}/participants", json={"user_id": user_id})

    team_id = client.post("/api/v1/teams", json={"event_id": running_id, "name": "Night Owls"}).json()["id"]
    client.post(f"/api/v1/teams/{team_id}/members", json={"user_id": first})

    unassigned = client.get("/api/v1/teams/unassigned", params={"event_id": running_id})
    assert unassigned.status_code == 200
    assert [p["user_id"] for p in unassigned.json()] == [second]
    assert client.get("/api/v1/teams/unassigned", params={"event_id": 999}).status_code == 404

    mine = client.get(f"/api/v1/teams/users/{first}", params={"event_id": running_id}).json()
    assert mine == {"event_id": running_id, "user_id": first, "team_id": team_id}
    assert client.get(f"/api/v1/teams/users/{second}", params={"event_id": running_id}).json()["team_id"] is None

    submitted = client.put(
        f"/api/v1/teams/{team_id}/project-details",
        json={"project_name": "Sleep Tracker", "presentation_link": "https://slides.example.com/owls"},
    )
    assert submitted.status_code == 200, submitted.text
    details = client.get(f"/api/v1/teams/{team_id}/project-details").json()
    assert details == {
        "team_id": team_id,
        "project_name": "Sleep Tracker",
        "project_description": None,
        "presentation_link": "https://slides.example.com/owls",
        "github_link": None,
    }

    closed_team = client.post("/api/v1/teams", json={"event_id": ended_id, "name": "Too Late"}).json()["id"]
    closed = client.put(f"/api/v1/teams/{closed_team}/project-details", json={"project_name": "Nope"})
    assert closed.status_code == 403
    assert client.get("/api/v1/teams/999/project-details").status_code == 404
