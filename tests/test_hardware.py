"""Tests for hardware records, lending and serial lookups."""

import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))
os.environ.setdefault("AUDIT_ENABLED", "false")

from eventhub.core.serials import normalize_serial, serial_aliases
from eventhub.crud.hardware import (
    add_hardware_image,
    create_hardware,
    delete_hardware,
    delete_hardware_image,
    find_hardware_by_serial,
    get_availability_list,
    get_hardware,
    lend_hardware,
    list_hardware_families,
    list_hardware_images,
    return_hardware,
    update_hardware,
)
from eventhub.crud.users import create_user
from eventhub.db.session import Base


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


def _user(db):
    return create_user(
        db, {"first_name": "Grace", "last_name": "Hopper", "email": "grace@example.com", "password": "x$hash"}
    )


def test_serial_normalisation():
    assert normalize_serial("  ab-12   34 ") == "AB-12 34"
    assert normalize_serial("   ") is None
    assert serial_aliases("ab-12 34") == ["AB-12 34", "AB1234"]
    assert serial_aliases(None) == []


def test_create_hardware_normalises_and_requires_fields(db_session):
    item = create_hardware(
        db_session,
        {
            "name": "  Raspberry Pi 4 ",
            "serial_number": "rpi-001",
            "description": " 4GB ",
            "image_urls": ["https://cdn/pi.png", " "],
        },
    )

    assert item.name == "Raspberry Pi 4"
    assert item.serial_number == "RPI-001"
    assert item.description == "4GB"
    assert item.functional is True
    assert item.is_available
    assert item.image_urls == ["https://cdn/pi.png"]
    assert item.created_at == item.updated_at

    with pytest.raises(ValueError):
        create_hardware(db_session, {"name": "", "serial_number": "X-1"})
    with pytest.raises(ValueError):
        create_hardware(db_session, {"name": "Arduino", "serial_number": "  "})


def test_duplicate_serials_are_rejected_in_any_spelling(db_session):
    create_hardware(db_session, {"name": "Oculus Quest", "serial_number": "OQ-2020-01"})

    with pytest.raises(ValueError):
        create_hardware(db_session, {"name": "Oculus Quest", "serial_number": "oq 2020 01"})
    assert find_hardware_by_serial(db_session, "oq202001").name == "Oculus Quest"
    assert find_hardware_by_serial(db_session, "nope") is None


def test_update_ignores_lending_fields(db_session):
    item = create_hardware(db_session, {"name": "Arduino Uno", "serial_number": "ARD-1"})

    update_hardware(db_session, item, {"holder_id": 5, "name": "Arduino Mega", "functional": False, "bogus": 1})

    assert item.name == "Arduino Mega"
    assert item.functional is False
    assert item.holder_id is None


def test_lend_and_return(db_session):
    user = _user(db_session)
    item = create_hardware(db_session, {"name": "Leap Motion", "serial_number": "LM-1"})

    lend_hardware(db_session, item, user.id)
    assert item.holder_id == user.id
    assert get_availability_list(db_session) == [
        {"name": "Leap Motion", "serial_number": "LM-1", "is_available": False}
    ]
    with pytest.raises(ValueError):
        lend_hardware(db_session, item, user.id)

    return_hardware(db_session, item)
    assert item.is_available
    with pytest.raises(ValueError):
        return_hardware(db_session, item)


def test_lending_rules(db_session):
    user = _user(db_session)
    broken = create_hardware(db_session, {"name": "Kinect", "serial_number": "K-1", "functional": False})

    with pytest.raises(LookupError):
        lend_hardware(db_session, broken, 999)
    with pytest.raises(ValueError):
        lend_hardware(db_session, broken, user.id)


def test_catalog_groups_families_with_availability(db_session):
    user = _user(db_session)
    pi4 = create_hardware(db_session, {"name": "Raspberry Pi 4", "serial_number": "P4"})
    create_hardware(db_session, {"name": "Raspberry Pi Zero", "serial_number": "PZ"})
    create_hardware(db_session, {"name": "Arduino Uno", "serial_number": "AU"})
    lend_hardware(db_session, pi4, user.id)

    families = list_hardware_families(db_session)

    assert [f.title for f in families] == ["Raspberry Pi", "Arduino"]
    assert [i.is_unavailable for i in families[0].items] == [True, False]


def test_images(db_session):
    item = create_hardware(db_session, {"name": "Oculus Rift", "serial_number": "OR-1"})

    first = add_hardware_image(db_session, item, "https://cdn/rift-1.png")
    add_hardware_image(db_session, item, "https://cdn/rift-2.png")
    with pytest.raises(ValueError):
        add_hardware_image(db_session, item, "  ")

    assert [i.image_url for i in list_hardware_images(db_session, item.id)] == [
        "https://cdn/rift-1.png",
        "https://cdn/rift-2.png",
    ]
    assert delete_hardware_image(db_session, first.id) is True
    assert delete_hardware_image(db_session, first.id) is False
    db_session.refresh(item)
    assert item.image_urls == ["https://cdn/rift-2.png"]


def test_delete_removes_images(db_session):
    item = create_hardware(
        db_session, {"name": "Oculus Rift", "serial_number": "OR-2", "image_urls": ["https://cdn/a.png"]}
    )
    item_id = item.id

    delete_hardware(db_session, item)

    assert get_hardware(db_session, item_id) is None
    assert list_hardware_images(db_session, item_id) == []
