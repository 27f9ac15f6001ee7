# eventhub/crud/hardware.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.serials import normalize_serial, serial_aliases
from ..db.session import utcnow_iso
from ..models.hardware import HardwareImage, HardwareItem
from ..models.user import User
from ..services.hardware_families import HardwareFamily, group_by_family


def list_hardware_admin(db: Session, limit: int = 500, offset: int = 0) -> list[HardwareItem]:
    """
    Flat catalog for the lending desk, images included.
    """
    stmt = select(HardwareItem).order_by(HardwareItem.id).limit(limit).offset(offset)
    return db.execute(stmt).scalars().all()


def list_hardware_families(db: Session) -> list[HardwareFamily]:
    """
    Public catalog grouped into product families.
    """
    items = db.execute(select(HardwareItem).order_by(HardwareItem.id)).scalars().all()
    return group_by_family(items)


def get_availability_list(db: Session) -> list[dict[str, object]]:
    rows = db.execute(
        select(HardwareItem.name, HardwareItem.serial_number, HardwareItem.holder_id).order_by(HardwareItem.id)
    ).all()
    return [
        {
            "name": row.name,
            "serial_number": row.serial_number,
            "is_available": row.holder_id is None,
        }
        for row in rows
    ]


def get_hardware(db: Session, item_id: int) -> HardwareItem | None:
    return db.get(HardwareItem, item_id)


def find_hardware_by_serial(db: Session, serial: str | None) -> HardwareItem | None:
    """
    Look a device up by any spelling of its serial number.
    """
    aliases = serial_aliases(serial)
    if not aliases:
        return None
    item = db.execute(
        select(HardwareItem).where(HardwareItem.serial_number.in_(aliases)).order_by(HardwareItem.id)
    ).scalars().first()
    if item:
        return item
    # Stored serials may carry separators the lookup did not.
    compact = aliases[-1]
    for candidate in db.execute(select(HardwareItem).order_by(HardwareItem.id)).scalars():
        if compact in serial_aliases(candidate.serial_number):
            return candidate
    return None


def _clean_name(value: object) -> str:
    name = str(value or "").strip()
    if not name:
        raise ValueError("name is required for hardware items")
    return name


def _clean_serial(db: Session, value: object, *, exclude_id: int | None = None) -> str:
    serial = normalize_serial(value if isinstance(value, str) else None)
    if not serial:
        raise ValueError("serial_number is required for hardware items")
    existing = find_hardware_by_serial(db, serial)
    if existing and existing.id != exclude_id:
        raise ValueError(f"serial_number {serial} is already registered")
    return serial


def create_hardware(db: Session, payload: dict) -> HardwareItem:
    """
    Create and persist a hardware record from a payload dict.

    ``image_urls`` (optional) become ``HardwareImage`` rows in the same commit.
    """
    data = payload.copy()
    image_urls = data.pop("image_urls", None) or []
    data["name"] = _clean_name(data.get("name"))
    data["serial_number"] = _clean_serial(db, data.get("serial_number"))
    if isinstance(data.get("description"), str):
        data["description"] = data["description"].strip() or None
    data.pop("holder_id", None)

    now = utcnow_iso()
    data.setdefault("created_at", now)
    data["updated_at"] = now

    obj = HardwareItem(**data)
    for url in image_urls:
        if url and url.strip():
            obj.images.append(HardwareImage(image_url=url.strip(), created_at=now))
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def update_hardware(db: Session, item: HardwareItem, payload: dict) -> HardwareItem:
    """
    Update an existing hardware record in-place from a payload dict.
    Unknown keys are ignored; lending state only changes through checkout/return.
    """
    changed = False
    for k, v in payload.items():
        if k in ("id", "holder_id", "created_at", "updated_at", "images") or not hasattr(item, k):
            continue
        if k == "name":
            v = _clean_name(v)
        elif k == "serial_number":
            v = _clean_serial(db, v, exclude_id=item.id)
        elif isinstance(v, str):
            v = v.strip() or None
        if getattr(item, k) != v:
            setattr(item, k, v)
            changed = True
    if changed:
        item.updated_at = utcnow_iso()
        db.commit()
        db.refresh(item)
    return item


def delete_hardware(db: Session, item: HardwareItem) -> None:
    db.delete(item)
    db.commit()


def lend_hardware(db: Session, item: HardwareItem, user_id: int) -> HardwareItem:
    """
    Hand a device to a participant.
    """
    if db.get(User, user_id) is None:
        raise LookupError("User not found")
    if item.holder_id is not None:
        raise ValueError(f"{item.name} is already lent out")
    if not item.functional:
        raise ValueError(f"{item.name} is marked as not functional")
    item.holder_id = user_id
    item.updated_at = utcnow_iso()
    db.commit()
    db.refresh(item)
    return item


def return_hardware(db: Session, item: HardwareItem) -> HardwareItem:
    if item.holder_id is None:
        raise ValueError(f"{item.name} is not lent out")
    item.holder_id = None
    item.updated_at = utcnow_iso()
    db.commit()
    db.refresh(item)
    return item


def list_hardware_images(db: Session, hardware_id: int) -> list[HardwareImage]:
    stmt = select(HardwareImage).where(HardwareImage.hardware_id == hardware_id).order_by(HardwareImage.id)
    return db.execute(stmt).scalars().all()


def add_hardware_image(db: Session, item: HardwareItem, image_url: str) -> HardwareImage:
    url = (image_url or "").strip()
    if not url:
        raise ValueError("image_url is required")
    image = HardwareImage(hardware_id=item.id, image_url=url, created_at=utcnow_iso())
    db.add(image)
    db.commit()
    db.refresh(image)
    return image


def delete_hardware_image(db: Session, image_id: int) -> bool:
    image = db.get(HardwareImage, image_id)
    if not image:
        return False
    db.delete(image)
    db.commit()
    return True
