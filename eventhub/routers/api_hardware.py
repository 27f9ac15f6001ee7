from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..crud.hardware import (
    add_hardware_image,
    create_hardware,
    delete_hardware,
    delete_hardware_image,
    get_availability_list,
    get_hardware,
    lend_hardware,
    list_hardware_admin,
    list_hardware_families,
    list_hardware_images,
    return_hardware,
    update_hardware,
)
from ..db.session import get_db
from ..deps.auth import get_audited_db, require_api_or_jwt
from ..schemas.hardware import (
    AvailabilityOut,
    CheckoutIn,
    HardwareCreate,
    HardwareFamilyOut,
    HardwareImageIn,
    HardwareImageOut,
    HardwareOut,
    HardwareUpdate,
)

router = APIRouter(prefix="/api/v1/hardware", tags=["hardware"], dependencies=[Depends(require_api_or_jwt)])


def _get_or_404(db: Session, item_id: int):
    item = get_hardware(db, item_id)
    if not item:
        raise HTTPException(404, "Not found")
    return item


@router.get("", response_model=list[HardwareFamilyOut])
def api_catalog(db: Session = Depends(get_db)):
    return list_hardware_families(db)


@router.get("/admin", response_model=list[HardwareOut])
def api_list_admin(limit: int = 500, offset: int = 0, db: Session = Depends(get_db)):
    return list_hardware_admin(db, limit=limit, offset=offset)


@router.get("/availability", response_model=list[AvailabilityOut])
def api_availability(db: Session = Depends(get_db)):
    return get_availability_list(db)


# Registered before "/{item_id}" so "images" is not parsed as an id.
@router.delete("/images/{image_id}")
def api_delete_image(image_id: int, db: Session = Depends(get_audited_db)):
    if not delete_hardware_image(db, image_id):
        raise HTTPException(404, "Not found")
    return {"status": "deleted"}


@router.get("/{item_id}", response_model=HardwareOut)
def api_get(item_id: int, db: Session = Depends(get_db)):
    return _get_or_404(db, item_id)


@router.post("", response_model=HardwareOut, status_code=201)
def api_create(payload: HardwareCreate, db: Session = Depends(get_audited_db)):
    try:
        return create_hardware(db, payload.model_dump(exclude_none=True))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.patch("/{item_id}", response_model=HardwareOut)
def api_update(item_id: int, payload: HardwareUpdate, db: Session = Depends(get_audited_db)):
    item = _get_or_404(db, item_id)
    data = payload.model_dump(exclude_none=True)
    if not data:
        return item
    try:
        return update_hardware(db, item, data)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.delete("/{item_id}")
def api_delete(item_id: int, db: Session = Depends(get_audited_db)):
    delete_hardware(db, _get_or_404(db, item_id))
    return {"status": "deleted"}


@router.post("/{item_id}/checkout", response_model=HardwareOut)
def api_checkout(item_id: int, payload: CheckoutIn, db: Session = Depends(get_audited_db)):
    item = _get_or_404(db, item_id)
    try:
        return lend_hardware(db, item, payload.user_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.post("/{item_id}/return", response_model=HardwareOut)
def api_return(item_id: int, db: Session = Depends(get_audited_db)):
    item = _get_or_404(db, item_id)
    try:
        return return_hardware(db, item)
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.get("/{item_id}/images", response_model=list[HardwareImageOut])
def api_list_images(item_id: int, db: Session = Depends(get_db)):
    _get_or_404(db, item_id)
    return list_hardware_images(db, item_id)


@router.post("/{item_id}/images", response_model=HardwareImageOut, status_code=201)
def api_add_image(item_id: int, payload: HardwareImageIn, db: Session = Depends(get_audited_db)):
    item = _get_or_404(db, item_id)
    try:
        return add_hardware_image(db, item, payload.image_url)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
