"""Pydantic schemas for the hardware lending desk."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class HardwareBase(BaseModel):
    name: str
    serial_number: str
    description: Optional[str] = None
    functional: bool = True


class HardwareCreate(HardwareBase):
    image_urls: list[str] = Field(default_factory=list)


class HardwareUpdate(BaseModel):
    name: Optional[str] = None
    serial_number: Optional[str] = None
    description: Optional[str] = None
    functional: Optional[bool] = None


class HardwareImageIn(BaseModel):
    image_url: str


class HardwareImageOut(BaseModel):
    id: int
    hardware_id: int
    image_url: str
    created_at: str

    class Config:
        from_attributes = True


class HardwareOut(HardwareBase):
    id: int
    holder_id: Optional[int] = None
    is_available: bool
    created_at: str
    updated_at: str
    images: list[HardwareImageOut] = Field(default_factory=list)

    class Config:
        from_attributes = True


class CheckoutIn(BaseModel):
    user_id: int


class AvailabilityOut(BaseModel):
    name: str
    serial_number: str
    is_available: bool


class FamilyItemOut(BaseModel):
    full_name: str
    name: str
    subtitle: str
    description: str
    is_unavailable: bool
    image: Optional[str] = None

    class Config:
        from_attributes = True


class HardwareFamilyOut(BaseModel):
    family_id: str
    title: str
    items: list[FamilyItemOut] = Field(default_factory=list)

    class Config:
        from_attributes = True
