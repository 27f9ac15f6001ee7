"""SQLAlchemy models for the lending desk inventory."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base


class HardwareItem(Base):
    """One physical device that can be lent to a participant.

    ``holder_id`` is the user currently holding the device; ``None`` means it
    is on the shelf.
    """

    __tablename__ = "hardware"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False, index=True)
    serial_number = Column(Text, nullable=False, index=True)
    description = Column(Text, nullable=True)
    functional = Column(Boolean, nullable=False, default=True)
    holder_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    images = relationship(
        "HardwareImage",
        back_populates="hardware",
        order_by="HardwareImage.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def image_urls(self) -> list[str]:
        return [image.image_url for image in self.images]

    @property
    def is_available(self) -> bool:
        return self.holder_id is None


class HardwareImage(Base):
    __tablename__ = "hardware_images"

    id = Column(Integer, primary_key=True, index=True)
    hardware_id = Column(Integer, ForeignKey("hardware.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(Text, nullable=False)
    created_at = Column(Text, nullable=False)

    hardware = relationship("HardwareItem", back_populates="images")


__all__ = ["HardwareImage", "HardwareItem"]
