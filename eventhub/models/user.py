"""SQLAlchemy model for registered accounts (participants, staff, admins)."""

from __future__ import annotations

from sqlalchemy import Column, Integer, Text

from ..db.session import Base

USER_ROLES = ("participant", "staff", "admin")


class User(Base):
    """A person who can register for events, join teams and borrow hardware.

    ``password`` holds the hash produced by the authentication service; this
    API never sees or checks plain-text credentials.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False)
    email = Column(Text, nullable=False, unique=True, index=True)
    password = Column(Text, nullable=False)
    role = Column(Text, nullable=False, default="participant")
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


__all__ = ["User", "USER_ROLES"]
