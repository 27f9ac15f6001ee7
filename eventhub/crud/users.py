from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..db.session import utcnow_iso
from ..models.user import USER_ROLES, User


def get_user(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> User | None:
    stmt = select(User).where(func.lower(User.email) == (email or "").strip().lower())
    return db.execute(stmt).scalars().first()


def create_user(db: Session, payload: dict) -> User:
    """
    Persist an account. ``password`` must already be hashed by the auth service.
    """
    email = (payload.get("email") or "").strip().lower()
    if not email or "@" not in email:
        raise ValueError("a valid email is required")
    if get_user_by_email(db, email):
        raise ValueError(f"{email} is already registered")
    if not payload.get("password"):
        raise ValueError("password hash is required")
    role = payload.get("role") or "participant"
    if role not in USER_ROLES:
        raise ValueError(f"role must be one of {', '.join(USER_ROLES)}")

    now = utcnow_iso()
    user = User(
        first_name=(payload.get("first_name") or "").strip(),
        last_name=(payload.get("last_name") or "").strip(),
        email=email,
        password=payload["password"],
        role=role,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
