"""Signed bearer tokens for API clients.

Access and refresh tokens are HS256 JWTs sharing one secret. The ``sub`` claim
is a user id for people and any other string for services; only numeric
subjects are attributed in the audit log.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from .config import settings

ALGORITHM = "HS256"
AUDIENCE = "eventhub-clients"
ISSUER = "eventhub"
ACCESS = "access"
REFRESH = "refresh"


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class TokenPayload(BaseModel):
    sub: str
    exp: datetime
    iat: datetime
    typ: str
    aud: str
    iss: str
    role: str | None = None

    @property
    def user_id(self) -> int | None:
        return int(self.sub) if self.sub.isdigit() else None


def _sign(subject: str, token_type: str, lifetime: timedelta, role: str | None) -> str:
    issued = datetime.now(tz=timezone.utc)
    claims: dict[str, Any] = {
        "sub": subject,
        "typ": token_type,
        "aud": AUDIENCE,
        "iss": ISSUER,
        "iat": int(issued.timestamp()),
        "exp": int((issued + lifetime).timestamp()),
    }
    if role:
        claims["role"] = role
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=ALGORITHM)


def issue_token_pair(subject: str | int, role: str | None = None) -> TokenPair:
    access_ttl = timedelta(minutes=settings.JWT_ACCESS_TTL_MIN)
    refresh_ttl = timedelta(days=settings.JWT_REFRESH_TTL_DAYS)
    return TokenPair(
        access_token=_sign(str(subject), ACCESS, access_ttl, role),
        refresh_token=_sign(str(subject), REFRESH, refresh_ttl, role),
        expires_in=int(access_ttl.total_seconds()),
    )


def decode_token(token: str, *, verify_type: str | None = None) -> TokenPayload:
    """Verify signature, audience, issuer and expiry; raise ``ValueError`` otherwise."""

    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM], audience=AUDIENCE, issuer=ISSUER)
        payload = TokenPayload.model_validate(claims)
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    except ValidationError as exc:
        raise ValueError("Invalid token payload") from exc
    if verify_type is not None and payload.typ != verify_type:
        raise ValueError(f"Expected a {verify_type} token")
    return payload


def refresh_access_token(refresh_token: str) -> TokenPair:
    payload = decode_token(refresh_token, verify_type=REFRESH)
    return issue_token_pair(payload.sub, role=payload.role)
