from __future__ import annotations

import hmac
from typing import Iterator

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.security import ACCESS, decode_token
from ..db.session import get_db
from ..middlewares import principal_ctx_var
from ..services.audit import acting_as


class AuthContext:
    """Who is calling: ``user_id`` is set only for JWTs with a numeric subject."""

    def __init__(self, *, subject: str, scheme: str, user_id: int | None = None, role: str | None = None) -> None:
        self.subject = subject
        self.scheme = scheme
        self.user_id = user_id
        self.role = role


def _deny(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _remember(request: Request, ctx: AuthContext) -> AuthContext:
    principal_ctx_var.set(ctx.subject)
    request.state.principal = ctx.subject
    return ctx


def _key_matches(provided: str) -> bool:
    expected = settings.API_KEY
    return bool(expected and settings.AUTH_ALLOW_API_KEY and provided) and hmac.compare_digest(expected, provided)


def _bearer(request: Request, authorization: str) -> AuthContext | None:
    scheme, credentials = get_authorization_scheme_param(authorization)
    if scheme.lower() != "bearer" or not credentials:
        return None
    try:
        payload = decode_token(credentials, verify_type=ACCESS)
    except ValueError as exc:
        raise _deny(str(exc)) from exc
    request.state.token_payload = payload
    return AuthContext(subject=f"jwt:{payload.sub}", scheme="jwt", user_id=payload.user_id, role=payload.role)


async def require_api_or_jwt(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> AuthContext:
    provided_key = (x_api_key or "").strip()
    if _key_matches(provided_key):
        return _remember(request, AuthContext(subject="api-key", scheme="api_key"))

    if authorization:
        ctx = _bearer(request, authorization)
        if ctx is not None:
            return _remember(request, ctx)

    # No key configured: development mode, everything is open.
    if not settings.API_KEY:
        return _remember(request, AuthContext(subject="anonymous", scheme="open"))

    raise _deny("Invalid API key" if provided_key else "Authorization required")


def get_audited_db(
    auth: AuthContext = Depends(require_api_or_jwt),
    db: Session = Depends(get_db),
) -> Iterator[Session]:
    """Request session whose changes are attributed to the signed-in user."""

    with acting_as(db, auth.user_id):
        yield db
