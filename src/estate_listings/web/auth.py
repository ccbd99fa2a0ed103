"""Session resolution and the admin capability check for write routes."""

from __future__ import annotations

import secrets
from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from estate_listings.config import Settings
from estate_listings.logging import get_logger
from estate_listings.models import Role, Session

logger = get_logger(__name__)

SessionResolver = Callable[[Request], Session | None]


def bearer_token(request: Request) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def admin_token_resolver(settings: Settings) -> SessionResolver:
    """Resolver granting an ADMIN session to callers presenting the configured token."""
    expected = settings.admin_token.get_secret_value()

    def resolve(request: Request) -> Session | None:
        token = bearer_token(request)
        if not expected or token is None:
            return None
        if not secrets.compare_digest(token, expected):
            return None
        return Session(user_id="admin", email=settings.admin_email, role=Role.ADMIN)

    return resolve


def resolve_session(request: Request) -> Session | None:
    """FastAPI dependency: the caller's session, via the resolver registered on the app."""
    resolver: SessionResolver | None = getattr(request.app.state, "session_resolver", None)
    if resolver is None:
        return None
    return resolver(request)


SessionDep = Annotated[Session | None, Depends(resolve_session)]


def require_admin(session: SessionDep) -> Session:
    """FastAPI dependency: reject callers without an ADMIN session."""
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not session.is_admin:
        logger.warning("admin_access_denied", user_id=session.user_id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return session


AdminDep = Annotated[Session, Depends(require_admin)]
