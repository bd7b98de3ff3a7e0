"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The session token travels in the "access_token" cookie set by POST
/api/auth/login. Verification is purely claim-based: no provider or database
round-trip happens here, so the role in the token is trusted for its whole
validity window.

try_get_current_claims() is the soft variant (returns None on failure).
get_current_claims() raises 401 if unauthenticated.
require_member() / require_admin() chain on get_current_claims() and add the
role check, so the 401-before-403 ordering holds by construction.

Verified claims are attached to request.state.claims for downstream stages.

Layer rule: auth/dependencies.py may import from fastapi because it is part of
the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Depends, Request

from auth.models import Role, SessionClaims
from auth.roles import AUTHENTICATION_REQUIRED, authorize
from auth.tokens import COOKIE_NAME, TokenRejected, verify_access_token
from core.errors import AuthenticationError

logger = logging.getLogger("hrtraining.auth")

INVALID_TOKEN = "invalid or expired token"


def try_get_current_claims(request: Request) -> SessionClaims | None:
    """Attach claims when the cookie holds a valid token. Never raises."""
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        return None
    try:
        claims = verify_access_token(token, request.app.state.settings.jwt_secret)
    except TokenRejected as exc:
        logger.debug("Ignoring rejected session token on %s: %s", request.url.path, exc.reason)
        return None
    request.state.claims = claims
    return claims


def get_current_claims(request: Request) -> SessionClaims:
    """Require a valid session cookie.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(claims: SessionClaims = Depends(get_current_claims)): ...
    """
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise AuthenticationError(AUTHENTICATION_REQUIRED)
    try:
        claims = verify_access_token(token, request.app.state.settings.jwt_secret)
    except TokenRejected as exc:
        # The reason stays in the log; the client gets one uniform message.
        logger.info("Session token rejected on %s: %s", request.url.path, exc.reason)
        raise AuthenticationError(INVALID_TOKEN) from exc
    request.state.claims = claims
    return claims


def require_member(claims: SessionClaims = Depends(get_current_claims)) -> SessionClaims:
    """Any authenticated role (MEMBER or ADMIN)."""
    return authorize(claims, Role.MEMBER)


def require_admin(claims: SessionClaims = Depends(get_current_claims)) -> SessionClaims:
    """ADMIN only. 401 if unauthenticated, 403 if authenticated with a lower role."""
    return authorize(claims, Role.ADMIN)
