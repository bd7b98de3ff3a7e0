"""
auth/tokens.py -- Session token codec and cookie helpers.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry sub (provider identity id), email,
       role, iat and exp. The ttl is fixed by Settings.token_expire_seconds
       (7 days by default). Any change to the claims or the expiry breaks the
       signature.

  Verification fails closed. verify_access_token() raises TokenRejected with
       a reason (expired / malformed / bad_signature). The authentication gate
       logs the reason and returns one uniform 401 to the client.

  Expiry is checked here rather than inside jose so the boundary is explicit
       and testable with an injected clock: a token is valid while
       now <= exp and rejected once now > exp.

  decode_unverified() reads claims with no signature or expiry check. It exists
       for the refresh flow only.

Secrets are passed in by the caller (from the injected Settings object); this
module reads no configuration of its own.

Layer rule: no imports from api/, formations/, or provider/.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from jose import JWTError, jwt

from auth.models import Role, SessionClaims

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("hrtraining.auth")

_ALGORITHM = "HS256"

COOKIE_NAME = "access_token"

EXPIRED = "expired"
MALFORMED = "malformed"
BAD_SIGNATURE = "bad_signature"


class TokenRejected(Exception):
    """Raised by verify_access_token(). reason is one of EXPIRED, MALFORMED, BAD_SIGNATURE."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(
    subject: str,
    email: str,
    role: Role | str,
    *,
    secret: str,
    ttl_seconds: int,
    now: int | None = None,
) -> str:
    """Encode a signed JWT with identity claims and a fixed validity window.

    Args:
        subject:     Provider identity id, stored as the sub claim.
        email:       Account email, mirrored into the token.
        role:        Role snapshot at mint time.
        secret:      HS256 signing key (Settings.jwt_secret).
        ttl_seconds: Validity window; exp = iat + ttl_seconds.
        now:         Epoch seconds override for iat. Tests pass this.
    """
    issued_at = int(time.time()) if now is None else int(now)
    payload = {
        "sub": subject,
        "email": email,
        "role": Role(role).value,
        "iat": issued_at,
        "exp": issued_at + ttl_seconds,
    }
    return jwt.encode(payload, secret, algorithm=_ALGORITHM)


def verify_access_token(token: str, secret: str, now: int | None = None) -> SessionClaims:
    """Verify signature, structure and expiry. Raises TokenRejected on any failure."""
    try:
        jwt.get_unverified_claims(token)
    except JWTError as exc:
        raise TokenRejected(MALFORMED) from exc

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[_ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError as exc:
        raise TokenRejected(BAD_SIGNATURE) from exc

    claims = _claims_from_payload(payload)
    if claims is None:
        raise TokenRejected(MALFORMED)

    current = int(time.time()) if now is None else int(now)
    if current > claims.expires_at:
        raise TokenRejected(EXPIRED)
    return claims


def decode_unverified(token: str) -> dict | None:
    """Return the token payload without checking signature or expiry.

    Returns None when the token does not decode structurally at all.
    """
    try:
        payload = jwt.get_unverified_claims(token)
    except JWTError:
        return None
    return payload if isinstance(payload, dict) else None


def decode_signed_ignoring_expiry(token: str, secret: str) -> dict | None:
    """Return the payload when the signature is valid, whatever the exp claim says."""
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[_ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError:
        return None


def _claims_from_payload(payload: dict) -> SessionClaims | None:
    subject = payload.get("sub")
    email = payload.get("email")
    role = Role.parse(payload.get("role"))
    issued_at = payload.get("iat")
    expires_at = payload.get("exp")
    if not isinstance(subject, str) or not subject or not isinstance(email, str) or role is None:
        return None
    if not isinstance(issued_at, int) or not isinstance(expires_at, int):
        return None
    return SessionClaims(subject=subject, email=email, role=role, issued_at=issued_at, expires_at=expires_at)


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, settings: Settings) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST -- CSRF mitigation.
    secure: only sent over HTTPS in production.
    max_age: matches the JWT ttl so both expire together.
    """
    response.set_cookie(
        COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=settings.token_expire_seconds,
    )


def clear_auth_cookie(response, settings: Settings) -> None:
    response.delete_cookie(
        COOKIE_NAME,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )
