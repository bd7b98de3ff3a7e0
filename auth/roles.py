"""
auth/roles.py -- Role authorization gate.

authorize() runs strictly after authentication. Called with no claims it
raises a 401, not a 403: a request that never proved who it is cannot be
"forbidden", only unauthenticated.
"""

from __future__ import annotations

from auth.models import Role, SessionClaims
from core.errors import AuthenticationError, AuthorizationError

AUTHENTICATION_REQUIRED = "authentication required"

_DENIED = {
    Role.ADMIN: "access denied: ADMIN role required",
    Role.MEMBER: "access denied: MEMBER role required",
}

# Roles that satisfy each requirement. ADMIN is a superset of MEMBER.
_SATISFIES = {
    Role.ADMIN: {Role.ADMIN},
    Role.MEMBER: {Role.MEMBER, Role.ADMIN},
}


def authorize(claims: SessionClaims | None, required: Role) -> SessionClaims:
    """Return the claims when their role meets `required`; raise otherwise."""
    if claims is None:
        raise AuthenticationError(AUTHENTICATION_REQUIRED)
    if claims.role not in _SATISFIES[required]:
        raise AuthorizationError(_DENIED[required])
    return claims
