"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, near-zero logic). Stores, services
and routes do the work; these classes own the domain shape.

Layer rule: no imports from api/, formations/, or provider/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class Role(str, Enum):
    """Two-tier role model. ADMIN is a superset of MEMBER."""

    ADMIN = "ADMIN"
    MEMBER = "MEMBER"

    @classmethod
    def parse(cls, value: Any) -> Optional["Role"]:
        """Map a stored or provider-supplied role string to a Role.

        Accepts the legacy provider values "RH" (HR administrator) and "USER"
        as aliases. Returns None for anything unrecognised so callers can fall
        through to the next source.
        """
        if isinstance(value, Role):
            return value
        if not isinstance(value, str) or not value:
            return None
        normalized = value.strip().upper()
        if normalized in _ROLE_ALIASES:
            return _ROLE_ALIASES[normalized]
        return None


_ROLE_ALIASES = {
    "ADMIN": Role.ADMIN,
    "RH": Role.ADMIN,
    "MEMBER": Role.MEMBER,
    "USER": Role.MEMBER,
}


@dataclass(frozen=True)
class SessionClaims:
    """Decoded payload of a session token.

    role is a snapshot taken at mint time. It is not re-checked against the
    profile row while the token is valid.
    """

    subject: str
    email: str
    role: Role
    issued_at: int
    expires_at: int


@dataclass
class Profile:
    """Locally owned user metadata row, keyed by the provider identity id."""

    id: str
    email: str
    role: Role
    full_name: str = ""
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: dict) -> "Profile":
        return cls(
            id=str(row["id"]),
            email=row.get("email") or "",
            role=Role.parse(row.get("role")) or Role.MEMBER,
            full_name=row.get("full_name") or "",
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass
class UserSummary:
    """Sanitized user view returned by register, login and /me."""

    id: str
    email: str
    role: Role
    full_name: str = ""
    created_at: str | None = None


@dataclass
class LoginResult:
    user: UserSummary
    token: str
