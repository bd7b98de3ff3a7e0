"""
provider/base.py -- Provider-neutral capability interface.

Services depend on IdentityProvider, never on a concrete adapter, so the
hosted client can be swapped for LocalProvider in development and tests.

Error contract for every method:
  ProviderError       -- the provider answered and refused (bad credentials,
                         duplicate email, row constraint, ...). message is the
                         provider's own text.
  ProviderUnavailable -- the call timed out or the connection failed. Mapped to
                         503 by the API layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

PROFILES = "profiles"
FORMATIONS = "formations"


class ProviderError(Exception):
    """The provider rejected the call."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class ProviderUnavailable(Exception):
    """The provider could not be reached within the configured timeout."""


@dataclass
class ProviderIdentity:
    """Provider-issued account. Read-only from this system's point of view."""

    id: str
    email: str
    email_verified: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)


class IdentityProvider(ABC):
    """Identity operations plus a small row store over named tables."""

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @abstractmethod
    def sign_up(
        self, email: str, password: str, metadata: dict[str, Any], redirect_to: str | None = None
    ) -> ProviderIdentity: ...

    @abstractmethod
    def sign_in_with_password(self, email: str, password: str) -> ProviderIdentity: ...

    @abstractmethod
    def sign_out(self, access_token: str | None = None) -> None: ...

    @abstractmethod
    def reset_password_for_email(self, email: str, redirect_to: str | None = None) -> None: ...

    @abstractmethod
    def set_session(self, access_token: str) -> ProviderIdentity:
        """Resolve a provider session token (e.g. from a recovery link) to its identity."""

    @abstractmethod
    def update_user(self, access_token: str, attributes: dict[str, Any]) -> ProviderIdentity: ...

    # ------------------------------------------------------------------
    # Row store
    # ------------------------------------------------------------------

    @abstractmethod
    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """Insert a row and return it as stored (with generated columns)."""

    @abstractmethod
    def select(self, table: str, row_id: str) -> dict[str, Any] | None: ...

    @abstractmethod
    def select_all(self, table: str, order_by: str | None = None) -> list[dict[str, Any]]:
        """Return every row, ascending by `order_by` when given."""

    @abstractmethod
    def update(self, table: str, row_id: str, values: dict[str, Any]) -> dict[str, Any] | None:
        """Apply `values` and return the updated row, or None if the id is unknown."""

    @abstractmethod
    def delete(self, table: str, row_id: str) -> bool: ...

    def close(self) -> None:
        """Release connections. Optional."""
