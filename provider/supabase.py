"""
provider/supabase.py -- Hosted provider adapter built on the supabase client.

Two kinds of client share one httpx connection pool:
  - the rows client, created once with the service role key when configured
    (anon key otherwise). It never signs anyone in, so its headers stay fixed.
  - an auth client per identity call, on the anon key. The auth client keeps
    the last signed-in session in memory and switches its Authorization header
    to it; a fresh one per call keeps one caller's session out of the next.

The shared httpx.Client carries timeout=<provider_timeout_seconds>. Transport
failures (timeouts, refused connections) and the auth library's retryable 5xx
errors become ProviderUnavailable so the API answers 503 instead of hanging.
Everything the provider refuses becomes ProviderError with its own message.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

import httpx
from supabase import AuthApiError, AuthError, AuthRetryableError, Client, ClientOptions, PostgrestAPIError, create_client

from provider.base import FORMATIONS, PROFILES, IdentityProvider, ProviderError, ProviderIdentity, ProviderUnavailable

logger = logging.getLogger("hrtraining.provider")

_TABLES = {PROFILES, FORMATIONS}


@contextmanager
def _provider_call(operation: str) -> Iterator[None]:
    """Translate supabase and httpx exceptions into the provider error contract."""
    try:
        yield
    except (httpx.TransportError, AuthRetryableError) as exc:
        logger.warning("Provider %s unavailable: %s", operation, exc)
        raise ProviderUnavailable(str(exc)) from exc
    except AuthApiError as exc:
        logger.info("Provider %s refused (%s): %s", operation, exc.status, exc.message)
        raise ProviderError(exc.message, exc.status) from exc
    except AuthError as exc:
        logger.info("Provider %s failed: %s", operation, exc.message)
        raise ProviderError(exc.message, getattr(exc, "status", None)) from exc
    except PostgrestAPIError as exc:
        message = exc.message or str(exc)
        logger.info("Provider %s refused (%s): %s", operation, exc.code, message)
        raise ProviderError(message) from exc


class SupabaseProvider(IdentityProvider):
    def __init__(
        self,
        url: str,
        anon_key: str,
        service_role_key: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._url = url
        self._anon_key = anon_key
        self._http = httpx.Client(timeout=timeout, follow_redirects=True, max_redirects=3)
        self._rows_client = self._client(service_role_key or anon_key)

    def _client(self, key: str) -> Client:
        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
            flow_type="implicit",
            httpx_client=self._http,
        )
        return create_client(self._url, key, options=options)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def sign_up(
        self, email: str, password: str, metadata: dict[str, Any], redirect_to: str | None = None
    ) -> ProviderIdentity:
        options: dict[str, Any] = {"data": metadata}
        if redirect_to:
            options["email_redirect_to"] = redirect_to
        with _provider_call("sign_up"):
            response = self._client(self._anon_key).auth.sign_up(
                {"email": email, "password": password, "options": options}
            )
        if response.user is None:
            raise ProviderError("User registration failed.")
        return _identity(response.user)

    def sign_in_with_password(self, email: str, password: str) -> ProviderIdentity:
        with _provider_call("sign_in"):
            response = self._client(self._anon_key).auth.sign_in_with_password({"email": email, "password": password})
        if response.user is None:
            raise ProviderError("Invalid login credentials")
        return _identity(response.user)

    def sign_out(self, access_token: str | None = None) -> None:
        if not access_token:
            # Stateless backend: there is no provider session to revoke.
            return
        with _provider_call("sign_out"):
            self._client(self._anon_key).auth.admin.sign_out(access_token)

    def reset_password_for_email(self, email: str, redirect_to: str | None = None) -> None:
        with _provider_call("reset_password"):
            self._client(self._anon_key).auth.reset_password_for_email(
                email, {"redirect_to": redirect_to} if redirect_to else {}
            )

    def set_session(self, access_token: str) -> ProviderIdentity:
        """Resolve a recovery access token to its user without storing a session."""
        with _provider_call("get_user"):
            response = self._client(self._anon_key).auth.get_user(access_token)
        if response is None or response.user is None:
            raise ProviderError("Invalid or expired reset token.")
        return _identity(response.user)

    def update_user(self, access_token: str, attributes: dict[str, Any]) -> ProviderIdentity:
        """Apply `attributes` as the user the access token belongs to.

        Recovery links carry no usable refresh token here, so the session is
        installed with an empty one; an expired access token is refused.
        """
        client = self._client(self._anon_key)
        with _provider_call("update_user"):
            client.auth.set_session(access_token, "")
            response = client.auth.update_user(attributes)
        return _identity(response.user)

    # ------------------------------------------------------------------
    # Row store
    # ------------------------------------------------------------------

    def _table(self, table: str):
        if table not in _TABLES:
            raise ValueError(f"Unknown table: {table!r}")
        return self._rows_client.table(table)

    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        query = self._table(table).insert(row)
        with _provider_call(f"insert into {table}"):
            rows = query.execute().data
        if not rows:
            raise ProviderError(f"Insert into {table} returned no row.")
        return rows[0]

    def select(self, table: str, row_id: str) -> dict[str, Any] | None:
        query = self._table(table).select("*").eq("id", row_id)
        with _provider_call(f"select from {table}"):
            rows = query.execute().data
        return rows[0] if rows else None

    def select_all(self, table: str, order_by: str | None = None) -> list[dict[str, Any]]:
        query = self._table(table).select("*")
        if order_by:
            query = query.order(order_by)
        with _provider_call(f"select from {table}"):
            return query.execute().data or []

    def update(self, table: str, row_id: str, values: dict[str, Any]) -> dict[str, Any] | None:
        query = self._table(table).update(values).eq("id", row_id)
        with _provider_call(f"update {table}"):
            rows = query.execute().data
        return rows[0] if rows else None

    def delete(self, table: str, row_id: str) -> bool:
        query = self._table(table).delete().eq("id", row_id)
        with _provider_call(f"delete from {table}"):
            rows = query.execute().data
        return bool(rows)

    def close(self) -> None:
        self._http.close()


def _identity(user: Any) -> ProviderIdentity:
    """Map a supabase User model to the provider-neutral identity."""
    return ProviderIdentity(
        id=str(user.id),
        email=user.email or "",
        email_verified=bool(user.email_confirmed_at or user.confirmed_at),
        metadata=dict(user.user_metadata or {}),
    )
