"""
auth/service.py -- Credential flows against the external provider.

Each call is a fresh, stateless transaction against the provider; nothing is
cached between requests. The service returns domain results and raises
core.errors exceptions -- routes turn them into HTTP responses and cookies.

Policies:
  Enumeration resistance: login answers one message for "no such user" and
      "wrong password"; forgot_password answers the same message whether or
      not the address exists.

  Role precedence on login (resolve_role): profile row role, then the role
      hint in the provider identity metadata, then MEMBER. Each tier is a
      separate step on purpose; do not collapse them.

  Refresh trusts a previously issued token. By default its claims are read
      without checking signature or expiry (historical behaviour);
      Settings.refresh_verify_signature=True requires a valid signature.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from auth.models import LoginResult, Profile, Role, SessionClaims, UserSummary
from auth.tokens import create_access_token, decode_signed_ignoring_expiry, decode_unverified
from core.errors import AuthenticationError, NotFoundError, UpstreamError, ValidationError
from provider.base import PROFILES, IdentityProvider, ProviderError, ProviderIdentity, ProviderUnavailable

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("hrtraining.auth")

MIN_PASSWORD_LENGTH = 6

INVALID_CREDENTIALS = "invalid email or password"
FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link has been sent."


def resolve_role(profile_row: dict[str, Any] | None, identity: ProviderIdentity) -> Role:
    """Pick the session role: profile, then provider metadata, then MEMBER."""
    if profile_row is not None:
        role = Role.parse(profile_row.get("role"))
        if role is not None:
            return role
    role = Role.parse((identity.metadata or {}).get("role"))
    if role is not None:
        return role
    return Role.MEMBER


class CredentialService:
    """Registration, login, logout, password recovery and token refresh."""

    def __init__(self, provider: IdentityProvider, settings: Settings) -> None:
        self._provider = provider
        self._settings = settings

    # ------------------------------------------------------------------
    # Registration and login
    # ------------------------------------------------------------------

    def register(
        self,
        email: str | None,
        password: str | None,
        full_name: str | None = None,
        role: Role | str | None = None,
    ) -> UserSummary:
        """Create the provider account, then the profile row (best effort).

        Does not log the user in.
        """
        if not email or not password:
            raise ValidationError("Email and password are required.")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")
        chosen_role = Role.MEMBER
        if role is not None:
            chosen_role = Role.parse(role)
            if chosen_role is None:
                raise ValidationError("Role must be ADMIN or MEMBER.")
        full_name = full_name or ""

        try:
            identity = self._provider.sign_up(
                email,
                password,
                {"full_name": full_name, "role": chosen_role.value},
                redirect_to=f"{self._settings.frontend_url}/login",
            )
        except ProviderError as exc:
            raise UpstreamError(exc.message, status_code=400) from exc

        try:
            self._provider.insert(
                PROFILES,
                {"id": identity.id, "email": identity.email, "full_name": full_name, "role": chosen_role.value},
            )
        except (ProviderError, ProviderUnavailable) as exc:
            # The profile can be backfilled later; the account already exists.
            logger.warning("Profile creation failed for %s: %s", identity.id, exc)

        logger.info("Registered %s with role %s", identity.id, chosen_role.value)
        return UserSummary(id=identity.id, email=identity.email, role=chosen_role, full_name=full_name)

    def login(self, email: str | None, password: str | None) -> LoginResult:
        if not email or not password:
            raise ValidationError("Email and password are required.")
        try:
            identity = self._provider.sign_in_with_password(email, password)
        except ProviderError as exc:
            logger.info("Login failed: %s", exc.message)
            raise AuthenticationError(INVALID_CREDENTIALS, code="bad_credentials") from exc

        profile_row = None
        try:
            profile_row = self._provider.select(PROFILES, identity.id)
        except ProviderError as exc:
            logger.warning("Profile fetch failed for %s: %s", identity.id, exc.message)

        role = resolve_role(profile_row, identity)
        token = self._mint(identity.id, identity.email, role)
        full_name = (profile_row or {}).get("full_name") or identity.metadata.get("full_name") or ""
        user = UserSummary(id=identity.id, email=identity.email, role=role, full_name=full_name)
        logger.info("Login %s role=%s", identity.id, role.value)
        return LoginResult(user=user, token=token)

    def logout(self) -> None:
        """Ask the provider to end its session. Never fails."""
        try:
            self._provider.sign_out()
        except (ProviderError, ProviderUnavailable) as exc:
            logger.warning("Provider sign-out failed (ignored): %s", exc)

    # ------------------------------------------------------------------
    # Password recovery
    # ------------------------------------------------------------------

    def forgot_password(self, email: str | None) -> str:
        if not email:
            raise ValidationError("Email is required.")
        try:
            self._provider.reset_password_for_email(
                email, redirect_to=f"{self._settings.frontend_url}/reset-password"
            )
        except ProviderError as exc:
            raise UpstreamError(exc.message, status_code=400) from exc
        return FORGOT_PASSWORD_MESSAGE

    def reset_password(self, token: str | None, new_password: str | None) -> None:
        """Set a new password inside the provider's recovery session."""
        if not token or not new_password:
            raise ValidationError("Token and new password are required.")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")
        try:
            identity = self._provider.set_session(token)
            self._provider.update_user(token, {"password": new_password})
        except ProviderError as exc:
            raise UpstreamError(exc.message or "Invalid or expired reset token.", status_code=400) from exc
        logger.info("Password reset for %s", identity.id)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def refresh(self, token: str | None) -> str:
        """Re-mint a session token with the same identity claims and a fresh expiry."""
        if not token:
            raise AuthenticationError("no token to refresh")
        if self._settings.refresh_verify_signature:
            payload = decode_signed_ignoring_expiry(token, self._settings.jwt_secret)
        else:
            payload = decode_unverified(token)
        if not payload or not payload.get("sub"):
            raise AuthenticationError("invalid token")
        role = Role.parse(payload.get("role")) or Role.MEMBER
        return self._mint(str(payload["sub"]), payload.get("email") or "", role)

    def get_current_user(self, claims: SessionClaims) -> UserSummary:
        try:
            row = self._provider.select(PROFILES, claims.subject)
        except ProviderError as exc:
            logger.warning("Profile fetch failed for %s: %s", claims.subject, exc.message)
            row = None
        if row is None:
            raise NotFoundError("user not found")
        profile = Profile.from_row(row)
        return UserSummary(
            id=profile.id,
            email=profile.email,
            role=profile.role,
            full_name=profile.full_name,
            created_at=profile.created_at,
        )

    def _mint(self, subject: str, email: str, role: Role) -> str:
        return create_access_token(
            subject,
            email,
            role,
            secret=self._settings.jwt_secret,
            ttl_seconds=self._settings.token_expire_seconds,
        )
