"""
provider/local.py -- Self-contained provider for local development and tests.

Plays the hosted provider's role against a SQLite database so the API runs
with PROVIDER_BACKEND=local and no network access:

  identities       -- accounts with bcrypt password hashes and metadata
  recovery_tokens  -- one-shot password recovery tokens (1 hour)
  profiles         -- local profile rows (same shape as the hosted table)
  formations       -- training sessions (same shape as the hosted table)

Recovery links are written to the log instead of being emailed.

Pattern: Repository over SQLAlchemy Core. All queries use bound parameters;
table names are looked up in a fixed registry, never interpolated.
"""

from __future__ import annotations

import json
import logging
import re
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from sqlalchemy import Boolean, Column, Float, MetaData, String, Table, Text, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from provider.base import FORMATIONS, PROFILES, IdentityProvider, ProviderError, ProviderIdentity

logger = logging.getLogger("hrtraining.provider")

MIN_PASSWORD_LENGTH = 6
RECOVERY_TTL = timedelta(hours=1)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_identities = Table(
    "identities",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("email_verified", Boolean, nullable=False, default=True),
    Column("user_metadata", Text, nullable=False, default="{}"),  # JSON blob
    Column("created_at", String(32), nullable=False),
)

_recovery_tokens = Table(
    "recovery_tokens",
    _metadata,
    Column("token", String(64), primary_key=True),
    Column("identity_id", String(36), nullable=False),
    Column("expires_at", String(32), nullable=False),
)

_profiles = Table(
    PROFILES,
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False),
    Column("full_name", String(255)),
    Column("role", String(20), nullable=False, default="MEMBER"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_formations = Table(
    FORMATIONS,
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("title", Text, nullable=False),
    Column("description", Text, nullable=False),
    Column("objectives", Text, nullable=False),
    Column("mode", String(20), nullable=False),
    Column("duration", Float, nullable=False),
    Column("instructor", String(255), nullable=False),
    Column("scheduled_at", String(40), nullable=False),
    Column("location", Text),
    Column("link", Text),
    Column("created_by", String(36)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_ROW_TABLES = {PROFILES: _profiles, FORMATIONS: _formations}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _now_iso() -> str:
    return _now().isoformat()


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Unknown emails still pay for one bcrypt check so timing does not reveal
# which addresses are registered.
_DUMMY_HASH: str = hash_password("hrtraining_timing_dummy")


class LocalProvider(IdentityProvider):
    """IdentityProvider backed by SQLite.

    Usage:
        provider = LocalProvider("sqlite:///dev.db")
        provider.sign_up("a@b.com", "secret1", {"full_name": "Alice"})
        provider.close()
    """

    def __init__(self, db_url: str = "sqlite:///hrtraining_local.db") -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def sign_up(
        self, email: str, password: str, metadata: dict[str, Any], redirect_to: str | None = None
    ) -> ProviderIdentity:
        email = _normalize_email(email)
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ProviderError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters.", 422)
        identity_id = str(uuid.uuid4())
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _identities.insert().values(
                        id=identity_id,
                        email=email,
                        hashed_password=hash_password(password),
                        email_verified=True,
                        user_metadata=json.dumps(metadata or {}),
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise ProviderError("User already registered", 422) from exc
        return ProviderIdentity(id=identity_id, email=email, email_verified=True, metadata=dict(metadata or {}))

    def sign_in_with_password(self, email: str, password: str) -> ProviderIdentity:
        row = self._identity_row_by_email(email)
        if row is None:
            verify_password(password, _DUMMY_HASH)
            raise ProviderError("Invalid login credentials", 400)
        if not verify_password(password, row.hashed_password):
            raise ProviderError("Invalid login credentials", 400)
        return _row_to_identity(row)

    def sign_out(self, access_token: str | None = None) -> None:
        if access_token:
            with self.engine.connect() as conn:
                conn.execute(_recovery_tokens.delete().where(_recovery_tokens.c.token == access_token))
                conn.commit()

    def reset_password_for_email(self, email: str, redirect_to: str | None = None) -> None:
        row = self._identity_row_by_email(_normalize_email(email))
        if row is None:
            return
        token = secrets.token_urlsafe(32)
        with self.engine.connect() as conn:
            conn.execute(
                _recovery_tokens.insert().values(
                    token=token,
                    identity_id=row.id,
                    expires_at=(_now() + RECOVERY_TTL).isoformat(),
                )
            )
            conn.commit()
        link = f"{redirect_to or ''}#access_token={token}&type=recovery"
        logger.info("Password recovery link for %s: %s", row.email, link)

    def set_session(self, access_token: str) -> ProviderIdentity:
        with self.engine.connect() as conn:
            token_row = conn.execute(
                _recovery_tokens.select().where(_recovery_tokens.c.token == access_token)
            ).fetchone()
            if token_row is None or datetime.fromisoformat(token_row.expires_at) < _now():
                raise ProviderError("Invalid or expired reset token.", 401)
            row = conn.execute(_identities.select().where(_identities.c.id == token_row.identity_id)).fetchone()
        if row is None:
            raise ProviderError("Invalid or expired reset token.", 401)
        return _row_to_identity(row)

    def update_user(self, access_token: str, attributes: dict[str, Any]) -> ProviderIdentity:
        identity = self.set_session(access_token)
        values: dict[str, Any] = {}
        password = attributes.get("password")
        if password is not None:
            if len(password) < MIN_PASSWORD_LENGTH:
                raise ProviderError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters.", 422)
            values["hashed_password"] = hash_password(password)
        if "data" in attributes:
            merged = {**identity.metadata, **(attributes["data"] or {})}
            values["user_metadata"] = json.dumps(merged)
            identity.metadata = merged
        with self.engine.connect() as conn:
            if values:
                conn.execute(_identities.update().where(_identities.c.id == identity.id).values(**values))
            if password is not None:
                # Recovery tokens are one-shot.
                conn.execute(_recovery_tokens.delete().where(_recovery_tokens.c.token == access_token))
            conn.commit()
        return identity

    def _identity_row_by_email(self, email: str):
        with self.engine.connect() as conn:
            return conn.execute(
                _identities.select().where(_identities.c.email == (email or "").strip().lower())
            ).fetchone()

    # ------------------------------------------------------------------
    # Row store
    # ------------------------------------------------------------------

    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        tbl = _table(table)
        now = _now_iso()
        values = {"id": str(uuid.uuid4()), "created_at": now, "updated_at": now, **_known_columns(tbl, row)}
        try:
            with self.engine.connect() as conn:
                conn.execute(tbl.insert().values(**values))
                conn.commit()
        except SQLAlchemyError as exc:
            raise ProviderError(f"Insert into {table} failed: {exc.__class__.__name__}") from exc
        return self.select(table, values["id"])

    def select(self, table: str, row_id: str) -> dict[str, Any] | None:
        tbl = _table(table)
        with self.engine.connect() as conn:
            row = conn.execute(tbl.select().where(tbl.c.id == str(row_id))).fetchone()
        return dict(row._mapping) if row is not None else None

    def select_all(self, table: str, order_by: str | None = None) -> list[dict[str, Any]]:
        tbl = _table(table)
        query = tbl.select()
        if order_by:
            query = query.order_by(tbl.c[order_by].asc())
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [dict(r._mapping) for r in rows]

    def update(self, table: str, row_id: str, values: dict[str, Any]) -> dict[str, Any] | None:
        tbl = _table(table)
        fields = _known_columns(tbl, values)
        fields.pop("id", None)
        if fields:
            try:
                with self.engine.connect() as conn:
                    result = conn.execute(tbl.update().where(tbl.c.id == str(row_id)).values(**fields))
                    conn.commit()
            except SQLAlchemyError as exc:
                raise ProviderError(f"Update of {table} failed: {exc.__class__.__name__}") from exc
            if result.rowcount == 0:
                return None
        return self.select(table, row_id)

    def delete(self, table: str, row_id: str) -> bool:
        tbl = _table(table)
        with self.engine.connect() as conn:
            result = conn.execute(tbl.delete().where(tbl.c.id == str(row_id)))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    if not _EMAIL_RE.match(email):
        raise ProviderError("Unable to validate email address: invalid format", 400)
    return email


def _table(name: str) -> Table:
    try:
        return _ROW_TABLES[name]
    except KeyError:
        raise ValueError(f"Unknown table: {name!r}") from None


def _known_columns(tbl: Table, values: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if k in tbl.c}


def _row_to_identity(row) -> ProviderIdentity:
    return ProviderIdentity(
        id=row.id,
        email=row.email,
        email_verified=bool(row.email_verified),
        metadata=json.loads(row.user_metadata or "{}"),
    )
