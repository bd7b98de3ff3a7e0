"""
formations/service.py -- CRUD over training sessions with mode-conditional validation.

Validation runs on the record as it will be stored: the submitted fields on
create, and existing-merged-with-changes on update. One message per call; the
first failing check wins, in this order:

  title / description / objectives -> mode -> duration -> instructor
  -> scheduled date -> location (ON_SITE, HYBRID) -> link (ONLINE, HYBRID)

Provider failures on the resource path surface as a generic 500; the provider
message is logged, never returned.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any

from core.errors import NotFoundError, UpstreamError, ValidationError
from formations.models import LINK_MODES, LOCATION_MODES, Formation, FormationMode
from provider.base import FORMATIONS, IdentityProvider, ProviderError

logger = logging.getLogger("hrtraining.formations")

NOT_FOUND = "formation not found"

# Columns a client may set. id, created_by and timestamps are server-owned.
EDITABLE_FIELDS = (
    "title",
    "description",
    "objectives",
    "mode",
    "duration",
    "instructor",
    "scheduled_at",
    "location",
    "link",
)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_formation(record: dict[str, Any]) -> FormationMode:
    """Raise ValidationError for the first failing rule; return the parsed mode."""
    if _blank(record.get("title")) or _blank(record.get("description")) or _blank(record.get("objectives")):
        raise ValidationError("Title, description and objectives are required.")

    try:
        mode = FormationMode(record.get("mode"))
    except ValueError:
        raise ValidationError("Invalid formation mode. Must be ON_SITE, ONLINE or HYBRID.") from None

    duration = record.get("duration")
    if (
        isinstance(duration, bool)
        or not isinstance(duration, (int, float))
        or not math.isfinite(duration)
        or duration <= 0
    ):
        raise ValidationError("Duration must be greater than 0.")

    if _blank(record.get("instructor")):
        raise ValidationError("Instructor is required.")

    if _blank(record.get("scheduled_at")):
        raise ValidationError("Scheduled date is required.")

    if mode in LOCATION_MODES and _blank(record.get("location")):
        raise ValidationError("Location is required for ON_SITE and HYBRID formations.")

    if mode in LINK_MODES and _blank(record.get("link")):
        raise ValidationError("Link is required for ONLINE and HYBRID formations.")

    return mode


def _normalize(values: dict[str, Any]) -> dict[str, Any]:
    """Convert transport values (enums, datetimes) to their stored representation."""
    out: dict[str, Any] = {}
    for key, value in values.items():
        if key not in EDITABLE_FIELDS:
            continue
        if isinstance(value, FormationMode):
            value = value.value
        elif isinstance(value, datetime):
            value = value.astimezone(timezone.utc).isoformat() if value.tzinfo else value.isoformat()
        out[key] = value
    return out


class FormationService:
    def __init__(self, provider: IdentityProvider) -> None:
        self._provider = provider

    def create(self, data: dict[str, Any], creator_id: str) -> Formation:
        record = _normalize(data)
        validate_formation(record)
        row = {field: record.get(field) for field in EDITABLE_FIELDS}
        row["created_by"] = creator_id
        try:
            stored = self._provider.insert(FORMATIONS, row)
        except ProviderError as exc:
            logger.error("Formation creation failed: %s", exc.message)
            raise UpstreamError("Error while creating the formation.") from exc
        formation = Formation.from_row(stored)
        logger.info("Formation %s created by %s", formation.id, creator_id)
        return formation

    def list_all(self) -> list[Formation]:
        try:
            rows = self._provider.select_all(FORMATIONS, order_by="scheduled_at")
        except ProviderError as exc:
            logger.error("Formation listing failed: %s", exc.message)
            raise UpstreamError("Error while fetching formations.") from exc
        return [Formation.from_row(r) for r in rows]

    def get(self, formation_id: str) -> Formation:
        return Formation.from_row(self._fetch(formation_id))

    def update(self, formation_id: str, changes: dict[str, Any]) -> Formation:
        """Merge `changes` over the stored record, validate the result, persist.

        Fields absent from `changes` keep their stored value; an explicit None
        clears the field.
        """
        existing = self._fetch(formation_id)
        values = _normalize(changes)
        validate_formation({**existing, **values})
        values["updated_at"] = datetime.now(timezone.utc).isoformat()
        try:
            stored = self._provider.update(FORMATIONS, formation_id, values)
        except ProviderError as exc:
            logger.error("Formation %s update failed: %s", formation_id, exc.message)
            raise UpstreamError("Error while updating the formation.") from exc
        if stored is None:
            raise NotFoundError(NOT_FOUND)
        return Formation.from_row(stored)

    def delete(self, formation_id: str) -> None:
        self._fetch(formation_id)
        try:
            self._provider.delete(FORMATIONS, formation_id)
        except ProviderError as exc:
            logger.error("Formation %s deletion failed: %s", formation_id, exc.message)
            raise UpstreamError("Error while deleting the formation.") from exc
        logger.info("Formation %s deleted", formation_id)

    def _fetch(self, formation_id: str) -> dict[str, Any]:
        try:
            row = self._provider.select(FORMATIONS, formation_id)
        except ProviderError as exc:
            # Malformed ids are rejected by the row store; to the caller that is "not found".
            logger.info("Formation lookup %s failed: %s", formation_id, exc.message)
            row = None
        if row is None:
            raise NotFoundError(NOT_FOUND)
        return row
