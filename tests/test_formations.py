"""
tests/test_formations.py -- Unit tests for formation validation and FormationService.

FormationService runs against LocalProvider on an isolated in-memory database;
provider failures are simulated with a MagicMock.
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from core.errors import NotFoundError, UpstreamError, ValidationError
from formations.models import FormationMode
from formations.service import FormationService, validate_formation
from provider.base import IdentityProvider, ProviderError

CREATOR = "creator-1"


def _valid(**overrides) -> dict:
    data = {
        "title": "Onboarding",
        "description": "First week essentials",
        "objectives": "Know the tools",
        "mode": "ON_SITE",
        "duration": 3,
        "instructor": "Bob",
        "scheduled_at": "2026-03-01T09:00:00+00:00",
        "location": "Room A",
    }
    data.update(overrides)
    return data


@pytest.fixture
def service(provider) -> FormationService:
    return FormationService(provider)


class TestValidationOrder:
    """One message per call; the first failing rule wins."""

    @pytest.mark.parametrize(
        "overrides, expected",
        [
            ({"title": None}, "Title, description and objectives are required."),
            ({"description": "   "}, "Title, description and objectives are required."),
            ({"objectives": ""}, "Title, description and objectives are required."),
            ({"mode": "REMOTE"}, "Invalid formation mode. Must be ON_SITE, ONLINE or HYBRID."),
            ({"mode": None}, "Invalid formation mode. Must be ON_SITE, ONLINE or HYBRID."),
            ({"duration": 0}, "Duration must be greater than 0."),
            ({"duration": -2.5}, "Duration must be greater than 0."),
            ({"duration": None}, "Duration must be greater than 0."),
            ({"duration": float("nan")}, "Duration must be greater than 0."),
            ({"duration": float("inf")}, "Duration must be greater than 0."),
            ({"instructor": ""}, "Instructor is required."),
            ({"scheduled_at": None}, "Scheduled date is required."),
            ({"location": None}, "Location is required for ON_SITE and HYBRID formations."),
            ({"mode": "ONLINE", "location": None}, "Link is required for ONLINE and HYBRID formations."),
            ({"mode": "HYBRID", "link": None}, "Link is required for ONLINE and HYBRID formations."),
        ],
    )
    def test_single_failure(self, overrides: dict, expected: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_formation(_valid(**overrides))
        assert exc_info.value.message == expected
        assert exc_info.value.status_code == 400

    def test_title_checked_before_mode(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_formation(_valid(title="", mode="BAD", duration=0))
        assert exc_info.value.message.startswith("Title")

    def test_mode_checked_before_duration(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_formation(_valid(mode="BAD", duration=0))
        assert "mode" in exc_info.value.message

    def test_hybrid_missing_both_reports_location_first(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_formation(_valid(mode="HYBRID", location=None, link=None))
        assert exc_info.value.message.startswith("Location")

    def test_on_site_does_not_need_link(self) -> None:
        assert validate_formation(_valid()) is FormationMode.ON_SITE

    def test_online_does_not_need_location(self) -> None:
        assert validate_formation(_valid(mode="ONLINE", location=None, link="https://meet")) is FormationMode.ONLINE

    def test_boolean_duration_rejected(self) -> None:
        with pytest.raises(ValidationError):
            validate_formation(_valid(duration=True))


class TestFormationService:
    def test_create_persists_with_creator(self, service) -> None:
        formation = service.create(_valid(), CREATOR)
        assert formation.id
        assert formation.created_by == CREATOR
        assert formation.mode is FormationMode.ON_SITE
        assert formation.duration == 3.0
        assert formation.link is None
        assert service.get(formation.id) == formation

    def test_create_normalizes_aware_datetime_to_utc(self, service) -> None:
        scheduled = datetime(2026, 5, 4, 10, 30, tzinfo=timezone.utc)
        formation = service.create(_valid(scheduled_at=scheduled), CREATOR)
        assert formation.scheduled_at == "2026-05-04T10:30:00+00:00"

    def test_create_ignores_server_owned_fields(self, service) -> None:
        formation = service.create(_valid(id="chosen-id", created_by="someone-else"), CREATOR)
        assert formation.id != "chosen-id"
        assert formation.created_by == CREATOR

    def test_invalid_create_persists_nothing(self, service) -> None:
        with pytest.raises(ValidationError):
            service.create(_valid(location=None), CREATOR)
        assert service.list_all() == []

    def test_list_orders_by_scheduled_date(self, service) -> None:
        later = service.create(_valid(title="Later", scheduled_at="2026-09-01T09:00:00+00:00"), CREATOR)
        earlier = service.create(_valid(title="Earlier", scheduled_at="2026-01-15T09:00:00+00:00"), CREATOR)
        assert [f.id for f in service.list_all()] == [earlier.id, later.id]

    def test_update_merges_and_keeps_unsent_fields(self, service) -> None:
        created = service.create(_valid(mode="HYBRID", link="https://meet.example.com/x"), CREATOR)
        updated = service.update(created.id, {"mode": "ONLINE"})
        assert updated.mode is FormationMode.ONLINE
        assert updated.location == "Room A", "Location must stay stored after it stops being required"
        assert updated.link == "https://meet.example.com/x"
        assert updated.title == created.title

    def test_update_explicit_null_clears_field(self, service) -> None:
        created = service.create(_valid(mode="HYBRID", link="https://meet.example.com/x"), CREATOR)
        updated = service.update(created.id, {"mode": "ONLINE", "location": None})
        assert updated.location is None

    def test_update_validates_merged_record(self, service) -> None:
        created = service.create(_valid(), CREATOR)
        with pytest.raises(ValidationError) as exc_info:
            service.update(created.id, {"mode": "ONLINE"})
        assert exc_info.value.message.startswith("Link")
        assert service.get(created.id).mode is FormationMode.ON_SITE

    @pytest.mark.parametrize("duration", [float("nan"), float("inf"), float("-inf")])
    def test_update_rejects_non_finite_duration(self, service, duration: float) -> None:
        created = service.create(_valid(), CREATOR)
        with pytest.raises(ValidationError) as exc_info:
            service.update(created.id, {"duration": duration})
        assert exc_info.value.message == "Duration must be greater than 0."
        assert service.get(created.id).duration == 3.0

    def test_update_sets_updated_timestamp(self, service) -> None:
        created = service.create(_valid(), CREATOR)
        updated = service.update(created.id, {"duration": 4.5})
        assert updated.duration == 4.5
        assert updated.updated_at >= created.updated_at
        assert updated.created_at == created.created_at

    def test_delete_removes(self, service) -> None:
        created = service.create(_valid(), CREATOR)
        service.delete(created.id)
        with pytest.raises(NotFoundError):
            service.get(created.id)

    @pytest.mark.parametrize("operation", ["get", "update", "delete"])
    def test_unknown_id_is_404(self, service, operation: str) -> None:
        args = {"get": (), "update": ({"title": "x"},), "delete": ()}[operation]
        with pytest.raises(NotFoundError) as exc_info:
            getattr(service, operation)("00000000-0000-0000-0000-000000000000", *args)
        assert exc_info.value.message == "formation not found"

    def test_malformed_id_is_404(self) -> None:
        mock = MagicMock(spec=IdentityProvider)
        mock.select.side_effect = ProviderError('invalid input syntax for type uuid: "abc"', 400)
        with pytest.raises(NotFoundError):
            FormationService(mock).get("abc")

    def test_provider_failure_on_create_is_generic_500(self) -> None:
        mock = MagicMock(spec=IdentityProvider)
        mock.insert.side_effect = ProviderError("duplicate key value violates unique constraint")
        with pytest.raises(UpstreamError) as exc_info:
            FormationService(mock).create(_valid(), CREATOR)
        assert exc_info.value.status_code == 500
        assert "duplicate key" not in exc_info.value.message

    def test_provider_failure_on_list_is_generic_500(self) -> None:
        mock = MagicMock(spec=IdentityProvider)
        mock.select_all.side_effect = ProviderError("permission denied")
        with pytest.raises(UpstreamError) as exc_info:
            FormationService(mock).list_all()
        assert exc_info.value.status_code == 500
