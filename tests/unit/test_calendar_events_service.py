"""
Unit tests for calendar event operations.
"""

import pytest
from types import SimpleNamespace

from labcal.core.exceptions import (
    EventNotFoundError,
    InvalidInputError,
    InvalidRequestFormatError,
)
from labcal.services import calendar_events
from labcal.services.calendar_events import (
    apply_action,
    build_hybrid_event,
    build_legacy_event,
    detect_format,
    extract_er_number,
    filter_events,
    generate_event_id,
    upsert_by_er_number,
)
from helpers import at


class TestErNumbers:
    """Tests for ER number extraction."""

    @pytest.mark.parametrize("title,expected", [
        ("ER1234 - Paint testing", "ER1234"),
        ("er99 lowercase", "ER99"),
        ("  ER7 leading space", "ER7"),
        ("Routine run ER1234", None),
        ("ER without digits", None),
        (None, None),
    ])
    def test_extract(self, title, expected):
        assert extract_er_number(title) == expected


class TestDetectFormat:
    """Tests for payload shape classification."""

    def test_hybrid(self):
        payload = {"title": "t", "tenantId": "lab-a", "start": "2024-03-13", "end": "2024-03-14"}
        assert detect_format(payload) == "hybrid"

    def test_hybrid_wins_over_standard(self):
        payload = {
            "title": "t", "tenantId": "lab-a", "start": "s", "end": "e",
            "action": "create", "eventData": {},
        }
        assert detect_format(payload) == "hybrid"

    def test_legacy(self):
        assert detect_format({"calendarId": "lab-a", "summary": "Run"}) == "legacy"

    def test_standard(self):
        payload = {"tenantId": "lab-a", "action": "create", "eventData": {"title": "x"}}
        assert detect_format(payload) == "standard"

    def test_unknown_shape_lists_expected_formats(self):
        with pytest.raises(InvalidRequestFormatError) as exc:
            detect_format({"foo": "bar"})
        assert exc.value.status_code == 400
        assert len(exc.value.expected_formats) == 3


class TestBuilders:
    """Tests for hybrid and legacy payload translation."""

    def test_hybrid_maps_equipment_to_resource(self, tenant_record):
        event = build_hybrid_event(tenant_record, {
            "title": "ER1 - run",
            "tenantId": "lab-a",
            "start": "2024-03-13T10:00:00Z",
            "end": "2024-03-13T12:00:00Z",
            "equipment": "Mass Spectrometer",
            "technician": "Dr. Chen",
        })
        assert event["resourceId"] == "equipment-2"
        assert event["technician"] == "Dr. Chen"
        assert event["allDay"] is False
        assert event["start"] == "2024-03-13T10:00:00.000Z"
        assert "tenantId" not in event

    def test_hybrid_unknown_equipment_has_no_resource(self, tenant_record):
        event = build_hybrid_event(tenant_record, {
            "title": "run", "tenantId": "lab-a",
            "start": "2024-03-13T10:00:00Z", "end": "2024-03-13T12:00:00Z",
            "equipment": "Centrifuge",
        })
        assert "resourceId" not in event
        assert event["equipment"] == "Centrifuge"

    def test_legacy_maps_fields(self):
        event = build_legacy_event({
            "calendarId": "lab-a",
            "summary": "ER5 - legacy",
            "description": "from the old system",
            "StartUse": "2024-03-13T09:00:00Z",
            "EndUse": "2024-03-13T10:00:00Z",
        })
        assert event["title"] == "ER5 - legacy"
        assert event["notes"] == "from the old system"
        assert event["resourceId"] == "equipment-1"
        assert event["end"] == "2024-03-13T10:00:00.000Z"


class TestUpsert:
    """Tests for ER-number upsert of hybrid/legacy events."""

    def test_new_er_number_appends(self, tenant_record):
        event, updated = upsert_by_er_number(tenant_record, {"title": "ER1 - a"})
        assert updated is False
        assert event["id"]
        assert tenant_record["events"] == [event]

    def test_same_er_number_replaces_and_keeps_id(self, tenant_record):
        first, _ = upsert_by_er_number(tenant_record, {"title": "ER1 - a", "cost": 10})
        second, updated = upsert_by_er_number(tenant_record, {"title": "er1 - renamed"})

        assert updated is True
        assert second["id"] == first["id"]
        assert len(tenant_record["events"]) == 1
        assert tenant_record["events"][0]["title"] == "er1 - renamed"
        assert "cost" not in tenant_record["events"][0]


class TestGenerateEventId:
    """Tests for collision-free id generation."""

    def test_bumps_past_taken_ids(self, monkeypatch):
        monkeypatch.setattr(calendar_events, "time", SimpleNamespace(time=lambda: 1.0))
        events = [{"id": "1000"}, {"id": 1001}]
        assert generate_event_id(events) == "1002"


class TestStandardActions:
    """Tests for create/update/delete."""

    def test_create_generates_id(self, tenant_record):
        event = apply_action(tenant_record, "create", {"title": "Run"})
        assert event["id"]
        assert tenant_record["events"] == [event]

    def test_create_keeps_given_id(self, tenant_record):
        event = apply_action(tenant_record, "create", {"id": "abc", "title": "Run"})
        assert event["id"] == "abc"

    def test_create_with_existing_er_number_merges(self, tenant_record):
        first = apply_action(tenant_record, "create", {"title": "ER9 - a", "cost": 5})
        merged = apply_action(tenant_record, "create", {"id": "other", "title": "ER9 - b"})

        assert merged["id"] == first["id"]
        assert merged["cost"] == 5
        assert merged["title"] == "ER9 - b"
        assert len(tenant_record["events"]) == 1

    def test_update_by_id_merges_fields(self, tenant_record):
        apply_action(tenant_record, "create", {"id": "1", "title": "Run", "cost": 5})
        updated = apply_action(tenant_record, "update", {"id": 1, "cost": 7})

        assert updated == {"id": "1", "title": "Run", "cost": 7}

    def test_update_by_er_number(self, tenant_record):
        apply_action(tenant_record, "create", {"id": "1", "title": "ER3 - Run"})
        updated = apply_action(tenant_record, "update", {"title": "ER3 - Rerun"})

        assert updated["id"] == "1"
        assert updated["title"] == "ER3 - Rerun"

    def test_update_missing_id_raises(self, tenant_record):
        with pytest.raises(EventNotFoundError) as exc:
            apply_action(tenant_record, "update", {"id": "nope"})
        assert exc.value.detail == 'Event "nope" not found for tenant "lab-a"'

    def test_update_without_id_or_er_raises(self, tenant_record):
        with pytest.raises(InvalidInputError) as exc:
            apply_action(tenant_record, "update", {"cost": 1})
        assert "Either event ID or title with ER number" in exc.value.detail

    def test_delete_removes_exactly_one(self, tenant_record):
        apply_action(tenant_record, "create", {"id": "1", "title": "a"})
        apply_action(tenant_record, "create", {"id": "2", "title": "b"})

        result = apply_action(tenant_record, "delete", {"id": "1"})

        assert result == {"id": "1", "deleted": True}
        assert [e["id"] for e in tenant_record["events"]] == ["2"]

    def test_delete_by_er_number(self, tenant_record):
        apply_action(tenant_record, "create", {"id": "1", "title": "ER4 - a"})
        apply_action(tenant_record, "delete", {"title": "ER4"})
        assert tenant_record["events"] == []

    def test_invalid_action(self, tenant_record):
        with pytest.raises(InvalidInputError) as exc:
            apply_action(tenant_record, "archive", {"id": "1"})
        assert exc.value.detail == "Invalid action: archive"

    def test_event_data_must_be_object(self, tenant_record):
        with pytest.raises(InvalidInputError):
            apply_action(tenant_record, "create", ["not", "a", "dict"])


class TestFilterEvents:
    """Tests for list filtering."""

    EVENTS = [
        {"id": "a", "start": "2024-03-10T09:00:00Z", "end": "2024-03-10T10:00:00Z", "resourceId": "equipment-1"},
        {"id": "b", "start": "2024-03-13T09:00:00Z", "end": "2024-03-13T10:00:00Z", "resourceId": "equipment-2"},
        {"id": "c", "start": "2024-03-20T09:00:00Z", "end": "2024-03-20T10:00:00Z", "resourceId": "equipment-1"},
        {"id": "bad", "start": "whenever", "resourceId": "equipment-1"},
    ]

    def ids(self, events):
        return [e["id"] for e in events]

    def test_no_filters_returns_everything(self):
        assert self.ids(filter_events(self.EVENTS)) == ["a", "b", "c", "bad"]

    def test_date_window_includes_whole_end_day(self):
        selected = filter_events(self.EVENTS, start_date=at(11), end_date=at(20))
        assert self.ids(selected) == ["b", "c"]

    def test_resource_filter(self):
        assert self.ids(filter_events(self.EVENTS, resource_id="equipment-2")) == ["b"]
