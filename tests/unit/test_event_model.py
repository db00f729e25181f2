"""
Unit tests for the typed event and tenant models.
"""

import pytest

from labcal.models import Event, Purpose, Tenant, parse_events
from helpers import at


class TestEventModel:
    """Tests for Event parsing leniency."""

    def test_reads_fields_from_extended_props(self):
        event = Event.from_record({
            "title": "Paint Viscosity Testing",
            "start": "2024-03-13T10:00:00",
            "end": "2024-03-13T12:00:00",
            "extendedProps": {"purpose": "Maintenance", "cost": 350, "technician": "Dr. Maria Chen"},
        })
        assert event.purpose is Purpose.MAINTENANCE
        assert event.cost == 350
        assert event.technician == "Dr. Maria Chen"

    def test_top_level_fields_win_over_extended_props(self):
        event = Event.from_record({
            "start": "2024-03-13T10:00:00Z",
            "end": "2024-03-13T12:00:00Z",
            "purpose": "Broken",
            "extendedProps": {"purpose": "Utilization"},
        })
        assert event.purpose is Purpose.BROKEN

    def test_unknown_purpose_counts_as_utilization(self):
        event = Event.from_record({"start": "2024-03-13", "end": "2024-03-14", "purpose": "Calibration"})
        assert event.purpose is Purpose.UTILIZATION

    def test_purpose_is_case_insensitive(self):
        event = Event.from_record({"start": "2024-03-13", "end": "2024-03-14", "purpose": "maintenance"})
        assert event.purpose is Purpose.MAINTENANCE

    def test_bad_cost_counts_as_zero(self):
        event = Event.from_record({"start": "2024-03-13", "end": "2024-03-14", "cost": "n/a"})
        assert event.cost == 0.0

    def test_numeric_string_cost_is_parsed(self):
        event = Event.from_record({"start": "2024-03-13", "end": "2024-03-14", "cost": "12.5"})
        assert event.cost == 12.5

    @pytest.mark.parametrize("cost", ["Infinity", "-inf", "NaN", 1e308, -1e300])
    def test_non_finite_or_huge_cost_counts_as_zero(self, cost):
        event = Event.from_record({"start": "2024-03-13", "end": "2024-03-14", "cost": cost})
        assert event.cost == 0.0

    def test_numeric_ids_become_strings(self):
        event = Event.from_record({"id": 1712345678901, "start": "2024-03-13", "end": "2024-03-14"})
        assert event.id == "1712345678901"

    def test_missing_end_is_a_point_in_time(self):
        event = Event.from_record({"start": "2024-03-13T10:00:00Z"})
        assert event.end == event.start
        assert event.duration_hours == 0

    def test_unparseable_dates_are_skipped(self):
        assert Event.from_record({"start": "someday", "end": "later"}) is None

    def test_extra_fields_are_kept(self):
        event = Event.from_record({
            "start": "2024-03-13", "end": "2024-03-14", "sampleType": "Epoxy", "resourceId": "equipment-2",
        })
        dumped = event.model_dump(by_alias=True)
        assert dumped["sampleType"] == "Epoxy"
        assert dumped["resourceId"] == "equipment-2"

    def test_belongs_to_by_id_or_equipment_name(self):
        by_id = Event.from_record({"start": "2024-03-13", "end": "2024-03-14", "resourceId": "equipment-1"})
        by_name = Event.from_record({"start": "2024-03-13", "end": "2024-03-14", "equipment": "HPLC Machine"})
        assert by_id.belongs_to("equipment-1", "HPLC Machine")
        assert by_name.belongs_to("equipment-1", "HPLC Machine")
        assert not by_name.belongs_to("equipment-2", "Mass Spectrometer")

    def test_parse_events_drops_unreadable_records(self):
        events = parse_events([
            {"start": "2024-03-13T10:00:00Z", "end": "2024-03-13T11:00:00Z"},
            {"start": "never"},
        ])
        assert len(events) == 1
        assert events[0].start == at(13, 10)


class TestTenantModel:
    """Tests for new tenant records."""

    def test_new_tenant_has_default_resources(self):
        record = Tenant.new("lab-a", "Lab A").to_record()
        assert record["id"] == "lab-a"
        assert record["name"] == "Lab A"
        assert record["events"] == []
        assert [r["title"] for r in record["resources"]] == [
            "HPLC Machine", "Mass Spectrometer", "PCR Machine",
        ]
        assert record["createdAt"].endswith("Z")

    def test_name_defaults_to_id(self):
        assert Tenant.new("auto-lab").name == "auto-lab"
