"""
Unit tests for the analytics summary and utilization breakdown.
"""

import pytest

from labcal.core.exceptions import InvalidInputError
from labcal.models import Tenant, parse_events
from labcal.services.analytics import range_start, summarize, utilization_breakdown
from helpers import NOW, at, iso


@pytest.fixture
def resources():
    return Tenant.new("lab-a").resources


def booking(start, end, **fields):
    return {"title": "Run", "start": iso(start), "end": iso(end), **fields}


class TestRangeStart:
    """Tests for analytics time ranges."""

    def test_day_ranges(self):
        assert range_start(NOW, "7days") == at(6, 12)

    def test_twelve_months_is_calendar_months(self):
        assert range_start(NOW, "12months") == at(13, 12, year=2023)

    def test_unknown_range_is_rejected(self):
        with pytest.raises(InvalidInputError):
            range_start(NOW, "fortnight")


class TestSummarize:
    """Tests for the dashboard summary."""

    @pytest.fixture
    def events(self):
        return parse_events([
            booking(at(12, 9), at(12, 11), resourceId="equipment-1", technician="Dr. Ames"),
            booking(at(11, 9), at(11, 11), resourceId="equipment-1", technician="Dr. Ames"),
            booking(at(10, 9), at(10, 11), equipment="Mass Spectrometer", technician="Dr. Brook"),
            booking(at(20, 9, month=2), at(20, 11, month=2), resourceId="equipment-1", technician="Dr. Cole"),
        ])

    def test_metrics(self, resources, events):
        metrics = summarize(resources, events, NOW, "7days")["metrics"]

        assert metrics == {
            "totalEvents": 3,
            "eventsPerDay": 0.4,
            "utilizationRate": 14,
            "activeEquipment": 2,
            "totalEquipment": 3,
        }

    def test_equipment_sorted_by_count(self, resources, events):
        rows = summarize(resources, events, NOW, "7days")["equipmentUtilization"]

        assert [(r["resourceId"], r["count"], r["utilization"]) for r in rows] == [
            ("equipment-1", 2, 67),
            ("equipment-2", 1, 33),
            ("equipment-3", 0, 0),
        ]

    def test_top_technicians_only_count_range(self, resources, events):
        technicians = summarize(resources, events, NOW, "7days")["topTechnicians"]
        assert technicians == [{"name": "Dr. Ames", "count": 2}, {"name": "Dr. Brook", "count": 1}]

    def test_monthly_trends_cover_six_months(self, resources, events):
        trends = summarize(resources, events, NOW, "7days")["monthlyTrends"]

        assert [t["month"] for t in trends] == [
            "Oct 2023", "Nov 2023", "Dec 2023", "Jan 2024", "Feb 2024", "Mar 2024",
        ]
        assert trends[-2]["count"] == 1
        assert trends[-1]["count"] == 3

    def test_empty_tenant(self, resources):
        summary = summarize(resources, [], NOW)
        assert summary["range"] == "30days"
        assert summary["metrics"]["totalEvents"] == 0
        assert summary["metrics"]["utilizationRate"] == 0
        assert summary["topTechnicians"] == []


class TestUtilizationBreakdown:
    """Tests for purpose hours, costs and ROI."""

    @pytest.fixture
    def events(self):
        return parse_events([
            booking(at(11, 8), at(11, 14), resourceId="equipment-1", purpose="Utilization", cost=600),
            booking(at(11, 14), at(11, 17), resourceId="equipment-1", purpose="Maintenance", cost=150),
            # Runs past the period end; only two hours and a third of the cost count
            booking(at(11, 22), at(12, 4), resourceId="equipment-1", purpose="Broken", cost=50),
        ])

    def test_percentages_and_costs(self, resources, events):
        report = utilization_breakdown(resources, events, at(11), at(12))
        row = report["resources"][0]

        assert report["periodHours"] == 24
        assert row["hours"] == {"utilization": 6, "maintenance": 3, "broken": 2}
        assert row["percentages"] == {"utilization": 25.0, "maintenance": 12.5, "broken": 8.3, "idle": 54.2}
        assert row["costs"] == {
            "utilization": 600, "maintenance": 150, "broken": 16.67, "downtime": 166.67, "total": 766.67,
        }
        assert row["roi"] == 260.0
        assert row["costPerUtilizationHour"] == 100.0

    def test_idle_resource(self, resources, events):
        row = utilization_breakdown(resources, events, at(11), at(12))["resources"][1]

        assert row["percentages"]["idle"] == 100.0
        assert row["roi"] is None
        assert row["costPerUtilizationHour"] is None

    def test_empty_period_is_rejected(self, resources, events):
        with pytest.raises(InvalidInputError):
            utilization_breakdown(resources, events, at(12), at(12))

    def test_huge_costs_keep_totals_finite(self, resources):
        events = parse_events([
            booking(at(11, 8), at(11, 10), resourceId="equipment-1", cost=1e308),
            booking(at(11, 10), at(11, 12), resourceId="equipment-1", cost=1e308),
            booking(at(11, 12), at(11, 14), resourceId="equipment-1", purpose="Maintenance", cost="Infinity"),
            booking(at(11, 14), at(11, 16), resourceId="equipment-1", cost=40),
        ])

        row = utilization_breakdown(resources, events, at(11), at(12))["resources"][0]

        assert row["costs"]["utilization"] == 40
        assert row["costs"]["total"] == 40
        assert row["roi"] is None
