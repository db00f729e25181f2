"""
Unit tests for capacity planning (slots, heatmap, forecast, bottlenecks).
"""

import pytest

from labcal.core.exceptions import InvalidInputError
from labcal.models import Tenant, parse_events
from labcal.services.capacity import (
    default_selection,
    forecast_status,
    generate_slots,
    heatmap_color,
    plan,
    risk_level,
    slot_label,
)
from helpers import NOW, at, iso


@pytest.fixture
def resources():
    return Tenant.new("lab-a").resources


@pytest.fixture
def events():
    return parse_events([
        {"id": "u1", "title": "Long run", "start": iso(at(13, 2)), "end": iso(at(13, 22)),
         "resourceId": "equipment-1", "purpose": "Utilization"},
        {"id": "m1", "title": "Service", "start": iso(at(13, 8)), "end": iso(at(13, 14)),
         "resourceId": "equipment-2", "purpose": "Maintenance"},
    ])


class TestThresholds:
    """Tests for color, status and risk bands."""

    @pytest.mark.parametrize("percent,color", [
        (95, "#f5222d"), (90, "#f5222d"), (80, "#fa8c16"), (60, "#faad14"), (30, "#52c41a"), (10, "#d9d9d9"),
    ])
    def test_heatmap_color(self, percent, color):
        assert heatmap_color(percent) == color

    @pytest.mark.parametrize("rate,status", [
        (96, "Capacity Exceeded"), (90, "At Risk"), (80, "Optimal"), (70, "Underutilized"),
    ])
    def test_forecast_status(self, rate, status):
        assert forecast_status(rate) == status

    @pytest.mark.parametrize("score,level", [(90, "critical"), (72, "high"), (55, "medium"), (10, "low")])
    def test_risk_level(self, score, level):
        assert risk_level(score) == level


class TestSlots:
    """Tests for slot generation and labels."""

    def test_labels(self):
        assert slot_label(at(13, 0), "hour") == "03/13/2024 12 AM"
        assert slot_label(at(13, 15), "hour") == "03/13/2024 3 PM"
        assert slot_label(at(13), "day") == "03/13/2024"
        assert slot_label(at(10), "week") == "Week of Mar 10, 2024"
        assert slot_label(at(1), "month") == "March 2024"

    def test_day_slots_include_end_day(self):
        slots = generate_slots(at(11, 15), at(13, 9), "day")
        assert [s["start"] for s in slots] == [at(11), at(12), at(13)]

    def test_week_slots_start_on_sunday(self):
        slots = generate_slots(at(13), at(20), "week")
        assert [s["start"] for s in slots] == [at(10), at(17)]

    def test_month_slots(self):
        slots = generate_slots(at(13), at(13, month=5), "month")
        assert [s["label"] for s in slots] == ["March 2024", "April 2024", "May 2024"]

    def test_unknown_unit(self):
        with pytest.raises(InvalidInputError):
            generate_slots(at(13), at(14), "fortnight")

    def test_huge_grid_is_rejected(self):
        with pytest.raises(InvalidInputError):
            generate_slots(at(1, year=2020), at(1, year=2024), "hour")


class TestPlan:
    """Tests for the full capacity plan."""

    def test_default_selection_ranks_by_usage(self, resources, events):
        ranked = default_selection(resources, events, size=2)
        assert ranked == ["equipment-1", "equipment-2"]

    def test_heatmap_cell(self, resources, events):
        result = plan(resources, events, NOW, at(13), at(13), "day", ["equipment-1"])

        assert result["hoursPerSlot"] == 24
        assert len(result["slots"]) == 1
        cell = result["heatmap"][0]["cells"][0]
        assert cell["totalHours"] == 20
        assert cell["totalPercent"] == 83
        assert cell["color"] == "#fa8c16"
        assert cell["events"] == [{"id": "u1", "title": "Long run", "purpose": "Utilization", "hours": 20}]

    def test_forecast(self, resources, events):
        result = plan(resources, events, NOW, at(13), at(13), "day", ["equipment-1", "equipment-2"])
        busy, serviced = result["forecast"]["resources"]

        assert busy["availableHours"] == 24
        assert busy["projectedHours"] == 23
        assert busy["projectedRate"] == 96
        assert busy["status"] == "Capacity Exceeded"
        assert busy["additionalCapacityNeeded"] == 2.6
        assert serviced["utilizationRate"] == 0
        assert serviced["status"] == "Underutilized"
        assert serviced["additionalCapacityNeeded"] == 0

        summary = result["forecast"]["summary"]
        assert summary["resourcesAtRisk"] == 1
        assert summary["additionalCapacityNeeded"] == 2.6

    def test_bottlenecks_sorted_by_score(self, resources, events):
        result = plan(resources, events, NOW, at(13), at(13), "day", ["equipment-2", "equipment-1"])
        top, other = result["bottlenecks"]

        assert top["resourceId"] == "equipment-1"
        assert top["highUtilizationSlots"] == 1
        assert top["peakUtilization"] == 83
        assert top["utilizationPercent"] == 83.3
        assert top["bottleneckScore"] == 88
        assert top["riskLevel"] == "critical"
        assert other["downtimePercent"] == 25.0
        assert other["bottleneckScore"] == 0
        assert other["riskLevel"] == "low"

    def test_defaults_to_current_month(self, resources, events):
        result = plan(resources, events, NOW)

        assert result["unit"] == "day"
        assert len(result["slots"]) == 31
        assert result["start"] == "2024-03-01T00:00:00.000Z"
        assert result["selectedResources"] == ["equipment-1", "equipment-2", "equipment-3"]

    def test_unknown_resource_is_rejected(self, resources, events):
        with pytest.raises(InvalidInputError):
            plan(resources, events, NOW, at(13), at(13), "day", ["equipment-9"])

    def test_end_before_start_is_rejected(self, resources, events):
        with pytest.raises(InvalidInputError):
            plan(resources, events, NOW, at(14), at(13))
