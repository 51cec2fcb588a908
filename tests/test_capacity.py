"""
Tests for the capacity model.
"""

from sprint_planner.capacity import (
    AvailabilitySignal,
    CapacityModel,
    assess_team_capacity
)
from sprint_planner.models import Member
from sprint_planner.velocity import VelocityRecord


def roster(*names):
    return [Member(name=n, projects=["PROJ"]) for n in names]


class TestAvailability:
    """Tests for out-of-office detection."""

    def test_no_signals_everyone_available(self):
        """Test full capacity without notes."""
        capacity = assess_team_capacity(roster("Alice Smith", "Bob Jones"))

        assert capacity.total_capacity == 20
        assert capacity.unavailable_members == []
        assert not capacity.reduced_capacity
        assert [m.estimated_capacity for m in capacity.members] == [10, 10]

    def test_signal_with_name_and_keyword(self):
        """Test a note naming a member and an absence keyword."""
        signals = [AvailabilitySignal(content="Bob is on vacation next week", source="Team OOO")]
        capacity = assess_team_capacity(roster("Alice Smith", "Bob Jones"), signals)

        assert capacity.unavailable_members == ["Bob Jones"]
        assert capacity.total_capacity == 10
        assert capacity.reduced_capacity

        bob = capacity.get("Bob Jones")
        assert bob.is_unavailable
        assert bob.availability_factor == 0.0
        assert bob.estimated_capacity == 0

    def test_keyword_without_name(self):
        """Test absence notes about other people are ignored."""
        signals = [AvailabilitySignal(content="Charlie OOO on Friday")]
        capacity = assess_team_capacity(roster("Alice Smith"), signals)

        assert capacity.unavailable_members == []

    def test_name_without_keyword(self):
        """Test mentions without an absence keyword are ignored."""
        signals = [AvailabilitySignal(content="Alice presents the demo")]
        capacity = assess_team_capacity(roster("Alice Smith"), signals)

        assert capacity.unavailable_members == []

    def test_short_name_tokens_never_match(self):
        """Test two-letter names cannot match arbitrary text."""
        signals = [AvailabilitySignal(content="Al is out of office; also vacation for all")]
        capacity = assess_team_capacity(roster("Al"), signals)

        assert capacity.unavailable_members == []
        assert capacity.get("Al").estimated_capacity == 10

    def test_matching_is_case_insensitive(self):
        signals = [AvailabilitySignal(content="SMITH - HOLIDAY")]
        capacity = assess_team_capacity(roster("Alice Smith"), signals)

        assert capacity.unavailable_members == ["Alice Smith"]

    def test_roster_order_preserved(self):
        capacity = assess_team_capacity(roster("Zed Last", "Amy First", "Mid Person"))
        assert [m.name for m in capacity.members] == ["Zed Last", "Amy First", "Mid Person"]

    def test_custom_capacity(self):
        capacity = assess_team_capacity(roster("Alice Smith"), default_capacity_per_person=7)
        assert capacity.total_capacity == 7

    def test_current_items_carried_from_roster(self):
        members = [Member(name="Alice Smith", projects=["A", "B"], ticket_count=4)]
        member = assess_team_capacity(members).members[0]

        assert member.current_items == 4
        assert member.projects == ["A", "B"]


class TestCapacitySummary:
    """Tests for the planning recommendation."""

    def velocity(self, avg_items):
        return {"PROJ": VelocityRecord(avg_items_per_period=avg_items, trend="improving")}

    def test_reduced_capacity(self):
        """Test recommendation below 70% capacity."""
        model = CapacityModel()
        signals = [AvailabilitySignal(content="Bob Jones vacation"), AvailabilitySignal(content="Carol ooo")]
        assessment = model.assess(roster("Alice Smith", "Bob Jones", "Carol White"), signals)

        summary = model.summarize(self.velocity(9.0), assessment)

        assert summary.team_size == 3
        assert summary.available_members == 1
        assert summary.unavailable_members == ["Bob Jones", "Carol White"]
        assert summary.recommendation == (
            "Reduced capacity (33%). Plan fewer tickets than average velocity. "
            "Suggest 3 tickets max."
        )

    def test_normal_capacity(self):
        """Test recommendation at full roster availability."""
        model = CapacityModel()
        assessment = model.assess(roster("Alice Smith", "Bob Jones"))

        summary = model.summarize(self.velocity(7.6), assessment)

        assert summary.capacity_ratio == 1.0
        assert summary.recommendation == "Normal capacity (100%). Plan close to average velocity: ~8 tickets."

    def test_project_velocity_digest(self):
        model = CapacityModel()
        summary = model.summarize(self.velocity(5.0), model.assess(roster("Alice Smith")))

        assert summary.project_velocity == {
            "PROJ": {"avg_items": 5.0, "avg_points": 0.0, "trend": "improving"}
        }

    def test_empty_roster(self):
        """Test summary of an empty team does not divide by zero."""
        model = CapacityModel()
        summary = model.summarize({}, model.assess([]))

        assert summary.team_size == 0
        assert summary.capacity_ratio == 0.0
        assert summary.recommendation.startswith("Reduced capacity (0%)")
