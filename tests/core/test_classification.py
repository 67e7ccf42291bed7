"""Unit tests for region tagging, priority scoring and alert levels.

Pure function tests - no mocks needed, fast execution.
"""

import pytest
from datetime import datetime, timezone

from src.core.classification import (
    RegionTag,
    Severity,
    alert_level,
    build_notification,
    classify_region_tag,
    get_impact_assessment,
    order_by_urgency,
    priority_score,
)
from src.core.config import RegionProfile, ScoringConfig
from src.core.event import SeismicEvent


def make_event(
    event_id: str = "test",
    magnitude: float = 5.0,
    latitude: float = 13.0,
    longitude: float = 101.0,
    place: str = "",
) -> SeismicEvent:
    return SeismicEvent(
        id=event_id,
        magnitude=magnitude,
        place=place,
        occurred_at=datetime(2025, 3, 28, 6, 20, tzinfo=timezone.utc),
        latitude=latitude,
        longitude=longitude,
        depth_km=10.0,
        details_url=f"https://earthquake.usgs.gov/earthquakes/eventpage/{event_id}",
    )


class TestClassifyRegionTag:
    """Tests for classify_region_tag()."""

    def test_inside_primary_box(self):
        assert classify_region_tag(make_event(latitude=13.0, longitude=101.0)) == RegionTag.PRIMARY

    def test_neighbor_keyword_outside_primary_box(self):
        event = make_event(latitude=21.9, longitude=96.1, place="20 km N of Mandalay, Myanmar")
        assert classify_region_tag(event) == RegionTag.NEIGHBOR

    def test_extended_box_without_keyword(self):
        event = make_event(latitude=-6.5, longitude=129.5, place="Banda Sea")
        assert classify_region_tag(event) == RegionTag.EXTENDED

    def test_outside_everything(self):
        event = make_event(latitude=40.0, longitude=-70.0, place="off the coast of Massachusetts")
        assert classify_region_tag(event) == RegionTag.NONE

    def test_primary_wins_over_neighbor(self):
        """A primary-box event naming a neighbor country is still PRIMARY."""
        event = make_event(latitude=20.1, longitude=99.6, place="Tachileik, Myanmar")
        assert classify_region_tag(event) == RegionTag.PRIMARY

    def test_neighbor_wins_over_extended(self):
        event = make_event(latitude=7.0, longitude=126.5, place="Mindanao, Philippines")
        assert classify_region_tag(event) == RegionTag.NEIGHBOR

    def test_neighbor_keyword_far_away(self):
        """Keyword matching does not depend on coordinates."""
        event = make_event(latitude=40.0, longitude=-70.0, place="Burma Road, USA")
        assert classify_region_tag(event) == RegionTag.NEIGHBOR

    def test_deterministic(self):
        event = make_event(latitude=-6.5, longitude=129.5)
        assert {classify_region_tag(event) for _ in range(5)} == {RegionTag.EXTENDED}

    def test_custom_profile(self):
        profile = RegionProfile(neighbors=())
        event = make_event(latitude=21.9, longitude=96.1, place="Myanmar")
        assert classify_region_tag(event, profile) == RegionTag.EXTENDED


class TestPriorityScore:
    """Tests for priority_score()."""

    def test_primary_adjustment_takes_precedence_over_distance(self):
        """M6.2 at 300 km tagged PRIMARY gets -25, not the <500 km -20."""
        assert priority_score(6.2, 300, RegionTag.PRIMARY) == 100 - 30 - 25

    def test_same_event_untagged_uses_distance(self):
        assert priority_score(6.2, 300, RegionTag.NONE) == 100 - 30 - 20

    def test_neighbor_adjustment_takes_precedence_over_distance(self):
        assert priority_score(6.0, 100, RegionTag.NEIGHBOR) == 100 - 30 - 15

    @pytest.mark.parametrize("magnitude,expected_penalty", [
        (7.5, 50),
        (7.0, 50),
        (6.9, 30),
        (5.0, 15),
        (4.0, 5),
        (3.9, 0),
    ])
    def test_magnitude_penalties(self, magnitude, expected_penalty):
        assert priority_score(magnitude, 10000, RegionTag.NONE) == 100 - expected_penalty

    @pytest.mark.parametrize("distance,expected_penalty", [
        (499.9, 20),
        (500.0, 10),
        (999.9, 10),
        (1000.0, 5),
        (1999.9, 5),
        (2000.0, 0),
    ])
    def test_distance_steps_are_strict(self, distance, expected_penalty):
        assert priority_score(3.0, distance, RegionTag.EXTENDED) == 100 - expected_penalty

    def test_custom_scoring(self):
        scoring = ScoringConfig(baseline=200, primary_adjustment=100)
        assert priority_score(3.0, 0, RegionTag.PRIMARY, scoring) == 100


class TestAlertLevel:
    """Tests for alert_level()."""

    def test_extreme_always_alerts(self):
        level = alert_level(30, 4.0)
        assert level.severity == Severity.EXTREME
        assert level.should_alert

    def test_high_gated_at_5_5(self):
        assert alert_level(50, 5.4).severity == Severity.HIGH
        assert not alert_level(50, 5.4).should_alert
        assert alert_level(50, 5.5).should_alert

    def test_moderate_gated_at_6_0(self):
        assert alert_level(70, 5.9).severity == Severity.MODERATE
        assert not alert_level(70, 5.9).should_alert
        assert alert_level(70, 6.0).should_alert

    def test_low_never_alerts(self):
        level = alert_level(85, 9.0)
        assert level.severity == Severity.LOW
        assert not level.should_alert

    def test_info_above_85(self):
        level = alert_level(86, 9.0)
        assert level.severity == Severity.INFO
        assert not level.should_alert
        assert level.label == "INFORMATION ONLY"


class TestImpactAssessment:
    def test_primary_strong(self):
        text = get_impact_assessment(5.5, 100, RegionTag.PRIMARY)
        assert text.startswith("Significant shaking")

    def test_neighbor_strong(self):
        text = get_impact_assessment(6.5, 800, RegionTag.NEIGHBOR)
        assert "neighboring country" in text

    def test_default(self):
        assert get_impact_assessment(4.5, 9000, RegionTag.NONE) == "No direct impact expected for Thailand."


class TestBuildNotification:
    """Tests for build_notification() and order_by_urgency()."""

    def test_classifies_primary_event(self):
        notification = build_notification(make_event("a", magnitude=6.5))

        assert notification.region_tag == RegionTag.PRIMARY
        assert notification.distance_km == pytest.approx(100, rel=0.1)
        assert notification.priority_score == 45
        assert notification.alert_level.severity == Severity.HIGH
        assert notification.alert_level.should_alert
        assert notification.impact.startswith("Significant shaking")

    def test_rounds_before_scoring(self):
        """A 4.96 event is scored, gated and rendered as M5.0."""
        notification = build_notification(make_event("r", magnitude=4.96, latitude=40.0, longitude=-70.0))

        assert notification.event.magnitude == 5.0
        assert notification.priority_score == 85
        assert notification.distance_km == round(notification.distance_km)

    def test_distant_minor_event_is_info(self):
        notification = build_notification(make_event("b", magnitude=3.0, latitude=40.0, longitude=-70.0))

        assert notification.region_tag == RegionTag.NONE
        assert notification.priority_score == 100
        assert notification.alert_level.severity == Severity.INFO

    def test_order_by_urgency(self):
        far = build_notification(make_event("far", magnitude=4.5, latitude=40.0, longitude=-70.0))
        near = build_notification(make_event("near", magnitude=6.5))
        big = build_notification(make_event("big", magnitude=7.8, latitude=-6.5, longitude=129.5))

        ordered = order_by_urgency([far, near, big])

        assert [n.event.id for n in ordered] == ["near", "big", "far"]

    def test_order_ties_prefer_larger_magnitude(self):
        a = build_notification(make_event("small", magnitude=4.0, latitude=40.0, longitude=-70.0))
        b = build_notification(make_event("larger", magnitude=4.9, latitude=40.0, longitude=-70.0))

        assert a.priority_score == b.priority_score
        assert [n.event.id for n in order_by_urgency([a, b])] == ["larger", "small"]
