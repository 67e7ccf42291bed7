"""Event classification - Pure functions.

Assigns every event exactly one region tag and one alert level, derived
deterministically from its location, place text and magnitude.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable

from src.core.config import RegionProfile, ScoringConfig
from src.core.event import SeismicEvent
from src.core.geo import distance_from, is_within_bounds, matches_neighbor


class RegionTag(str, Enum):
    """Three-tier region classification around the focal anchor."""
    PRIMARY = "primary"
    NEIGHBOR = "neighbor"
    EXTENDED = "extended"
    NONE = "none"


RegionPredicate = Callable[[SeismicEvent, RegionProfile], bool]


# Evaluated top to bottom; the first matching predicate wins.
REGION_RULES: tuple[tuple[RegionPredicate, RegionTag], ...] = (
    (lambda e, p: is_within_bounds(e, p.primary_bounds), RegionTag.PRIMARY),
    (lambda e, p: matches_neighbor(e.place, p.neighbors), RegionTag.NEIGHBOR),
    (lambda e, p: is_within_bounds(e, p.extended_bounds), RegionTag.EXTENDED),
)


def classify_region_tag(
    event: SeismicEvent,
    profile: RegionProfile | None = None,
) -> RegionTag:
    """Classify an event into a region tier.

    Pure function. Total: events matching no rule are tagged NONE.
    """
    profile = profile or RegionProfile()
    for predicate, tag in REGION_RULES:
        if predicate(event, profile):
            return tag
    return RegionTag.NONE


def priority_score(
    magnitude: float,
    distance_km: float,
    tag: RegionTag,
    scoring: ScoringConfig | None = None,
) -> int:
    """Composite urgency score. Lower means more urgent.

    Pure function. At most one magnitude penalty and exactly one
    distance/region adjustment apply, with region tiers taking precedence
    over raw distance.
    """
    scoring = scoring or ScoringConfig()
    score = scoring.baseline

    for min_magnitude, penalty in scoring.magnitude_steps:
        if magnitude >= min_magnitude:
            score -= penalty
            break

    if tag == RegionTag.PRIMARY:
        score -= scoring.primary_adjustment
    elif tag == RegionTag.NEIGHBOR:
        score -= scoring.neighbor_adjustment
    else:
        for max_distance, penalty in scoring.distance_steps:
            if distance_km < max_distance:
                score -= penalty
                break

    return score


class Severity(str, Enum):
    EXTREME = "EXTREME ALERT"
    HIGH = "HIGH ALERT"
    MODERATE = "MODERATE ALERT"
    LOW = "LOW ALERT"
    INFO = "INFORMATION ONLY"


@dataclass(frozen=True)
class AlertLevel:
    """Severity bucket for a priority score.

    Attributes:
        severity: The bucket
        description: Human-readable description
        should_alert: Whether the event warrants a broadcast mention
    """
    severity: Severity
    description: str
    should_alert: bool

    @property
    def label(self) -> str:
        return self.severity.value


def alert_level(score: int, magnitude: float) -> AlertLevel:
    """Map a priority score to an alert level.

    Pure function. Breakpoints are inclusive upper bounds; the broadcast
    flag is additionally gated on magnitude for the middle buckets.
    """
    if score <= 30:
        return AlertLevel(
            Severity.EXTREME,
            "Severe earthquake with potential impact on Thailand",
            True,
        )
    if score <= 50:
        return AlertLevel(
            Severity.HIGH,
            "Strong earthquake that may be felt in Thailand",
            magnitude >= 5.5,
        )
    if score <= 70:
        return AlertLevel(
            Severity.MODERATE,
            "Notable earthquake in the region",
            magnitude >= 6.0,
        )
    if score <= 85:
        return AlertLevel(
            Severity.LOW,
            "Earthquake with minimal impact",
            False,
        )
    return AlertLevel(
        Severity.INFO,
        "Distant earthquake with no direct impact on Thailand",
        False,
    )


def get_impact_assessment(magnitude: float, distance_km: float, tag: RegionTag) -> str:
    """Short impact text for the notification body.

    Pure function.
    """
    if tag == RegionTag.PRIMARY and magnitude >= 5.0:
        return "Significant shaking may be felt across Thailand. Monitor for possible damage and aftershocks."
    if tag == RegionTag.PRIMARY and magnitude >= 4.0:
        return "Light to moderate shaking may be felt in parts of Thailand. Generally low risk of damage."
    if tag == RegionTag.NEIGHBOR and magnitude >= 6.0:
        return "Strong earthquake in neighboring country. May be felt in border regions of Thailand."
    if distance_km < 500 and magnitude >= 6.5:
        return "Major earthquake near Thailand. Monitor for possible effects."
    if distance_km < 1000 and magnitude >= 7.0:
        return "Significant regional earthquake. Check for tsunami warnings if near coast."
    return "No direct impact expected for Thailand."


@dataclass(frozen=True)
class Notification:
    """A classified event, ready for filtering and rendering.

    Attributes:
        event: The underlying event
        region_tag: Region tier
        distance_km: Great-circle distance from the focal anchor
        priority_score: Urgency score (lower is more urgent)
        alert_level: Severity bucket derived from the score
        impact: Impact assessment text
    """
    event: SeismicEvent
    region_tag: RegionTag
    distance_km: float
    priority_score: int
    alert_level: AlertLevel
    impact: str


def build_notification(
    event: SeismicEvent,
    profile: RegionProfile | None = None,
    scoring: ScoringConfig | None = None,
) -> Notification:
    """Run the full classification for one event.

    Pure function. Magnitude is rounded to one decimal and distance to
    whole kilometers first, so scoring, filtering and rendering all see the
    values the message shows.
    """
    profile = profile or RegionProfile()
    event = replace(event, magnitude=round(event.magnitude, 1))
    tag = classify_region_tag(event, profile)
    distance = float(round(distance_from(event, profile.anchor)))
    score = priority_score(event.magnitude, distance, tag, scoring)

    return Notification(
        event=event,
        region_tag=tag,
        distance_km=distance,
        priority_score=score,
        alert_level=alert_level(score, event.magnitude),
        impact=get_impact_assessment(event.magnitude, distance, tag),
    )


def order_by_urgency(notifications: list[Notification]) -> list[Notification]:
    """Sort most urgent first; ties go to the larger, then closer, event."""
    return sorted(
        notifications,
        key=lambda n: (n.priority_score, -n.event.magnitude, n.distance_km),
    )
