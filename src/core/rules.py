"""Per-destination delivery rules - Pure functions.

Decides which destinations receive a classified event. The region focus
filter is applied first, then the magnitude threshold for that focus.
"""

from dataclasses import dataclass

from src.core.classification import Notification, RegionTag
from src.core.config import MagnitudeThresholds, RegionProfile
from src.core.destination import Destination, FocusRegion


EXTENDED_TAGS = frozenset({RegionTag.PRIMARY, RegionTag.NEIGHBOR, RegionTag.EXTENDED})


def matches_focus(
    notification: Notification,
    focus: FocusRegion,
    profile: RegionProfile | None = None,
) -> bool:
    """Check if a notification falls inside a focus region.

    Pure function.

    Returns True if:
    - focus is global, OR
    - focus is primary and the event is tagged PRIMARY or lies within the
      primary radius of the anchor, OR
    - focus is extended and the event carries any regional tag, OR
    - focus is continental and the event matches extended or lies inside
      the continental box
    """
    profile = profile or RegionProfile()

    if focus == FocusRegion.GLOBAL:
        return True

    if focus == FocusRegion.PRIMARY:
        return (
            notification.region_tag == RegionTag.PRIMARY
            or notification.distance_km <= profile.primary_radius_km
        )

    if notification.region_tag in EXTENDED_TAGS:
        return True

    if focus == FocusRegion.CONTINENTAL:
        event = notification.event
        return profile.continental_bounds.contains(event.latitude, event.longitude)

    return False


def min_magnitude_for(
    destination: Destination,
    thresholds: MagnitudeThresholds | None = None,
) -> float:
    """Minimum magnitude for a destination: its override, else the focus default."""
    if destination.min_magnitude is not None:
        return destination.min_magnitude
    thresholds = thresholds or MagnitudeThresholds()
    return thresholds.for_focus(destination.focus_region)


def should_deliver(
    notification: Notification,
    destination: Destination,
    thresholds: MagnitudeThresholds | None = None,
    profile: RegionProfile | None = None,
) -> bool:
    """Evaluate one destination's filter for a notification.

    Pure function.
    """
    if not matches_focus(notification, destination.focus_region, profile):
        return False
    return notification.event.magnitude >= min_magnitude_for(destination, thresholds)


def select_destinations(
    notification: Notification,
    destinations: list[Destination],
    thresholds: MagnitudeThresholds | None = None,
    profile: RegionProfile | None = None,
) -> list[Destination]:
    """Determine which destinations should receive a notification.

    Pure function.
    """
    return [
        d for d in destinations
        if should_deliver(notification, d, thresholds, profile)
    ]


@dataclass(frozen=True)
class DispatchDecision:
    """Result of evaluating a notification against all destinations.

    Attributes:
        notification: The notification evaluated
        destinations: Destinations that should receive it
    """
    notification: Notification
    destinations: list[Destination]

    @property
    def should_dispatch(self) -> bool:
        """Returns True if at least one destination should receive it."""
        return len(self.destinations) > 0


def make_dispatch_decisions(
    notifications: list[Notification],
    destinations: list[Destination],
    thresholds: MagnitudeThresholds | None = None,
    profile: RegionProfile | None = None,
) -> list[DispatchDecision]:
    """Make dispatch decisions for all notifications, preserving their order.

    Pure function. Notifications with no matching destination are omitted.
    """
    decisions = []

    for notification in notifications:
        matching = select_destinations(notification, destinations, thresholds, profile)
        if matching:
            decisions.append(DispatchDecision(
                notification=notification,
                destinations=matching,
            ))

    return decisions
