"""Geographic calculations - Pure functions.

This module provides distance, bounding-box and place-keyword tests for
event locations. All functions are pure with no side effects.
"""

import math
from dataclasses import dataclass, field

from src.core.event import SeismicEvent


# Earth's radius in kilometers
EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class BoundingBox:
    """Geographic bounding box.

    Attributes:
        min_latitude: Southern boundary
        max_latitude: Northern boundary
        min_longitude: Western boundary
        max_longitude: Eastern boundary
    """
    min_latitude: float
    max_latitude: float
    min_longitude: float
    max_longitude: float

    def contains(self, latitude: float, longitude: float) -> bool:
        """Check if a point is within this bounding box (inclusive)."""
        return (
            self.min_latitude <= latitude <= self.max_latitude
            and self.min_longitude <= longitude <= self.max_longitude
        )


@dataclass(frozen=True)
class GeoPoint:
    """A named fixed coordinate, e.g. the focal anchor city."""
    name: str
    latitude: float
    longitude: float


@dataclass(frozen=True)
class NeighborCountry:
    """A neighboring country matched by name or keyword in place text.

    Attributes:
        name: Country name (also matched, case-insensitively)
        keywords: Extra lowercase keywords, e.g. former names or islands
    """
    name: str
    keywords: tuple[str, ...] = field(default_factory=tuple)

    @property
    def terms(self) -> tuple[str, ...]:
        """All lowercase terms that identify this country."""
        return (self.name.lower(),) + tuple(k.lower() for k in self.keywords)


def calculate_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Calculate great-circle distance between two points (Haversine).

    Pure function.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    # Rounding can push a marginally above 1 for antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_from(event: SeismicEvent, point: GeoPoint) -> float:
    """Distance in km from an event's epicenter to a fixed point."""
    return calculate_distance(
        point.latitude,
        point.longitude,
        event.latitude,
        event.longitude,
    )


def is_within_bounds(event: SeismicEvent, bounds: BoundingBox) -> bool:
    """Check if an event's epicenter is within a bounding box.

    Pure function.
    """
    return bounds.contains(event.latitude, event.longitude)


def matches_keyword(place: str, keywords: tuple[str, ...] | list[str]) -> bool:
    """Case-insensitive substring match of any keyword against place text.

    Pure function. Empty place text never matches.
    """
    if not place:
        return False

    place_lower = place.lower()
    return any(k and k.lower() in place_lower for k in keywords)


def matches_neighbor(place: str, neighbors: tuple[NeighborCountry, ...]) -> bool:
    """Check if place text names any neighboring country.

    Pure function.
    """
    return any(matches_keyword(place, country.terms) for country in neighbors)
