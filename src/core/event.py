"""Seismic event data model and parsing - Pure functions.

This module parses USGS GeoJSON feed documents into typed SeismicEvent
objects. All functions are pure with no side effects.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class SeismicEvent:
    """Immutable seismic event as reported by the feed.

    Attributes:
        id: Feed-unique event ID, stable across polls
        magnitude: Event magnitude
        place: Free-text location description (may be empty)
        occurred_at: Event origin time (UTC)
        latitude: Epicenter latitude
        longitude: Epicenter longitude
        depth_km: Depth in kilometers
        details_url: Event detail page URL
    """
    id: str
    magnitude: float
    place: str
    occurred_at: datetime
    latitude: float
    longitude: float
    depth_km: float
    details_url: str

    @property
    def coordinates(self) -> tuple[float, float]:
        """Return (latitude, longitude) tuple."""
        return (self.latitude, self.longitude)


def parse_event(feature: dict[str, Any]) -> SeismicEvent | None:
    """Parse a single GeoJSON feature into a SeismicEvent.

    Pure function: returns None for malformed features so that one bad
    feature never fails the whole batch.

    Args:
        feature: GeoJSON feature dict from the feed

    Returns:
        SeismicEvent or None if a required field is missing or invalid
    """
    try:
        event_id = feature.get("id")
        if not event_id:
            return None

        props = feature.get("properties") or {}
        geometry = feature.get("geometry") or {}
        coords = geometry.get("coordinates") or []

        if len(coords) < 3:
            return None

        # Feed time is milliseconds since epoch
        time_ms = props.get("time")
        if time_ms is None:
            return None

        magnitude = props.get("mag")
        if magnitude is None:
            return None

        return SeismicEvent(
            id=str(event_id),
            magnitude=round(float(magnitude), 1),
            place=props.get("place") or "",
            occurred_at=datetime.fromtimestamp(time_ms / 1000, tz=timezone.utc),
            longitude=float(coords[0]),
            latitude=float(coords[1]),
            depth_km=float(coords[2]),
            details_url=props.get("url") or "",
        )
    except (AttributeError, KeyError, TypeError, ValueError, OverflowError):
        return None


def parse_events(geojson: dict[str, Any]) -> list[SeismicEvent]:
    """Parse a GeoJSON FeatureCollection into events.

    Pure function. Invalid features are skipped; feed order is preserved.

    Args:
        geojson: Full GeoJSON document from the feed

    Returns:
        List of valid SeismicEvent objects
    """
    features = geojson.get("features")
    if not isinstance(features, list):
        return []

    events = []

    for feature in features:
        if not isinstance(feature, dict):
            continue
        event = parse_event(feature)
        if event is not None:
            events.append(event)

    return events


def filter_by_magnitude(
    events: list[SeismicEvent],
    min_magnitude: float | None = None,
) -> list[SeismicEvent]:
    """Keep events at or above a minimum magnitude.

    Pure function. A None minimum keeps everything.
    """
    if min_magnitude is None:
        return list(events)
    return [e for e in events if e.magnitude >= min_magnitude]


def sort_newest_first(events: list[SeismicEvent]) -> list[SeismicEvent]:
    """Sort events by origin time, newest first."""
    return sorted(events, key=lambda e: e.occurred_at, reverse=True)
