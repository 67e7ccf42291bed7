"""Functional Core - Pure functions with no side effects.

This module contains all business logic as pure functions:
- Feed parsing
- Geo/distance calculations
- Region classification and priority scoring
- Per-destination delivery rules
- Message formatting
- Deduplication logic

Apart from DedupStore's in-memory set, everything here is deterministic
and has no I/O.
"""

from src.core.event import SeismicEvent, parse_events
from src.core.geo import BoundingBox, calculate_distance, is_within_bounds, matches_keyword
from src.core.classification import (
    RegionTag,
    Notification,
    build_notification,
    classify_region_tag,
    priority_score,
    alert_level,
)
from src.core.rules import should_deliver, make_dispatch_decisions
from src.core.formatter import format_discord_message, format_recent_events_message
from src.core.dedup import DedupStore

__all__ = [
    # Event
    "SeismicEvent",
    "parse_events",
    # Geo
    "BoundingBox",
    "calculate_distance",
    "is_within_bounds",
    "matches_keyword",
    # Classification
    "RegionTag",
    "Notification",
    "build_notification",
    "classify_region_tag",
    "priority_score",
    "alert_level",
    # Rules
    "should_deliver",
    "make_dispatch_decisions",
    # Formatter
    "format_discord_message",
    "format_recent_events_message",
    # Dedup
    "DedupStore",
]
