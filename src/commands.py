"""Command handlers - the actions a community can take.

These functions sit between an inbound surface (the HTTP API) and the
registry, Discord client and feed client. Invalid input raises ValueError.
"""

import logging
from dataclasses import dataclass

from src.core.classification import Notification, build_notification
from src.core.config import RegionProfile, ScoringConfig
from src.core.destination import Destination, FocusRegion
from src.core.event import sort_newest_first
from src.core.rules import matches_focus
from src.registry import DestinationRegistry
from src.shell.discord_client import DiscordClient
from src.shell.usgs_client import USGSFeedClient


logger = logging.getLogger(__name__)


MIN_RECENT_COUNT = 1
MAX_RECENT_COUNT = 5
DEFAULT_RECENT_COUNT = 3

# The recent-events query offers a narrower set of regions than setup does
RECENT_EVENT_REGIONS = (FocusRegion.GLOBAL, FocusRegion.PRIMARY, FocusRegion.EXTENDED)

PENDING_NOTE = "Note: this change will be saved when the database connection is restored."


class FeedUnavailableError(Exception):
    """The feed could not be fetched for a query."""


@dataclass
class SetupResult:
    """Outcome of configuring a community's destination.

    Attributes:
        destination: The stored destination
        created_channel: Whether the channel had to be created
        persisted: False if the write is queued for replay
    """
    destination: Destination
    created_channel: bool
    persisted: bool

    @property
    def message(self) -> str:
        lines = []
        if self.created_channel:
            lines.append(
                f"Channel #{self.destination.channel_name} didn't exist, so it was created."
            )
        lines.append(f"Earthquake alerts will be sent to <#{self.destination.channel_id}>!")
        lines.append(f"Focus region: **{self.destination.focus_region.label}**")
        if not self.persisted:
            lines.append(PENDING_NOTE)
        return "\n".join(lines)


@dataclass
class RemoveResult:
    community_id: str
    persisted: bool

    @property
    def message(self) -> str:
        text = "Earthquake alerts have been removed from this server."
        if not self.persisted:
            text += "\n" + PENDING_NOTE
        return text


def parse_focus_region(value: str | None, allowed: tuple[FocusRegion, ...] | None = None) -> FocusRegion:
    """Parse a user-supplied region, rejecting unknown values.

    Raises:
        ValueError: If the value is not an allowed region
    """
    if not value:
        return FocusRegion.GLOBAL

    allowed = allowed or tuple(FocusRegion)
    normalized = value.strip().lower()
    for region in allowed:
        if region.value == normalized:
            return region

    choices = ", ".join(r.value for r in allowed)
    raise ValueError(f"Unknown region '{value}', expected one of: {choices}")


def setup_destination(
    registry: DestinationRegistry,
    discord: DiscordClient,
    community_id: str,
    channel_name: str,
    focus_region: str | None = None,
    community_name: str = "",
    min_magnitude: float | None = None,
) -> SetupResult:
    """Point a community's alerts at a text channel, creating it if absent.

    Raises:
        ValueError: On empty names, an unknown region, or if the channel
            cannot be created
    """
    community_id = (community_id or "").strip()
    channel_name = (channel_name or "").strip().lstrip("#")
    if not community_id:
        raise ValueError("community_id is required")
    if not channel_name:
        raise ValueError("channel name is required")

    region = parse_focus_region(focus_region)

    channel = discord.find_text_channel(community_id, channel_name)
    created = False
    if channel is None:
        channel = discord.create_text_channel(community_id, channel_name)
        if channel is None:
            raise ValueError(
                f"Failed to create channel #{channel_name}; check the bot's permissions"
            )
        created = True

    destination = Destination(
        community_id=community_id,
        channel_id=channel.id,
        channel_name=channel.name,
        community_name=community_name,
        focus_region=region,
        min_magnitude=min_magnitude,
    )
    persisted = registry.upsert(destination)

    logger.info(
        "Destination for %s set to #%s (%s), focus %s%s",
        community_id,
        channel.name,
        channel.id,
        region.value,
        "" if persisted else " [queued]",
    )
    return SetupResult(destination=destination, created_channel=created, persisted=persisted)


def remove_destination(registry: DestinationRegistry, community_id: str) -> RemoveResult:
    """Stop alerts for a community."""
    community_id = (community_id or "").strip()
    if not community_id:
        raise ValueError("community_id is required")

    persisted = registry.remove(community_id)
    logger.info("Destination for %s removed%s", community_id, "" if persisted else " [queued]")
    return RemoveResult(community_id=community_id, persisted=persisted)


def recent_events(
    fetcher: USGSFeedClient,
    endpoint: str,
    count: int = DEFAULT_RECENT_COUNT,
    region: str | None = None,
    profile: RegionProfile | None = None,
    scoring: ScoringConfig | None = None,
) -> list[Notification]:
    """Latest events in a region, newest first.

    Args:
        fetcher: Feed client
        endpoint: Feed URL to query (a day-long summary feed)
        count: How many events to return (1-5)
        region: global, thailand or sea

    Raises:
        ValueError: If count or region is invalid
        FeedUnavailableError: If the feed cannot be fetched
    """
    if not MIN_RECENT_COUNT <= count <= MAX_RECENT_COUNT:
        raise ValueError(
            f"count must be between {MIN_RECENT_COUNT} and {MAX_RECENT_COUNT}, got {count}"
        )
    focus = parse_focus_region(region, RECENT_EVENT_REGIONS)
    profile = profile or RegionProfile()

    result = fetcher.fetch(endpoint)
    if not result.success:
        raise FeedUnavailableError(result.error or "feed unavailable")

    notifications = [
        build_notification(event, profile, scoring)
        for event in sort_newest_first(result.events)
    ]
    matching = [n for n in notifications if matches_focus(n, focus, profile)]
    return matching[:count]
