"""Message formatting - Pure functions.

This module renders classified events into Discord message payloads.
All functions are pure with no side effects.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from src.core.classification import Notification, RegionTag
from src.core.config import RegionProfile
from src.core.destination import FocusRegion
from src.core.event import SeismicEvent


# Indochina Time is UTC+7
ICT = timezone(timedelta(hours=7), name="ICT")

SOURCE_FOOTER = {
    "text": "Data source: USGS Earthquake Hazards Program",
    "icon_url": "https://earthquake.usgs.gov/theme/images/logo.png",
}

BROADCAST_TAG = "@everyone"
DEFAULT_BANNER = "\U0001f6a8 **EARTHQUAKE ALERT** \U0001f6a8"


def get_magnitude_color(magnitude: float) -> int:
    """Embed color for a magnitude bracket.

    Pure function.
    """
    if magnitude >= 7.0:
        return 0x990000
    elif magnitude >= 6.0:
        return 0xFF0000
    elif magnitude >= 5.0:
        return 0xFF9900
    elif magnitude >= 4.0:
        return 0xFFCC00
    else:
        return 0xFFFF00


def get_region_label(tag: RegionTag, profile: RegionProfile | None = None) -> str:
    """Bracketed title prefix for a region tag, empty for NONE."""
    profile = profile or RegionProfile()
    label = {
        RegionTag.PRIMARY: profile.primary_label,
        RegionTag.NEIGHBOR: profile.neighbor_label,
        RegionTag.EXTENDED: profile.extended_label,
    }.get(tag)
    return f"[{label}] " if label else ""


def format_local_time(moment: datetime, tz: timezone = ICT) -> str:
    """Format an instant in the display timezone, e.g. 'Mar 28, 2025, 01:20:54 PM'."""
    local = moment.astimezone(tz)
    return f"{local:%b} {local.day}, {local:%Y, %I:%M:%S %p}"


def format_utc_offset(tz: timezone, moment: datetime) -> str:
    """Offset label such as 'GMT+7' or 'GMT+5:30'."""
    offset = tz.utcoffset(moment) or timedelta(0)
    minutes = int(offset.total_seconds() // 60)
    sign = "+" if minutes >= 0 else "-"
    hours, rem = divmod(abs(minutes), 60)
    return f"GMT{sign}{hours}" + (f":{rem:02d}" if rem else "")


def get_alert_banner(notification: Notification) -> str:
    """Banner line placed above the embed.

    Pure function. Urgent banners carry the broadcast tag.
    """
    magnitude = notification.event.magnitude
    tag = notification.region_tag

    if tag == RegionTag.PRIMARY and magnitude >= 4.5:
        return f"{BROADCAST_TAG} \U0001f6a8 **URGENT! EARTHQUAKE NEAR THAILAND** \U0001f6a8"
    if tag in (RegionTag.NEIGHBOR, RegionTag.EXTENDED) and magnitude >= 5.5:
        return f"{BROADCAST_TAG} \U0001f6a8 **ALERT! EARTHQUAKE IN SOUTHEAST ASIA** \U0001f6a8"
    if magnitude >= 7.0:
        return f"{BROADCAST_TAG} \U0001f6a8 **MAJOR GLOBAL EARTHQUAKE ALERT** \U0001f6a8"
    if notification.alert_level.should_alert:
        return f"{BROADCAST_TAG} {DEFAULT_BANNER}"
    return DEFAULT_BANNER


def _maps_url(event: SeismicEvent) -> str:
    return f"https://www.google.com/maps?q={event.latitude},{event.longitude}&z=8"


def _thumbnail_url(event: SeismicEvent) -> str:
    return (
        "https://earthquake.usgs.gov/images/globes/"
        f"{round(event.latitude)}{round(event.longitude)}/en-US.jpg"
    )


def _build_embed(
    notification: Notification,
    profile: RegionProfile,
    tz: timezone,
    include_assessment: bool,
) -> dict[str, Any]:
    event = notification.event
    place = event.place or "Unknown Location"

    lines = []
    if include_assessment:
        lines.append(f"**Alert Level:** {notification.alert_level.label}")
    time_label = f"{profile.anchor.name}, {format_utc_offset(tz, event.occurred_at)}"
    lines.extend([
        f"**Time ({time_label}):** {format_local_time(event.occurred_at, tz)}",
        f"**Depth:** {event.depth_km:.1f} km",
        f"**Coordinates:** [{event.latitude:.4f}, {event.longitude:.4f}]({_maps_url(event)})",
        f"**Distance from {profile.anchor.name}:** {notification.distance_km:.0f} km",
    ])
    if include_assessment:
        lines.append("")
        lines.append(f"**Impact Assessment:** {notification.impact}")
    if event.details_url:
        lines.append("")
        lines.append(f"[View USGS Details]({event.details_url})")

    return {
        "title": (
            f"{get_region_label(notification.region_tag, profile)}"
            f"Magnitude {event.magnitude:.1f} Earthquake {place}"
        ),
        "description": "\n".join(lines),
        "color": get_magnitude_color(event.magnitude),
        "thumbnail": {"url": _thumbnail_url(event)},
        "fields": [
            {"name": "Magnitude", "value": f"**{event.magnitude:.1f}**", "inline": True},
            {"name": "Region", "value": place, "inline": True},
            {"name": "Depth", "value": f"{event.depth_km:.1f} km", "inline": True},
        ],
        "footer": dict(SOURCE_FOOTER),
        "timestamp": event.occurred_at.isoformat(),
    }


def format_discord_message(
    notification: Notification,
    profile: RegionProfile | None = None,
    tz: timezone = ICT,
) -> dict[str, Any]:
    """Format a notification as a Discord message payload.

    Pure function.

    Args:
        notification: Classified event to render
        profile: Region profile for labels and the anchor name
        tz: Display timezone for the event time

    Returns:
        Discord message payload dict (content + embeds)
    """
    profile = profile or RegionProfile()
    return {
        "content": get_alert_banner(notification),
        "embeds": [_build_embed(notification, profile, tz, include_assessment=True)],
    }


def format_recent_events_message(
    notifications: list[Notification],
    region: FocusRegion = FocusRegion.GLOBAL,
    count: int = 3,
    profile: RegionProfile | None = None,
    tz: timezone = ICT,
) -> dict[str, Any]:
    """Format the reply to a recent-events query.

    Pure function.
    """
    profile = profile or RegionProfile()

    if not notifications:
        return {
            "content": "No earthquake data found in the specified region in the last 24 hours.",
            "embeds": [],
        }

    if region == FocusRegion.GLOBAL:
        title = f"\U0001f50d **Latest {count} Global Earthquakes**"
    else:
        title = f"\U0001f50d **Latest {count} Earthquakes in {region.label}**"

    return {
        "content": title,
        "embeds": [
            _build_embed(n, profile, tz, include_assessment=False)
            for n in notifications
        ],
    }


def format_event_summary(notification: Notification, tz: timezone = ICT) -> str:
    """Format a one-line summary of a notification, for logs and replies.

    Pure function.
    """
    event = notification.event
    return (
        f"M{event.magnitude:.1f} - {event.place or 'Unknown Location'} "
        f"at {format_local_time(event.occurred_at, tz)} "
        f"(depth: {event.depth_km:.1f}km, {notification.alert_level.label})"
    )
