"""Destination data models - Pure data structures.

A destination is one community's delivery channel together with its
region focus. Persistence is handled by the registry and the shell store;
this module only defines the records.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class FocusRegion(str, Enum):
    """Which geographic filter applies to a destination's deliveries."""
    GLOBAL = "global"
    PRIMARY = "thailand"
    EXTENDED = "sea"
    CONTINENTAL = "asia"

    @classmethod
    def parse(cls, value: "str | FocusRegion | None") -> "FocusRegion":
        """Parse a stored or user-supplied value, defaulting to GLOBAL."""
        if isinstance(value, FocusRegion):
            return value
        if not value:
            return cls.GLOBAL
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.GLOBAL

    @property
    def label(self) -> str:
        """Human-readable label."""
        return {
            FocusRegion.GLOBAL: "Global",
            FocusRegion.PRIMARY: "Thailand Region",
            FocusRegion.EXTENDED: "Southeast Asia",
            FocusRegion.CONTINENTAL: "Asia",
        }[self]


@dataclass(frozen=True)
class Destination:
    """A registered delivery destination, keyed by community ID.

    Attributes:
        community_id: Unique community (server) identifier
        channel_id: Delivery channel identifier
        channel_name: Channel display name
        community_name: Community display name
        focus_region: Region filter for deliveries
        min_magnitude: Per-destination magnitude override (None = region default)
        updated_at: Last time the record was written
    """
    community_id: str
    channel_id: str
    channel_name: str
    community_name: str = ""
    focus_region: FocusRegion = FocusRegion.GLOBAL
    min_magnitude: float | None = None
    updated_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def to_record(self) -> dict[str, Any]:
        """Serialize to a flat persisted record."""
        return {
            "community_id": self.community_id,
            "channel_id": self.channel_id,
            "channel_name": self.channel_name,
            "community_name": self.community_name,
            "focus_region": self.focus_region.value,
            "min_magnitude": self.min_magnitude,
            "updated_at": self.updated_at,
        }


def destination_from_record(record: dict[str, Any]) -> Destination | None:
    """Build a Destination from a persisted record.

    Pure function. Returns None when required keys are missing.
    """
    community_id = record.get("community_id")
    channel_id = record.get("channel_id")
    if not community_id or not channel_id:
        return None

    updated_at = record.get("updated_at")
    if not isinstance(updated_at, datetime):
        updated_at = datetime.now(timezone.utc)

    min_magnitude = record.get("min_magnitude")

    return Destination(
        community_id=str(community_id),
        channel_id=str(channel_id),
        channel_name=record.get("channel_name") or "",
        community_name=record.get("community_name") or "",
        focus_region=FocusRegion.parse(record.get("focus_region")),
        min_magnitude=float(min_magnitude) if min_magnitude is not None else None,
        updated_at=updated_at,
    )


class OperationKind(str, Enum):
    """Deferred registry write kinds."""
    UPSERT = "upsert"
    DELETE = "delete"


@dataclass(frozen=True)
class PendingOperation:
    """A registry write queued while the backing store is unreachable.

    Attributes:
        kind: Upsert or delete
        community_id: Target record key
        destination: Record to write (upserts only)
        queued_at: When the write was deferred
    """
    kind: OperationKind
    community_id: str
    destination: Destination | None = None
    queued_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
