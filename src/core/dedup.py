"""Deduplication of already-notified events.

The pure helpers decide which events are new; DedupStore holds the bounded,
process-lifetime set of notified IDs. The set is never persisted, so a
restart forgets history and the first tick afterwards may repeat
notifications.
"""

import logging
import threading

from src.core.event import SeismicEvent


logger = logging.getLogger(__name__)


DEFAULT_MAX_SIZE = 1000
DEFAULT_KEEP_SIZE = 500


def dedupe_batch(events: list[SeismicEvent]) -> list[SeismicEvent]:
    """Drop repeated IDs within one batch, keeping the first occurrence.

    Pure function. Different endpoints commonly report the same event.
    """
    seen: set[str] = set()
    unique = []
    for event in events:
        if event.id in seen:
            continue
        seen.add(event.id)
        unique.append(event)
    return unique


def filter_already_notified(
    events: list[SeismicEvent],
    notified_ids,
) -> list[SeismicEvent]:
    """Filter out events whose IDs are already known.

    Pure function.
    """
    return [e for e in events if e.id not in notified_ids]


def compute_ids_to_evict(
    ordered_ids: list[str],
    protected_ids: set[str],
    max_size: int = DEFAULT_MAX_SIZE,
    keep_size: int = DEFAULT_KEEP_SIZE,
) -> list[str]:
    """Compute which IDs to evict, oldest first.

    Pure function.

    Nothing is evicted until the set exceeds max_size; then the oldest IDs
    go until keep_size remain. Protected IDs (the current batch) are never
    evicted, so the result may stay above keep_size when a single batch is
    larger than it.

    Args:
        ordered_ids: Stored IDs in insertion order, oldest first
        protected_ids: IDs that must be retained
        max_size: Size that triggers eviction
        keep_size: Size to shrink to

    Returns:
        IDs to evict, oldest first
    """
    if len(ordered_ids) <= max_size:
        return []

    excess = len(ordered_ids) - keep_size
    evict = []
    for event_id in ordered_ids:
        if len(evict) >= excess:
            break
        if event_id in protected_ids:
            continue
        evict.append(event_id)
    return evict


class DedupStore:
    """Bounded set of notified event IDs with insertion-order eviction.

    filter_new() is a critical section: concurrent callers are serialized
    so that two ticks never race on eviction.
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        keep_size: int = DEFAULT_KEEP_SIZE,
    ) -> None:
        if keep_size <= 0 or keep_size > max_size:
            raise ValueError(
                f"keep_size must be in (0, {max_size}], got {keep_size}"
            )
        self.max_size = max_size
        self.keep_size = keep_size
        # dict preserves insertion order; values are unused
        self._ids: dict[str, None] = {}
        self._lock = threading.Lock()

    def __contains__(self, event_id: str) -> bool:
        return event_id in self._ids

    def size(self) -> int:
        """Number of IDs currently remembered."""
        return len(self._ids)

    def __len__(self) -> int:
        return self.size()

    def ids(self) -> list[str]:
        """Snapshot of remembered IDs, oldest first."""
        with self._lock:
            return list(self._ids)

    def filter_new(self, events: list[SeismicEvent]) -> list[SeismicEvent]:
        """Return events not seen before and remember them.

        Repeated IDs within the call count once. Re-running with the same
        events returns an empty list and leaves size() unchanged.
        """
        with self._lock:
            new_events = filter_already_notified(dedupe_batch(events), self._ids)
            for event in new_events:
                self._ids[event.id] = None

            evict = compute_ids_to_evict(
                list(self._ids),
                {e.id for e in new_events},
                self.max_size,
                self.keep_size,
            )
            for event_id in evict:
                del self._ids[event_id]

        if evict:
            logger.info(
                "Evicted %d oldest event IDs from dedup set (%d remain)",
                len(evict),
                len(self._ids),
            )

        return new_events

    def clear(self) -> None:
        """Forget everything."""
        with self._lock:
            self._ids.clear()
