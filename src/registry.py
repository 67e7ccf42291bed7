"""Destination Registry - Wires the destination store with an outage policy.

The pipeline reads destination snapshots through this registry and the
command surface writes through it. When the backing store is unreachable,
reads fall back to the last-known snapshot and writes are queued and
replayed in FIFO order once a reconnection attempt succeeds.
"""

import logging
import threading
from collections import deque
from typing import Callable, Protocol

from src.core.config import ReconnectPolicy
from src.core.destination import Destination, OperationKind, PendingOperation


logger = logging.getLogger(__name__)


class DestinationStore(Protocol):
    """Backing store contract. Every method may raise on outage."""

    def ping(self) -> None: ...

    def get_all(self) -> dict[str, Destination]: ...

    def upsert(self, destination: Destination) -> None: ...

    def delete(self, community_id: str) -> None: ...

    def close(self) -> None: ...


class TimerHandle(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def _daemon_timer(interval: float, callback: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(interval, callback)
    timer.daemon = True
    return timer


class DestinationRegistry:
    """Destinations keyed by community ID, tolerant of store outages.

    Lifecycle: construct at startup, connect(), pass to the pipeline and
    command surface, close() at shutdown.
    """

    def __init__(
        self,
        store: DestinationStore,
        policy: ReconnectPolicy | None = None,
        timer_factory: TimerFactory = _daemon_timer,
    ) -> None:
        """Initialize registry.

        Args:
            store: Backing store
            policy: Reconnection backoff and queue bounds
            timer_factory: Builds the reconnection timer (injectable for tests)
        """
        self.store = store
        self.policy = policy or ReconnectPolicy()
        self._timer_factory = timer_factory
        self._cache: dict[str, Destination] = {}
        self._pending: deque[PendingOperation] = deque()
        self._connected = False
        self._timer: TimerHandle | None = None
        self._closed = False
        self._lock = threading.RLock()

    @property
    def connected(self) -> bool:
        return self._connected

    def pending_count(self) -> int:
        """Number of writes waiting for the store to come back."""
        with self._lock:
            return len(self._pending)

    def pending_operations(self) -> list[PendingOperation]:
        """Snapshot of queued writes, oldest first."""
        with self._lock:
            return list(self._pending)

    def connect(self) -> bool:
        """Try to reach the store, priming the cache on success.

        Returns:
            True if connected; on failure a reconnection is scheduled
        """
        try:
            self.store.ping()
            snapshot = self.store.get_all()
        except Exception as e:
            logger.error("Destination store unreachable: %s", str(e))
            self._mark_disconnected()
            return False

        with self._lock:
            self._connected = True
            self._cache = dict(snapshot)
            # Queued writes are newer than what the store returned
            for op in self._pending:
                self._apply_locally(op)
        logger.info("Connected to destination store (%d destinations)", len(snapshot))
        return True

    def get_all(self) -> dict[str, Destination]:
        """Current destinations. Never raises.

        Returns the store's view when reachable, otherwise the last-known
        snapshot (empty if nothing was ever read).
        """
        with self._lock:
            has_pending = bool(self._pending)

        if has_pending:
            # The store would not yet reflect queued writes
            self._ensure_reconnect_scheduled()
            with self._lock:
                return dict(self._cache)

        try:
            snapshot = self.store.get_all()
        except Exception as e:
            logger.error("Failed to read destinations, using cached snapshot: %s", str(e))
            self._mark_disconnected()
            with self._lock:
                return dict(self._cache)

        with self._lock:
            self._connected = True
            self._cache = dict(snapshot)
            return dict(self._cache)

    def upsert(self, destination: Destination) -> bool:
        """Create or update a destination.

        Returns:
            True if persisted, False if queued for replay
        """
        return self._write(PendingOperation(
            kind=OperationKind.UPSERT,
            community_id=destination.community_id,
            destination=destination,
        ))

    def remove(self, community_id: str) -> bool:
        """Delete a community's destination.

        Returns:
            True if persisted, False if queued for replay
        """
        return self._write(PendingOperation(
            kind=OperationKind.DELETE,
            community_id=community_id,
        ))

    def _write(self, op: PendingOperation) -> bool:
        with self._lock:
            self._apply_locally(op)
            if self._pending:
                # Keep FIFO order behind earlier deferred writes
                self._enqueue(op)
                queued = True
            else:
                queued = False

        if queued:
            self._ensure_reconnect_scheduled()
            return False

        try:
            self._execute(op)
        except Exception as e:
            logger.error(
                "Failed to %s destination %s, queued for replay: %s",
                op.kind.value,
                op.community_id,
                str(e),
            )
            with self._lock:
                self._enqueue(op)
            self._mark_disconnected()
            return False

        with self._lock:
            self._connected = True
        return True

    def _execute(self, op: PendingOperation) -> None:
        if op.kind == OperationKind.UPSERT:
            self.store.upsert(op.destination)
        else:
            self.store.delete(op.community_id)

    def _apply_locally(self, op: PendingOperation) -> None:
        if op.kind == OperationKind.UPSERT:
            self._cache[op.community_id] = op.destination
        else:
            self._cache.pop(op.community_id, None)

    def _enqueue(self, op: PendingOperation) -> None:
        self._pending.append(op)
        while len(self._pending) > self.policy.max_queue_depth:
            dropped = self._pending.popleft()
            logger.warning(
                "Pending queue full (%d), dropped oldest %s for %s",
                self.policy.max_queue_depth,
                dropped.kind.value,
                dropped.community_id,
            )

    def replay_pending(self) -> int:
        """Replay queued writes in FIFO order.

        Stops at the first failure, leaving that write and everything after
        it queued in order, and schedules another attempt.

        Returns:
            Number of writes replayed successfully
        """
        replayed = 0
        while True:
            with self._lock:
                if not self._pending:
                    break
                op = self._pending[0]

            try:
                self._execute(op)
            except Exception as e:
                logger.error(
                    "Replay of %s for %s failed, will retry: %s",
                    op.kind.value,
                    op.community_id,
                    str(e),
                )
                self._mark_disconnected()
                break

            with self._lock:
                # Only pop if the head is still the op we executed
                if self._pending and self._pending[0] is op:
                    self._pending.popleft()
            replayed += 1

        if replayed:
            logger.info("Replayed %d pending destination writes", replayed)
        return replayed

    def _mark_disconnected(self) -> None:
        with self._lock:
            self._connected = False
        self._ensure_reconnect_scheduled()

    def _ensure_reconnect_scheduled(self) -> None:
        with self._lock:
            if self._timer is not None or self._closed:
                return
            logger.info(
                "Scheduling destination store reconnection in %.0fs",
                self.policy.backoff_seconds,
            )
            self._timer = self._timer_factory(
                self.policy.backoff_seconds,
                self._reconnect,
            )
            self._timer.start()

    def _reconnect(self) -> None:
        """Timer callback: reconnect, then replay queued writes."""
        with self._lock:
            self._timer = None
            if self._closed:
                return

        if not self.connect():
            # connect() has already rescheduled
            return

        self.replay_pending()

    def close(self) -> None:
        """Stop reconnection attempts and release the store. Queued writes are discarded."""
        with self._lock:
            self._closed = True
            timer, self._timer = self._timer, None
            remaining = len(self._pending)
        if timer is not None:
            timer.cancel()
        if remaining:
            logger.warning("Closing registry with %d unreplayed writes", remaining)

        try:
            self.store.close()
        except Exception as e:
            logger.error("Failed to close destination store: %s", str(e))
