"""Tests for the destination registry outage policy.

Uses an in-memory fake store that can be switched offline, and a manual
timer so reconnection is driven by the test.
"""

import pytest

from src.core.config import ReconnectPolicy
from src.core.destination import Destination, FocusRegion, OperationKind
from src.registry import DestinationRegistry


class FakeStore:
    """Dict-backed store; raises ConnectionError while offline."""

    def __init__(self, records: dict[str, Destination] | None = None) -> None:
        self.records = dict(records or {})
        self.online = True
        self.fail_on: set[str] = set()
        self.writes: list[tuple[str, str]] = []
        self.closed = False

    def _check(self) -> None:
        if not self.online:
            raise ConnectionError("store unreachable")

    def ping(self) -> None:
        self._check()

    def get_all(self) -> dict[str, Destination]:
        self._check()
        return dict(self.records)

    def upsert(self, destination: Destination) -> None:
        self._check()
        if destination.community_id in self.fail_on:
            raise ConnectionError("write rejected")
        self.records[destination.community_id] = destination
        self.writes.append(("upsert", destination.community_id))

    def delete(self, community_id: str) -> None:
        self._check()
        self.records.pop(community_id, None)
        self.writes.append(("delete", community_id))

    def close(self) -> None:
        self.closed = True


class ManualTimer:
    """Timer stand-in; the test calls fire()."""

    instances: list["ManualTimer"] = []

    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.started = False
        self.cancelled = False
        ManualTimer.instances.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.callback()


def dest(community_id: str, channel_id: str = "c") -> Destination:
    return Destination(
        community_id=community_id,
        channel_id=f"{channel_id}-{community_id}",
        channel_name="alerts",
        focus_region=FocusRegion.GLOBAL,
    )


@pytest.fixture(autouse=True)
def reset_timers():
    ManualTimer.instances = []
    yield
    ManualTimer.instances = []


@pytest.fixture
def store():
    return FakeStore({"g1": dest("g1")})


@pytest.fixture
def registry(store):
    return DestinationRegistry(store, ReconnectPolicy(backoff_seconds=60, max_queue_depth=3), ManualTimer)


def last_timer() -> ManualTimer:
    return ManualTimer.instances[-1]


class TestConnect:
    def test_connect_primes_cache(self, registry):
        assert registry.connect() is True
        assert registry.connected
        assert list(registry.get_all()) == ["g1"]

    def test_connect_failure_schedules_reconnect(self, registry, store):
        store.online = False

        assert registry.connect() is False
        assert not registry.connected
        assert last_timer().interval == 60
        assert last_timer().started


class TestGetAll:
    """Reads never raise."""

    def test_returns_store_view(self, registry, store):
        store.records["g2"] = dest("g2")
        assert set(registry.get_all()) == {"g1", "g2"}

    def test_outage_before_any_read_returns_empty(self, registry, store):
        store.online = False
        assert registry.get_all() == {}

    def test_outage_returns_last_known_snapshot(self, registry, store):
        registry.get_all()
        store.online = False

        assert list(registry.get_all()) == ["g1"]
        assert not registry.connected

    def test_only_one_timer_outstanding(self, registry, store):
        store.online = False
        registry.get_all()
        registry.get_all()
        registry.upsert(dest("g2"))

        assert len(ManualTimer.instances) == 1


class TestWrites:
    """Tests for upsert() and remove()."""

    def test_persisted_write(self, registry, store):
        assert registry.upsert(dest("g2")) is True
        assert "g2" in store.records
        assert registry.pending_count() == 0

    def test_outage_write_is_queued_and_applied_locally(self, registry, store):
        registry.connect()
        store.online = False

        assert registry.upsert(dest("g2")) is False
        assert registry.remove("g1") is False

        assert registry.pending_count() == 2
        assert list(registry.get_all()) == ["g2"]

    def test_writes_stay_behind_queued_writes(self, registry, store):
        """Once something is queued, later writes queue too so order holds."""
        store.online = False
        registry.upsert(dest("g2"))
        store.online = True

        assert registry.remove("g2") is False
        assert [op.kind for op in registry.pending_operations()] == [
            OperationKind.UPSERT,
            OperationKind.DELETE,
        ]

    def test_queue_overflow_drops_oldest(self, registry, store, caplog):
        store.online = False
        for community_id in ("a", "b", "c", "d"):
            registry.upsert(dest(community_id))

        assert [op.community_id for op in registry.pending_operations()] == ["b", "c", "d"]
        assert "dropped oldest" in caplog.text


class TestReplay:
    """Tests for reconnect and FIFO replay."""

    def test_reconnect_replays_in_order(self, registry, store):
        registry.connect()
        store.online = False
        registry.upsert(dest("g2"))
        registry.remove("g1")
        registry.upsert(dest("g3"))

        store.online = True
        last_timer().fire()

        assert store.writes == [("upsert", "g2"), ("delete", "g1"), ("upsert", "g3")]
        assert registry.pending_count() == 0
        assert registry.connected
        assert set(registry.get_all()) == {"g2", "g3"}

    def test_failed_reconnect_reschedules(self, registry, store):
        store.online = False
        registry.upsert(dest("g2"))

        last_timer().fire()

        assert len(ManualTimer.instances) == 2
        assert registry.pending_count() == 1

    def test_replay_stops_at_first_failure(self, registry, store):
        store.online = False
        registry.upsert(dest("g2"))
        registry.upsert(dest("bad"))
        registry.upsert(dest("g3"))

        store.online = True
        store.fail_on = {"bad"}
        last_timer().fire()

        assert store.writes == [("upsert", "g2")]
        assert [op.community_id for op in registry.pending_operations()] == ["bad", "g3"]
        # A fresh timer was scheduled for the next attempt
        assert len(ManualTimer.instances) == 2

    def test_cache_after_reconnect_keeps_queued_writes(self, registry, store):
        """connect() overlays writes that are still queued on the store view."""
        store.online = False
        registry.upsert(dest("g2"))
        store.online = True
        store.fail_on = {"g2"}

        last_timer().fire()

        assert "g2" in registry.get_all()


class TestClose:
    def test_close_cancels_timer(self, registry, store):
        store.online = False
        registry.get_all()
        timer = last_timer()

        registry.close()

        assert timer.cancelled

    def test_no_timer_after_close(self, registry, store):
        registry.close()
        store.online = False
        registry.get_all()

        assert ManualTimer.instances == []

    def test_close_releases_store(self, registry, store):
        registry.close()
        assert store.closed

    def test_store_close_error_is_logged(self, registry, store, caplog):
        def broken_close():
            raise RuntimeError("already closed")

        store.close = broken_close

        registry.close()

        assert "Failed to close destination store" in caplog.text
