"""Scheduler - Drives the pipeline on a fixed interval.

Ticks run one at a time on the scheduler's thread. A tick that overruns the
interval delays the next one rather than overlapping it.
"""

import logging
import signal
import threading
import time
from types import FrameType
from typing import Callable


logger = logging.getLogger(__name__)


class Scheduler:
    """Calls a tick function immediately, then every interval_seconds."""

    def __init__(
        self,
        interval_seconds: float,
        tick: Callable[[], object],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.interval_seconds = interval_seconds
        self.tick = tick
        self._clock = clock
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.iterations = 0

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def run_forever(self, max_iterations: int | None = None) -> None:
        """Block, running ticks until stop() is called.

        Args:
            max_iterations: Stop after this many ticks (None runs forever)
        """
        logger.info("Scheduler started, interval %.1fs", self.interval_seconds)
        next_run = self._clock()

        while not self._stop.is_set():
            self.iterations += 1
            try:
                self.tick()
            except Exception:
                logger.exception("Tick %d failed", self.iterations)

            if max_iterations is not None and self.iterations >= max_iterations:
                break

            next_run += self.interval_seconds
            now = self._clock()
            if next_run < now:
                # Overran: skip the missed slots instead of bursting
                skipped = int((now - next_run) // self.interval_seconds) + 1
                logger.warning("Tick overran interval, skipping %d slot(s)", skipped)
                next_run += skipped * self.interval_seconds

            self._stop.wait(next_run - now)

        logger.info("Scheduler stopped after %d ticks", self.iterations)

    def start(self) -> None:
        """Run in a daemon thread."""
        self._thread = threading.Thread(
            target=self.run_forever,
            name="scheduler",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Request shutdown; waits for the current tick when started in a thread."""
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
            self._thread = None

    def install_signal_handlers(self) -> None:
        """Stop on SIGTERM/SIGINT. Call from the main thread."""

        def _handler(signum: int, frame: FrameType | None) -> None:
            logger.info("Received %s, shutting down", signal.Signals(signum).name)
            self._stop.set()

        signal.signal(signal.SIGTERM, _handler)
        signal.signal(signal.SIGINT, _handler)
