"""Fixed-interval scan scheduler with an overlap guard."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ScanState(Enum):
    IDLE = "idle"
    SCANNING = "scanning"


class ScanScheduler:
    """Run ``scan`` now and then every ``interval_seconds``.

    A tick that arrives while a scan is still running is dropped, not
    queued.  A failing scan is logged and handed to ``on_error``; the
    scheduler always goes back to IDLE and keeps ticking.
    """

    def __init__(
        self,
        scan: Callable[[], object],
        interval_seconds: float,
        on_error: Optional[Callable[[BaseException], None]] = None,
    ) -> None:
        self._scan = scan
        self._interval = interval_seconds
        self._on_error = on_error
        self._state = ScanState.IDLE
        self._lock = threading.Lock()
        self._stop = threading.Event()

    @property
    def state(self) -> ScanState:
        return self._state

    def _begin(self) -> bool:
        with self._lock:
            if self._state is ScanState.SCANNING:
                return False
            self._state = ScanState.SCANNING
            return True

    def _end(self) -> None:
        with self._lock:
            self._state = ScanState.IDLE

    def tick(self) -> bool:
        """Run one scan unless one is in progress. Returns False if skipped."""
        if not self._begin():
            logger.info("Previous scan still running; tick skipped.")
            return False
        logger.info("Tick started")
        try:
            self._scan()
        except Exception as e:
            logger.exception("Scan failed")
            self._report(e)
        finally:
            self._end()
            logger.info("Tick finished")
        return True

    def _report(self, error: BaseException) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception:
            logger.exception("Failed to report scan error")

    def start_tick(self) -> threading.Thread:
        """Run tick() on its own thread so later ticks can observe the overlap."""
        t = threading.Thread(target=self.tick, name="scan-tick", daemon=True)
        t.start()
        return t

    def run_forever(self) -> None:
        """Tick immediately, then once per interval until stop() is called."""
        logger.info("Scheduler started (interval=%ss)", self._interval)
        self.start_tick()
        while not self._stop.wait(self._interval):
            self.start_tick()
        logger.info("Scheduler stopped")

    def stop(self) -> None:
        self._stop.set()


__all__ = ["ScanState", "ScanScheduler"]
