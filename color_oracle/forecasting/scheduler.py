"""
Serialized execution of engine mutations.

TickQueue runs every mutation (scheduled ticks, forced re-solicitation,
manual actual reports) on one worker thread, so only one of them touches the
engine at a time. TickScheduler fires a tick every poll interval and skips
the trigger while the previous scheduled tick is still queued or running.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

from .engine import PeriodEngine, TickResult

logger = logging.getLogger(__name__)


class TickQueue:
    """Single-worker queue for engine operations."""

    def __init__(self, engine: PeriodEngine):
        self.engine = engine
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="engine")

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        return self._executor.submit(fn, *args, **kwargs)

    def submit_tick(self) -> Future:
        return self.submit(self._safe_tick)

    def _safe_tick(self) -> Optional[TickResult]:
        # A failing tick must not stop the schedule
        try:
            result = self.engine.tick()
        except Exception:
            logger.exception("Engine tick failed")
            return None
        logger.debug(f"Tick: {result.action.value} (marker={result.period_marker})")
        return result

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=True)


class TickScheduler:
    """Timer thread that enqueues a tick every `interval` seconds."""

    def __init__(self, queue: TickQueue, interval: float):
        if interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {interval}")
        self.queue = queue
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._inflight: Optional[Future] = None
        self.suppressed = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def trigger(self) -> bool:
        """
        Enqueue one scheduled tick unless the previous one is unfinished.

        Returns:
            True if a tick was enqueued, False if the trigger was suppressed
        """
        if self._inflight is not None and not self._inflight.done():
            self.suppressed += 1
            logger.debug("Previous tick still running, skipping this trigger")
            return False
        self._inflight = self.queue.submit_tick()
        return True

    def _run(self) -> None:
        logger.info(f"Scheduler started, polling every {self.interval}s")
        while not self._stop.is_set():
            try:
                self.trigger()
            except RuntimeError as e:
                # Executor shut down underneath us
                logger.warning(f"Scheduler stopping: {e}")
                break
            self._stop.wait(self.interval)
        logger.info("Scheduler stopped")

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="tick-scheduler", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
