import asyncio
import logging
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class Scheduler(Protocol):
    """Anything with ``call_later`` returning a cancellable handle (an asyncio loop qualifies)."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Any: ...


class IntervalTimer:
    """Recurring timer with an explicit start/stop handle.

    Fires ``callback`` every ``interval_ms`` milliseconds until stopped. Ticks are
    re-armed before the callback runs so a raising callback does not kill the timer.
    """

    def __init__(self, interval_ms: int, callback: Callable[[], None], scheduler: Optional[Scheduler] = None):
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self.interval_ms = interval_ms
        self._callback = callback
        self._scheduler = scheduler
        self._handle = None

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self):
        if self.running:
            return
        if self._scheduler is None:
            self._scheduler = asyncio.get_running_loop()
        self._arm()

    def stop(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _arm(self):
        self._handle = self._scheduler.call_later(self.interval_ms / 1000, self._tick)

    def _tick(self):
        if self._handle is None:
            return
        self._arm()
        try:
            self._callback()
        except Exception as e:
            logger.error(f"Interval callback failed: {type(e).__name__}: {e}", exc_info=True)
