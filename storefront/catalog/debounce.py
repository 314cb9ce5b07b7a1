"""
Cancellable deferred calls for bursty UI input.

A ``Debouncer`` runs its callback once the input has been quiet for
``delay`` seconds. Each new ``trigger`` cancels the pending call, so a
burst of keystrokes produces a single call with the last value.

Scheduling goes through a ``Scheduler``: any callable taking
``(delay, callback)`` and returning a handle with a ``cancel()`` method.
By default that is ``loop.call_later`` on the running asyncio loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

Scheduler = Callable[[float, Callable[[], None]], Any]


def loop_scheduler(delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
    return asyncio.get_running_loop().call_later(delay, callback)


class Debouncer:
    def __init__(self, delay: float, callback: Callable[[Any], None], scheduler: Optional[Scheduler] = None):
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.delay = delay
        self._callback = callback
        self._scheduler = scheduler or loop_scheduler
        self._handle: Any = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self, value: Any) -> None:
        """(Re)start the quiet period; ``value`` is passed to the callback when it fires."""
        self.cancel()
        self._handle = self._scheduler(self.delay, lambda: self._fire(value))

    def cancel(self) -> bool:
        """Drop the pending call, if any. Returns True when something was cancelled."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def _fire(self, value: Any) -> None:
        self._handle = None
        logger.debug("Debounce period elapsed, applying %r", value)
        self._callback(value)
