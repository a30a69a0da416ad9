"""Host-style per-frame update loop.

Unity editor scripts defer work by adding a delegate to the editor's update
event and poll long-running requests from it. :class:`UpdateLoop` provides
the same contract for code running outside the editor: callbacks are invoked
once per :meth:`UpdateLoop.tick` until they unsubscribe themselves.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class UpdateLoop:
    """Cooperative, single-threaded scheduler."""

    def __init__(self) -> None:
        self._callbacks: list[Callback] = []

    def subscribe(self, callback: Callback) -> None:
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unsubscribe(self, callback: Callback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    @property
    def pending(self) -> int:
        return len(self._callbacks)

    def tick(self) -> None:
        """Invoke every subscribed callback once.

        Iterates over a snapshot, so callbacks may subscribe or unsubscribe
        (themselves included) while running.
        """
        for callback in list(self._callbacks):
            if callback in self._callbacks:
                callback()

    def run_until_idle(self, interval: float = 0.1, timeout: float | None = None) -> bool:
        """Tick until no callbacks remain.

        Returns:
            True if the loop drained, False if *timeout* seconds elapsed first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while self._callbacks:
            self.tick()
            if not self._callbacks:
                break
            if deadline is not None and time.monotonic() >= deadline:
                logger.warning(
                    "[Beat UPM] Update loop timed out with %d callback(s) pending",
                    len(self._callbacks),
                )
                return False
            time.sleep(interval)
        return True
