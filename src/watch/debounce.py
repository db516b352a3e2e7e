"""Restart-on-event timer coalescing bursts of filesystem events."""

from __future__ import annotations

import threading
from typing import Callable


class Debouncer:
    """Fire ``callback`` once after ``delay_seconds`` without new restarts."""

    def __init__(self, delay_seconds: float, callback: Callable[[], None]) -> None:
        self._delay_seconds = delay_seconds
        self._callback = callback
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def restart(self) -> None:
        """Cancel any scheduled call and schedule a new one."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._delay_seconds, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        self._callback()
