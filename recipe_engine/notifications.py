"""
Toast notification channel.

Last message wins: pushing a message replaces whatever is showing and restarts
the display window. A message is visible for a fixed duration after it was
pushed, then current() returns None. The channel knows nothing about recipe
resolution; the browser session pushes messages after user actions.
"""

import time
from dataclasses import dataclass
from typing import Optional

from .config import BrowserConfig
from .utils.cache import Clock


@dataclass
class Notification:
    message: str
    created_at: float


class Notifier:
    """Single-slot notification channel with a fixed display duration."""

    def __init__(self, duration_seconds: Optional[float] = None, clock: Clock = time.time) -> None:
        self.duration_seconds = (
            duration_seconds if duration_seconds is not None else BrowserConfig.get_notification_seconds()
        )
        self._clock = clock
        self._current: Optional[Notification] = None

    def push(self, message: str) -> Notification:
        self._current = Notification(message=message, created_at=self._clock())
        return self._current

    def current(self) -> Optional[str]:
        """The visible message, or None once its display window has passed."""
        if self._current is None:
            return None
        if self._clock() - self._current.created_at >= self.duration_seconds:
            self._current = None
            return None
        return self._current.message

    def dismiss(self) -> None:
        self._current = None
