import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from openhousepal.core.config import NOTIFICATION_SECONDS

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ("success", "error", "info")


@dataclass
class Notification:
    id: int
    type: str
    message: str
    timer: Optional[asyncio.TimerHandle] = field(default=None, repr=False, compare=False)


class NotificationQueue:
    """
    Short-lived toasts. Each entry owns its timer, so replacing or dismissing
    an entry cancels the timer and nothing fires against a stale toast.
    With capacity=1 a new toast replaces the current one.
    """

    def __init__(self, duration: float = NOTIFICATION_SECONDS, capacity: int = 1):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.duration = duration
        self.capacity = capacity
        self._entries: List[Notification] = []
        self._ids = itertools.count(1)
        self._on_show: List[Callable[[Notification], None]] = []
        self._on_dismiss: List[Callable[[Notification], None]] = []

    @property
    def current(self) -> Optional[Notification]:
        return self._entries[-1] if self._entries else None

    @property
    def active(self) -> List[Notification]:
        return list(self._entries)

    def subscribe(self, on_show: Callable = None, on_dismiss: Callable = None):
        if on_show:
            self._on_show.append(on_show)
        if on_dismiss:
            self._on_dismiss.append(on_dismiss)

    def show(self, type: str, message: str) -> Notification:
        if type not in NOTIFICATION_TYPES:
            raise ValueError(f"Unknown notification type: {type}")

        notification = Notification(id=next(self._ids), type=type, message=message)

        # Oldest entries go first (cancel-on-replace)
        while len(self._entries) >= self.capacity:
            self._remove(self._entries[0])

        if self.duration and self.duration > 0:
            loop = asyncio.get_running_loop()
            notification.timer = loop.call_later(self.duration, self._expire, notification.id)

        self._entries.append(notification)
        logger.debug(f"🔔 [{type}] {message}")
        self._emit(self._on_show, notification)
        return notification

    def success(self, message: str) -> Notification:
        return self.show("success", message)

    def error(self, message: str) -> Notification:
        return self.show("error", message)

    def info(self, message: str) -> Notification:
        return self.show("info", message)

    def dismiss(self, notification_id: int = None):
        """Clears one entry (or all of them) right away"""
        if notification_id is None:
            for entry in list(self._entries):
                self._remove(entry)
            return

        for entry in self._entries:
            if entry.id == notification_id:
                self._remove(entry)
                return

    def close(self):
        """Chat reset / shutdown: cancels every timer, listeners still see the dismiss"""
        self.dismiss()

    def _expire(self, notification_id: int):
        self.dismiss(notification_id)

    def _remove(self, entry: Notification):
        if entry.timer:
            entry.timer.cancel()
        self._entries.remove(entry)
        self._emit(self._on_dismiss, entry)

    def _emit(self, listeners, notification: Notification):
        for listener in listeners:
            try:
                listener(notification)
            except Exception as e:
                logger.error(f"Notification listener error: {e}")
