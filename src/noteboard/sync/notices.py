"""Transient user-facing messages."""

import time
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(frozen=True)
class Notice:
    level: str  # "error" or "success"
    message: str
    expires_at: Optional[float] = None  # None: stays until replaced


class NoticeBoard:
    """Holds the latest message shown to the user.

    Messages expire ``ttl`` seconds after being posted; expiry is checked
    against the clock on read, so no timer is involved.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, ttl: float = 3.0):
        self.clock = clock
        self.ttl = ttl
        self._notice: Optional[Notice] = None

    def error(self, message: str, sticky: bool = False) -> Notice:
        return self._post("error", message, sticky)

    def success(self, message: str) -> Notice:
        return self._post("success", message, sticky=False)

    def current(self) -> Optional[Notice]:
        notice = self._notice
        if notice is not None and notice.expires_at is not None and self.clock() >= notice.expires_at:
            self._notice = None
            return None
        return notice

    def clear(self) -> None:
        self._notice = None

    def _post(self, level: str, message: str, sticky: bool) -> Notice:
        expires_at = None if sticky else self.clock() + self.ttl
        self._notice = Notice(level, message, expires_at)
        return self._notice
