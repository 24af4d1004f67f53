"""Notification Channel: one transient status message at a time.

`show` replaces whatever is visible and restarts the countdown. Expiry runs
on the event loop when one is running (`loop.call_later`) and is also
checked lazily against the injected clock whenever `current` is read, so the
channel behaves the same from synchronous code and from tests with a fake
clock.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable

from core.domain.models import Notification, NotificationKind

DEFAULT_LIFETIME_SECONDS = 3.0


class NotificationChannel:
    def __init__(
        self,
        lifetime_seconds: float = DEFAULT_LIFETIME_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
        on_change: Callable[[Notification | None], None] | None = None,
    ) -> None:
        if lifetime_seconds <= 0:
            raise ValueError("lifetime_seconds must be positive")
        self._lifetime = lifetime_seconds
        self._clock = clock
        self._on_change = on_change
        self._current: Notification | None = None
        self._deadline = 0.0
        self._timer: asyncio.TimerHandle | None = None

    @property
    def lifetime_seconds(self) -> float:
        return self._lifetime

    @property
    def current(self) -> Notification | None:
        if self._current is not None and self._clock() >= self._deadline:
            self._drop()
        return self._current

    def show(self, kind: NotificationKind, text: str) -> Notification:
        self._cancel_timer()
        notification = Notification(kind=kind, text=text)
        self._current = notification
        self._deadline = self._clock() + self._lifetime
        self._timer = self._schedule(notification)
        self._emit()
        return notification

    def success(self, text: str) -> Notification:
        return self.show(NotificationKind.SUCCESS, text)

    def error(self, text: str) -> Notification:
        return self.show(NotificationKind.ERROR, text)

    def clear(self) -> None:
        self._cancel_timer()
        if self._current is not None:
            self._current = None
            self._emit()

    def _schedule(self, notification: Notification) -> asyncio.TimerHandle | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return None
        return loop.call_later(self._lifetime, self._expire, notification)

    def _expire(self, notification: Notification) -> None:
        # A newer message owns the channel now.
        if self._current is notification:
            self._timer = None
            self._drop()

    def _drop(self) -> None:
        self._cancel_timer()
        self._current = None
        self._emit()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _emit(self) -> None:
        if self._on_change is not None:
            self._on_change(self._current)
