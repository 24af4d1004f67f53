from __future__ import annotations

import asyncio

import pytest

from core.domain.models import NotificationKind
from core.services.notifications import NotificationChannel


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_message_expires_after_lifetime() -> None:
    clock = FakeClock()
    channel = NotificationChannel(3.0, clock=clock)

    channel.success("Organization created successfully!")
    clock.now += 2.999
    assert channel.current.text == "Organization created successfully!"
    assert channel.current.kind is NotificationKind.SUCCESS

    clock.now += 0.001
    assert channel.current is None


def test_new_message_replaces_and_restarts_countdown() -> None:
    clock = FakeClock()
    channel = NotificationChannel(3.0, clock=clock)

    channel.success("first")
    clock.now += 2.0
    channel.error("second")
    clock.now += 2.0

    assert channel.current.text == "second"
    assert channel.current.kind is NotificationKind.ERROR
    clock.now += 1.0
    assert channel.current is None


def test_clear_hides_immediately() -> None:
    seen = []
    channel = NotificationChannel(on_change=seen.append)

    channel.error("boom")
    channel.clear()

    assert channel.current is None
    assert [n.text if n else None for n in seen] == ["boom", None]


def test_event_loop_timer_clears_the_message() -> None:
    seen = []

    async def scenario() -> None:
        channel = NotificationChannel(0.01, on_change=seen.append)
        channel.success("saved")
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert [n.text if n else None for n in seen] == ["saved", None]


def test_replaced_message_timer_does_not_clear_the_newer_one() -> None:
    seen = []

    async def scenario() -> None:
        channel = NotificationChannel(0.2, on_change=seen.append)
        channel.success("first")
        await asyncio.sleep(0.12)
        channel.success("second")
        await asyncio.sleep(0.12)
        channel.clear()

    asyncio.run(scenario())

    assert [n.text if n else None for n in seen] == ["first", "second", None]


def test_lifetime_must_be_positive() -> None:
    with pytest.raises(ValueError):
        NotificationChannel(0)
