from __future__ import annotations

from typing import Callable, List, Optional

import pytest

from domain.models import ProbeEvent


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def now_epoch(self) -> float:
        return self.now

    def advance(self, sec: float) -> None:
        self.now += sec


class FakeTimer:
    def __init__(self, interval: float, fn: Callable[[], None]):
        self.interval = interval
        self.fn = fn
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.fn()


class FakeTimerFactory:
    def __init__(self):
        self.timers: List[FakeTimer] = []

    def __call__(self, interval: float, fn: Callable[[], None]) -> FakeTimer:
        t = FakeTimer(interval, fn)
        self.timers.append(t)
        return t

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]


class FakeHandle:
    def __init__(self):
        self.closed = False


class ScriptedConnection:
    """Delivers a fixed list of events synchronously from open()."""

    def __init__(self, events: Optional[List[ProbeEvent]] = None):
        self.events = list(events or [])
        self.opened = []
        self.close_calls = 0
        self.handle: Optional[FakeHandle] = None

    def open(self, query, stop_ms, resolution_ms, sink):
        self.opened.append((query, stop_ms, resolution_ms))
        self.handle = FakeHandle()
        for ev in self.events:
            sink(ev)
        return self.handle

    def close(self, handle) -> None:
        self.close_calls += 1
        handle.closed = True


class CountingGuard:
    def __init__(self):
        self.armed = []
        self.cancel_calls = 0
        self.on_expire = None

    def arm(self, duration_sec, on_expire) -> None:
        self.armed.append(duration_sec)
        self.on_expire = on_expire

    def cancel(self) -> None:
        self.cancel_calls += 1


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timers() -> FakeTimerFactory:
    return FakeTimerFactory()
