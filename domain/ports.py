from __future__ import annotations

from typing import Callable, Protocol

from .models import ProbeEvent


EventSink = Callable[[ProbeEvent], None]


class Clock(Protocol):
    def now_epoch(self) -> float: ...


class Subscription(Protocol):
    @property
    def closed(self) -> bool: ...


class StreamSource(Protocol):
    def open(self, query: str, stop_ms: int, resolution_ms: int, sink: EventSink) -> Subscription: ...

    def close(self, handle: Subscription) -> None: ...


class Guard(Protocol):
    def arm(self, duration_sec: float, on_expire: EventSink) -> None: ...

    def cancel(self) -> None: ...


class Timer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Timer]
