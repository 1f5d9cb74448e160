from __future__ import annotations

import threading
from typing import Optional

from domain.models import DeadlineExpired
from domain.ports import Clock, EventSink, Timer, TimerFactory


def _daemon_timer(interval: float, fn) -> threading.Timer:
    t = threading.Timer(interval, fn)
    t.daemon = True
    return t


class DeadlineGuard:
    """
    Wall-clock deadline for the probe.

    The timer thread never decides anything itself: on expiry it posts a
    DeadlineExpired event through `on_expire` and the dispatcher turns it
    into TimedOut, unless something else already won.

    The deadline is `clock.now_epoch() + duration` at arm time. If the timer
    fires while the wall clock is still short of the deadline (clock stepped
    back), the guard re-arms for the remainder.
    """

    def __init__(self, clock: Clock, *, timer_factory: Optional[TimerFactory] = None):
        self.clock = clock
        self._timer_factory: TimerFactory = timer_factory or _daemon_timer

        self._lock = threading.RLock()
        self._timer: Optional[Timer] = None
        self._on_expire: Optional[EventSink] = None
        self._deadline_epoch: Optional[float] = None
        self._cancelled = False
        self._fired = False

    @property
    def deadline_epoch(self) -> Optional[float]:
        return self._deadline_epoch

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def arm(self, duration_sec: float, on_expire: EventSink) -> None:
        if duration_sec <= 0:
            raise ValueError(f"deadline must be positive, got {duration_sec}")
        with self._lock:
            if self._deadline_epoch is not None:
                raise RuntimeError("DeadlineGuard.arm called twice")
            self._on_expire = on_expire
            self._deadline_epoch = self.clock.now_epoch() + float(duration_sec)
            self._schedule(float(duration_sec))

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _schedule(self, delay: float) -> None:
        # caller holds the lock
        self._timer = self._timer_factory(delay, self._expire)
        self._timer.start()

    def _expire(self) -> None:
        with self._lock:
            if self._cancelled or self._fired:
                return
            assert self._deadline_epoch is not None
            remaining = self._deadline_epoch - self.clock.now_epoch()
            if remaining > 0:
                self._schedule(remaining)
                return
            self._fired = True
            self._timer = None
            on_expire = self._on_expire

        print(f"[deadline] reached at epoch={self._deadline_epoch:.3f}", flush=True)
        if on_expire is not None:
            on_expire(DeadlineExpired(deadline_epoch=self._deadline_epoch))
