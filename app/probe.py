from __future__ import annotations

import queue
import sys
from typing import Optional, TextIO

from domain.decisions import Decision, Success, TimedOut
from domain.models import DataBatch, DeadlineExpired, ProbeEvent
from domain.ports import Clock, Guard, StreamSource, Subscription
from infra.clock import to_epoch_ms

from .threshold_watcher import ThresholdWatcher


class ProcessOutcome:
    """
    Single exit point: releases the subscription and the deadline, prints the
    final line and returns the exit code. Cleanup runs once no matter how many
    times `resolve` is called.
    """

    def __init__(
        self,
        connection: StreamSource,
        guard: Guard,
        *,
        out: Optional[TextIO] = None,
        err: Optional[TextIO] = None,
    ):
        self.connection = connection
        self.guard = guard
        self._out = out
        self._err = err
        self._decision: Optional[Decision] = None

    @property
    def decision(self) -> Optional[Decision]:
        return self._decision

    def resolve(self, decision: Decision, handle: Optional[Subscription]) -> int:
        if self._decision is not None:
            return self._decision.exit_code
        self._decision = decision

        try:
            if handle is not None:
                self.connection.close(handle)
        finally:
            self.guard.cancel()

        if isinstance(decision, Success):
            print(f"[probe] {decision.message()}", file=self._out or sys.stdout, flush=True)
        else:
            print(f"[probe] {decision.message()}", file=self._err or sys.stderr, flush=True)
        return decision.exit_code


class InvocationProbe:
    """
    Subscribe, observe, decide.

    Stream events (reader thread) and the deadline (timer thread) are posted
    to one queue; all decisions are taken here, on the calling thread, and
    the first one wins.
    """

    def __init__(
        self,
        connection: StreamSource,
        guard: Guard,
        watcher: ThresholdWatcher,
        clock: Clock,
        *,
        outcome: Optional[ProcessOutcome] = None,
        verbose: bool = True,
    ):
        self.connection = connection
        self.guard = guard
        self.watcher = watcher
        self.clock = clock
        self.outcome = outcome or ProcessOutcome(connection, guard)
        self.verbose = verbose

        self.events_processed = 0

    def run(self, query: str, timeout_sec: float, resolution_ms: int) -> int:
        events: "queue.Queue[ProbeEvent]" = queue.Queue()

        stop_epoch = self.clock.now_epoch() + float(timeout_sec)
        handle: Optional[Subscription] = None
        try:
            handle = self.connection.open(query, to_epoch_ms(stop_epoch), resolution_ms, events.put)
            self.guard.arm(stop_epoch - self.clock.now_epoch(), events.put)
        except BaseException:
            self._release(handle)
            raise

        try:
            decision = self._consume(events, timeout_sec)
        except BaseException:
            # interrupted (Ctrl-C, SIGTERM) before any decision
            self._release(handle)
            raise
        return self.outcome.resolve(decision, handle)

    def _release(self, handle: Optional[Subscription]) -> None:
        # nothing decided yet: release what was opened, the caller re-raises
        try:
            if handle is not None:
                self.connection.close(handle)
        finally:
            self.guard.cancel()

    def _consume(self, events: "queue.Queue[ProbeEvent]", timeout_sec: float) -> Decision:
        while True:
            ev = events.get()
            self.events_processed += 1

            if isinstance(ev, DeadlineExpired):
                return TimedOut(timeout_sec=float(timeout_sec))

            if self.verbose and isinstance(ev, DataBatch):
                self._echo(ev)

            decision = self.watcher.feed(ev)
            if decision is not None:
                return decision

    @staticmethod
    def _echo(batch: DataBatch) -> None:
        if not batch.points:
            print("[probe] data: (empty batch)", flush=True)
            return
        vals = ", ".join(f"{p.value:g}" for p in batch.points)
        print(f"[probe] data: ts={batch.points[0].timestamp_ms} values=[{vals}]", flush=True)
