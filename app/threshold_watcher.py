from __future__ import annotations

import math
from typing import Callable, Iterable, Optional

from domain.decisions import ChannelClosedEarly, Decision, Success, TransportFailure
from domain.models import ControlEvent, ControlKind, DataBatch, StreamEvent, TransportError
from domain.thresholds import ThresholdRule


Predicate = Callable[[float], bool]


class ThresholdWatcher:
    """
    Applies the success predicate to the stream, in delivery order.
    Produces at most one Decision; once decided, every later event is ignored.
    """

    def __init__(self, predicate: Optional[Predicate] = None, *, threshold: float = 10.0):
        if predicate is None:
            if not math.isfinite(threshold) or threshold < 0:
                raise ValueError(f"threshold must be a finite non-negative number, got {threshold}")
            predicate = ThresholdRule(value=float(threshold))
        self._predicate = predicate
        self._decision: Optional[Decision] = None

    @property
    def decision(self) -> Optional[Decision]:
        return self._decision

    def feed(self, ev: StreamEvent) -> Optional[Decision]:
        if self._decision is not None:
            return None

        if isinstance(ev, TransportError):
            self._decision = TransportFailure(detail=ev.detail)
        elif isinstance(ev, ControlEvent):
            if ev.kind is ControlKind.END_OF_CHANNEL:
                self._decision = ChannelClosedEarly()
        elif isinstance(ev, DataBatch):
            for p in ev.points:
                if self._predicate(p.value):
                    self._decision = Success(point=p)
                    break

        return self._decision

    def watch(self, events: Iterable[StreamEvent]) -> Optional[Decision]:
        for ev in events:
            decision = self.feed(ev)
            if decision is not None:
                return decision
        return self._decision
