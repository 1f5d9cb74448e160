from __future__ import annotations

import threading
from typing import Any, Callable, Iterable, Optional

import signalfx
from signalfx.signalflow import messages

from domain.models import (
    ControlEvent,
    ControlKind,
    DataBatch,
    DataPoint,
    StreamEvent,
    TransportError,
)
from domain.ports import Clock, EventSink
from infra.clock import to_epoch_ms


FlowClientFactory = Callable[[], Any]


def stream_endpoint(realm: str) -> str:
    return f"https://stream.{realm}.signalfx.com"


def signalfx_client_factory(realm: str, token: str) -> FlowClientFactory:
    """
    Builds SignalFlow clients lazily, on the reader thread, so that a
    failure to reach the endpoint surfaces as a TransportError event.
    """
    def _make():
        return signalfx.SignalFx(stream_endpoint=stream_endpoint(realm)).signalflow(token)
    return _make


class SubscriptionHandle:
    """
    One live SignalFlow execution. Closing is idempotent; the reader thread
    attaches the client/computation after they exist, so attach and close
    share a lock.
    """

    def __init__(self, query: str, start_ms: int, stop_ms: int, resolution_ms: int):
        self.query = query
        self.start_ms = start_ms
        self.stop_ms = stop_ms
        self.resolution_ms = resolution_ms

        self._lock = threading.Lock()
        self._closed = False
        self._flow: Any = None
        self._computation: Any = None

    @property
    def closed(self) -> bool:
        return self._closed

    def attach(self, flow: Any, computation: Any = None) -> bool:
        """Returns False when the handle was closed in the meantime."""
        with self._lock:
            if self._closed:
                _release(computation, flow)
                return False
            self._flow = flow
            self._computation = computation
            return True

    def close(self) -> bool:
        """True only for the call that actually closed the handle."""
        with self._lock:
            if self._closed:
                return False
            self._closed = True
            flow, computation = self._flow, self._computation
            self._flow = self._computation = None
        _release(computation, flow)
        return True


def _release(computation: Any, flow: Any) -> None:
    errors = []
    for res in (computation, flow):
        if res is None:
            continue
        try:
            res.close()
        except Exception as e:
            errors.append(f"{type(res).__name__}: {e}")
    if errors:
        print(f"[stream] errors while releasing resources: {'; '.join(errors)}", flush=True)


def translate(msg: Any) -> Optional[StreamEvent]:
    """
    Maps a signalfx stream message to a StreamEvent.
    None = message kind the watcher does not care about.
    """
    if isinstance(msg, messages.DataMessage):
        ts = int(msg.logical_timestamp_ms or 0)
        points = tuple(
            DataPoint(value=float(v), timestamp_ms=ts, series_key=str(tsid))
            for tsid, v in (msg.data or {}).items()
            if v is not None
        )
        return DataBatch(points=points)

    if isinstance(msg, messages.EndOfChannelMessage):
        return ControlEvent(kind=ControlKind.END_OF_CHANNEL, name=type(msg).__name__)

    if isinstance(msg, messages.ControlMessage):
        return ControlEvent(kind=ControlKind.OTHER, name=type(msg).__name__)

    return None


class SignalFlowStreamConnection:
    """
    Runs a SignalFlow program and delivers typed events to a sink from a
    daemon reader thread. `open` never blocks on the network.
    """

    def __init__(
        self,
        client_factory: FlowClientFactory,
        clock: Clock,
        *,
        immediate: bool = False,
    ):
        self.client_factory = client_factory
        self.clock = clock
        self.immediate = immediate

        self._threads: list[threading.Thread] = []

    def statusmessage(self, msg: str) -> None:
        print(f"[stream] {msg}", flush=True)

    def open(self, query: str, stop_ms: int, resolution_ms: int, sink: EventSink) -> SubscriptionHandle:
        now_ms = to_epoch_ms(self.clock.now_epoch())
        if stop_ms <= now_ms:
            raise ValueError(f"stop time must be in the future: stop_ms={stop_ms} now_ms={now_ms}")
        if resolution_ms <= 0:
            raise ValueError(f"resolution must be positive, got {resolution_ms}")

        handle = SubscriptionHandle(query, now_ms, int(stop_ms), int(resolution_ms))

        t = threading.Thread(target=self._reader, args=(handle, sink), daemon=True)
        t.start()
        self._threads.append(t)
        return handle

    def close(self, handle: SubscriptionHandle) -> None:
        if handle.close():
            self.statusmessage("subscription closed")

    def _reader(self, handle: SubscriptionHandle, sink: EventSink) -> None:
        try:
            flow = self.client_factory()
            if not handle.attach(flow):
                return

            computation = flow.execute(
                handle.query,
                stop=handle.stop_ms,
                resolution=handle.resolution_ms,
                immediate=self.immediate,
            )
            if not handle.attach(flow, computation):
                return

            self.statusmessage(f"computation started stop_ms={handle.stop_ms} resolution_ms={handle.resolution_ms}")
            self._pump(handle, computation.stream(), sink)
        except Exception as e:
            if not handle.closed:
                sink(TransportError(detail=f"{type(e).__name__}: {e}"))

    def _pump(self, handle: SubscriptionHandle, stream: Iterable[Any], sink: EventSink) -> None:
        for msg in stream:
            if handle.closed:
                return
            ev = translate(msg)
            if ev is None:
                continue
            sink(ev)
            if isinstance(ev, ControlEvent) and ev.kind is ControlKind.END_OF_CHANNEL:
                return

        # the client consumes END_OF_CHANNEL itself and just ends the stream
        if not handle.closed:
            sink(ControlEvent(kind=ControlKind.END_OF_CHANNEL, name="stream-ended"))
