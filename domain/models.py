from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union


@dataclass(frozen=True)
class DataPoint:
    value: float
    timestamp_ms: int
    series_key: str

    def label(self) -> str:
        return f"value={self.value:g} ts={self.timestamp_ms} tsid={self.series_key}"


@dataclass(frozen=True)
class DataBatch:
    # backend delivery order
    points: Tuple[DataPoint, ...] = ()


class ControlKind(str, Enum):
    END_OF_CHANNEL = "END_OF_CHANNEL"
    OTHER = "OTHER"


@dataclass(frozen=True)
class ControlEvent:
    kind: ControlKind
    name: str = ""


@dataclass(frozen=True)
class TransportError:
    detail: str


@dataclass(frozen=True)
class DeadlineExpired:
    """
    Posted by the deadline guard on the same channel as the stream events.
    """
    deadline_epoch: float


StreamEvent = Union[DataBatch, ControlEvent, TransportError]
ProbeEvent = Union[DataBatch, ControlEvent, TransportError, DeadlineExpired]
