from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .models import DataPoint


EXIT_OK = 0
EXIT_FAILED = 1


@dataclass(frozen=True)
class Success:
    point: DataPoint

    exit_code = EXIT_OK

    def message(self) -> str:
        return f"the threshold has been reached: {self.point.label()}"


@dataclass(frozen=True)
class ChannelClosedEarly:
    """
    The backend ended the subscription (usually at its own stop time)
    without any point meeting the threshold.
    """
    exit_code = EXIT_FAILED

    def message(self) -> str:
        return "channel closed before reaching the threshold"


@dataclass(frozen=True)
class TransportFailure:
    detail: str

    exit_code = EXIT_FAILED

    def message(self) -> str:
        return f"encountered an error: {self.detail}"


@dataclass(frozen=True)
class TimedOut:
    timeout_sec: float

    exit_code = EXIT_FAILED

    def message(self) -> str:
        return f"timed out after {self.timeout_sec:g}s before reaching the threshold"


Decision = Union[Success, ChannelClosedEarly, TransportFailure, TimedOut]
