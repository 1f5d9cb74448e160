from time import time
from domain.ports import Clock


# wall-clock epoch seconds (float); the backend's stop time is wall-clock too
class SystemClock(Clock):
    def now_epoch(self) -> float:
        return time()


def to_epoch_ms(epoch: float) -> int:
    return int(round(epoch * 1000.0))
