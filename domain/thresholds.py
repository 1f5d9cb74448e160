from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, get_args

# ">=" reaches the bound, ">" must exceed it
Op = Literal[">=", ">"]

OPS = frozenset(get_args(Op))


@dataclass(frozen=True)
class ThresholdRule:
    value: float
    op: Op = ">="

    def __post_init__(self) -> None:
        if self.op not in OPS:
            raise ValueError(f"unsupported threshold operator: {self.op!r}")

    def matched(self, x: float) -> bool:
        if self.op == ">":
            return x > self.value
        return x >= self.value

    def __call__(self, x: float) -> bool:
        return self.matched(x)

    def label(self) -> str:
        return f"{self.op} {self.value:g}"
