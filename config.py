from __future__ import annotations

import math
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from domain.query import DEFAULT_DIMENSION, DEFAULT_METRIC
from domain.thresholds import OPS


DEFAULT_CONFIG_PATH = "probe.yaml"
# one week, and never past what threading.Timer can wait
MAX_TIMEOUT_MS = int(min(threading.TIMEOUT_MAX, 7 * 24 * 3600.0) * 1000)

# first variable that is set wins
ENV_REALM = ("FUNCTION_REALM",)
ENV_TOKEN = ("FUNCTION_TOKEN",)
ENV_FUNCTION = ("FUNCTION_NAME",)
ENV_THRESHOLD = ("RESULT_WATCH_THRESHOLD", "EXPECTED_INVOCATION_COUNT")
ENV_TIMEOUT = ("RESULT_WATCH_TIMEOUT", "TEST_VERIFICATION_TIMEOUT")


@dataclass(frozen=True)
class ProbeConfig:
    realm: str
    token: str
    function_name: str

    threshold: float = 10.0
    threshold_op: str = ">="
    timeout_ms: int = 60000
    resolution_ms: int = 1000

    metric: str = DEFAULT_METRIC
    dimension: str = DEFAULT_DIMENSION
    immediate: bool = False

    @property
    def timeout_sec(self) -> float:
        return self.timeout_ms / 1000.0

    def describe(self) -> str:
        # no token here
        return (
            f"realm={self.realm} function={self.function_name} metric={self.metric} "
            f"threshold{self.threshold_op}{self.threshold:g} timeout_ms={self.timeout_ms} "
            f"resolution_ms={self.resolution_ms}"
        )


def _opt(d: Mapping[str, Any], path: str, default: Any) -> Any:
    cur: Any = d
    for part in path.split("."):
        if not isinstance(cur, Mapping) or part not in cur:
            return default
        cur = cur[part]
    return cur


def _env(env: Mapping[str, str], names: tuple[str, ...]) -> Optional[tuple[str, str]]:
    for n in names:
        v = env.get(n)
        if v is not None and v.strip() != "":
            return n, v.strip()
    return None


def _num(raw: Any, path: str, cast) -> Any:
    try:
        return cast(raw)
    except (TypeError, ValueError, OverflowError) as e:
        raise ValueError(f"Invalid config: '{path}' is not a number: {raw!r}") from e


def _bool(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    return bool(raw)


def _read_yaml(path: Optional[str], env: Mapping[str, str]) -> Mapping[str, Any]:
    explicit = path or env.get("PROBE_CONFIG")
    p = Path(explicit or DEFAULT_CONFIG_PATH)
    if not p.exists():
        if explicit:
            raise ValueError(f"Invalid config: file not found: {p}")
        return {}
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, Mapping):
        raise ValueError(f"Invalid config: '{p}' must contain a mapping.")
    return data


def load_config(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> ProbeConfig:
    """
    YAML file (optional) first, then environment variables on top.

    Example probe.yaml:
      realm: us1
      function_name: my-function
      threshold: 10
      timeout_ms: 60000
      resolution_ms: 1000
    """
    env = os.environ if env is None else env
    data = _read_yaml(path, env)

    def pick(field: str, names: tuple[str, ...], default: Any) -> tuple[str, Any]:
        hit = _env(env, names)
        if hit is not None:
            return hit
        return field, _opt(data, field, default)

    _, realm = pick("realm", ENV_REALM, None)
    _, token = pick("token", ENV_TOKEN, None)
    _, function_name = pick("function_name", ENV_FUNCTION, None)

    for field, names, val in (
        ("realm", ENV_REALM, realm),
        ("token", ENV_TOKEN, token),
        ("function_name", ENV_FUNCTION, function_name),
    ):
        if val is None or str(val).strip() == "":
            raise ValueError(f"Invalid config: required field '{field}' is missing (set {names[0]}).")

    th_src, th_raw = pick("threshold", ENV_THRESHOLD, 10)
    threshold = _num(th_raw, th_src, float)
    if not math.isfinite(threshold) or threshold < 0:
        raise ValueError(f"Invalid config: '{th_src}' must be a finite non-negative number, got {threshold:g}.")

    to_src, to_raw = pick("timeout_ms", ENV_TIMEOUT, 60000)
    timeout_ms = _num(to_raw, to_src, lambda x: int(float(x)))
    if timeout_ms <= 0:
        raise ValueError(f"Invalid config: '{to_src}' must be positive, got {timeout_ms}.")
    if timeout_ms > MAX_TIMEOUT_MS:
        raise ValueError(f"Invalid config: '{to_src}' must be at most {MAX_TIMEOUT_MS}, got {timeout_ms}.")

    resolution_ms = _num(_opt(data, "resolution_ms", 1000), "resolution_ms", int)
    if resolution_ms <= 0:
        raise ValueError(f"Invalid config: 'resolution_ms' must be positive, got {resolution_ms}.")

    op = str(_opt(data, "threshold_op", ">="))
    if op not in OPS:
        raise ValueError(f"Invalid config: 'threshold_op' must be one of {sorted(OPS)}, got {op!r}.")

    return ProbeConfig(
        realm=str(realm).strip(),
        token=str(token).strip(),
        function_name=str(function_name).strip(),
        threshold=threshold,
        threshold_op=op,
        timeout_ms=timeout_ms,
        resolution_ms=resolution_ms,
        metric=str(_opt(data, "metric", DEFAULT_METRIC)),
        dimension=str(_opt(data, "dimension", DEFAULT_DIMENSION)),
        immediate=_bool(_opt(data, "immediate", False)),
    )
