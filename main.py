from __future__ import annotations

import argparse
from typing import Optional, Sequence

from config import load_config
from app.probe import InvocationProbe, ProcessOutcome
from app.threshold_watcher import ThresholdWatcher
from domain.query import build_program
from domain.thresholds import ThresholdRule
from infra.clock import SystemClock
from infra.deadline import DeadlineGuard
from infra.signalflow_client import SignalFlowStreamConnection, signalfx_client_factory


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        prog="invocation-probe",
        description="Exit 0 once a SignalFlow aggregate reaches a threshold before a deadline, 1 otherwise.",
    )
    ap.add_argument("--config", default=None, help="YAML config file (default: $PROBE_CONFIG or ./probe.yaml)")
    ap.add_argument("--quiet", action="store_true", help="do not echo every data batch")
    return ap.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)

    try:
        cfg = load_config(args.config)
        program = build_program(cfg.function_name, metric=cfg.metric, dimension=cfg.dimension)
    except ValueError as e:
        raise SystemExit(str(e))

    print(f"[probe] {cfg.describe()}", flush=True)
    print(f"[probe] executing program: {program}", flush=True)

    clock = SystemClock()
    connection = SignalFlowStreamConnection(
        signalfx_client_factory(cfg.realm, cfg.token),
        clock,
        immediate=cfg.immediate,
    )
    guard = DeadlineGuard(clock)
    watcher = ThresholdWatcher(ThresholdRule(value=cfg.threshold, op=cfg.threshold_op))

    probe = InvocationProbe(
        connection,
        guard,
        watcher,
        clock,
        outcome=ProcessOutcome(connection, guard),
        verbose=not args.quiet,
    )
    return probe.run(program, cfg.timeout_sec, cfg.resolution_ms)


if __name__ == "__main__":
    raise SystemExit(main())
