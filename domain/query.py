from __future__ import annotations

DEFAULT_METRIC = "lambda.function.invocation"
DEFAULT_DIMENSION = "aws_function_name"

_TEMPLATE = (
    "data('{metric}', "
    "filter=filter('{dimension}', '{value}'), "
    "rollup='sum', "
    "extrapolation='zero')"
    ".sum()"
    ".sum(over='5m')"
    ".publish()"
)


def _quote(s: str) -> str:
    return s.replace("\\", "\\\\").replace("'", "\\'")


def build_program(
    function_name: str,
    *,
    metric: str = DEFAULT_METRIC,
    dimension: str = DEFAULT_DIMENSION,
) -> str:
    """
    SignalFlow program summing the metric for one function over a 5m window.
    """
    if not function_name:
        raise ValueError("function name is required to build the query filter")
    return _TEMPLATE.format(
        metric=_quote(metric),
        dimension=_quote(dimension),
        value=_quote(function_name),
    )
