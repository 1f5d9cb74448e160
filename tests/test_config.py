from __future__ import annotations

from pathlib import Path

import pytest

from config import MAX_TIMEOUT_MS, load_config


BASE_ENV = {
    "FUNCTION_REALM": "us1",
    "FUNCTION_TOKEN": "secret-token",
    "FUNCTION_NAME": "my-fn",
}


@pytest.fixture(autouse=True)
def _no_default_file(tmp_path: Path, monkeypatch) -> None:
    # keep a stray ./probe.yaml out of the tests
    monkeypatch.chdir(tmp_path)


def test_defaults_from_env_only() -> None:
    cfg = load_config(env=dict(BASE_ENV))
    assert cfg.realm == "us1"
    assert cfg.token == "secret-token"
    assert cfg.function_name == "my-fn"
    assert cfg.threshold == 10.0
    assert cfg.threshold_op == ">="
    assert cfg.timeout_ms == 60000
    assert cfg.timeout_sec == 60.0
    assert cfg.resolution_ms == 1000
    assert cfg.immediate is False


def test_result_watch_names_take_precedence() -> None:
    env = dict(
        BASE_ENV,
        EXPECTED_INVOCATION_COUNT="3",
        RESULT_WATCH_THRESHOLD="7",
        TEST_VERIFICATION_TIMEOUT="1000",
        RESULT_WATCH_TIMEOUT="2500",
    )
    cfg = load_config(env=env)
    assert cfg.threshold == 7.0
    assert cfg.timeout_ms == 2500


def test_legacy_names_still_work() -> None:
    env = dict(BASE_ENV, EXPECTED_INVOCATION_COUNT="3", TEST_VERIFICATION_TIMEOUT="1500")
    cfg = load_config(env=env)
    assert cfg.threshold == 3.0
    assert cfg.timeout_ms == 1500


def test_missing_required_field() -> None:
    env = dict(BASE_ENV)
    del env["FUNCTION_TOKEN"]
    with pytest.raises(ValueError, match="token"):
        load_config(env=env)


@pytest.mark.parametrize(
    "key,value",
    [
        ("RESULT_WATCH_THRESHOLD", "-1"),
        ("RESULT_WATCH_THRESHOLD", "ten"),
        ("RESULT_WATCH_TIMEOUT", "0"),
        ("RESULT_WATCH_TIMEOUT", "soon"),
        ("RESULT_WATCH_THRESHOLD", "nan"),
        ("EXPECTED_INVOCATION_COUNT", "inf"),
        ("RESULT_WATCH_TIMEOUT", "inf"),
        ("RESULT_WATCH_TIMEOUT", "nan"),
        ("TEST_VERIFICATION_TIMEOUT", "1e300"),
    ],
)
def test_invalid_numbers(key: str, value: str) -> None:
    with pytest.raises(ValueError, match=key):
        load_config(env=dict(BASE_ENV, **{key: value}))


def test_yaml_file_with_env_override(tmp_path: Path) -> None:
    p = tmp_path / "custom.yaml"
    p.write_text(
        "realm: eu0\n"
        "token: from-file\n"
        "function_name: file-fn\n"
        "threshold: 4\n"
        "timeout_ms: 9000\n"
        "resolution_ms: 500\n"
        "metric: custom.metric\n"
        "dimension: fn\n"
        "immediate: true\n"
        "threshold_op: '>'\n",
        encoding="utf-8",
    )
    cfg = load_config(str(p), env={"FUNCTION_NAME": "env-fn"})
    assert cfg.realm == "eu0"
    assert cfg.token == "from-file"
    assert cfg.function_name == "env-fn"
    assert cfg.threshold == 4.0
    assert cfg.timeout_ms == 9000
    assert cfg.resolution_ms == 500
    assert cfg.metric == "custom.metric"
    assert cfg.dimension == "fn"
    assert cfg.immediate is True
    assert cfg.threshold_op == ">"


def test_default_file_picked_up_from_cwd(tmp_path: Path) -> None:
    (tmp_path / "probe.yaml").write_text("threshold: 2\n", encoding="utf-8")
    cfg = load_config(env=dict(BASE_ENV))
    assert cfg.threshold == 2.0


def test_probe_config_env_points_to_file(tmp_path: Path) -> None:
    p = tmp_path / "other.yaml"
    p.write_text("resolution_ms: 250\n", encoding="utf-8")
    cfg = load_config(env=dict(BASE_ENV, PROBE_CONFIG=str(p)))
    assert cfg.resolution_ms == 250


def test_explicit_missing_file_is_error(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="not found"):
        load_config(str(tmp_path / "nope.yaml"), env=dict(BASE_ENV))


def test_bad_operator_and_resolution(tmp_path: Path) -> None:
    p = tmp_path / "bad.yaml"
    p.write_text("threshold_op: '=>'\n", encoding="utf-8")
    with pytest.raises(ValueError, match="threshold_op"):
        load_config(str(p), env=dict(BASE_ENV))

    p.write_text("resolution_ms: 0\n", encoding="utf-8")
    with pytest.raises(ValueError, match="resolution_ms"):
        load_config(str(p), env=dict(BASE_ENV))


def test_describe_hides_token() -> None:
    cfg = load_config(env=dict(BASE_ENV))
    assert "secret-token" not in cfg.describe()
    assert "my-fn" in cfg.describe()


def test_timeout_at_upper_bound_is_accepted() -> None:
    cfg = load_config(env=dict(BASE_ENV, RESULT_WATCH_TIMEOUT=str(MAX_TIMEOUT_MS)))
    assert cfg.timeout_ms == MAX_TIMEOUT_MS

    with pytest.raises(ValueError, match="at most"):
        load_config(env=dict(BASE_ENV, RESULT_WATCH_TIMEOUT=str(MAX_TIMEOUT_MS + 1)))
