"""
Unit tests for runner configuration resolution.
"""

import logging
from pathlib import Path

import pytest

from stresslib.core import config as config_module
from stresslib.core.config import RunnerConfig, get_config, resolve_config
from stresslib.core.exceptions import ConfigurationError


def test_defaults():
    config = RunnerConfig()

    assert config.runs == 1
    assert config.warmup == 0
    assert config.verbose is True
    assert config.output_dir == Path("target/stress")
    assert config.filter is None
    assert config.timeout is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("BENCH_RUNS", "5")
    monkeypatch.setenv("BENCH_WARMUP", "2")
    monkeypatch.setenv("BENCH_OUTPUT_DIR", "out/bench")
    monkeypatch.setenv("BENCH_FILTER", "disk*")
    monkeypatch.setenv("BENCH_GIT_SHA", "abc")
    monkeypatch.setenv("BENCH_TIMEOUT_SECS", "30")

    config = RunnerConfig()

    assert config.runs == 5
    assert config.warmup == 2
    assert config.output_dir == Path("out/bench")
    assert config.filter == "disk*"
    assert config.revision == "abc"
    assert config.timeout == 30.0


@pytest.mark.parametrize(
    "value, expected",
    [("0", False), ("false", False), ("FALSE", False), ("1", True), ("yes", True), ("", True)],
)
def test_verbose_env_parsing(monkeypatch, value, expected):
    monkeypatch.setenv("BENCH_VERBOSE", value)

    assert RunnerConfig().verbose is expected


@pytest.mark.parametrize(
    "name, value",
    [("BENCH_RUNS", "abc"), ("BENCH_RUNS", "0"), ("BENCH_WARMUP", "-1"), ("BENCH_TIMEOUT_SECS", "0")],
)
def test_invalid_env_values_fall_back_to_default(monkeypatch, caplog, name, value):
    monkeypatch.setenv(name, value)

    with caplog.at_level(logging.WARNING):
        config = RunnerConfig()

    assert config.runs == 1
    assert config.warmup == 0
    assert config.timeout is None
    assert "Invalid value" in caplog.text


def test_yaml_file_sits_below_environment(tmp_path, monkeypatch):
    (tmp_path / "stress.yaml").write_text("runs: 4\nwarmup: 3\n")
    monkeypatch.setenv("BENCH_WARMUP", "1")

    config = RunnerConfig()

    assert config.runs == 4
    assert config.warmup == 1


def test_explicit_overrides_win(monkeypatch):
    monkeypatch.setenv("BENCH_RUNS", "5")

    config = resolve_config(detect_git=False, runs=7, output_dir="x", filter=None)

    assert config.runs == 7
    assert config.output_dir == Path("x")
    assert config.filter is None


def test_invalid_explicit_override_raises():
    with pytest.raises(ConfigurationError):
        resolve_config(detect_git=False, runs=0)


def test_unknown_override_raises():
    with pytest.raises(ConfigurationError) as exc:
        resolve_config(detect_git=False, speed=3)

    assert exc.value.context == {"keys": ["speed"]}


def test_revision_detected_when_unset(monkeypatch):
    monkeypatch.setattr(config_module, "detect_revision", lambda cwd=None: "feedface")

    assert resolve_config().revision == "feedface"


def test_configured_revision_is_not_overwritten(monkeypatch):
    monkeypatch.setenv("BENCH_GIT_SHA", "pinned")
    monkeypatch.setattr(config_module, "detect_revision", lambda cwd=None: "feedface")

    assert resolve_config().revision == "pinned"


def test_get_config_is_cached():
    assert get_config() is get_config()


def test_malformed_yaml_is_a_configuration_error(tmp_path):
    (tmp_path / "stress.yaml").write_text("runs: [1\n")

    with pytest.raises(ConfigurationError, match="Failed to parse stress.yaml"):
        resolve_config(detect_git=False)
