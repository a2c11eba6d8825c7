# conftest.py
# Ensure the repository root is on sys.path so pytest can import stresslib
# without an editable install.

import sys
from pathlib import Path

import pytest

# conftest is at: tests/conftest.py
ROOT = Path(__file__).resolve().parents[1]
ROOT_STR = str(ROOT)

if ROOT_STR not in sys.path:
    # Insert at front so repo root takes precedence during imports
    sys.path.insert(0, ROOT_STR)

from stresslib.benchmark import registry as bench_registry  # noqa: E402
from stresslib.benchmark.result import BenchResult, SuiteResult  # noqa: E402
from stresslib.core.config import RunnerConfig, get_config  # noqa: E402
from stresslib.core.logging_config import reset_logging  # noqa: E402

BENCH_ENV_VARS = [
    "BENCH_RUNS",
    "BENCH_WARMUP",
    "BENCH_VERBOSE",
    "BENCH_OUTPUT_DIR",
    "BENCH_FILTER",
    "BENCH_GIT_SHA",
    "BENCH_TIMEOUT_SECS",
    "GITHUB_ACTIONS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Run every test from an empty directory with no BENCH_* overrides."""
    for name in BENCH_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_config.cache_clear()
    yield
    get_config.cache_clear()
    reset_logging()


@pytest.fixture
def registry():
    """A fresh process-wide registry for the duration of the test."""
    with bench_registry.isolated() as reg:
        yield reg


@pytest.fixture
def quiet_config(tmp_path):
    """Runner config with console output off and results under tmp_path."""
    return RunnerConfig(
        runs=1,
        warmup=0,
        verbose=False,
        output_dir=tmp_path / "results",
        revision="abc123",
    )


def make_result(name: str, duration_ns: int, **kwargs) -> BenchResult:
    runs = kwargs.pop("all_runs_ns", [duration_ns])
    return BenchResult(name=name, duration_ns=duration_ns, all_runs_ns=runs, **kwargs)


def make_suite(*results: BenchResult, suite: str = "demo") -> SuiteResult:
    return SuiteResult(
        suite=suite,
        results=list(results),
        total_duration_ns=sum(r.duration_ns for r in results),
        started_at="1700000000000",
        runs=1,
        warmup_runs=0,
    )
