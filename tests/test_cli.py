"""
Tests for the stress command: project lookup and end-to-end runs on a scratch project.
"""

import json

import pytest

from stresslib.core.exceptions import ConfigurationError
from stresslib.orchestrator.cli import find_manifest, main, report_results, select_package
from stresslib.orchestrator.discovery import StressUnit
from stresslib.orchestrator.driver import UnitRunResult

PASSING_UNIT = """\
from stresslib.benchmark import stress_test


@stress_test
def tiny(ctx):
    ctx.set_elements(10)
    ctx.record_duration(1_000)
"""

FAILING_UNIT = """\
from stresslib.benchmark import stress_test


@stress_test
def forgets_to_measure(ctx):
    pass
"""


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "proj"
    (root / "stress").mkdir(parents=True)
    (root / "pyproject.toml").write_text('[project]\nname = "proj"\nversion = "0.1"\n')
    return root


def add_unit(project, stem, source):
    (project / "stress" / f"{stem}.py").write_text(source)


def temp_runs(project):
    temp = project / "target" / "stress-temp"
    return list(temp.iterdir()) if temp.exists() else []


class TestFindManifest:
    def test_explicit_path_must_exist(self, tmp_path):
        with pytest.raises(ConfigurationError, match="does not exist"):
            find_manifest(tmp_path / "nope.toml")

    def test_walks_up_from_cwd(self, project):
        nested = project / "stress"

        assert find_manifest(cwd=nested) == project / "pyproject.toml"

    def test_nothing_found(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()

        with pytest.raises(ConfigurationError, match="Could not find pyproject.toml"):
            find_manifest(cwd=empty)


class TestSelectPackage:
    def test_root_or_member(self, project):
        member = project / "member"
        member.mkdir()
        (member / "pyproject.toml").write_text('[project]\nname = "child"\n')

        assert select_package(project, "proj") == project
        assert select_package(project, "child") == member

    def test_unknown_member(self, project):
        with pytest.raises(ConfigurationError, match="not found"):
            select_package(project, "ghost")


def test_report_results_summary(capsys):
    unit = StressUnit(path=None, stem="fsync")
    report_results(
        [UnitRunResult(unit, 0, 1.5), UnitRunResult(unit, 2, 0.25)], quiet=False
    )

    err = capsys.readouterr().err
    assert "  ✓ fsync (1.50s, exit 0)" in err
    assert "  ✗ fsync (0.25s, exit 2)" in err
    assert "Total time: 1.75s" in err


def test_no_units_is_success(project, capsys):
    code = main(["--manifest-path", str(project / "pyproject.toml")])

    assert code == 0
    assert "No stress test files found" in capsys.readouterr().err


def test_invalid_runs_is_rejected(project, capsys):
    code = main(["--manifest-path", str(project / "pyproject.toml"), "--runs", "0"])

    assert code == 1
    assert "--runs must be at least 1" in capsys.readouterr().err


def test_end_to_end_success_cleans_up(project, tmp_path):
    add_unit(project, "alpha", PASSING_UNIT)
    out = tmp_path / "out"

    code = main(
        [
            "--manifest-path", str(project / "pyproject.toml"),
            "-q",
            "--runs", "3",
            "--output-dir", str(out),
        ]
    )

    assert code == 0
    assert temp_runs(project) == []
    data = json.loads((out / "alpha" / "latest.json").read_text())
    assert data["suite"] == "alpha"
    assert data["runs"] == 3
    assert data["results"][0]["name"] == "alpha/alpha::tiny"
    assert data["results"][0]["elements"] == 10


def test_failing_unit_keeps_workspace(project, tmp_path, capsys):
    add_unit(project, "alpha", PASSING_UNIT)
    add_unit(project, "beta", FAILING_UNIT)

    code = main(
        [
            "--manifest-path", str(project / "pyproject.toml"),
            "--output-dir", str(tmp_path / "out"),
        ]
    )

    assert code == 1
    assert len(temp_runs(project)) == 1
    err = capsys.readouterr().err
    assert "✓ alpha" in err
    assert "✗ beta" in err
    assert "1 of 2 stress test(s) failed" in err


def test_bin_selects_one_unit(project, tmp_path):
    add_unit(project, "alpha", PASSING_UNIT)
    add_unit(project, "beta", FAILING_UNIT)
    out = tmp_path / "out"

    code = main(
        [
            "--manifest-path", str(project / "pyproject.toml"),
            "-q",
            "--bin", "stress_alpha",
            "--output-dir", str(out),
        ]
    )

    assert code == 0
    assert [p.name for p in out.iterdir()] == ["alpha"]


def test_in_process_mode(project, tmp_path):
    add_unit(project, "alpha", PASSING_UNIT)
    out = tmp_path / "out"

    code = main(
        [
            "--manifest-path", str(project / "pyproject.toml"),
            "-q",
            "--no-build",
            "--in-process",
            "--output-dir", str(out),
        ]
    )

    assert code == 0
    data = json.loads((out / "alpha" / "latest.json").read_text())
    assert data["results"][0]["name"] == "alpha/alpha::tiny"


SLOW_UNIT = """\
import time

from stresslib.benchmark import stress_test


@stress_test
def first(ctx):
    ctx.measure(lambda: time.sleep(0.4))


@stress_test
def second(ctx):
    ctx.measure(lambda: time.sleep(0.4))


@stress_test
def third(ctx):
    ctx.measure(lambda: time.sleep(0.4))
"""

HANGING_UNIT = """\
import time

time.sleep(30)
"""


def test_benchmark_timeout_does_not_kill_the_unit(project, tmp_path, monkeypatch):
    add_unit(project, "slow", SLOW_UNIT)
    monkeypatch.setenv("BENCH_TIMEOUT_SECS", "1")

    code = main(
        [
            "--manifest-path", str(project / "pyproject.toml"),
            "-q",
            "--output-dir", str(tmp_path / "out"),
        ]
    )

    assert code == 0
    assert temp_runs(project) == []
    data = json.loads((tmp_path / "out" / "slow" / "latest.json").read_text())
    assert len(data["results"]) == 3


def test_unit_timeout_kills_a_hanging_unit(project, tmp_path, capsys):
    add_unit(project, "hang", HANGING_UNIT)

    code = main(
        [
            "--manifest-path", str(project / "pyproject.toml"),
            "--unit-timeout", "0.5",
            "--output-dir", str(tmp_path / "out"),
        ]
    )

    assert code == 1
    assert "timeout" in capsys.readouterr().err


def test_unit_timeout_must_be_positive(project, capsys):
    code = main(["--manifest-path", str(project / "pyproject.toml"), "--unit-timeout", "0"])

    assert code == 1
    assert "--unit-timeout must be positive" in capsys.readouterr().err


def test_malformed_config_file_stops_before_build(project, tmp_path, capsys):
    add_unit(project, "alpha", PASSING_UNIT)
    (tmp_path / "stress.yaml").write_text("runs: [1\n")

    code = main(["--manifest-path", str(project / "pyproject.toml"), "-q"])

    assert code == 1
    assert "error: Failed to parse stress.yaml" in capsys.readouterr().err
    assert temp_runs(project) == []
