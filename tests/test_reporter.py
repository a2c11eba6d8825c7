"""
Unit tests for reporters: formatting, fan-out isolation, files and CI output.
"""

import io
import json
import logging

from stresslib.benchmark.reporter import (
    ConsoleReporter,
    FileReporter,
    GitHubActionsReporter,
    MultiReporter,
    Reporter,
    format_duration,
    format_throughput,
)

from conftest import make_result, make_suite


class RecordingReporter(Reporter):
    def __init__(self):
        self.events = []

    def suite_start(self, suite, config):
        self.events.append(("suite_start", suite))

    def bench_start(self, name):
        self.events.append(("bench_start", name))

    def bench_end(self, result):
        self.events.append(("bench_end", result.name))

    def suite_end(self, result):
        self.events.append(("suite_end", result.suite))


class ExplodingReporter(Reporter):
    def suite_start(self, suite, config):
        raise RuntimeError("boom")

    def bench_start(self, name):
        raise RuntimeError("boom")

    def bench_end(self, result):
        raise OSError("disk full")

    def suite_end(self, result):
        raise ValueError("bad")


class FakeConfig:
    runs = 3
    warmup = 1


class TestFormatting:
    def test_duration_units_with_two_decimals(self):
        assert format_duration(1_234_000_000) == "1.23s"
        assert format_duration(123_456_789) == "123.46ms"
        assert format_duration(123_456) == "123.46us"
        assert format_duration(500) == "500.00ns"

    def test_bytes_throughput_units(self):
        assert format_throughput(make_result("r", 1_000_000_000, bytes=2_000_000_000)) == "2.00 GB/s"
        assert format_throughput(make_result("r", 1_000_000_000, bytes=5_000_000)) == "5.00 MB/s"
        assert format_throughput(make_result("r", 1_000_000_000, bytes=1_500)) == "1.50 KB/s"
        assert format_throughput(make_result("r", 1_000_000_000, bytes=12)) == "12.00 B/s"

    def test_elements_throughput_units(self):
        assert format_throughput(make_result("r", 1_000_000_000, elements=3_000_000)) == "3.00M ops/s"
        assert format_throughput(make_result("r", 1_000_000_000, elements=2_500)) == "2.50K ops/s"
        assert format_throughput(make_result("r", 1_000_000_000, elements=42)) == "42 ops/s"

    def test_bytes_win_over_elements(self):
        result = make_result("r", 1_000_000_000, bytes=1_000_000_000, elements=10)

        assert format_throughput(result) == "1.00 GB/s"

    def test_no_throughput(self):
        assert format_throughput(make_result("r", 10)) == ""


class TestConsoleReporter:
    def test_bench_start_prints_nothing(self):
        out = io.StringIO()

        ConsoleReporter(stream=out).bench_start("anything")

        assert out.getvalue() == ""

    def test_bench_end_prints_one_aligned_line(self):
        out = io.StringIO()
        result = make_result("demo/mod::write", 1_500_000, bytes=3_000)

        ConsoleReporter(stream=out).bench_end(result)

        expected = f"  {'mod::write':<40} {'1.50ms':>14}  (2.00 MB/s)\n"
        assert out.getvalue() == expected

    def test_bench_end_shows_all_runs_when_enabled(self):
        out = io.StringIO()
        result = make_result("demo/x", 2_000, all_runs_ns=[1_000, 2_000, 3_000])

        ConsoleReporter(show_all_runs=True, stream=out).bench_end(result)

        assert out.getvalue().endswith("\n      runs: [1.00us, 2.00us, 3.00us]\n")

    def test_header_and_footer(self):
        out = io.StringIO()
        reporter = ConsoleReporter(stream=out)

        reporter.suite_start("demo", FakeConfig())
        reporter.suite_end(make_suite(make_result("demo/a", 1_000_000_000)))

        text = out.getvalue()
        assert "Benchmark Suite: demo\nRuns: 3, Warmup: 1\n" in text
        assert "Completed 1 benchmarks in 1.00s" in text
        assert text.count("-" * 63) == 4


class TestMultiReporter:
    def test_failing_sink_does_not_block_siblings(self, caplog):
        recorder = RecordingReporter()
        multi = MultiReporter([ExplodingReporter(), recorder])
        suite = make_suite(make_result("demo/a", 1))

        with caplog.at_level(logging.WARNING):
            multi.suite_start("demo", FakeConfig())
            multi.bench_start("a")
            multi.bench_end(suite.results[0])
            multi.suite_end(suite)

        assert recorder.events == [
            ("suite_start", "demo"),
            ("bench_start", "a"),
            ("bench_end", "demo/a"),
            ("suite_end", "demo"),
        ]
        assert "ExplodingReporter failed during bench_end" in caplog.text

    def test_dispatch_in_registration_order(self):
        calls = []

        class Tagged(Reporter):
            def __init__(self, tag):
                self.tag = tag

            def bench_start(self, name):
                calls.append(self.tag)

        MultiReporter([Tagged(1), Tagged(2), Tagged(3)]).bench_start("x")

        assert calls == [1, 2, 3]


class TestFileReporter:
    def test_writes_timestamped_and_latest_files(self, tmp_path):
        suite = make_suite(make_result("demo/a", 2_000_000, bytes=10), suite="my/suite")

        FileReporter(tmp_path).suite_end(suite)

        suite_dir = tmp_path / "my_suite"
        names = sorted(p.name for p in suite_dir.iterdir())
        assert names == ["1700000000000.json", "1700000000000.md", "latest.json", "latest.md"]
        data = json.loads((suite_dir / "latest.json").read_text())
        assert data["results"][0]["duration_ns"] == 2_000_000
        assert "| demo/a | 2.00ms |" in (suite_dir / "latest.md").read_text()

    def test_write_failure_is_logged_not_raised(self, tmp_path, caplog):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("")

        with caplog.at_level(logging.WARNING):
            FileReporter(blocker).suite_end(make_suite(make_result("demo/a", 1)))

        assert "Failed to persist" in caplog.text


class TestGitHubActionsReporter:
    def test_silent_outside_github_actions(self):
        out = io.StringIO()

        GitHubActionsReporter(stream=out).suite_end(make_suite(make_result("demo/a", 1)))

        assert out.getvalue() == ""

    def test_emits_warnings_and_group(self, monkeypatch):
        monkeypatch.setenv("GITHUB_ACTIONS", "true")
        out = io.StringIO()
        baseline = make_suite(make_result("demo/a", 100), make_result("demo/b", 100))
        current = make_suite(make_result("demo/a", 150_000_000), make_result("demo/b", 101))

        GitHubActionsReporter(threshold=0.05, baseline=baseline, stream=out).suite_end(current)

        lines = out.getvalue().splitlines()
        assert lines[0].startswith(
            "::warning title=Performance Regression in demo::Benchmark 'demo/a' is "
        )
        assert lines[0].endswith("% slower than baseline")
        assert lines[1:] == [
            "::group::Benchmark Results - demo",
            "  demo/a: 150.00ms",
            "  demo/b: 0.00ms",
            "::endgroup::",
        ]

    def test_with_baseline_ignores_missing_file(self, tmp_path):
        reporter = GitHubActionsReporter().with_baseline(tmp_path / "missing.json")

        assert reporter.baseline is None

    def test_annotations_match_the_regression_gate(self, monkeypatch):
        monkeypatch.setenv("GITHUB_ACTIONS", "true")
        out = io.StringIO()
        baseline = make_suite(
            make_result("demo/ok", 100),
            make_result("demo/slow", 100),
            make_result("demo/zero", 0),
        )
        current = make_suite(
            make_result("demo/ok", 103),
            make_result("demo/slow", 120),
            make_result("demo/zero", 50),
            make_result("demo/new", 50),
        )

        GitHubActionsReporter(threshold=0.05, baseline=baseline, stream=out).suite_end(current)

        warnings = [l for l in out.getvalue().splitlines() if l.startswith("::warning")]
        assert warnings == [
            "::warning title=Performance Regression in demo::"
            "Benchmark 'demo/slow' is 20.0% slower than baseline"
        ]
