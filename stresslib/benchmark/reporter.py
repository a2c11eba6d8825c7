"""
Reporters - Pluggable sinks for benchmark lifecycle events.

Produces:
- Console lines for humans (stdout, one write per event)
- JSON + Markdown files per suite run, plus "latest" copies
- GitHub Actions annotations for CI
"""

import logging
import os
import sys
import threading
from pathlib import Path
from typing import Any, List, Optional, TextIO

from stresslib.benchmark.regression import RegressionAnalyzer
from stresslib.benchmark.result import BenchResult, SuiteResult, write_atomic
from stresslib.core.exceptions import PersistenceFailure, ReporterFailure

logger = logging.getLogger(__name__)

NAME_WIDTH = 40
DURATION_WIDTH = 14
RULE = "-" * 63


def format_duration(nanos: int) -> str:
    """Human duration with two decimals: s, ms, us or ns."""
    secs = nanos / 1_000_000_000
    if secs >= 1.0:
        return f"{secs:.2f}s"
    if secs >= 0.001:
        return f"{secs * 1_000:.2f}ms"
    if secs >= 0.000_001:
        return f"{secs * 1_000_000:.2f}us"
    return f"{float(nanos):.2f}ns"


def format_throughput(result: BenchResult) -> str:
    """Throughput text, or "" when neither bytes nor elements were recorded."""
    bps = result.bytes_per_sec()
    if bps is not None:
        if bps >= 1_000_000_000:
            return f"{bps / 1_000_000_000:.2f} GB/s"
        if bps >= 1_000_000:
            return f"{bps / 1_000_000:.2f} MB/s"
        if bps >= 1_000:
            return f"{bps / 1_000:.2f} KB/s"
        return f"{bps:.2f} B/s"

    eps = result.elements_per_sec()
    if eps is not None:
        if eps >= 1_000_000:
            return f"{eps / 1_000_000:.2f}M ops/s"
        if eps >= 1_000:
            return f"{eps / 1_000:.2f}K ops/s"
        return f"{eps:.0f} ops/s"

    return ""


class Reporter:
    """
    Base reporter. Every hook is a no-op; override the ones you need.

    Hooks are called in order: suite_start, then bench_start/bench_end per
    benchmark, then suite_end.
    """

    def suite_start(self, suite: str, config: Any) -> None:
        pass

    def bench_start(self, name: str) -> None:
        pass

    def bench_end(self, result: BenchResult) -> None:
        pass

    def suite_end(self, result: SuiteResult) -> None:
        pass


class ConsoleReporter(Reporter):
    """
    Prints results to stdout.

    Each event is rendered into one complete message and written with a
    single write under a process-wide lock, so lines never interleave.
    """

    _output_lock = threading.Lock()

    def __init__(self, show_all_runs: bool = False, stream: Optional[TextIO] = None):
        self.show_all_runs = show_all_runs
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def suite_start(self, suite: str, config: Any) -> None:
        header = (
            f"{RULE}\n"
            f"Benchmark Suite: {suite}\n"
            f"Runs: {config.runs}, Warmup: {config.warmup}\n"
            f"{RULE}\n"
        )
        self._write(header)

    def bench_start(self, name: str) -> None:
        # The full line is printed at bench_end
        pass

    def bench_end(self, result: BenchResult) -> None:
        bench_name = result.name.rsplit("/", 1)[-1]
        duration = format_duration(result.duration_ns)
        throughput = format_throughput(result)

        line = f"  {bench_name:<{NAME_WIDTH}} {duration:>{DURATION_WIDTH}}"
        if throughput:
            line += f"  ({throughput})"

        if self.show_all_runs and len(result.all_runs_ns) > 1:
            runs = ", ".join(format_duration(d) for d in result.all_runs_ns)
            line += f"\n      runs: [{runs}]"

        self._write(line)

    def suite_end(self, result: SuiteResult) -> None:
        footer = (
            f"{RULE}\n"
            f"Completed {len(result.results)} benchmarks in "
            f"{format_duration(result.total_duration_ns)}\n"
            f"{RULE}\n"
        )
        self._write(footer)

    def _write(self, message: str) -> None:
        with self._output_lock:
            try:
                self.stream.write(message + "\n")
                self.stream.flush()
            except OSError as e:
                logger.warning(f"[ConsoleReporter] Failed to write to stdout: {e}")


class FileReporter(Reporter):
    """
    Writes one JSON and one Markdown file per suite run.

    Layout under output_dir:
    - {suite}/{started_at}.json  machine-readable results
    - {suite}/{started_at}.md    human-readable summary
    - {suite}/latest.json, {suite}/latest.md  most recent run

    Write failures are logged, never raised.
    """

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)

    def suite_end(self, result: SuiteResult) -> None:
        try:
            paths = self.save(result)
            logger.info(f"[FileReporter] Results written to: {paths['json']}")
        except PersistenceFailure as e:
            logger.warning(f"[FileReporter] {e.message}")

    def save(self, result: SuiteResult) -> dict:
        """
        Write result files.

        Returns:
            Dict with paths to saved files

        Raises:
            PersistenceFailure: If any file cannot be written
        """
        suite_dir = self.output_dir / result.suite.replace("/", "_")
        stamp = result.started_at or "unknown"

        json_content = result.to_json()
        markdown_content = self.render_markdown(result)

        paths = {
            "json": suite_dir / f"{stamp}.json",
            "markdown": suite_dir / f"{stamp}.md",
            "latest_json": suite_dir / "latest.json",
            "latest_md": suite_dir / "latest.md",
        }
        write_atomic(paths["json"], json_content)
        write_atomic(paths["markdown"], markdown_content)
        write_atomic(paths["latest_json"], json_content)
        write_atomic(paths["latest_md"], markdown_content)
        return paths

    @staticmethod
    def render_markdown(result: SuiteResult) -> str:
        """Generate the Markdown summary of a suite run."""
        lines = []

        lines.append(f"# Benchmark Suite: {result.suite}")
        lines.append("")
        lines.append(f"**Completed:** {result.started_at}")
        if result.revision:
            lines.append(f"**Revision:** `{result.revision}`")
        lines.append(f"**Runs:** {result.runs}, **Warmup:** {result.warmup_runs}")
        lines.append("")

        lines.append("## Results")
        lines.append("")
        lines.append("| Benchmark | Median | Min | Max | Throughput |")
        lines.append("|-----------|--------|-----|-----|------------|")
        for r in result.results:
            low = r.min_duration_ns()
            high = r.max_duration_ns()
            lines.append(
                f"| {r.name} | {format_duration(r.duration_ns)} | "
                f"{format_duration(low) if low is not None else ''} | "
                f"{format_duration(high) if high is not None else ''} | "
                f"{format_throughput(r)} |"
            )
        lines.append("")

        if result.metadata:
            lines.append("## Metadata")
            lines.append("")
            for key in sorted(result.metadata):
                lines.append(f"- **{key}:** {result.metadata[key]}")
            lines.append("")

        lines.append("---")
        lines.append(
            f"Total: {format_duration(result.total_duration_ns)}, "
            f"Benchmarks: {len(result.results)}"
        )

        return "\n".join(lines) + "\n"


class GitHubActionsReporter(Reporter):
    """
    Emits GitHub Actions workflow commands on stdout.

    Only active when the GITHUB_ACTIONS environment variable is set.
    """

    def __init__(
        self,
        threshold: float = 0.05,
        baseline: Optional[SuiteResult] = None,
        stream: Optional[TextIO] = None,
    ):
        self.threshold = threshold
        self.baseline = baseline
        self._stream = stream

    def with_baseline(self, path: Path) -> "GitHubActionsReporter":
        """Load a baseline for regression annotations; a missing file is ignored."""
        try:
            self.baseline = SuiteResult.load(path)
        except PersistenceFailure as e:
            logger.debug(f"[GitHubActionsReporter] No baseline: {e.message}")
            self.baseline = None
        return self

    @staticmethod
    def is_github_actions() -> bool:
        return "GITHUB_ACTIONS" in os.environ

    @staticmethod
    def format_duration(nanos: int) -> str:
        secs = nanos / 1_000_000_000
        if secs >= 1.0:
            return f"{secs:.2f}s"
        return f"{secs * 1000:.2f}ms"

    def suite_end(self, result: SuiteResult) -> None:
        if not self.is_github_actions():
            return

        out = self._stream if self._stream is not None else sys.stdout
        lines = []
        if self.baseline is not None:
            report = RegressionAnalyzer(self.threshold).analyze(result, self.baseline)
            for r in report.regressions:
                lines.append(
                    f"::warning title=Performance Regression in {result.suite}::"
                    f"Benchmark '{r.name}' is {r.percent_slower:.1f}% slower than baseline"
                )

        lines.append(f"::group::Benchmark Results - {result.suite}")
        for r in result.results:
            lines.append(f"  {r.name}: {self.format_duration(r.duration_ns)}")
        lines.append("::endgroup::")

        out.write("\n".join(lines) + "\n")
        out.flush()


class MultiReporter(Reporter):
    """
    Fans each event out to every reporter in registration order.

    A reporter that raises is logged and skipped; its siblings and later
    events are unaffected.
    """

    def __init__(self, reporters: Optional[List[Reporter]] = None):
        self.reporters: List[Reporter] = list(reporters or [])

    def __len__(self) -> int:
        return len(self.reporters)

    def suite_start(self, suite: str, config: Any) -> None:
        self._dispatch("suite_start", suite, config)

    def bench_start(self, name: str) -> None:
        self._dispatch("bench_start", name)

    def bench_end(self, result: BenchResult) -> None:
        self._dispatch("bench_end", result)

    def suite_end(self, result: SuiteResult) -> None:
        self._dispatch("suite_end", result)

    def _dispatch(self, event: str, *args: Any) -> None:
        for reporter in self.reporters:
            try:
                getattr(reporter, event)(*args)
            except Exception as e:
                failure = ReporterFailure(type(reporter).__name__, event, str(e))
                logger.warning(f"[MultiReporter] {failure.message}")
