"""
Benchmark Runner - Core execution engine for single-shot benchmark suites.

Runs each benchmark body `warmup` times (discarded) and then `runs` times,
reports the median, and hands every lifecycle event to the reporters.

Usage:
    runner = BenchRunner("storage")

    def write_1mb(ctx):
        data = b"\\0" * (1024 * 1024)
        ctx.set_bytes(len(data))
        ctx.measure(lambda: sink.write(data))

    runner.run("write_1mb", write_1mb)
    suite = runner.finish()
"""

import logging
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from stresslib.benchmark.aggregator import aggregate
from stresslib.benchmark.context import StressContext
from stresslib.benchmark.registry import matches_pattern
from stresslib.benchmark.regression import RegressionAnalyzer, RegressionReport
from stresslib.benchmark.reporter import (
    ConsoleReporter,
    FileReporter,
    MultiReporter,
    Reporter,
)
from stresslib.benchmark.result import BenchResult, SuiteResult
from stresslib.core.config import DEFAULT_THRESHOLD, RunnerConfig, resolve_config

logger = logging.getLogger(__name__)

BenchBody = Callable[[StressContext], object]


def default_reporters(config: RunnerConfig) -> List[Reporter]:
    """Console (when verbose) plus result files under config.output_dir."""
    reporters: List[Reporter] = []
    if config.verbose:
        reporters.append(ConsoleReporter(show_all_runs=True))
    reporters.append(FileReporter(config.output_dir))
    return reporters


def unix_millis() -> str:
    """Compact unique timestamp, usable as a file name and a JSON value."""
    return str(time.time_ns() // 1_000_000)


class BenchRunner:
    """
    Runs benchmarks for one suite and collects results.

    Features:
    - Warmup iterations discarded, measured iterations aggregated to the median
    - Optional name filter (glob or substring, case-insensitive)
    - Pluggable, failure-isolated reporters
    - Advisory timeout warning per benchmark
    """

    def __init__(
        self,
        suite: str,
        config: Optional[RunnerConfig] = None,
        reporters: Optional[List[Reporter]] = None,
    ):
        """
        Initialize the runner and announce the suite to reporters.

        Args:
            suite: Suite name, used as result name prefix and output directory
            config: Resolved configuration (default: environment + stress.yaml)
            reporters: Reporter list (default: console + file)
        """
        self.suite = suite
        self.config = config if config is not None else resolve_config()
        self.results: List[BenchResult] = []
        self._metadata: Dict[str, str] = {}
        self._suite_start_ns = time.perf_counter_ns()
        self._finished: Optional[SuiteResult] = None

        self.reporter = MultiReporter(
            reporters if reporters is not None else default_reporters(self.config)
        )
        self.reporter.suite_start(self.suite, self.config)

    def metadata(self, key: str, value: object) -> "BenchRunner":
        """Add custom metadata to the suite result."""
        self._metadata[str(key)] = str(value)
        return self

    def should_run(self, name: str) -> bool:
        pattern = self.config.filter
        return not pattern or matches_pattern(name, pattern)

    def run(self, name: str, body: BenchBody) -> Optional[BenchResult]:
        """
        Run one benchmark.

        The body must call exactly one measurement method on its context
        per iteration.

        Args:
            name: Benchmark name (result name becomes "<suite>/<name>")
            body: Callable taking a StressContext

        Returns:
            BenchResult, or None if the name was filtered out

        Raises:
            MeasurementProtocolViolation: If an iteration skipped or repeated measurement
        """
        if self._finished is not None:
            raise RuntimeError(f"Suite {self.suite} is already finished")
        if not self.should_run(name):
            logger.debug(f"[BenchRunner] Filtered out: {name}")
            return None

        full_name = f"{self.suite}/{name}"
        self.reporter.bench_start(name)

        for _ in range(self.config.warmup):
            body(StressContext(name))

        contexts = []
        for _ in range(self.config.runs):
            ctx = StressContext(name)
            body(ctx)
            contexts.append(ctx)

        result = aggregate(full_name, contexts)

        timeout = self.config.timeout
        if timeout is not None and result.duration_ns > timeout * 1_000_000_000:
            logger.warning(
                f"[BenchRunner] {full_name} took {result.duration_secs:.2f}s, "
                f"over the {timeout:g}s timeout"
            )

        self.reporter.bench_end(result)
        self.results.append(result)
        return result

    def group(self, prefix: str) -> "BenchGroup":
        """Group related benchmarks under a "<prefix>/" name prefix."""
        return BenchGroup(self, prefix)

    def finish(self) -> SuiteResult:
        """
        Finish the suite and notify reporters.

        Calling finish() again returns the same SuiteResult without
        re-reporting.
        """
        if self._finished is not None:
            return self._finished

        total_ns = time.perf_counter_ns() - self._suite_start_ns
        suite_result = SuiteResult(
            suite=self.suite,
            results=list(self.results),
            total_duration_ns=total_ns,
            started_at=unix_millis(),
            runs=self.config.runs,
            warmup_runs=self.config.warmup,
            revision=self.config.revision,
            metadata=dict(self._metadata),
        )
        self._finished = suite_result

        self.reporter.suite_end(suite_result)
        return suite_result

    def finish_with_baseline(
        self,
        baseline_path: Path,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> Tuple[SuiteResult, RegressionReport]:
        """
        Finish and compare against a baseline file.

        An unreadable baseline yields an empty report.
        """
        suite_result = self.finish()
        analyzer = RegressionAnalyzer(threshold=threshold)
        report = analyzer.analyze_file(suite_result, Path(baseline_path))
        if report is None:
            report = RegressionReport(threshold=threshold)
        return suite_result, report


class BenchGroup:
    """A named group of benchmarks; names become "<prefix>/<name>"."""

    def __init__(self, runner: BenchRunner, prefix: str):
        self.runner = runner
        self.prefix = prefix

    def run(self, name: str, body: BenchBody) -> Optional[BenchResult]:
        return self.runner.run(f"{self.prefix}/{name}", body)

    def __enter__(self) -> "BenchGroup":
        return self

    def __exit__(self, *exc) -> None:
        return None
