"""
Stress Benchmarks - Single-shot measurement, aggregation, baselines and reporting.

Each benchmark body measures exactly one operation per iteration; the
runner reports the median of the measured runs and compares suites
against a stored baseline.

Usage:
    from stresslib.benchmark import BenchRunner, stress_test

    @stress_test
    def flush_memtable(ctx):
        table = build_table()
        ctx.measure_mut(table, lambda t: t.flush())

    runner = BenchRunner("storage")
    runner.run("flush", flush_memtable)
    suite = runner.finish()
"""

from stresslib.benchmark.context import StressContext

from stresslib.benchmark.result import (
    BenchResult,
    SuiteResult,
)

from stresslib.benchmark.aggregator import (
    aggregate,
    median_ns,
)

from stresslib.benchmark.registry import (
    BenchmarkDescriptor,
    BenchmarkRegistry,
    benchmark_count,
    get_registry,
    list_benchmarks,
    matches_pattern,
    stress_test,
)

from stresslib.benchmark.runner import (
    BenchGroup,
    BenchRunner,
)

from stresslib.benchmark.regression import (
    Regression,
    RegressionAnalyzer,
    RegressionReport,
    check_regression,
)

from stresslib.benchmark.reporter import (
    ConsoleReporter,
    FileReporter,
    GitHubActionsReporter,
    MultiReporter,
    Reporter,
    format_duration,
    format_throughput,
)

__all__ = [
    # Measurement
    "StressContext",
    "BenchResult",
    "SuiteResult",
    "aggregate",
    "median_ns",
    # Registry
    "BenchmarkDescriptor",
    "BenchmarkRegistry",
    "benchmark_count",
    "get_registry",
    "list_benchmarks",
    "matches_pattern",
    "stress_test",
    # Runner
    "BenchGroup",
    "BenchRunner",
    # Regression
    "Regression",
    "RegressionAnalyzer",
    "RegressionReport",
    "check_regression",
    # Reporter
    "ConsoleReporter",
    "FileReporter",
    "GitHubActionsReporter",
    "MultiReporter",
    "Reporter",
    "format_duration",
    "format_throughput",
]
