"""
Unit Harness - Entry point of every stress unit.

Each unit file ends with:

    if __name__ == "__main__":
        from stresslib.benchmark.harness import stress_main
        raise SystemExit(stress_main())

stress_main parses the flags forwarded by the orchestrator, selects the
registered benchmarks, runs them and returns the unit's exit code:
0 when every benchmark ran and nothing regressed, 1 otherwise.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from stresslib.benchmark.registry import BenchmarkRegistry, get_registry
from stresslib.benchmark.reporter import GitHubActionsReporter
from stresslib.benchmark.runner import BenchRunner, default_reporters
from stresslib.core.config import DEFAULT_THRESHOLD, resolve_config
from stresslib.core.exceptions import StressError
from stresslib.core.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stress-unit",
        description="Run the stress benchmarks registered in this unit",
    )
    parser.add_argument("--workload", help="Only run benchmarks matching this glob")
    parser.add_argument("--runs", type=int, help="Measured runs per benchmark (default: 1)")
    parser.add_argument("--warmup", type=int, help="Discarded warmup runs (default: 0)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress console results")
    parser.add_argument(
        "--include-ignored",
        action="store_true",
        help="Also run benchmarks registered with ignore=True",
    )
    parser.add_argument("--list", action="store_true", help="List benchmarks without running")
    parser.add_argument("--output-dir", type=Path, help="Directory for result files")
    parser.add_argument("--baseline", type=Path, help="Baseline JSON for regression comparison")
    parser.add_argument(
        "--threshold",
        type=float,
        default=DEFAULT_THRESHOLD,
        help="Regression threshold (default: 0.05 = 5%%)",
    )
    parser.add_argument(
        "--save-baseline",
        type=Path,
        help="Save this run as the baseline at PATH",
    )
    return parser


def suite_name(executable: Optional[str] = None) -> str:
    """Suite name from the unit file stem, with "_" replaced by "-"."""
    path = executable if executable is not None else sys.argv[0]
    stem = Path(path).stem if path else ""
    return stem.replace("_", "-") if stem else "stress"


def print_benchmark_list(registry: BenchmarkRegistry) -> None:
    names = registry.names()
    if not names:
        print("No benchmarks registered.")
        print("Add @stress_test to your benchmark functions.")
        return
    print(f"Registered benchmarks ({len(names)}):")
    for name in names:
        print(f"  {name}")


def stress_main(
    argv: Optional[List[str]] = None,
    registry: Optional[BenchmarkRegistry] = None,
    suite: Optional[str] = None,
) -> int:
    """
    Run the registered benchmarks of this unit.

    Args:
        argv: Command line (default: sys.argv[1:]); unknown flags are ignored
        registry: Registry to run (default: the process-wide one)
        suite: Suite name (default: derived from the unit file name)

    Returns:
        Exit code (0 = success, 1 = failure or regression)
    """
    args, unknown = build_parser().parse_known_args(argv)
    setup_logging()
    if unknown:
        logger.debug(f"[stress_main] Ignoring unknown arguments: {unknown}")

    registry = registry if registry is not None else get_registry()

    if args.list:
        print_benchmark_list(registry)
        return 0

    if args.quiet:
        verbose = False
    elif args.verbose:
        verbose = True
    else:
        verbose = None

    try:
        config = resolve_config(
            runs=args.runs,
            warmup=args.warmup,
            verbose=verbose,
            output_dir=args.output_dir,
        )
    except StressError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return 1

    benchmarks = registry.select(args.workload, include_ignored=args.include_ignored)
    if not benchmarks:
        if args.workload:
            print("No benchmarks matched the workload pattern", file=sys.stderr)
        else:
            print(
                "No benchmarks registered. Add @stress_test to your benchmark functions.",
                file=sys.stderr,
            )
        return 0

    reporters = default_reporters(config)
    ci_reporter = GitHubActionsReporter(threshold=args.threshold)
    if args.baseline is not None:
        ci_reporter.with_baseline(args.baseline)
    reporters.append(ci_reporter)

    runner = BenchRunner(suite or suite_name(), config=config, reporters=reporters)

    try:
        for bench in benchmarks:
            runner.run(bench.qualified_name, bench.body)
    except StressError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return 1

    if args.baseline is not None:
        suite_result, report = runner.finish_with_baseline(args.baseline, args.threshold)
    else:
        suite_result, report = runner.finish(), None

    if report is not None and not report.passed:
        print("", file=sys.stderr)
        for line in report.summary_lines():
            print(line, file=sys.stderr)
    else:
        print(f"\n✅ {len(suite_result.results)} benchmark(s) completed", file=sys.stderr)

    if args.save_baseline is not None:
        try:
            suite_result.save(args.save_baseline)
        except StressError as e:
            print(f"error: {e.message}", file=sys.stderr)
            return 1
        logger.info(f"[stress_main] Saved baseline to {args.save_baseline}")

    return report.exit_code if report is not None else 0
