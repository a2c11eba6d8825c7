"""
stress - Discover, build and run a project's stress units.

Usage:
    stress                          # Run every unit in ./stress
    stress --bin fsync              # Run one unit
    stress --runs 5 --warmup 1      # Median of 5 runs after 1 warmup
    stress --baseline base.json     # Fail on >5% regressions
    stress --list                   # List benchmarks without running
    stress --unit-timeout 600       # Kill any unit running longer than 10 minutes
"""

import argparse
import logging
import shlex
import sys
from pathlib import Path
from typing import List, Optional

from stresslib.core.config import (
    DEFAULT_RUNS,
    DEFAULT_THRESHOLD,
    DEFAULT_WARMUP,
    get_config,
)
from stresslib.core.exceptions import BuildFailure, ConfigurationError, StressError
from stresslib.core.logging_config import setup_logging
from stresslib.orchestrator.build import BuildDriver, BuildOptions, CompileallBuildDriver
from stresslib.orchestrator.discovery import STRESS_DIR, discover_units
from stresslib.orchestrator.driver import ExecutionDriver, RunOptions, UnitRunResult
from stresslib.orchestrator.workspace import (
    MANIFEST_FILE,
    BuildWorkspace,
    read_project_name,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stress",
        description="Run single-shot stress benchmarks from the stress/ directory",
    )

    bench = parser.add_argument_group("benchmark selection and measurement")
    bench.add_argument("--workload", help="Only run benchmarks matching this glob")
    bench.add_argument(
        "--runs", type=int, default=DEFAULT_RUNS, help="Measured runs per benchmark (default: 1)"
    )
    bench.add_argument(
        "--warmup", type=int, default=DEFAULT_WARMUP, help="Discarded warmup runs (default: 0)"
    )
    bench.add_argument("-v", "--verbose", action="store_true", help="Stream all output")
    bench.add_argument("-q", "--quiet", action="store_true", help="Only report failures")
    bench.add_argument(
        "--include-ignored", action="store_true", help="Also run ignored benchmarks"
    )
    bench.add_argument("--list", action="store_true", help="List benchmarks without running")
    bench.add_argument("--output-dir", type=Path, help="Directory for result files")
    bench.add_argument("--baseline", type=Path, help="Baseline JSON for regression comparison")
    bench.add_argument(
        "--threshold",
        type=float,
        default=DEFAULT_THRESHOLD,
        help="Regression threshold (default: 0.05 = 5%%)",
    )

    build = parser.add_argument_group("build")
    build.add_argument("--bin", help="Only build and run this unit (stem or stress_<stem>)")
    build.add_argument("--dev", action="store_true", help="Build without optimization")
    build.add_argument("--build-args", help="Extra arguments for the build tool")
    build.add_argument("-p", "--package", help="Workspace member to run")
    build.add_argument("--manifest-path", type=Path, help="Path to the project's pyproject.toml")

    advanced = parser.add_argument_group("advanced")
    advanced.add_argument(
        "--no-build", action="store_true", help="Skip compilation, run the sources as-is"
    )
    advanced.add_argument(
        "--no-fail-fast", action="store_true", help="Keep going after a failed unit"
    )
    advanced.add_argument(
        "--in-process", action="store_true", help="Run units inside this interpreter"
    )
    advanced.add_argument(
        "--unit-timeout",
        type=float,
        help="Kill a unit process that runs longer than this many seconds",
    )
    advanced.add_argument("--log-level", help="Log level (default: STRESS_LOG_LEVEL or INFO)")
    advanced.add_argument("--log-file", type=Path, help="Also log to this rotating file")
    return parser


def find_manifest(manifest_path: Optional[Path] = None, cwd: Optional[Path] = None) -> Path:
    """
    Locate the project's pyproject.toml.

    Raises:
        ConfigurationError: If an explicit path is missing or none is found
    """
    if manifest_path is not None:
        if manifest_path.exists():
            return manifest_path
        raise ConfigurationError(
            f"Specified manifest path does not exist: {manifest_path}",
            context={"manifest_path": str(manifest_path)},
        )

    start = (cwd or Path.cwd()).resolve()
    for directory in (start, *start.parents):
        candidate = directory / MANIFEST_FILE
        if candidate.exists():
            return candidate
    raise ConfigurationError(
        f"Could not find {MANIFEST_FILE} in {start} or any parent directory"
    )


def select_package(project_root: Path, name: str) -> Path:
    """
    Directory of the workspace member whose [project].name is `name`.

    Raises:
        ConfigurationError: If no such member exists
    """
    if read_project_name(project_root / MANIFEST_FILE) == name:
        return project_root
    for child in sorted(p for p in project_root.iterdir() if p.is_dir()):
        if read_project_name(child / MANIFEST_FILE) == name:
            return child
    raise ConfigurationError(
        f"Package {name!r} not found in {project_root}",
        context={"package": name},
    )


def validate_args(args: argparse.Namespace) -> None:
    if args.runs < 1:
        raise ConfigurationError("--runs must be at least 1", context={"runs": args.runs})
    if args.warmup < 0:
        raise ConfigurationError(
            "--warmup must not be negative", context={"warmup": args.warmup}
        )
    if args.threshold < 0:
        raise ConfigurationError(
            "--threshold must not be negative", context={"threshold": args.threshold}
        )
    if args.unit_timeout is not None and args.unit_timeout <= 0:
        raise ConfigurationError(
            "--unit-timeout must be positive", context={"unit_timeout": args.unit_timeout}
        )


def report_results(results: List[UnitRunResult], quiet: bool = False) -> None:
    """Print the per-unit summary and total time."""
    if not results or quiet:
        return

    print("Summary:", file=sys.stderr)
    for result in results:
        status = "✓" if result.success else "✗"
        print(
            f"  {status} {result.unit.stem} ({result.duration_s:.2f}s, {result.exit_info})",
            file=sys.stderr,
        )
    total = sum(r.duration_s for r in results)
    print(f"Total time: {total:.2f}s", file=sys.stderr)


def run_stress(args: argparse.Namespace, build_driver: Optional[BuildDriver] = None) -> int:
    """
    Discover, build and run the units.

    Returns:
        Exit code (0 = all units passed, 1 = build failure, unit failure or regression)
    """
    validate_args(args)
    normal = not args.quiet

    # Fails on a malformed stress.yaml before anything is built
    config = get_config()
    if config.timeout is not None:
        logger.debug(f"[stress] Per-benchmark timeout {config.timeout:g}s is advisory")

    manifest = find_manifest(args.manifest_path)
    project_root = manifest.resolve().parent
    if args.package:
        project_root = select_package(project_root, args.package)
    logger.debug(f"[stress] Project root: {project_root}")
    if args.verbose:
        print(f"📁 Project root: {project_root}", file=sys.stderr)

    stress_dir = project_root / STRESS_DIR
    units = discover_units(stress_dir, only=args.bin)
    if not units:
        if normal:
            print(f"⚠️  No stress test files found in {stress_dir}", file=sys.stderr)
            print("   Create .py files in stress/ with @stress_test functions", file=sys.stderr)
        return 0

    workspace = BuildWorkspace.create(project_root, units)
    if args.verbose:
        names = ", ".join(u.stem for u in units)
        print(f"🔍 Found {len(units)} stress file(s): {names}", file=sys.stderr)

    build_options = BuildOptions(
        dev=args.dev,
        verbose=args.verbose,
        build_args=shlex.split(args.build_args) if args.build_args else [],
    )
    driver = build_driver or CompileallBuildDriver()

    if not args.no_build:
        if normal:
            print(
                f"🔨 Building {len(units)} stress unit(s) in {build_options.mode} mode...",
                file=sys.stderr,
            )
        try:
            driver.build(workspace, build_options)
        except BuildFailure as e:
            print("\n❌ Build failed!", file=sys.stderr)
            if e.stdout:
                print(e.stdout, file=sys.stderr)
            if e.stderr:
                print(e.stderr, file=sys.stderr)
            print(e.message, file=sys.stderr)
            logger.info(f"[stress] Workspace kept for debugging: {workspace.root}")
            return 1
        if normal:
            print("   Build complete.", file=sys.stderr)

    run_options = RunOptions(
        workload=args.workload,
        runs=args.runs,
        warmup=args.warmup,
        verbose=args.verbose,
        quiet=args.quiet,
        include_ignored=args.include_ignored,
        list=args.list,
        output_dir=args.output_dir,
        baseline=args.baseline,
        threshold=args.threshold,
        fail_fast=not args.no_fail_fast,
        unit_timeout=args.unit_timeout,
        in_process=args.in_process,
    )
    results = ExecutionDriver(run_options).run_all(workspace, driver, build_options)

    report_results(results, quiet=args.quiet)

    failed = [r for r in results if not r.success]
    if failed:
        if normal:
            print(
                f"\n❌ {len(failed)} of {len(results)} stress test(s) failed",
                file=sys.stderr,
            )
        logger.info(f"[stress] Workspace kept for debugging: {workspace.root}")
        return 1

    if normal:
        print(f"\n✅ All {len(results)} stress test(s) passed", file=sys.stderr)

    workspace.cleanup()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, log_file=args.log_file)

    try:
        return run_stress(args)
    except StressError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
