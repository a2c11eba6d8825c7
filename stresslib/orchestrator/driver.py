"""
Execution Driver - Run built units one after another and collect outcomes.

Units run as subprocesses by default. Output is streamed live in verbose
mode; otherwise it is captured and echoed once the unit exits (or
swallowed entirely in quiet mode). An optional whole-unit timeout kills the
process and records the unit as failed. The per-benchmark BENCH_TIMEOUT_SECS
is not enforced here; units only warn about it.
"""

import contextlib
import io
import logging
import os
import runpy
import subprocess
import sys
import time
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from stresslib.benchmark import registry as bench_registry
from stresslib.benchmark.harness import stress_main, suite_name
from stresslib.core.config import DEFAULT_RUNS, DEFAULT_THRESHOLD, DEFAULT_WARMUP
from stresslib.core.exceptions import ExecutionFailure, UnitNotFoundAfterBuild
from stresslib.orchestrator.build import BuildDriver, BuildOptions
from stresslib.orchestrator.discovery import StressUnit
from stresslib.orchestrator.workspace import BuildWorkspace

logger = logging.getLogger(__name__)


@dataclass
class RunOptions:
    """Flags forwarded to every unit plus driver behaviour."""
    workload: Optional[str] = None
    runs: int = DEFAULT_RUNS
    warmup: int = DEFAULT_WARMUP
    verbose: bool = False
    quiet: bool = False
    include_ignored: bool = False
    list: bool = False
    output_dir: Optional[Path] = None
    baseline: Optional[Path] = None
    threshold: float = DEFAULT_THRESHOLD
    fail_fast: bool = True
    unit_timeout: Optional[float] = None
    in_process: bool = False

    @property
    def is_normal(self) -> bool:
        return not self.quiet


def build_passthrough_args(options: RunOptions) -> List[str]:
    """Unit arguments; only values that differ from the defaults are sent."""
    args: List[str] = []
    if options.workload is not None:
        args += ["--workload", options.workload]
    if options.runs != DEFAULT_RUNS:
        args += ["--runs", str(options.runs)]
    if options.warmup != DEFAULT_WARMUP:
        args += ["--warmup", str(options.warmup)]
    if options.verbose:
        args.append("--verbose")
    if options.quiet:
        args.append("--quiet")
    if options.include_ignored:
        args.append("--include-ignored")
    if options.list:
        args.append("--list")
    if options.output_dir is not None:
        args += ["--output-dir", str(options.output_dir)]
    if options.baseline is not None:
        args += ["--baseline", str(options.baseline)]
    if abs(options.threshold - DEFAULT_THRESHOLD) > sys.float_info.epsilon:
        args += ["--threshold", str(options.threshold)]
    return args


@dataclass
class UnitRunResult:
    """Outcome of running one unit."""
    unit: StressUnit
    returncode: Optional[int]
    duration_s: float
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def exit_info(self) -> str:
        if self.timed_out:
            return "timeout"
        if self.returncode is None or self.returncode < 0:
            return "signal"
        return f"exit {self.returncode}"


def _text(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


class ExecutionDriver:
    """
    Runs units sequentially.

    Features:
    - Minimal forwarded argument set
    - Live or captured output depending on verbosity
    - Timeout enforcement by killing the unit
    - Fail-fast unless disabled
    """

    def __init__(self, options: RunOptions, env: Optional[Dict[str, str]] = None):
        self.options = options
        self.base_env = dict(env) if env is not None else dict(os.environ)

    def unit_env(self, python_path: Sequence[str]) -> Dict[str, str]:
        env = dict(self.base_env)
        existing = env.get("PYTHONPATH")
        parts = list(python_path) + ([existing] if existing else [])
        env["PYTHONPATH"] = os.pathsep.join(parts)
        return env

    def run_all(
        self,
        workspace: BuildWorkspace,
        driver: BuildDriver,
        build_options: BuildOptions,
    ) -> List[UnitRunResult]:
        """
        Run every workspace unit in order.

        Units whose executable is missing are skipped with a warning. With
        fail-fast, the first failed unit stops the run.
        """
        results: List[UnitRunResult] = []
        python_path = workspace.python_path()

        for unit in workspace.units:
            command = driver.locate(workspace, unit, build_options)
            if command is None:
                missing = UnitNotFoundAfterBuild(unit.stem, workspace.unit_path(unit))
                if self.options.is_normal:
                    print(f"⚠️  {missing.message}", file=sys.stderr)
                logger.warning(f"[ExecutionDriver] {missing.message}")
                continue

            if self.options.in_process:
                result = self.run_in_process(unit, workspace.unit_path(unit), python_path)
            else:
                result = self.run_unit(unit, command, python_path)
            results.append(result)

            if not result.success:
                failure = ExecutionFailure(unit.stem, result.exit_info, result.returncode)
                logger.info(f"[ExecutionDriver] {failure.message}")
                if self.options.fail_fast:
                    logger.info("[ExecutionDriver] Fail-fast: skipping remaining units")
                    break

        return results

    def run_unit(
        self,
        unit: StressUnit,
        command: Sequence[str],
        python_path: Sequence[str] = (),
    ) -> UnitRunResult:
        """Run one unit as a subprocess."""
        opts = self.options
        if opts.is_normal:
            print(f"\n🏃 Running stress test: {unit.stem}", file=sys.stderr, flush=True)

        cmd = [*command, *build_passthrough_args(opts)]
        logger.debug(f"[ExecutionDriver] Executing: {cmd}")

        start = time.perf_counter()
        try:
            if opts.verbose:
                completed = subprocess.run(
                    cmd, env=self.unit_env(python_path), timeout=opts.unit_timeout
                )
            else:
                completed = subprocess.run(
                    cmd,
                    env=self.unit_env(python_path),
                    capture_output=True,
                    text=True,
                    timeout=opts.unit_timeout,
                )
            result = UnitRunResult(
                unit=unit,
                returncode=completed.returncode,
                duration_s=time.perf_counter() - start,
                stdout=_text(completed.stdout),
                stderr=_text(completed.stderr),
            )
        except subprocess.TimeoutExpired as e:
            result = UnitRunResult(
                unit=unit,
                returncode=None,
                duration_s=time.perf_counter() - start,
                stdout=_text(e.stdout),
                stderr=_text(e.stderr),
                timed_out=True,
            )
            logger.warning(
                f"[ExecutionDriver] {unit.stem} killed after {opts.unit_timeout:g}s timeout"
            )
        except OSError as e:
            result = UnitRunResult(
                unit=unit,
                returncode=None,
                duration_s=time.perf_counter() - start,
                stderr=f"Failed to execute {command[-1]}: {e}\n",
            )

        self._finish(result)
        return result

    def run_in_process(
        self,
        unit: StressUnit,
        path: Path,
        python_path: Sequence[str] = (),
    ) -> UnitRunResult:
        """
        Run one unit inside this interpreter.

        The unit registers into a fresh registry; output is always captured.
        No timeout is enforced here.
        """
        if self.options.is_normal:
            print(f"\n🏃 Running stress test: {unit.stem}", file=sys.stderr, flush=True)

        out, err = io.StringIO(), io.StringIO()
        added = [p for p in python_path if p not in sys.path]
        sys.path[:0] = added

        start = time.perf_counter()
        try:
            with bench_registry.isolated() as registry, \
                    contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
                try:
                    registry.initialize(
                        lambda: runpy.run_path(str(path), run_name=unit.stem)
                    )
                    returncode = stress_main(
                        build_passthrough_args(self.options),
                        registry=registry,
                        suite=suite_name(str(path)),
                    )
                except SystemExit as e:
                    returncode = e.code if isinstance(e.code, int) else 1
                except Exception:
                    traceback.print_exc()
                    returncode = 1
        finally:
            for p in added:
                if p in sys.path:
                    sys.path.remove(p)

        result = UnitRunResult(
            unit=unit,
            returncode=returncode,
            duration_s=time.perf_counter() - start,
            stdout=out.getvalue(),
            stderr=err.getvalue(),
        )
        self._finish(result)
        return result

    def _finish(self, result: UnitRunResult) -> None:
        opts = self.options
        if opts.is_normal and (not opts.verbose or opts.in_process):
            if result.stdout:
                sys.stdout.write(result.stdout)
                sys.stdout.flush()
            if result.stderr:
                sys.stderr.write(result.stderr)
                sys.stderr.flush()

        if opts.verbose:
            print(
                f"   Completed in {result.duration_s:.2f}s with {result.exit_info}",
                file=sys.stderr,
            )
