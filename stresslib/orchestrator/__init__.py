"""
Stress Orchestrator - Discover units, build them once, run them in order.

Usage:
    from stresslib.orchestrator import main

    sys.exit(main(["--runs", "3"]))
"""

from stresslib.orchestrator.discovery import (
    StressUnit,
    discover_units,
)

from stresslib.orchestrator.workspace import BuildWorkspace

from stresslib.orchestrator.build import (
    BuildDriver,
    BuildOptions,
    CompileallBuildDriver,
)

from stresslib.orchestrator.driver import (
    ExecutionDriver,
    RunOptions,
    UnitRunResult,
    build_passthrough_args,
)

from stresslib.orchestrator.cli import (
    main,
    run_stress,
)

__all__ = [
    # Discovery
    "StressUnit",
    "discover_units",
    # Workspace
    "BuildWorkspace",
    # Build
    "BuildDriver",
    "BuildOptions",
    "CompileallBuildDriver",
    # Execution
    "ExecutionDriver",
    "RunOptions",
    "UnitRunResult",
    "build_passthrough_args",
    # CLI
    "main",
    "run_stress",
]
