"""
Build Drivers - Turn the workspace units into runnable commands.

The default driver byte-compiles every unit with a single
`python -m compileall` call. Optimized (-O) unless dev mode is requested.
"""

import logging
import subprocess
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from stresslib.core.exceptions import BuildFailure
from stresslib.orchestrator.discovery import StressUnit
from stresslib.orchestrator.workspace import BuildWorkspace

logger = logging.getLogger(__name__)


@dataclass
class BuildOptions:
    """How to build and launch units."""
    dev: bool = False
    verbose: bool = False
    build_args: List[str] = field(default_factory=list)
    python: str = sys.executable

    @property
    def mode(self) -> str:
        return "debug" if self.dev else "optimized"

    def interpreter(self) -> List[str]:
        """Interpreter command prefix for this mode."""
        return [self.python] if self.dev else [self.python, "-O"]


class BuildDriver(ABC):
    """Builds every unit of a workspace in one invocation and locates the results."""

    @abstractmethod
    def build(self, workspace: BuildWorkspace, options: BuildOptions) -> None:
        """
        Build all workspace units.

        Raises:
            BuildFailure: If the build tool fails
        """

    @abstractmethod
    def locate(
        self,
        workspace: BuildWorkspace,
        unit: StressUnit,
        options: BuildOptions,
    ) -> Optional[List[str]]:
        """Command that runs the built unit, or None if the build produced nothing."""


class CompileallBuildDriver(BuildDriver):
    """
    Byte-compiles units with compileall.

    In verbose mode the compiler output goes straight to the console;
    otherwise it is captured and attached to the BuildFailure.
    """

    def command(self, workspace: BuildWorkspace, options: BuildOptions) -> List[str]:
        return [
            *options.interpreter(),
            "-m",
            "compileall",
            "-q",
            str(workspace.bin_dir),
            *options.build_args,
        ]

    def build(self, workspace: BuildWorkspace, options: BuildOptions) -> None:
        cmd = self.command(workspace, options)
        logger.debug(f"[CompileallBuildDriver] Running: {cmd}")

        try:
            if options.verbose:
                result = subprocess.run(cmd, cwd=str(workspace.root))
            else:
                result = subprocess.run(
                    cmd,
                    cwd=str(workspace.root),
                    capture_output=True,
                    text=True,
                )
        except OSError as e:
            raise BuildFailure(None, stderr=str(e), context={"command": cmd}) from e

        if result.returncode != 0:
            raise BuildFailure(
                result.returncode,
                stdout=result.stdout or "",
                stderr=result.stderr or "",
                context={"command": cmd},
            )

    def locate(
        self,
        workspace: BuildWorkspace,
        unit: StressUnit,
        options: BuildOptions,
    ) -> Optional[List[str]]:
        path = workspace.unit_path(unit)
        if not path.is_file():
            return None
        return [*options.interpreter(), str(path)]
