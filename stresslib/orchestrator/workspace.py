"""
Build Workspace - Disposable directory the units are built and run from.

Layout:
    <project>/target/stress-temp/run-<time_ns>-<pid>/
        pyproject.toml     generated descriptor
        bin/<stem>.py      unit copies, each with an entry point

The workspace is removed only after a fully successful run.
"""

import logging
import os
import shutil
import time
import tomllib
from pathlib import Path
from typing import List, Optional, Sequence
from urllib.parse import urlparse
from urllib.request import url2pathname

from stresslib.core.exceptions import ConfigurationError, DiscoveryError
from stresslib.orchestrator.discovery import StressUnit

logger = logging.getLogger(__name__)

FRAMEWORK_NAME = "stresslib"
# Directory holding the stresslib package (source checkout or site-packages)
FRAMEWORK_ROOT = Path(__file__).resolve().parents[2]

TEMP_DIR = Path("target") / "stress-temp"
MANIFEST_FILE = "pyproject.toml"
ENTRY_POINT_MARKER = "stress_main"
ENTRY_POINT = (
    'if __name__ == "__main__":\n'
    "    from stresslib.benchmark.harness import stress_main\n"
    "\n"
    "    raise SystemExit(stress_main())\n"
)


def read_project_name(manifest_path: Path) -> Optional[str]:
    """[project].name from a pyproject.toml, or None if it has none."""
    try:
        with open(manifest_path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        return None
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(
            f"Failed to read {manifest_path}: {e}",
            context={"manifest_path": str(manifest_path)},
        ) from e
    name = data.get("project", {}).get("name")
    return str(name) if name else None


def render_manifest(stamp: str, project_root: Path, project_name: Optional[str]) -> str:
    """Generated pyproject.toml for the workspace."""
    root_uri = project_root.resolve().as_uri()
    if project_name == FRAMEWORK_NAME:
        dependencies = [f"{FRAMEWORK_NAME} @ {root_uri}"]
    else:
        dependencies = [FRAMEWORK_NAME]
        if project_name:
            dependencies.append(f"{project_name} @ {root_uri}")

    deps = "".join(f'    "{d}",\n' for d in dependencies)
    return (
        "[project]\n"
        f'name = "stress-temp-{stamp}"\n'
        'version = "0.0.0"\n'
        "dependencies = [\n"
        f"{deps}"
        "]\n"
    )


def dependency_roots(manifest_path: Path) -> List[Path]:
    """
    Import roots for the dependencies a workspace descriptor declares.

    A `name @ file://...` reference resolves to that directory (plus its
    src/ when present); the bare framework name resolves to FRAMEWORK_ROOT.

    Raises:
        ConfigurationError: If the descriptor is missing or unreadable
    """
    try:
        with open(manifest_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(
            f"Failed to read workspace descriptor {manifest_path}: {e}",
            context={"manifest_path": str(manifest_path)},
        ) from e

    roots: List[Path] = []
    for dependency in data.get("project", {}).get("dependencies", []):
        name, sep, reference = (part.strip() for part in dependency.partition("@"))
        if sep:
            root = Path(url2pathname(urlparse(reference).path))
        elif name == FRAMEWORK_NAME:
            root = FRAMEWORK_ROOT
        else:
            logger.warning(f"[BuildWorkspace] Ignoring dependency without a path: {dependency}")
            continue
        roots.append(root)
        if (root / "src").is_dir():
            roots.append(root / "src")
    return roots


def with_entry_point(source: str) -> str:
    """Unit source with the harness entry point appended, unless it has one."""
    if ENTRY_POINT_MARKER in source:
        return source
    return f"{source.rstrip()}\n\n\n{ENTRY_POINT}"


class BuildWorkspace:
    """
    A materialized workspace for one orchestrator run.

    Features:
    - Unique directory per run (time + pid)
    - Generated descriptor naming the framework and host project
    - One copy of each unit under bin/
    """

    def __init__(self, root: Path, project_root: Path, units: Sequence[StressUnit]):
        self.root = root
        self.project_root = project_root
        self.units: List[StressUnit] = list(units)

    @property
    def manifest_path(self) -> Path:
        return self.root / MANIFEST_FILE

    @property
    def bin_dir(self) -> Path:
        return self.root / "bin"

    def unit_path(self, unit: StressUnit) -> Path:
        return self.bin_dir / f"{unit.stem}.py"

    @classmethod
    def create(
        cls,
        project_root: Path,
        units: Sequence[StressUnit],
        base_dir: Optional[Path] = None,
    ) -> "BuildWorkspace":
        """
        Materialize a new workspace.

        Args:
            project_root: Host project directory
            units: Units to copy in
            base_dir: Parent of the run directory (default: <project>/target/stress-temp)

        Raises:
            DiscoveryError: If a unit source cannot be read or copied
        """
        project_root = Path(project_root)
        stamp = f"{time.time_ns()}-{os.getpid()}"
        parent = Path(base_dir) if base_dir is not None else project_root / TEMP_DIR
        root = parent / f"run-{stamp}"

        workspace = cls(root, project_root, units)
        workspace.bin_dir.mkdir(parents=True, exist_ok=False)

        project_name = read_project_name(project_root / MANIFEST_FILE)
        workspace.manifest_path.write_text(
            render_manifest(stamp, project_root, project_name), encoding="utf-8"
        )

        for unit in workspace.units:
            try:
                source = unit.path.read_text(encoding="utf-8")
                workspace.unit_path(unit).write_text(
                    with_entry_point(source), encoding="utf-8"
                )
            except OSError as e:
                raise DiscoveryError(
                    f"Failed to copy {unit.path}: {e}",
                    context={"unit": unit.stem},
                ) from e

        logger.debug(f"[BuildWorkspace] Created {root} with {len(workspace.units)} unit(s)")
        return workspace

    def python_path(self) -> List[str]:
        """Import roots of the dependencies declared in the workspace descriptor."""
        paths: List[str] = []
        for root in dependency_roots(self.manifest_path):
            path = str(root.resolve())
            if path not in paths:
                paths.append(path)
        return paths

    def cleanup(self) -> None:
        """Delete the workspace directory."""
        try:
            shutil.rmtree(self.root)
            logger.debug(f"[BuildWorkspace] Removed {self.root}")
        except OSError as e:
            logger.warning(f"[BuildWorkspace] Failed to clean up {self.root}: {e}")
