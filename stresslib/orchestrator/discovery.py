"""
Unit Discovery - Find stress units in a project's stress/ directory.

A unit is one `*.py` file directly inside stress/. Files whose name starts
with "_" are helpers, not units.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from stresslib.core.exceptions import DiscoveryError

logger = logging.getLogger(__name__)

STRESS_DIR = "stress"
EXECUTABLE_PREFIX = "stress_"


@dataclass(frozen=True)
class StressUnit:
    """A discovered unit source file."""
    path: Path
    stem: str

    @property
    def executable_name(self) -> str:
        return f"{EXECUTABLE_PREFIX}{self.stem}"

    @classmethod
    def from_path(cls, path: Path) -> Optional["StressUnit"]:
        path = Path(path)
        if path.suffix != ".py" or path.stem.startswith("_"):
            return None
        return cls(path=path, stem=path.stem)


def discover_units(stress_dir: Path, only: Optional[str] = None) -> List[StressUnit]:
    """
    Discover units, sorted by stem.

    Args:
        stress_dir: Directory to scan (a missing directory yields no units)
        only: Keep just the unit whose stem or executable name equals this

    Returns:
        List of StressUnits in lexical stem order

    Raises:
        DiscoveryError: If the directory exists but cannot be read
    """
    stress_dir = Path(stress_dir)
    if not stress_dir.exists():
        logger.debug(f"[Discovery] No stress directory at {stress_dir}")
        return []

    try:
        entries = list(stress_dir.iterdir())
    except OSError as e:
        raise DiscoveryError(
            f"Failed to read {stress_dir}: {e}",
            context={"stress_dir": str(stress_dir)},
        ) from e

    units = []
    for path in entries:
        if not path.is_file():
            continue
        unit = StressUnit.from_path(path)
        if unit is None:
            continue
        if only is not None and only not in (unit.stem, unit.executable_name):
            continue
        units.append(unit)

    units.sort(key=lambda u: u.stem)
    logger.debug(f"[Discovery] Found {len(units)} unit(s) in {stress_dir}")
    return units
