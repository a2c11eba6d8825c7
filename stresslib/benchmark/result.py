"""
Benchmark Results - Per-benchmark and per-suite result records.

Durations are integer nanoseconds everywhere, in memory and on disk, so a
saved suite loads back bit-identical.
"""

import json
import logging
import math
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from stresslib.core.exceptions import PersistenceFailure

logger = logging.getLogger(__name__)

NANOS_PER_SEC = 1_000_000_000


@dataclass
class BenchResult:
    """Result of a single benchmark: the median run plus every raw run."""
    name: str
    duration_ns: int
    bytes: Optional[int] = None
    elements: Optional[int] = None
    all_runs_ns: List[int] = field(default_factory=list)
    tags: Dict[str, str] = field(default_factory=dict)

    @property
    def duration_secs(self) -> float:
        return self.duration_ns / NANOS_PER_SEC

    def bytes_per_sec(self) -> Optional[float]:
        """Bytes per second at the median duration, if bytes were recorded."""
        if self.bytes is None or self.duration_ns <= 0:
            return None
        return self.bytes / self.duration_secs

    def elements_per_sec(self) -> Optional[float]:
        """Elements per second at the median duration, if elements were recorded."""
        if self.elements is None or self.duration_ns <= 0:
            return None
        return self.elements / self.duration_secs

    def throughput(self) -> Optional[Tuple[float, str]]:
        """Primary throughput as (value, unit); bytes win over elements."""
        bps = self.bytes_per_sec()
        if bps is not None:
            return bps, "bytes/s"
        eps = self.elements_per_sec()
        if eps is not None:
            return eps, "elements/s"
        return None

    def min_duration_ns(self) -> Optional[int]:
        return min(self.all_runs_ns) if self.all_runs_ns else None

    def max_duration_ns(self) -> Optional[int]:
        return max(self.all_runs_ns) if self.all_runs_ns else None

    def std_dev_ns(self) -> Optional[float]:
        """Sample standard deviation of the raw runs (None for fewer than 2)."""
        n = len(self.all_runs_ns)
        if n < 2:
            return None
        mean = sum(self.all_runs_ns) / n
        variance = sum((d - mean) ** 2 for d in self.all_runs_ns) / (n - 1)
        return math.sqrt(variance)

    def compare(self, baseline: "BenchResult") -> Optional[float]:
        """
        Ratio of this duration to the baseline's.

        > 1.0 means slower. None when the baseline duration is zero.
        """
        if baseline.duration_ns <= 0:
            return None
        return self.duration_ns / baseline.duration_ns

    def is_regression(self, baseline: "BenchResult", threshold: float) -> bool:
        """True if slower than baseline by more than threshold (0.05 = 5%)."""
        ratio = self.compare(baseline)
        return ratio is not None and ratio > 1.0 + threshold

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "duration_ns": self.duration_ns,
        }
        if self.bytes is not None:
            data["bytes"] = self.bytes
        if self.elements is not None:
            data["elements"] = self.elements
        data["all_runs_ns"] = list(self.all_runs_ns)
        data["tags"] = dict(self.tags)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BenchResult":
        duration = data.get("duration_ns", data.get("duration", 0))
        all_runs = data.get("all_runs_ns", data.get("all_runs", []))
        return cls(
            name=data["name"],
            duration_ns=int(duration),
            bytes=data.get("bytes"),
            elements=data.get("elements"),
            all_runs_ns=[int(d) for d in all_runs],
            tags={str(k): str(v) for k, v in (data.get("tags") or {}).items()},
        )


@dataclass
class SuiteResult:
    """Results of one benchmark suite run."""
    suite: str
    results: List[BenchResult] = field(default_factory=list)
    total_duration_ns: int = 0
    started_at: str = ""
    runs: int = 1
    warmup_runs: int = 0
    revision: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    def get(self, name: str) -> Optional[BenchResult]:
        """First result with exactly this name."""
        for result in self.results:
            if result.name == name:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "suite": self.suite,
            "results": [r.to_dict() for r in self.results],
            "total_duration_ns": self.total_duration_ns,
            "started_at": self.started_at,
            "runs": self.runs,
            "warmup_runs": self.warmup_runs,
        }
        if self.revision is not None:
            data["revision"] = self.revision
        data["metadata"] = dict(self.metadata)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SuiteResult":
        return cls(
            suite=data.get("suite", ""),
            results=[BenchResult.from_dict(r) for r in data.get("results", [])],
            total_duration_ns=int(data.get("total_duration_ns", data.get("total_duration", 0))),
            started_at=str(data.get("started_at", "")),
            runs=int(data.get("runs", 1)),
            warmup_runs=int(data.get("warmup_runs", 0)),
            revision=data.get("revision", data.get("git_sha")),
            metadata={str(k): str(v) for k, v in (data.get("metadata") or {}).items()},
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def save(self, path: Path) -> Path:
        """
        Write this suite as JSON, atomically.

        Raises:
            PersistenceFailure: If the file cannot be written
        """
        write_atomic(Path(path), self.to_json())
        return Path(path)

    @classmethod
    def load(cls, path: Path) -> "SuiteResult":
        """
        Load a suite previously written by save().

        Raises:
            PersistenceFailure: If the file is missing or malformed
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return cls.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise PersistenceFailure(path, str(e)) from e


def write_atomic(path: Path, content: str) -> None:
    """Write text via a sibling temp file and os.replace."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as e:
        raise PersistenceFailure(path, str(e)) from e
