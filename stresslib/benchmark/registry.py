"""
Benchmark Registry - Process-wide list of registered benchmark bodies.

Benchmarks register themselves at import time:

    from stresslib.benchmark import stress_test

    @stress_test
    def compaction(ctx):
        ...

    @stress_test(ignore=True)
    def full_recovery(ctx):
        ...

The registry is append-only and keeps registration order.
"""

import logging
import sys
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BenchmarkDescriptor:
    """A registered benchmark."""
    name: str
    group: str
    body: Callable
    ignored: bool = False

    @property
    def qualified_name(self) -> str:
        """Name used for results: "<group>::<name>"."""
        return f"{self.group}::{self.name}" if self.group else self.name


def matches_pattern(text: str, pattern: str) -> bool:
    """
    Case-insensitive glob match supporting "*".

    Without "*" the pattern is a substring match. With "*", the first
    segment must match at the start, the last segment at the end (unless
    the pattern ends with "*"), and middle segments must appear in order.
    """
    pattern = pattern.lower()
    text = text.lower()

    if "*" not in pattern:
        return pattern in text

    parts = pattern.split("*")
    remaining = text
    for i, part in enumerate(parts):
        if not part:
            continue
        if i == 0:
            if not remaining.startswith(part):
                return False
            remaining = remaining[len(part):]
        elif i == len(parts) - 1 and not pattern.endswith("*"):
            if not remaining.endswith(part):
                return False
        else:
            pos = remaining.find(part)
            if pos < 0:
                return False
            remaining = remaining[pos + len(part):]
    return True


def module_path(body: Callable) -> str:
    """Module of a benchmark body; a script run as __main__ uses its file stem."""
    module = getattr(body, "__module__", None) or ""
    if module == "__main__":
        main_file = getattr(sys.modules.get("__main__"), "__file__", None)
        if main_file:
            return Path(main_file).stem
    return module


class BenchmarkRegistry:
    """
    Ordered, append-only collection of BenchmarkDescriptors.

    Features:
    - Registration order is preserved
    - Pattern + ignored-flag selection
    - One-time loader initialization guarded by a lock
    """

    def __init__(self):
        self._benchmarks: List[BenchmarkDescriptor] = []
        self._lock = threading.Lock()
        self._init_lock = threading.Lock()
        self._initialized = False

    def register(
        self,
        body: Callable,
        name: Optional[str] = None,
        group: Optional[str] = None,
        ignored: bool = False,
    ) -> BenchmarkDescriptor:
        """
        Register a benchmark body.

        Args:
            body: Callable taking a StressContext
            name: Benchmark name (default: the function name)
            group: Module path used for grouping and pattern matching
            ignored: Skip unless --include-ignored is given

        Returns:
            The new BenchmarkDescriptor
        """
        descriptor = BenchmarkDescriptor(
            name=name or getattr(body, "__name__", repr(body)),
            group=group if group is not None else module_path(body),
            body=body,
            ignored=ignored,
        )
        with self._lock:
            self._benchmarks.append(descriptor)
        logger.debug(f"[BenchmarkRegistry] Registered {descriptor.qualified_name}")
        return descriptor

    def initialize(self, loader: Callable[[], None]) -> bool:
        """
        Run a loader exactly once for this registry.

        Concurrent callers block until the first loader call returns.

        Returns:
            True if this call ran the loader
        """
        with self._init_lock:
            if self._initialized:
                return False
            loader()
            self._initialized = True
            return True

    def benchmarks(self) -> Tuple[BenchmarkDescriptor, ...]:
        with self._lock:
            return tuple(self._benchmarks)

    def select(
        self,
        pattern: Optional[str] = None,
        include_ignored: bool = False,
    ) -> List[BenchmarkDescriptor]:
        """
        Benchmarks to run, in registration order.

        A pattern matches against either the benchmark name or its group.
        """
        selected = []
        for bench in self.benchmarks():
            if bench.ignored and not include_ignored:
                continue
            if pattern and not (
                matches_pattern(bench.name, pattern)
                or matches_pattern(bench.group, pattern)
            ):
                continue
            selected.append(bench)
        return selected

    def names(self) -> List[str]:
        return [b.name for b in self.benchmarks()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._benchmarks)

    def __iter__(self) -> Iterator[BenchmarkDescriptor]:
        return iter(self.benchmarks())


_registry = BenchmarkRegistry()
_registry_guard = threading.Lock()


def get_registry() -> BenchmarkRegistry:
    """The process-wide registry."""
    return _registry


@contextmanager
def isolated() -> Iterator[BenchmarkRegistry]:
    """Swap in an empty process-wide registry for the duration of the block."""
    global _registry
    with _registry_guard:
        previous = _registry
        _registry = BenchmarkRegistry()
    try:
        yield _registry
    finally:
        with _registry_guard:
            _registry = previous


def stress_test(
    body: Optional[Callable] = None,
    *,
    name: Optional[str] = None,
    ignore: bool = False,
) -> Callable:
    """
    Decorator registering a benchmark with the process-wide registry.

    Usable bare (@stress_test) or with options (@stress_test(ignore=True)).
    The decorated function is returned unchanged.
    """

    def decorator(fn: Callable) -> Callable:
        get_registry().register(fn, name=name, ignored=ignore)
        return fn

    if body is not None:
        return decorator(body)
    return decorator


def list_benchmarks() -> List[str]:
    """Names of all registered benchmarks, in registration order."""
    return get_registry().names()


def benchmark_count() -> int:
    return len(get_registry())
