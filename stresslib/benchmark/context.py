"""
Stress Context - Per-iteration timing control for benchmark bodies.

Every iteration receives a fresh StressContext. The body does its setup,
makes exactly one measurement call, then tears down:

    def write_file(ctx):
        data = b"x" * 1024            # setup, not timed
        ctx.set_bytes(len(data))
        ctx.measure(lambda: path.write_bytes(data))
        path.unlink()                 # teardown, not timed
"""

import time
from datetime import timedelta
from typing import Any, Callable, Dict, Optional, TypeVar, Union

from stresslib.core.exceptions import MeasurementProtocolViolation

T = TypeVar("T")
R = TypeVar("R")


class StressContext:
    """
    Scratch object for one benchmark iteration.

    Measurement calls:
    - measure(fn): time a bare closure
    - measure_ref(target, fn): time fn(target) where fn only reads target
    - measure_mut(target, fn): time fn(target) where fn may mutate target
    - record_duration(d): record an externally measured duration

    Exactly one of them must be called per iteration.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self.duration_ns: Optional[int] = None
        self.bytes: Optional[int] = None
        self.elements: Optional[int] = None
        self.tags: Dict[str, str] = {}

    @property
    def measured(self) -> bool:
        return self.duration_ns is not None

    def set_bytes(self, count: int) -> None:
        """Record bytes processed, enabling bytes/sec reporting."""
        self.bytes = int(count)

    def set_elements(self, count: int) -> None:
        """Record elements/operations processed, enabling ops/sec reporting."""
        self.elements = int(count)

    def tag(self, key: str, value: Any) -> None:
        """Add a custom tag; a later value for the same key wins."""
        self.tags[str(key)] = str(value)

    def measure(self, fn: Callable[[], R]) -> R:
        """
        Time a single-shot operation.

        Everything before this call is setup, everything after is teardown.

        Returns:
            Whatever fn returns
        """
        self._check_not_measured()
        start = time.perf_counter_ns()
        result = fn()
        self._set_duration(time.perf_counter_ns() - start)
        return result

    def measure_ref(self, target: T, fn: Callable[[T], R]) -> R:
        """Time fn(target); use when target is needed again after measurement."""
        self._check_not_measured()
        start = time.perf_counter_ns()
        result = fn(target)
        self._set_duration(time.perf_counter_ns() - start)
        return result

    def measure_mut(self, target: T, fn: Callable[[T], R]) -> R:
        """Time fn(target) where fn mutates target in place."""
        self._check_not_measured()
        start = time.perf_counter_ns()
        result = fn(target)
        self._set_duration(time.perf_counter_ns() - start)
        return result

    def record_duration(self, duration: Union[int, timedelta]) -> None:
        """
        Record a duration measured elsewhere.

        Args:
            duration: Integer nanoseconds or a timedelta
        """
        self._check_not_measured()
        if isinstance(duration, timedelta):
            # timedelta has microsecond resolution; keep integer arithmetic
            nanos = (
                (duration.days * 86_400 + duration.seconds) * 1_000_000
                + duration.microseconds
            ) * 1_000
        else:
            nanos = int(duration)
        if nanos < 0:
            raise ValueError(f"Duration must not be negative, got {nanos}ns")
        self._set_duration(nanos)

    def _check_not_measured(self) -> None:
        if self.duration_ns is not None:
            raise MeasurementProtocolViolation(
                self.name,
                "called a measurement method more than once in one iteration. "
                "Every benchmark must measure exactly one operation.",
            )

    def _set_duration(self, nanos: int) -> None:
        self.duration_ns = nanos
