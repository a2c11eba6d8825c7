"""
Result Aggregator - Reduce N measured iterations to one BenchResult.

The representative duration is the upper median of the raw runs
(sorted(runs)[len // 2]); no outlier rejection or statistical sampling.
"""

import logging
from typing import Dict, List, Optional, Sequence

from stresslib.benchmark.context import StressContext
from stresslib.benchmark.result import BenchResult
from stresslib.core.exceptions import MeasurementProtocolViolation

logger = logging.getLogger(__name__)


def median_ns(durations: Sequence[int]) -> int:
    """
    Upper median of a non-empty sequence of durations.

    For [5, 1, 3] this is 3; for [4, 1, 3, 2] it is 3.
    """
    if not durations:
        raise ValueError("Cannot take the median of zero runs")
    ordered = sorted(durations)
    return ordered[len(ordered) // 2]


def aggregate(name: str, contexts: Sequence[StressContext]) -> BenchResult:
    """
    Merge measured iteration contexts into one result.

    Bytes, elements and tags are merged last-write-wins in iteration order.
    Raw durations keep iteration order.

    Args:
        name: Fully qualified result name
        contexts: One context per measured iteration (warmups excluded)

    Raises:
        MeasurementProtocolViolation: If any context was never measured
    """
    durations: List[int] = []
    bytes_: Optional[int] = None
    elements: Optional[int] = None
    tags: Dict[str, str] = {}

    for ctx in contexts:
        if ctx.duration_ns is None:
            raise MeasurementProtocolViolation(
                ctx.name or name,
                "did not call a measurement method. "
                "Every benchmark must measure exactly one operation.",
            )
        durations.append(ctx.duration_ns)
        if ctx.bytes is not None:
            bytes_ = ctx.bytes
        if ctx.elements is not None:
            elements = ctx.elements
        tags.update(ctx.tags)

    result = BenchResult(
        name=name,
        duration_ns=median_ns(durations),
        bytes=bytes_,
        elements=elements,
        all_runs_ns=durations,
        tags=tags,
    )
    logger.debug(
        f"[Aggregator] {name}: median {result.duration_ns}ns over {len(durations)} run(s)"
    )
    return result
