"""
Regression Analyzer - Fail a run when benchmarks got slower than baseline.

A benchmark regresses when current / baseline duration exceeds
1 + threshold. Benchmarks are joined by exact name; names present on only
one side are ignored.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from stresslib.benchmark.result import BenchResult, SuiteResult
from stresslib.core.config import DEFAULT_THRESHOLD
from stresslib.core.exceptions import PersistenceFailure

logger = logging.getLogger(__name__)


@dataclass
class Regression:
    """One benchmark that got slower than its baseline."""
    result: BenchResult
    baseline: BenchResult
    ratio: float

    @property
    def name(self) -> str:
        return self.result.name

    @property
    def percent_slower(self) -> float:
        return (self.ratio - 1.0) * 100.0


@dataclass
class RegressionReport:
    """Outcome of comparing a suite against its baseline."""
    threshold: float
    compared: int = 0
    regressions: List[Regression] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.regressions

    @property
    def exit_code(self) -> int:
        """Return exit code for CI (0 = pass, 1 = fail)."""
        return 0 if self.passed else 1

    def summary_lines(self) -> List[str]:
        """Itemized regression lines; empty when nothing regressed."""
        if self.passed:
            return []
        lines = [f"❌ {len(self.regressions)} regression(s) detected!"]
        for r in self.regressions:
            lines.append(f"  {r.name} is {r.percent_slower:.1f}% slower")
        return lines

    @property
    def summary(self) -> str:
        if self.passed:
            return (
                f"PASSED: {self.compared} benchmark(s) within "
                f"{self.threshold * 100:.0f}% of baseline"
            )
        return "\n".join(self.summary_lines())


class RegressionAnalyzer:
    """
    Compares a finished suite against a baseline suite.

    Features:
    - Join by exact benchmark name
    - Single relative threshold (0.05 = 5% slower allowed)
    - Output ordered as in the current suite
    """

    def __init__(self, threshold: float = DEFAULT_THRESHOLD):
        """
        Initialize analyzer.

        Args:
            threshold: Allowed slowdown as a fraction, e.g. 0.05 = 5%
        """
        self.threshold = threshold

    def analyze(self, current: SuiteResult, baseline: SuiteResult) -> RegressionReport:
        """
        Compare current results to baseline.

        Args:
            current: Finished SuiteResult
            baseline: SuiteResult loaded from storage

        Returns:
            RegressionReport with every regressed benchmark
        """
        report = RegressionReport(threshold=self.threshold)

        for result in current.results:
            base = baseline.get(result.name)
            if base is None:
                continue
            ratio = result.compare(base)
            if ratio is None:
                logger.debug(
                    f"[RegressionAnalyzer] Skipping {result.name}: baseline duration is zero"
                )
                continue
            report.compared += 1
            if result.is_regression(base, self.threshold):
                report.regressions.append(
                    Regression(result=result, baseline=base, ratio=ratio)
                )

        if report.regressions:
            logger.info(
                f"[RegressionAnalyzer] {len(report.regressions)} of "
                f"{report.compared} benchmark(s) regressed"
            )
        return report

    def analyze_file(
        self,
        current: SuiteResult,
        baseline_path: Path,
    ) -> Optional[RegressionReport]:
        """
        Compare against a baseline file.

        Returns:
            RegressionReport, or None if the baseline could not be loaded
        """
        try:
            baseline = SuiteResult.load(baseline_path)
        except PersistenceFailure as e:
            logger.warning(f"[RegressionAnalyzer] Could not load baseline: {e.message}")
            return None
        return self.analyze(current, baseline)


def check_regression(
    current: SuiteResult,
    baseline: SuiteResult,
    threshold: float = DEFAULT_THRESHOLD,
) -> RegressionReport:
    """
    Convenience function to check regression.

    Args:
        current: Finished SuiteResult
        baseline: Baseline SuiteResult
        threshold: Allowed slowdown fraction

    Returns:
        RegressionReport
    """
    return RegressionAnalyzer(threshold=threshold).analyze(current, baseline)
