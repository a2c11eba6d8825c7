"""Custom exceptions for stresslib."""

from typing import Any, Optional


class StressError(Exception):
    """Base exception for stresslib."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ConfigurationError(StressError):
    """Invalid flag, override or configuration value."""

    pass


class DiscoveryError(StressError):
    """Unit discovery problems (missing or unreadable stress directory)."""

    pass


class BuildFailure(StressError):
    """
    The build step failed.

    Carries the captured build tool output so it can be surfaced verbatim.
    """

    def __init__(
        self,
        returncode: Optional[int],
        stdout: str = "",
        stderr: str = "",
        context: Optional[dict[str, Any]] = None,
    ):
        message = f"Build failed with exit code: {returncode}"
        super().__init__(message, context)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class UnitNotFoundAfterBuild(StressError):
    """A unit's executable was not produced by the build."""

    def __init__(
        self,
        unit: str,
        expected: Any,
        context: Optional[dict[str, Any]] = None,
    ):
        message = f"Executable not found: {unit} (expected at {expected})"
        super().__init__(message, context)
        self.unit = unit
        self.expected = expected


class ExecutionFailure(StressError):
    """A unit could not be started or exited non-zero."""

    def __init__(
        self,
        unit: str,
        error: str,
        returncode: Optional[int] = None,
        context: Optional[dict[str, Any]] = None,
    ):
        message = f"Unit {unit} failed: {error}"
        super().__init__(message, context)
        self.unit = unit
        self.error = error
        self.returncode = returncode


class MeasurementProtocolViolation(StressError):
    """
    A benchmark body broke the single-shot measurement protocol.

    Raised when a measured iteration never calls a measurement method, or
    calls one more than once.
    """

    def __init__(
        self,
        benchmark: str,
        reason: str,
        context: Optional[dict[str, Any]] = None,
    ):
        message = f"Benchmark '{benchmark}' {reason}"
        super().__init__(message, context)
        self.benchmark = benchmark
        self.reason = reason


class ReporterFailure(StressError):
    """A reporter sink failed while handling an event."""

    def __init__(
        self,
        reporter: str,
        event: str,
        error: str,
        context: Optional[dict[str, Any]] = None,
    ):
        message = f"Reporter {reporter} failed during {event}: {error}"
        super().__init__(message, context)
        self.reporter = reporter
        self.event = event
        self.error = error


class PersistenceFailure(StressError):
    """Writing or reading a result artifact failed."""

    def __init__(
        self,
        path: Any,
        error: str,
        context: Optional[dict[str, Any]] = None,
    ):
        message = f"Failed to persist {path}: {error}"
        super().__init__(message, context)
        self.path = path
        self.error = error
