"""
Centralized Logging Configuration for stresslib

Benchmark results own stdout (console reporter, CI annotations), so all
Python logging goes to stderr and, optionally, to a rotating log file.

Usage in any module:
    from stresslib.core.logging_config import setup_logging, get_logger

    # Call once at entry point startup
    setup_logging()

    # Get a logger for your module
    logger = get_logger(__name__)
    logger.info("My message")
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# =============================================================================
# Configuration
# =============================================================================

MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB per file
BACKUP_COUNT = 5  # Keep 5 rotated files

# Default log level (can be overridden by STRESS_LOG_LEVEL env var)
DEFAULT_LOG_LEVEL = "INFO"
LOG_LEVEL_ENV = "STRESS_LOG_LEVEL"

# Log format with timestamp, level, component, and message
LOG_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)-30s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Simplified format for console
CONSOLE_FORMAT = "%(levelname)-5s | %(message)s"

# =============================================================================
# Global State
# =============================================================================

_logging_configured = False
_file_handler: Optional[RotatingFileHandler] = None
_console_handler: Optional[logging.StreamHandler] = None


# =============================================================================
# Setup Functions
# =============================================================================


def setup_logging(
    level: Optional[str] = None,
    log_to_console: bool = True,
    log_file: Optional[Path] = None,
    service_name: str = "stress",
    force: bool = False,
) -> None:
    """
    Configure logging for a stresslib entry point.

    This should be called ONCE at the start of the orchestrator or of a unit.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to STRESS_LOG_LEVEL env var or INFO.
        log_to_console: Whether to log to stderr (default True)
        log_file: Optional path of a rotating log file
        service_name: Logger name used for the startup marker
        force: Reconfigure even if logging was already set up
    """
    global _logging_configured, _file_handler, _console_handler

    if _logging_configured and not force:
        return

    if level is None:
        level = os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL)
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove any existing handlers (prevents duplicates)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # === File Handler ===
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        _file_handler = RotatingFileHandler(
            log_file,
            maxBytes=MAX_LOG_SIZE,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        _file_handler.setLevel(log_level)
        _file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        root_logger.addHandler(_file_handler)

    # === Console Handler (stderr) ===
    if log_to_console:
        _console_handler = logging.StreamHandler(sys.stderr)
        _console_handler.setLevel(log_level)
        _console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        root_logger.addHandler(_console_handler)

    _logging_configured = True

    logger = logging.getLogger(service_name)
    logger.debug(f"Logging initialized at {level.upper()}")
    if log_file is not None:
        logger.debug(f"Log file: {log_file.absolute()}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Usually __name__ to get the module's dotted path

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def reset_logging() -> None:
    """Detach the handlers setup_logging() installed and forget the configured state."""
    global _logging_configured, _file_handler, _console_handler

    root_logger = logging.getLogger()
    if _file_handler is not None:
        root_logger.removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None
    if _console_handler is not None:
        root_logger.removeHandler(_console_handler)
        _console_handler = None
    _logging_configured = False
