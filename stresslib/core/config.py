"""Configuration management for stresslib."""

import logging
import subprocess
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from stresslib.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_RUNS = 1
DEFAULT_WARMUP = 0
DEFAULT_OUTPUT_DIR = Path("target/stress")
DEFAULT_THRESHOLD = 0.05  # 5% slower allowed
CONFIG_FILE = "stress.yaml"


class RunnerConfig(BaseSettings):
    """
    Resolved benchmark runner settings.

    Precedence: explicit override > environment variable > stress.yaml > default.
    Invalid environment or file values fall back to the default with a warning.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
        yaml_file=CONFIG_FILE,
    )

    runs: int = Field(default=DEFAULT_RUNS, alias="BENCH_RUNS")
    warmup: int = Field(default=DEFAULT_WARMUP, alias="BENCH_WARMUP")
    verbose: bool = Field(default=True, alias="BENCH_VERBOSE")
    output_dir: Path = Field(default=DEFAULT_OUTPUT_DIR, alias="BENCH_OUTPUT_DIR")
    filter: Optional[str] = Field(default=None, alias="BENCH_FILTER")
    revision: Optional[str] = Field(default=None, alias="BENCH_GIT_SHA")
    timeout: Optional[float] = Field(default=None, alias="BENCH_TIMEOUT_SECS")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
        )

    @field_validator("verbose", mode="before")
    @classmethod
    def _parse_verbose(cls, value: Any) -> Any:
        # Anything but "0" / "false" enables verbose output
        if isinstance(value, str):
            text = value.strip()
            return text != "0" and text.lower() != "false"
        return value

    @field_validator("runs", "warmup", "timeout", mode="wrap")
    @classmethod
    def _fallback_to_default(cls, value: Any, handler: Any, info: Any) -> Any:
        try:
            parsed = handler(value)
            _check_range(info.field_name, parsed)
            return parsed
        except (ValidationError, ValueError):
            default = cls.model_fields[info.field_name].default
            logger.warning(
                f"[RunnerConfig] Invalid value {value!r} for {info.field_name}, "
                f"using default {default!r}"
            )
            return default


def _check_range(name: str, value: Any) -> None:
    if value is None:
        return
    if name == "runs" and value < 1:
        raise ValueError("runs must be at least 1")
    if name == "warmup" and value < 0:
        raise ValueError("warmup must not be negative")
    if name == "timeout" and value <= 0:
        raise ValueError("timeout must be positive")


def load_config() -> RunnerConfig:
    """
    Build settings from defaults, stress.yaml, .env and the environment.

    Raises:
        ConfigurationError: If stress.yaml is not valid YAML
    """
    try:
        return RunnerConfig()
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse {CONFIG_FILE}: {e}",
            context={"config_file": str(Path(CONFIG_FILE).resolve())},
        ) from e


@lru_cache
def get_config() -> RunnerConfig:
    """Get cached settings from environment and stress.yaml."""
    return load_config()


def resolve_config(detect_git: bool = True, **overrides: Any) -> RunnerConfig:
    """
    Resolve the runner configuration.

    Args:
        detect_git: Fill in the revision from `git rev-parse HEAD` when unset
        **overrides: Explicit values (None means "not given")

    Returns:
        RunnerConfig with overrides applied on top of env/file/defaults

    Raises:
        ConfigurationError: If an explicit override is unknown or out of range,
            or stress.yaml cannot be parsed
    """
    updates = {k: v for k, v in overrides.items() if v is not None}

    unknown = sorted(set(updates) - set(RunnerConfig.model_fields))
    if unknown:
        raise ConfigurationError(
            f"Unknown configuration keys: {', '.join(unknown)}",
            context={"keys": unknown},
        )

    for name, value in updates.items():
        try:
            _check_range(name, value)
        except ValueError as e:
            raise ConfigurationError(str(e), context={name: value}) from e

    if "output_dir" in updates:
        updates["output_dir"] = Path(updates["output_dir"])

    config = load_config().model_copy(update=updates)

    if config.revision is None and detect_git:
        config = config.model_copy(update={"revision": detect_revision()})

    return config


def detect_revision(cwd: Optional[Path] = None) -> Optional[str]:
    """Get current git commit hash."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            cwd=str(cwd) if cwd else None,
        )
        if result.returncode == 0:
            return result.stdout.strip() or None
    except OSError:
        pass
    return None
