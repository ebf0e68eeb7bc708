"""
cronledger Configuration Management.

Handles loading, saving, and validating configuration from various sources:
- Default values
- Configuration file (TOML)
- Environment variables
"""

from __future__ import annotations

import json
import logging
import os
import tomllib
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Optional, List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "cronledger"
DEFAULT_CONFIG_FILE = "config.toml"
DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "cronledger"

ENV_PREFIX = "CRONLEDGER_"

_TRUE_VALUES = ("true", "1", "yes")


@dataclass
class ValidationIssue:
    """Validation issue found in a configuration."""
    field: str
    message: str
    severity: str  # "error" or "warning"

    def __str__(self) -> str:
        return f"[{self.severity.upper()}] {self.field}: {self.message}"


@dataclass
class SchedulerConfig:
    """Configuration for the job scheduler."""

    # Wall-clock zone used for "now" and for matching cron fields
    timezone: str = "UTC"

    # Blocking policy
    block_threshold: int = 3
    failure_window: int = 10

    # Next-run search bound (field jumps, not minutes)
    max_iterations: int = 10000

    # Schedule used for jobs registered with an invalid schedule
    fallback_schedule: str = "* * * * *"

    # "package.module:function" called with the scheduler to register jobs
    jobs_module: Optional[str] = None

    # Tick settings
    due_batch_size: int = 10
    tick_interval: int = 60  # seconds, for the in-process tick loop

    # Running rows older than this are reported as stuck
    stuck_after_minutes: int = 30


@dataclass
class RetentionConfig:
    """Housekeeping limits for terminal execution rows."""

    max_days: int = 30
    max_records: int = 5000


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[Path] = None


@dataclass
class CronLedgerConfig:
    """Main configuration container for cronledger."""

    # Paths
    config_dir: Path = DEFAULT_CONFIG_DIR
    data_dir: Path = DEFAULT_DATA_DIR

    # Sub-configurations
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    retention: RetentionConfig = field(default_factory=RetentionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Database; SQLite (default) and PostgreSQL enforce one open row per job
    # with a partial index, other SQLAlchemy backends do not
    database_url: str = ""

    def __post_init__(self):
        """Initialize derived values."""
        if not self.database_url:
            self.database_url = f"sqlite:///{self.data_dir}/cronledger.db"


def load_config(
    config_path: Optional[Path] = None,
    env_prefix: str = ENV_PREFIX,
) -> CronLedgerConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file
    3. Default values

    Args:
        config_path: Path to config file (default: ~/.config/cronledger/config.toml)
        env_prefix: Prefix for environment variables

    Returns:
        Loaded configuration
    """
    config = CronLedgerConfig()

    if config_path is None:
        env_config_dir = os.environ.get(f"{env_prefix}CONFIG_DIR")
        if env_config_dir:
            config_path = Path(env_config_dir) / DEFAULT_CONFIG_FILE
        else:
            config_path = DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE

    if config_path.exists():
        config = _load_from_file(config_path, config)

    config = _load_from_env(config, env_prefix)

    return config


def _apply_section(target: Any, values: dict[str, Any]) -> None:
    for key, value in values.items():
        if hasattr(target, key):
            setattr(target, key, value)
        else:
            logger.warning(f"Ignoring unknown configuration key: {key}")


def _load_from_file(path: Path, config: CronLedgerConfig) -> CronLedgerConfig:
    """Load configuration from a TOML file."""
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning(f"Failed to load config from {path}: {e}")
        return config

    if "scheduler" in data:
        _apply_section(config.scheduler, data["scheduler"])

    if "retention" in data:
        _apply_section(config.retention, data["retention"])

    if "logging" in data:
        _apply_section(config.logging, data["logging"])
        if config.logging.file is not None:
            config.logging.file = Path(config.logging.file)

    # Top-level settings
    if "config_dir" in data:
        config.config_dir = Path(data["config_dir"])
    if "data_dir" in data:
        config.data_dir = Path(data["data_dir"])
        if "database_url" not in data:
            config.database_url = f"sqlite:///{config.data_dir}/cronledger.db"
    if "database_url" in data:
        config.database_url = data["database_url"]

    logger.debug(f"Loaded configuration from {path}")
    return config


def _load_from_env(config: CronLedgerConfig, prefix: str) -> CronLedgerConfig:
    """Load configuration from environment variables."""

    # Scheduler settings
    if env_val := os.environ.get(f"{prefix}TIMEZONE"):
        config.scheduler.timezone = env_val
    if env_val := os.environ.get(f"{prefix}BLOCK_THRESHOLD"):
        config.scheduler.block_threshold = int(env_val)
    if env_val := os.environ.get(f"{prefix}MAX_ITERATIONS"):
        config.scheduler.max_iterations = int(env_val)
    if env_val := os.environ.get(f"{prefix}JOBS_MODULE"):
        config.scheduler.jobs_module = env_val
    if env_val := os.environ.get(f"{prefix}DUE_BATCH_SIZE"):
        config.scheduler.due_batch_size = int(env_val)
    if env_val := os.environ.get(f"{prefix}TICK_INTERVAL"):
        config.scheduler.tick_interval = int(env_val)

    # Retention settings
    if env_val := os.environ.get(f"{prefix}RETENTION_DAYS"):
        config.retention.max_days = int(env_val)
    if env_val := os.environ.get(f"{prefix}RETENTION_RECORDS"):
        config.retention.max_records = int(env_val)

    # Logging settings
    if env_val := os.environ.get(f"{prefix}LOG_LEVEL"):
        config.logging.level = env_val.upper()

    # Paths
    if env_val := os.environ.get(f"{prefix}CONFIG_DIR"):
        config.config_dir = Path(env_val)
    if env_val := os.environ.get(f"{prefix}DATA_DIR"):
        config.data_dir = Path(env_val)
        if not os.environ.get(f"{prefix}DATABASE_URL"):
            config.database_url = f"sqlite:///{config.data_dir}/cronledger.db"
    if env_val := os.environ.get(f"{prefix}DATABASE_URL"):
        config.database_url = env_val

    return config


def save_config(config: CronLedgerConfig, path: Optional[Path] = None) -> Path:
    """
    Save configuration to a TOML file.

    Args:
        config: Configuration to save
        path: Path to save to (default: config.config_dir / config.toml)

    Returns:
        Path the configuration was written to
    """
    if path is None:
        path = config.config_dir / DEFAULT_CONFIG_FILE

    path.parent.mkdir(parents=True, exist_ok=True)

    scheduler = config.scheduler
    lines = [
        "# cronledger configuration",
        "",
        f'config_dir = "{config.config_dir}"',
        f'data_dir = "{config.data_dir}"',
        f'database_url = "{config.database_url}"',
        "",
        "[scheduler]",
        f'timezone = "{scheduler.timezone}"',
        f"block_threshold = {scheduler.block_threshold}",
        f"failure_window = {scheduler.failure_window}",
        f"max_iterations = {scheduler.max_iterations}",
        f'fallback_schedule = "{scheduler.fallback_schedule}"',
    ]
    if scheduler.jobs_module:
        lines.append(f'jobs_module = "{scheduler.jobs_module}"')
    lines.extend([
        f"due_batch_size = {scheduler.due_batch_size}",
        f"tick_interval = {scheduler.tick_interval}",
        f"stuck_after_minutes = {scheduler.stuck_after_minutes}",
        "",
        "[retention]",
        f"max_days = {config.retention.max_days}",
        f"max_records = {config.retention.max_records}",
        "",
        "[logging]",
        f'level = "{config.logging.level}"',
    ])

    with open(path, "w") as f:
        f.write("\n".join(lines) + "\n")

    logger.info(f"Configuration saved to {path}")
    return path


def ensure_directories(config: CronLedgerConfig) -> None:
    """Ensure all required directories exist."""
    config.config_dir.mkdir(parents=True, exist_ok=True)
    config.data_dir.mkdir(parents=True, exist_ok=True)


# Global configuration instance (lazy-loaded)
_global_config: Optional[CronLedgerConfig] = None


def get_config() -> CronLedgerConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def set_config(config: CronLedgerConfig) -> None:
    """Set the global configuration instance."""
    global _global_config
    _global_config = config


def clear_config_cache() -> None:
    """Clear the global configuration cache."""
    global _global_config
    _global_config = None


def validate_config(config: Optional[CronLedgerConfig] = None) -> List[ValidationIssue]:
    """
    Validate configuration and return the issues found.

    Args:
        config: Configuration to validate (default: loaded from file)

    Returns:
        List of validation issues (empty if valid)
    """
    from cronledger.schedule.expression import validate_cron_string

    if config is None:
        config = load_config()

    issues: List[ValidationIssue] = []
    scheduler = config.scheduler

    try:
        ZoneInfo(scheduler.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        issues.append(ValidationIssue(
            field="scheduler.timezone",
            message=f"Unknown time zone: {scheduler.timezone}",
            severity="error",
        ))

    if scheduler.block_threshold < 1:
        issues.append(ValidationIssue(
            field="scheduler.block_threshold",
            message="Block threshold must be at least 1.",
            severity="error",
        ))

    if scheduler.failure_window < scheduler.block_threshold:
        issues.append(ValidationIssue(
            field="scheduler.failure_window",
            message=(
                f"Failure window ({scheduler.failure_window}) is smaller than the block "
                f"threshold ({scheduler.block_threshold}); jobs can never be blocked."
            ),
            severity="warning",
        ))

    if scheduler.max_iterations < 1:
        issues.append(ValidationIssue(
            field="scheduler.max_iterations",
            message="Max iterations must be a positive number.",
            severity="error",
        ))

    if error := validate_cron_string(scheduler.fallback_schedule):
        issues.append(ValidationIssue(
            field="scheduler.fallback_schedule",
            message=f"Invalid cron expression: {error}",
            severity="error",
        ))

    if scheduler.jobs_module and ":" not in scheduler.jobs_module:
        issues.append(ValidationIssue(
            field="scheduler.jobs_module",
            message="Expected 'package.module:function'.",
            severity="error",
        ))

    if scheduler.due_batch_size < 1:
        issues.append(ValidationIssue(
            field="scheduler.due_batch_size",
            message="Due batch size must be at least 1.",
            severity="error",
        ))

    if config.retention.max_days < 1 or config.retention.max_records < 1:
        issues.append(ValidationIssue(
            field="retention",
            message="Retention limits must be positive.",
            severity="error",
        ))

    if not config.data_dir.exists():
        issues.append(ValidationIssue(
            field="data_dir",
            message=f"Data directory does not exist: {config.data_dir}",
            severity="warning",
        ))

    return issues


def config_to_dict(config: CronLedgerConfig) -> dict[str, Any]:
    """Convert configuration to a JSON-friendly dictionary."""
    return json.loads(json.dumps(asdict(config), default=str))
