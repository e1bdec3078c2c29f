"""
Main configuration class for RecallForge.

This module provides the Config dataclass that aggregates all sub-configs
and handles validation, path management, and dictionary parsing.

Architecture Context
--------------------
Configuration sits at the Core layer and is consumed by the service, the
storage factory, the CLI and the HTTP API:

    User's recallforge.yaml
           ↓
    load_config() → Config object
           ↓
    Passed to: ReviewService, storage factory, scheduler construction

Configuration Hierarchy
-----------------------
    Config
    ├── ProjectConfig      # Project name, data directory
    ├── SchedulingConfig   # Sub-day retry, graduation, defaults
    ├── StorageConfig      # Backend selection, write attempts
    └── LoggingConfig      # Level and optional log file

Environment Variables
---------------------
String values may use ${VAR_NAME} or ${VAR_NAME:default} syntax:

    storage:
      sqlite_path: ${RECALLFORGE_DB:reviews.db}

Usage Example
-------------
    config = load_config()
    minutes = config.scheduling.immediate_retry_minutes
    db_file = config.sqlite_path  # absolute Path
"""

from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Dict, Optional

from recallforge.core.config.base import LoggingConfig, ProjectConfig
from recallforge.core.config.scheduling import SchedulingConfig
from recallforge.core.config.storage import StorageConfig
from recallforge.core.exceptions import ConfigValidationError

VALID_FAILURE_STAGES = {"immediate_retry", "same_day_retry"}
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_NULL_STRINGS = {"", "null", "none", "~"}


def _coerce(value: Any, default: Any) -> Any:
    """Convert env-expanded strings to the type of the field's default."""
    if not isinstance(value, str) or isinstance(default, str):
        return value
    if value.strip().lower() in _NULL_STRINGS:
        return None
    if isinstance(default, bool):
        return value.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    return value


@dataclass
class Config:
    """Main RecallForge configuration."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Runtime paths (set after loading)
    _base_path: Path = field(default_factory=Path.cwd, repr=False)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.validate()

    def validate(self) -> None:
        """Check every section, raising ConfigValidationError on the first bad value."""
        self._validate_scheduling()
        self._validate_storage()

        if self.project.data_dir in ("/", "\\", ""):
            raise ConfigValidationError(
                f"data_dir must not be root or empty: {self.project.data_dir!r}",
                field="project.data_dir",
                value=self.project.data_dir,
            )
        if self.logging.level.upper() not in VALID_LOG_LEVELS:
            raise ConfigValidationError(
                f"logging.level must be one of {sorted(VALID_LOG_LEVELS)}",
                field="logging.level",
                value=self.logging.level,
            )

    def _validate_scheduling(self) -> None:
        sched = self.scheduling
        if sched.immediate_retry_minutes <= 0:
            raise ConfigValidationError(
                "scheduling.immediate_retry_minutes must be positive",
                field="scheduling.immediate_retry_minutes",
                value=sched.immediate_retry_minutes,
            )
        if sched.failure_stage not in VALID_FAILURE_STAGES:
            raise ConfigValidationError(
                f"scheduling.failure_stage must be one of {sorted(VALID_FAILURE_STAGES)}",
                field="scheduling.failure_stage",
                value=sched.failure_stage,
            )
        threshold = sched.graduation_threshold
        if threshold is not None and not 1 <= threshold <= 5:
            raise ConfigValidationError(
                "scheduling.graduation_threshold must be in [1, 5] or null",
                field="scheduling.graduation_threshold",
                value=threshold,
            )
        if sched.default_ease_factor < 1.3:
            raise ConfigValidationError(
                "scheduling.default_ease_factor must be at least 1.3",
                field="scheduling.default_ease_factor",
                value=sched.default_ease_factor,
            )
        if sched.upcoming_limit < 1:
            raise ConfigValidationError(
                "scheduling.upcoming_limit must be at least 1",
                field="scheduling.upcoming_limit",
                value=sched.upcoming_limit,
            )

    def _validate_storage(self) -> None:
        if self.storage.write_attempts < 1:
            raise ConfigValidationError(
                "storage.write_attempts must be at least 1",
                field="storage.write_attempts",
                value=self.storage.write_attempts,
            )

    @property
    def base_path(self) -> Path:
        """Project root that relative paths resolve against."""
        return self._base_path

    @property
    def data_path(self) -> Path:
        """Get absolute path to data directory."""
        return self._base_path / self.project.data_dir

    @property
    def sqlite_path(self) -> Path:
        """Get path to the SQLite review database."""
        path = Path(self.storage.sqlite_path)
        if path.is_absolute():
            return path
        return self.data_path / path

    @property
    def log_path(self) -> Optional[Path]:
        """Get path to the log file, if file logging is enabled."""
        if not self.logging.file:
            return None
        path = Path(self.logging.file)
        return path if path.is_absolute() else self._base_path / path

    def ensure_directories(self) -> None:
        """Create all required directories."""
        self.data_path.mkdir(parents=True, exist_ok=True)
        self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        result: dict[str, Any] = {}
        for key, value in asdict(self).items():
            if key.startswith("_"):
                continue
            result[key] = value
        return result

    @staticmethod
    def _filter_fields(cls_type: Any, data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Filter dict to only keys that match dataclass fields, handling None."""
        if not data:
            return {}
        defaults = {f.name: f.default for f in fields(cls_type)}
        return {
            k: _coerce(v, defaults[k]) for k, v in data.items() if k in defaults
        }

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], base_path: Optional[Path] = None
    ) -> "Config":
        """Create Config from dictionary."""
        # Import here to avoid circular dependency
        from recallforge.core.config_loaders import expand_env_vars

        data = expand_env_vars(data or {})

        config = cls(
            project=ProjectConfig(
                **cls._filter_fields(ProjectConfig, data.get("project"))
            ),
            scheduling=SchedulingConfig(
                **cls._filter_fields(SchedulingConfig, data.get("scheduling"))
            ),
            storage=StorageConfig(
                **cls._filter_fields(StorageConfig, data.get("storage"))
            ),
            logging=LoggingConfig(
                **cls._filter_fields(LoggingConfig, data.get("logging"))
            ),
        )

        if base_path:
            config._base_path = base_path

        return config
