"""
Configuration Loading and Management Functions.

Handles loading, saving, and applying environment overrides to the
RecallForge configuration.

Configuration precedence: 1. Env vars, 2. YAML file, 3. Defaults

Environment overrides
---------------------
    RECALLFORGE_STORAGE_BACKEND     storage.backend
    RECALLFORGE_SQLITE_PATH         storage.sqlite_path
    RECALLFORGE_DATA_DIR            project.data_dir
    RECALLFORGE_LOG_LEVEL           logging.level
    RECALLFORGE_RETRY_MINUTES       scheduling.immediate_retry_minutes
    RECALLFORGE_FAILURE_STAGE       scheduling.failure_stage
    RECALLFORGE_GRADUATION          scheduling.graduation_threshold ("off" disables)
"""

import os
import re
from pathlib import Path
from typing import Any, Optional, TYPE_CHECKING

import yaml

from recallforge.core.exceptions import ConfigValidationError

if TYPE_CHECKING:
    from recallforge.core.config import Config

CONFIG_FILENAMES = ("recallforge.yaml", "config.yaml")


class _Logger:
    """Lazy logger holder.

    Rule #6: Encapsulates logger state in smallest scope.
    Avoids slow startup from rich library import.
    """

    _instance = None

    @classmethod
    def get(cls) -> Any:
        """Get logger (lazy-loaded)."""
        if cls._instance is None:
            from recallforge.core.logging import get_logger

            cls._instance = get_logger(__name__)
        return cls._instance


def expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in config values.

    Handles strings with ${VAR_NAME} or ${VAR_NAME:default} syntax inside
    nested dictionaries and lists.

    Args:
        value: Configuration value (string, dict, list, or primitive)

    Returns:
        Value with all environment variables expanded
    """
    if isinstance(value, str):
        pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

        def replace_env_var(match: re.Match) -> str:
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default_value)

        return re.sub(pattern, replace_env_var, value)
    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    return value


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigValidationError(
            f"{name} must be an integer, got {raw!r}", field=name, value=raw
        ) from e


def _apply_env_overrides(config: "Config") -> "Config":
    """
    Apply environment variable overrides to configuration.

    Environment variables take precedence over config file values.
    """
    backend = os.environ.get("RECALLFORGE_STORAGE_BACKEND")
    if backend:
        config.storage.backend = backend.lower()

    sqlite_path = os.environ.get("RECALLFORGE_SQLITE_PATH")
    if sqlite_path:
        config.storage.sqlite_path = sqlite_path

    data_dir = os.environ.get("RECALLFORGE_DATA_DIR")
    if data_dir:
        config.project.data_dir = data_dir

    log_level = os.environ.get("RECALLFORGE_LOG_LEVEL")
    if log_level:
        config.logging.level = log_level.upper()

    _apply_scheduling_overrides(config)
    config.validate()
    return config


def _apply_scheduling_overrides(config: "Config") -> None:
    """Apply scheduling overrides from environment."""
    minutes = _env_int("RECALLFORGE_RETRY_MINUTES")
    if minutes is not None:
        config.scheduling.immediate_retry_minutes = minutes

    failure_stage = os.environ.get("RECALLFORGE_FAILURE_STAGE")
    if failure_stage:
        config.scheduling.failure_stage = failure_stage.lower()

    graduation = os.environ.get("RECALLFORGE_GRADUATION")
    if graduation is None or graduation.strip() == "":
        return
    if graduation.strip().lower() in ("off", "none", "never"):
        config.scheduling.graduation_threshold = None
        return
    config.scheduling.graduation_threshold = _env_int("RECALLFORGE_GRADUATION")


def find_config_file(base_path: Path) -> Optional[Path]:
    """Return the first known config filename present in base_path."""
    for filename in CONFIG_FILENAMES:
        candidate = base_path / filename
        if candidate.exists():
            return candidate
    return None


def load_config(
    config_path: Optional[Path] = None, base_path: Optional[Path] = None
) -> "Config":
    """
    Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to config file. Defaults to recallforge.yaml in base_path.
        base_path: Base path for the project. Defaults to current directory.

    Returns:
        Config object with all settings.

    Raises:
        ConfigValidationError: If the file cannot be parsed or holds invalid values.
    """
    # Lazy import to avoid circular dependency
    from recallforge.core.config import Config

    base_path = base_path or Path.cwd()

    if config_path is None:
        config_path = find_config_file(base_path)
    if config_path is None or not config_path.exists():
        return _create_default_config(base_path)

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigValidationError(
            f"Could not parse {config_path.name}: {e}", field=str(config_path)
        ) from e

    if not isinstance(data, dict):
        raise ConfigValidationError(
            f"{config_path.name} must contain a mapping at the top level",
            field=str(config_path),
        )

    try:
        config = Config.from_dict(data, base_path)
    except (TypeError, ValueError) as e:
        raise ConfigValidationError(
            f"Invalid value in {config_path.name}: {e}", field=str(config_path)
        ) from e

    _Logger.get().debug("Loaded configuration", path=str(config_path))
    return _apply_env_overrides(config)


def _create_default_config(base_path: Path) -> "Config":
    """Create default configuration with environment overrides."""
    from recallforge.core.config import Config

    config = Config()
    config._base_path = base_path
    return _apply_env_overrides(config)


def save_config(config: "Config", config_path: Optional[Path] = None) -> Path:
    """
    Write configuration to YAML.

    Args:
        config: Configuration to save
        config_path: Destination (defaults to recallforge.yaml in the project)

    Returns:
        Path the configuration was written to
    """
    path = config_path or config.base_path / CONFIG_FILENAMES[0]
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config.to_dict(), f, sort_keys=False)
    return path
