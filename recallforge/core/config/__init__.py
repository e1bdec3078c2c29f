"""
Configuration Management for RecallForge.

This module provides the application's configuration system using a hierarchy
of dataclasses that map to a YAML configuration file. It supports environment
variable expansion for deployment-specific values.

Public API
----------
    from recallforge.core.config import Config, load_config
    from recallforge.core.config import SchedulingConfig, StorageConfig

Architecture
------------
    config/
    ├── base.py          # ProjectConfig, LoggingConfig
    ├── scheduling.py    # SchedulingConfig
    ├── storage.py       # StorageConfig
    └── config.py        # Main Config class

Usage Example
-------------
    # Load from default location (./recallforge.yaml)
    config = load_config()

    # Access nested settings
    threshold = config.scheduling.graduation_threshold
"""

from recallforge.core.config.config import Config
from recallforge.core.config.base import LoggingConfig, ProjectConfig
from recallforge.core.config.scheduling import SchedulingConfig
from recallforge.core.config.storage import StorageConfig
from recallforge.core.config_loaders import load_config, save_config

__all__ = [
    "Config",
    "LoggingConfig",
    "ProjectConfig",
    "SchedulingConfig",
    "StorageConfig",
    "load_config",
    "save_config",
]
