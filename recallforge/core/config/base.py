"""
Base configuration classes for project and logging settings.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ProjectConfig:
    """Project-level configuration."""

    name: str = "wrong-notes"
    data_dir: str = ".data"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"
    file: Optional[str] = None  # Relative paths resolve against the project
