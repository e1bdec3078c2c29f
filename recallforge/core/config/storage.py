"""
Storage configuration.

Selects the review store and session recorder backends.
"""

from dataclasses import dataclass


@dataclass
class StorageConfig:
    """Storage backend configuration."""

    backend: str = "sqlite"  # sqlite, memory
    sqlite_path: str = "reviews.db"  # Relative to project.data_dir
    write_attempts: int = 3  # Read-compute-write attempts per review
