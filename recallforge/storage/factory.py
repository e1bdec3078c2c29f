"""
Storage Backend Factory.

Centralizes backend selection for the review item store and the session
recorder.

    get_review_store(config)
        ├── "sqlite" → SQLiteReviewStore     (file under project.data_dir)
        └── "memory" → InMemoryReviewStore   (process-local, lost on exit)

    get_session_recorder(config) follows the same backend name.

Backend Registration (Plugin Pattern)
-------------------------------------
Custom backends can be registered using register_backend():

    from recallforge.storage.factory import register_backend

    def create_my_backend(config):
        return MyStore(config), MyRecorder(config)

    register_backend("mybackend", create_my_backend)

    # Now usable in config:
    # storage:
    #   backend: mybackend
"""

from typing import Callable, Dict, Optional, Tuple

from recallforge.core.config import Config
from recallforge.storage.base import ReviewItemStore, SessionRecorder

# Creator returns the store and the recorder together
BackendCreator = Callable[[Config], Tuple[ReviewItemStore, SessionRecorder]]

BUILTIN_BACKENDS = ("sqlite", "memory")

# Registry for backend creators (plugin pattern)
_backend_registry: Dict[str, BackendCreator] = {}


def register_backend(name: str, creator: BackendCreator) -> None:
    """Register a custom storage backend.

    Args:
        name: Backend identifier (e.g., "mybackend")
        creator: Function that takes Config and returns (store, recorder)
    """
    _backend_registry[name.lower()] = creator
    _Logger.get().info(f"Registered storage backend: {name}")


def unregister_backend(name: str) -> bool:
    """Unregister a custom storage backend.

    Returns:
        True if backend was removed, False if not found
    """
    return _backend_registry.pop(name.lower(), None) is not None


def list_backends() -> list[str]:
    """List all backend names (builtin + registered)."""
    custom = list(_backend_registry.keys())
    return list(BUILTIN_BACKENDS) + [b for b in custom if b not in BUILTIN_BACKENDS]


class _Logger:
    """Lazy logger holder.

    Rule #6: Encapsulates logger state in smallest scope.
    """

    _instance = None

    @classmethod
    def get(cls):
        """Get logger (lazy-loaded)."""
        if cls._instance is None:
            from recallforge.core.logging import get_logger

            cls._instance = get_logger(__name__)
        return cls._instance


def create_storage(
    config: Config, backend: Optional[str] = None
) -> Tuple[ReviewItemStore, SessionRecorder]:
    """
    Create the review store and session recorder for a configuration.

    Checks registered backends first, then the builtin ones.

    Args:
        config: RecallForge configuration
        backend: Override backend type

    Returns:
        (store, recorder) pair

    Raises:
        ValueError: If backend type is unknown
    """
    backend_type = (backend or config.storage.backend).lower()

    if backend_type in _backend_registry:
        _Logger.get().info(f"Using registered storage backend: {backend_type}")
        return _backend_registry[backend_type](config)

    if backend_type == "sqlite":
        return _create_sqlite_backend(config)

    if backend_type == "memory":
        from recallforge.storage.memory import (
            InMemoryReviewStore,
            InMemorySessionRecorder,
        )

        _Logger.get().info("Using in-memory storage backend")
        return InMemoryReviewStore(), InMemorySessionRecorder()

    raise ValueError(
        f"Unknown storage backend: {backend_type}. "
        f"Available backends: {', '.join(list_backends())}"
    )


def _create_sqlite_backend(config: Config) -> Tuple[ReviewItemStore, SessionRecorder]:
    from recallforge.storage.sqlite import SQLiteReviewStore, SQLiteSessionRecorder

    db_path = config.sqlite_path
    _Logger.get().info("Using SQLite storage backend", path=str(db_path))
    return SQLiteReviewStore(db_path), SQLiteSessionRecorder(db_path)


def get_review_store(config: Config, backend: Optional[str] = None) -> ReviewItemStore:
    """Create only the review item store."""
    return create_storage(config, backend)[0]


def get_session_recorder(
    config: Config, backend: Optional[str] = None
) -> SessionRecorder:
    """Create only the session recorder."""
    return create_storage(config, backend)[1]
