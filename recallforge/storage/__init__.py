"""
Storage Layer for RecallForge.

Persistence for review items and the append-only session log.

Public API
----------
    from recallforge.storage import create_storage, ReviewItemStore

    store, recorder = create_storage(config)
    item = store.get("note-1")
"""

from recallforge.storage.base import ReviewItemStore, SessionRecorder
from recallforge.storage.factory import (
    create_storage,
    get_review_store,
    get_session_recorder,
    list_backends,
    register_backend,
    unregister_backend,
)
from recallforge.storage.memory import InMemoryReviewStore, InMemorySessionRecorder

__all__ = [
    "ReviewItemStore",
    "SessionRecorder",
    "InMemoryReviewStore",
    "InMemorySessionRecorder",
    "create_storage",
    "get_review_store",
    "get_session_recorder",
    "list_backends",
    "register_backend",
    "unregister_backend",
]
