"""
Storage backend factory
Picks the backend for the current environment
"""

from .base import DocumentStore

_backend_instance: DocumentStore = None


def get_storage_backend() -> DocumentStore:
    """Storage backend for the current environment (singleton)"""
    global _backend_instance
    if _backend_instance is not None:
        return _backend_instance

    from ..config import Config

    backend = Config.STORAGE_BACKEND

    if backend == "dynamodb":
        from .dynamodb_backend import DynamoDBBackend

        _backend_instance = DynamoDBBackend()
    elif backend == "sqlite":
        from .sqlite_backend import SQLiteBackend

        _backend_instance = SQLiteBackend()
    else:
        raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")

    return _backend_instance


def reset_storage_backend():
    """Drop the cached backend (tests, config reload)"""
    global _backend_instance
    _backend_instance = None
