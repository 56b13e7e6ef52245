from .base import DocumentStore, SERVER_TIMESTAMP
from .factory import get_storage_backend, reset_storage_backend

__all__ = ["DocumentStore", "SERVER_TIMESTAMP", "get_storage_backend", "reset_storage_backend"]
