from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class _ServerTimestamp:
    """Sentinel replaced by the backend with the write time"""

    def __repr__(self):
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string"""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def resolve_server_timestamps(value: Any, now: str = None) -> Any:
    """
    Replace every SERVER_TIMESTAMP in a document, including nested lists and maps

    Args:
        value: document, list or scalar
        now: timestamp to use (default: current UTC time)

    Returns:
        copy of value with the sentinels resolved
    """
    if now is None:
        now = utc_now_iso()
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, dict):
        return {k: resolve_server_timestamps(v, now) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_server_timestamps(v, now) for v in value]
    return value


class DocumentStore(ABC):
    """
    Collection-oriented document store interface.
    Documents are plain dicts; returned documents carry their id under "id".
    Reads raise QueryFailed and writes raise WriteFailed.
    """

    @abstractmethod
    def query(self, collection: str, filters: Dict[str, Any]) -> List[Dict]:
        """Documents whose fields equal every filter value"""
        ...

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Dict]:
        """Single document by id"""
        ...

    @abstractmethod
    def add(self, collection: str, data: Dict) -> str:
        """Insert under a store-assigned id and return it"""
        ...

    @abstractmethod
    def create(self, collection: str, doc_id: str, data: Dict) -> bool:
        """
        Conditional insert under a caller-chosen id.
        Returns False when the id already exists (SQLite: INSERT OR IGNORE / DynamoDB: ConditionExpression)
        """
        ...

    @abstractmethod
    def update(self, collection: str, doc_id: str, updates: Dict) -> None:
        """Merge fields into an existing document (missing document is an error)"""
        ...

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document. Idempotent."""
        ...

    @abstractmethod
    def batch_update(self, collection: str, updates_by_id: Dict[str, Dict]) -> None:
        """Update several documents, either all of them or none"""
        ...

    @abstractmethod
    def ping(self) -> bool:
        """Connectivity check"""
        ...
