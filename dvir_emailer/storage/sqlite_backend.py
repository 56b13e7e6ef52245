"""
SQLite storage backend
Local stand-in for the hosted document database
"""

import json
import logging
import os
import sqlite3
import threading
import uuid
from typing import Any, Dict, List, Optional

from ..errors import QueryFailed, WriteFailed
from .base import DocumentStore, resolve_server_timestamps

logger = logging.getLogger(__name__)


def _filter_value(value: Any) -> Any:
    """json_extract returns 1/0 for JSON booleans"""
    if isinstance(value, bool):
        return int(value)
    return value


class SQLiteBackend(DocumentStore):
    """SQLite storage backend (one JSON document per row)"""

    def __init__(self, db_path: str = None):
        """
        Args:
            db_path: SQLite file path (default: Config.DB_PATH)
        """
        self._connection = None
        self._tables_created = False
        self._lock = threading.Lock()

        if db_path is None:
            from ..config import Config

            db_path = Config.DB_PATH
        self.db_path = db_path

    def _get_connection(self):
        """Lazy connection, reused once created"""
        if self._connection is None:
            db_dir = os.path.dirname(self.db_path)
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)

            self._connection = sqlite3.connect(
                self.db_path, check_same_thread=False, timeout=30.0
            )

            # WAL mode for concurrent readers
            self._connection.execute("PRAGMA journal_mode=WAL")

            logger.info(f"SQLite DB connected: {self.db_path}")

            if not self._tables_created:
                self._create_tables_impl()

        return self._connection

    def _create_tables_impl(self):
        cursor = self._connection.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                collection TEXT NOT NULL,
                id TEXT NOT NULL,
                data TEXT NOT NULL,
                created_seq INTEGER NOT NULL,
                PRIMARY KEY (collection, id)
            )
        """)

        self._connection.commit()
        self._tables_created = True
        logger.info("SQLite tables created")

    @staticmethod
    def _row_to_document(doc_id: str, data: str) -> Dict:
        document = json.loads(data)
        document["id"] = doc_id
        return document

    @staticmethod
    def _encode(data: Dict) -> str:
        body = {k: v for k, v in resolve_server_timestamps(data).items() if k != "id"}
        return json.dumps(body, ensure_ascii=False)

    def _next_seq(self, cursor, collection: str) -> int:
        cursor.execute(
            "SELECT COALESCE(MAX(created_seq), 0) + 1 FROM documents WHERE collection = ?",
            (collection,),
        )
        return cursor.fetchone()[0]

    def query(self, collection: str, filters: Dict[str, Any]) -> List[Dict]:
        """Equality query via json_extract"""
        clauses = ["collection = ?"]
        values: List[Any] = [collection]
        for field, value in filters.items():
            clauses.append("json_extract(data, ?) IS ?")
            values.extend([f"$.{field}", _filter_value(value)])

        sql = f"SELECT id, data FROM documents WHERE {' AND '.join(clauses)} ORDER BY created_seq"

        try:
            with self._lock:
                cursor = self._get_connection().cursor()
                cursor.execute(sql, values)
                rows = cursor.fetchall()
        except sqlite3.Error as e:
            logger.error(f"SQLite query failed: {collection} {filters}: {e}")
            raise QueryFailed(f"Query on {collection} failed: {e}") from e

        results = [self._row_to_document(doc_id, data) for doc_id, data in rows]
        logger.debug(f"SQLite query: {collection} {filters} ({len(results)} rows)")
        return results

    def get(self, collection: str, doc_id: str) -> Optional[Dict]:
        try:
            with self._lock:
                cursor = self._get_connection().cursor()
                cursor.execute(
                    "SELECT id, data FROM documents WHERE collection = ? AND id = ?",
                    (collection, doc_id),
                )
                row = cursor.fetchone()
        except sqlite3.Error as e:
            logger.error(f"SQLite get failed: {collection}/{doc_id}: {e}")
            raise QueryFailed(f"Get {collection}/{doc_id} failed: {e}") from e

        if row:
            return self._row_to_document(*row)
        return None

    def add(self, collection: str, data: Dict) -> str:
        doc_id = uuid.uuid4().hex
        if not self.create(collection, doc_id, data):
            raise WriteFailed(f"Generated id collision in {collection}: {doc_id}")
        return doc_id

    def create(self, collection: str, doc_id: str, data: Dict) -> bool:
        """Conditional insert (INSERT OR IGNORE)"""
        try:
            with self._lock:
                conn = self._get_connection()
                cursor = conn.cursor()
                cursor.execute(
                    """
                    INSERT OR IGNORE INTO documents (collection, id, data, created_seq)
                    VALUES (?, ?, ?, ?)
                """,
                    (collection, doc_id, self._encode(data), self._next_seq(cursor, collection)),
                )
                conn.commit()
                inserted = cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.error(f"SQLite insert failed: {collection}/{doc_id}: {e}")
            raise WriteFailed(f"Insert into {collection} failed: {e}") from e

        logger.info(f"Document stored: {collection}/{doc_id} (inserted: {inserted})")
        return inserted

    def _apply_update(self, cursor, collection: str, doc_id: str, updates: Dict):
        cursor.execute(
            "SELECT data FROM documents WHERE collection = ? AND id = ?",
            (collection, doc_id),
        )
        row = cursor.fetchone()
        if row is None:
            raise WriteFailed(f"Document not found: {collection}/{doc_id}")

        document = json.loads(row[0])
        document.update(updates)
        cursor.execute(
            "UPDATE documents SET data = ? WHERE collection = ? AND id = ?",
            (self._encode(document), collection, doc_id),
        )

    def update(self, collection: str, doc_id: str, updates: Dict) -> None:
        self.batch_update(collection, {doc_id: updates})

    def batch_update(self, collection: str, updates_by_id: Dict[str, Dict]) -> None:
        """Every update in one transaction"""
        if not updates_by_id:
            return

        with self._lock:
            try:
                conn = self._get_connection()
            except sqlite3.Error as e:
                logger.error(f"SQLite connection failed: {self.db_path}: {e}")
                raise WriteFailed(f"Batch update on {collection} failed: {e}") from e

            cursor = conn.cursor()
            try:
                for doc_id, updates in updates_by_id.items():
                    self._apply_update(cursor, collection, doc_id, updates)
                conn.commit()
            except WriteFailed:
                conn.rollback()
                raise
            except sqlite3.Error as e:
                conn.rollback()
                logger.error(f"SQLite batch update failed: {collection}: {e}")
                raise WriteFailed(f"Batch update on {collection} failed: {e}") from e

        logger.info(f"Documents updated: {collection} ({len(updates_by_id)})")

    def delete(self, collection: str, doc_id: str) -> None:
        try:
            with self._lock:
                conn = self._get_connection()
                conn.execute(
                    "DELETE FROM documents WHERE collection = ? AND id = ?",
                    (collection, doc_id),
                )
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"SQLite delete failed: {collection}/{doc_id}: {e}")
            raise WriteFailed(f"Delete {collection}/{doc_id} failed: {e}") from e

        logger.info(f"Document deleted: {collection}/{doc_id}")

    def ping(self) -> bool:
        try:
            with self._lock:
                self._get_connection().execute("SELECT 1").fetchone()
        except sqlite3.Error as e:
            logger.error(f"SQLite ping failed: {e}")
            raise QueryFailed(f"SQLite unreachable: {e}") from e
        return True

    def close(self):
        """Close the DB connection"""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            self._tables_created = False
