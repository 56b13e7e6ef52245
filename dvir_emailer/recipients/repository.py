"""
Recipient repository
Reconciles the panel's recipient list with the per-database store
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from ..errors import DuplicateRecipient, RemoteUnavailable
from ..storage import DocumentStore, SERVER_TIMESTAMP
from ..structured_logging import (
    get_structured_logger,
    log_recipient_change,
    log_recipients_loaded,
    log_settings_updated,
    log_tenant_configured,
)
from .models import DefectFilter, LoadResult, Recipient

logger = logging.getLogger(__name__)
structured_logger = get_structured_logger(__name__)


class RecipientRepository(ABC):
    """Common tenant checks and locking shared by both storage layouts"""

    layout = ""

    def __init__(self, store: Optional[DocumentStore], demo_database: str = "demo"):
        """
        Args:
            store: document store (None when the client is not initialized)
            demo_database: reserved tenant that is never persisted
        """
        self.store = store
        self.demo_database = demo_database
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _tenant_lock(self, tenant_id: str) -> threading.Lock:
        with self._locks_guard:
            if tenant_id not in self._locks:
                self._locks[tenant_id] = threading.Lock()
            return self._locks[tenant_id]

    def _require_store(self) -> DocumentStore:
        if self.store is None:
            raise RemoteUnavailable("Database not initialized")
        return self.store

    def _require_tenant(self, tenant_id: Optional[str]) -> str:
        if not tenant_id:
            raise RemoteUnavailable("No database selected")
        return tenant_id

    def ping(self) -> bool:
        """Store connectivity check"""
        return self._require_store().ping()

    def is_persisted_tenant(self, tenant_id: Optional[str]) -> bool:
        """Empty and demo tenants are never written"""
        return bool(tenant_id) and tenant_id != self.demo_database

    def ensure_tenant_configured(self, tenant_id: Optional[str]) -> bool:
        """
        Create the tenant record with default settings when it does not exist yet

        Args:
            tenant_id: database name

        Returns:
            True only when this call created the record
        """
        if not self.is_persisted_tenant(tenant_id):
            return False

        store = self._require_store()

        with self._tenant_lock(tenant_id):
            if self._tenant_exists(store, tenant_id):
                return False

            created = self._create_tenant(store, tenant_id)

        if created:
            log_tenant_configured(structured_logger, tenant_id, self.layout)
        return created

    def add_recipient(self, tenant_id: str, email: str, send_only_new_defects: bool = True) -> Recipient:
        """
        Register a recipient for the tenant

        Args:
            tenant_id: database name
            email: recipient address (trimmed, case-sensitive)
            send_only_new_defects: notify about new defects only

        Returns:
            the stored Recipient

        Raises:
            ValueError: invalid email format
            DuplicateRecipient: email already registered for the tenant
        """
        store = self._require_store()
        tenant_id = self._require_tenant(tenant_id)
        email = Recipient.normalize_email(email)

        with self._tenant_lock(tenant_id):
            try:
                recipient = self._add(store, tenant_id, email, send_only_new_defects)
            except DuplicateRecipient:
                logger.warning(f"Recipient already exists: {email} ({tenant_id})")
                raise

        log_recipient_change(structured_logger, "added", tenant_id, email, success=True)
        return recipient

    def remove_recipient(self, tenant_id: str, identifier: str) -> bool:
        """
        Remove a recipient. Removing an absent recipient succeeds.

        Returns:
            True when something was removed
        """
        store = self._require_store()
        tenant_id = self._require_tenant(tenant_id)

        with self._tenant_lock(tenant_id):
            removed = self._remove(store, tenant_id, identifier)

        if removed:
            log_recipient_change(structured_logger, "removed", tenant_id, identifier, success=True)
        else:
            logger.info(f"Recipient already absent: {identifier} ({tenant_id})")
        return removed

    def load(self, tenant_id: str) -> LoadResult:
        """All recipients of the tenant in display order"""
        store = self._require_store()
        tenant_id = self._require_tenant(tenant_id)

        result = self._load(store, tenant_id)
        log_recipients_loaded(structured_logger, tenant_id, result.count)
        return result

    def update_shared_setting(self, tenant_id: str, send_only_new_defects: bool) -> int:
        """
        Apply the "only new defects" setting to every recipient of the tenant, all or nothing

        Returns:
            number of recipients updated
        """
        store = self._require_store()
        tenant_id = self._require_tenant(tenant_id)

        with self._tenant_lock(tenant_id):
            updated = self._update_shared_setting(store, tenant_id, send_only_new_defects)

        log_settings_updated(structured_logger, tenant_id, send_only_new_defects, updated)
        return updated

    @abstractmethod
    def _tenant_exists(self, store: DocumentStore, tenant_id: str) -> bool:
        ...

    @abstractmethod
    def _create_tenant(self, store: DocumentStore, tenant_id: str) -> bool:
        ...

    @abstractmethod
    def _load(self, store: DocumentStore, tenant_id: str) -> LoadResult:
        ...

    @abstractmethod
    def _add(self, store: DocumentStore, tenant_id: str, email: str, send_only_new_defects: bool) -> Recipient:
        ...

    @abstractmethod
    def _remove(self, store: DocumentStore, tenant_id: str, identifier: str) -> bool:
        ...

    @abstractmethod
    def _update_shared_setting(self, store: DocumentStore, tenant_id: str, send_only_new_defects: bool) -> int:
        ...


class FlatRecipientRepository(RecipientRepository):
    """One document per recipient in dvir_recipients, tenants listed in geotab_databases"""

    layout = "flat"

    def __init__(
        self,
        store: Optional[DocumentStore],
        demo_database: str = "demo",
        recipients_collection: str = "dvir_recipients",
        databases_collection: str = "geotab_databases",
    ):
        super().__init__(store, demo_database)
        self.recipients_collection = recipients_collection
        self.databases_collection = databases_collection

    def _tenant_exists(self, store, tenant_id):
        return bool(store.query(self.databases_collection, {"database_name": tenant_id}))

    def _create_tenant(self, store, tenant_id):
        return store.create(
            self.databases_collection,
            tenant_id,
            {
                "database_name": tenant_id,
                "added_at": SERVER_TIMESTAMP,
                "active": True,
                "send_only_new_defects": True,
            },
        )

    def _query_recipients(self, store, tenant_id):
        documents = store.query(self.recipients_collection, {"database_name": tenant_id})
        # store order is undefined, display by creation time
        documents.sort(key=lambda d: str(d.get("created_at") or ""))
        return documents

    def _load(self, store, tenant_id):
        recipients = []
        send_only_new_defects = True

        for document in self._query_recipients(store, tenant_id):
            recipients.append(Recipient.from_document(document))
            # setting is duplicated on every recipient, the last one scanned wins
            if document.get("send_only_new_defects") is not None:
                send_only_new_defects = bool(document["send_only_new_defects"])

        return LoadResult(recipients=recipients, send_only_new_defects=send_only_new_defects)

    def _add(self, store, tenant_id, email, send_only_new_defects):
        existing = store.query(
            self.recipients_collection, {"database_name": tenant_id, "email": email}
        )
        if existing:
            raise DuplicateRecipient(tenant_id, email)

        recipient = Recipient(
            email=email,
            defect_filter=DefectFilter.from_flag(send_only_new_defects),
            database_name=tenant_id,
        )
        recipient.id = store.add(self.recipients_collection, recipient.to_document())

        stored = store.get(self.recipients_collection, recipient.id)
        if stored:
            recipient.created_at = stored.get("created_at")
        return recipient

    def _remove(self, store, tenant_id, identifier):
        document = store.get(self.recipients_collection, identifier)
        if document is None or document.get("database_name") != tenant_id:
            return False

        store.delete(self.recipients_collection, identifier)
        return True

    def _update_shared_setting(self, store, tenant_id, send_only_new_defects):
        documents = self._query_recipients(store, tenant_id)
        if not documents:
            return 0

        store.batch_update(
            self.recipients_collection,
            {
                document["id"]: {"send_only_new_defects": send_only_new_defects}
                for document in documents
            },
        )
        return len(documents)
