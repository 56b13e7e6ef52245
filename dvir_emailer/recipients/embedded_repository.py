"""
Embedded recipient layout: one dvir_configurations document per database
holding the recipients as an ordered array
"""

import logging
from typing import Optional

from ..errors import ConfigurationMissing, DuplicateRecipient
from ..storage import DocumentStore, SERVER_TIMESTAMP
from .models import DefectFilter, LoadResult, Recipient, TenantConfiguration
from .repository import RecipientRepository

logger = logging.getLogger(__name__)


class EmbeddedRecipientRepository(RecipientRepository):
    """Recipients embedded in the tenant configuration document (document id = database name)"""

    layout = "embedded"

    def __init__(
        self,
        store: Optional[DocumentStore],
        demo_database: str = "demo",
        configurations_collection: str = "dvir_configurations",
    ):
        super().__init__(store, demo_database)
        self.configurations_collection = configurations_collection

    def _get_configuration(self, store, tenant_id) -> Optional[TenantConfiguration]:
        document = store.get(self.configurations_collection, tenant_id)
        if document is None:
            return None
        return TenantConfiguration.from_document(document)

    def _require_configuration(self, store, tenant_id) -> TenantConfiguration:
        configuration = self._get_configuration(store, tenant_id)
        if configuration is None:
            raise ConfigurationMissing(tenant_id)
        return configuration

    def _save_recipients(self, store, configuration: TenantConfiguration):
        store.update(
            self.configurations_collection,
            configuration.database_name,
            {"recipients": configuration.entries(), "updated_at": SERVER_TIMESTAMP},
        )

    def _tenant_exists(self, store, tenant_id):
        return store.get(self.configurations_collection, tenant_id) is not None

    def _create_tenant(self, store, tenant_id):
        return store.create(
            self.configurations_collection,
            tenant_id,
            {
                "database_name": tenant_id,
                "recipients": [],
                "created_at": SERVER_TIMESTAMP,
                "updated_at": SERVER_TIMESTAMP,
                "active": True,
            },
        )

    def _load(self, store, tenant_id):
        configuration = self._get_configuration(store, tenant_id)
        if configuration is None:
            return LoadResult(recipients=[])

        recipients = configuration.recipients
        send_only_new_defects = recipients[-1].send_only_new_defects if recipients else True
        return LoadResult(recipients=recipients, send_only_new_defects=send_only_new_defects)

    def _add(self, store, tenant_id, email, send_only_new_defects):
        configuration = self._require_configuration(store, tenant_id)
        if configuration.find(email) is not None:
            raise DuplicateRecipient(tenant_id, email)

        recipient = Recipient(
            email=email,
            defect_filter=DefectFilter.from_flag(send_only_new_defects),
            database_name=tenant_id,
        )
        configuration.recipients.append(recipient)
        self._save_recipients(store, configuration)
        return recipient

    def _remove(self, store, tenant_id, identifier):
        configuration = self._require_configuration(store, tenant_id)
        remaining = [r for r in configuration.recipients if r.email != identifier]
        if len(remaining) == len(configuration.recipients):
            return False

        configuration.recipients = remaining
        self._save_recipients(store, configuration)
        return True

    def _update_shared_setting(self, store, tenant_id, send_only_new_defects):
        configuration = self._require_configuration(store, tenant_id)
        if not configuration.recipients:
            return 0

        defect_filter = DefectFilter.from_flag(send_only_new_defects)
        for recipient in configuration.recipients:
            recipient.defect_filter = defect_filter

        # single document write, so the whole array changes at once
        self._save_recipients(store, configuration)
        return len(configuration.recipients)
