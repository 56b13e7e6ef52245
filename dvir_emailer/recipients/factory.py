"""
Recipient repository factory
"""

import logging

from ..storage import get_storage_backend
from .embedded_repository import EmbeddedRecipientRepository
from .repository import FlatRecipientRepository, RecipientRepository

logger = logging.getLogger(__name__)


def get_recipient_repository(store=None) -> RecipientRepository:
    """
    Repository for the configured storage layout

    Args:
        store: document store (default: get_storage_backend())

    Returns:
        FlatRecipientRepository or EmbeddedRecipientRepository
    """
    from ..config import Config

    if store is None:
        store = get_storage_backend()

    shape = Config.RECIPIENT_STORE_SHAPE
    if shape == "embedded":
        logger.info("Recipient layout: embedded configuration documents")
        return EmbeddedRecipientRepository(
            store,
            demo_database=Config.DEMO_DATABASE,
            configurations_collection=Config.CONFIGURATIONS_COLLECTION,
        )
    if shape == "flat":
        logger.info("Recipient layout: flat recipient documents")
        return FlatRecipientRepository(
            store,
            demo_database=Config.DEMO_DATABASE,
            recipients_collection=Config.RECIPIENTS_COLLECTION,
            databases_collection=Config.DATABASES_COLLECTION,
        )
    raise ValueError(f"Unknown RECIPIENT_STORE_SHAPE: {shape}")
