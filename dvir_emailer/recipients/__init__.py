"""
Recipient management
"""
from .models import DefectFilter, LoadResult, Recipient, TenantConfiguration
from .repository import RecipientRepository, FlatRecipientRepository
from .embedded_repository import EmbeddedRecipientRepository
from .factory import get_recipient_repository

__all__ = [
    "DefectFilter",
    "LoadResult",
    "Recipient",
    "TenantConfiguration",
    "RecipientRepository",
    "FlatRecipientRepository",
    "EmbeddedRecipientRepository",
    "get_recipient_repository",
]
