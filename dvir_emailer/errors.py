"""
Recipient store error types
"""


class RecipientStoreError(Exception):
    """Base class for every recipient store failure"""


class RemoteUnavailable(RecipientStoreError):
    """Store client not initialized or tenant id missing"""


class SessionUnavailable(RemoteUnavailable):
    """Host session could not be resolved"""


class DuplicateRecipient(RecipientStoreError):
    """Email already registered for the tenant"""

    def __init__(self, database: str, email: str):
        super().__init__(f"{email} is already a recipient for {database}")
        self.database = database
        self.email = email


class QueryFailed(RecipientStoreError):
    """A read against the store was rejected"""


class WriteFailed(RecipientStoreError):
    """A write against the store was rejected"""


class ConfigurationMissing(RecipientStoreError):
    """Tenant configuration document does not exist"""

    def __init__(self, database: str):
        super().__init__(f"No configuration found for database {database}")
        self.database = database
