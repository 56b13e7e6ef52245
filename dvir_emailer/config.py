"""
Environment variable and settings management
"""

import os
import logging
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load .env for local development
load_dotenv()

STORAGE_BACKENDS = ("sqlite", "dynamodb")
STORE_SHAPES = ("flat", "embedded")


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid value for {name}: {raw!r}, using {default}")
        return default


class ConfigClass:
    """Application settings"""

    # Collection names
    RECIPIENTS_COLLECTION = "dvir_recipients"
    DATABASES_COLLECTION = "geotab_databases"
    CONFIGURATIONS_COLLECTION = "dvir_configurations"

    # DynamoDB transactions accept at most 100 items
    MAX_BATCH_SIZE = 100

    @property
    def is_lambda(self) -> bool:
        """Whether we are running inside AWS Lambda"""
        return os.environ.get("AWS_EXECUTION_ENV") is not None

    @property
    def STORAGE_BACKEND(self) -> str:
        """
        Storage backend name (sqlite | dynamodb).
        Defaults to dynamodb inside Lambda and sqlite everywhere else.
        """
        backend = os.getenv("STORAGE_BACKEND", "").strip().lower()
        if backend:
            return backend
        return "dynamodb" if self.is_lambda else "sqlite"

    @property
    def DB_PATH(self):
        """SQLite DB file path"""
        return os.getenv("DB_PATH", "data/dvir_emailer.db")

    @property
    def AWS_REGION(self):
        """AWS region"""
        return os.getenv("AWS_REGION", "us-east-1")

    @property
    def DYNAMODB_TABLE_PREFIX(self):
        """Prefix prepended to every collection name to form the DynamoDB table name"""
        return os.getenv("DYNAMODB_TABLE_PREFIX", "")

    @property
    def DYNAMODB_TENANT_INDEX(self):
        """Optional GSI for database_name queries (eventually consistent); empty means consistent scans"""
        return os.getenv("DYNAMODB_TENANT_INDEX", "")

    @property
    def RECIPIENT_STORE_SHAPE(self) -> str:
        """Recipient storage layout: flat (one document per recipient) or embedded"""
        return os.getenv("RECIPIENT_STORE_SHAPE", "flat").strip().lower()

    @property
    def DEMO_DATABASE(self):
        """Reserved tenant that is never persisted"""
        return os.getenv("DEMO_DATABASE", "demo")

    @property
    def LOAD_DELAY_SECONDS(self) -> float:
        """Delay between panel focus and the first recipient load"""
        return _get_float("LOAD_DELAY_SECONDS", 1.0)

    @property
    def ALERT_DISMISS_SECONDS(self) -> float:
        """Lifetime of a panel notification"""
        return _get_float("ALERT_DISMISS_SECONDS", 3.0)

    @property
    def STORE_TIMEOUT_SECONDS(self) -> float:
        """Connect/read timeout for remote store calls"""
        return _get_float("STORE_TIMEOUT_SECONDS", 10.0)

    @property
    def EXPORT_DIR(self):
        """Directory receiving exported settings files"""
        return os.getenv("EXPORT_DIR", "exports")

    def validate(self):
        """Validate enumerated settings"""
        errors = []

        if self.STORAGE_BACKEND not in STORAGE_BACKENDS:
            errors.append(
                f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}: "
                f"{self.STORAGE_BACKEND}"
            )

        if self.RECIPIENT_STORE_SHAPE not in STORE_SHAPES:
            errors.append(
                f"RECIPIENT_STORE_SHAPE must be one of {', '.join(STORE_SHAPES)}: "
                f"{self.RECIPIENT_STORE_SHAPE}"
            )

        if errors:
            raise ValueError("; ".join(errors))

        return True


# Singleton instance
Config = ConfigClass()
