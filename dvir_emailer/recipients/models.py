"""
Recipient data models
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..storage import SERVER_TIMESTAMP


class DefectFilter(Enum):
    """Which defects a recipient is notified about"""
    NEW = "new"
    ALL = "all"

    @classmethod
    def from_flag(cls, send_only_new_defects: bool) -> "DefectFilter":
        return cls.NEW if send_only_new_defects else cls.ALL


@dataclass
class Recipient:
    """Recipient data model"""

    email: str
    defect_filter: DefectFilter = DefectFilter.NEW
    id: Optional[str] = None
    database_name: Optional[str] = None
    created_at: Optional[str] = None

    @staticmethod
    def validate_email(email: str) -> bool:
        """
        Validate an email address

        Args:
            email: address to check

        Returns:
            True if the address looks valid
        """
        pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        return re.match(pattern, email) is not None

    @staticmethod
    def normalize_email(email: str) -> str:
        """
        Trim an address and check its format

        Raises:
            ValueError: invalid email format
        """
        email = (email or "").strip()
        if not Recipient.validate_email(email):
            raise ValueError(f"Invalid email address: {email}")
        return email

    @property
    def send_only_new_defects(self) -> bool:
        return self.defect_filter is DefectFilter.NEW

    @property
    def identifier(self) -> str:
        """Key used by remove: store id when there is one, otherwise the email"""
        return self.id or self.email

    @classmethod
    def from_document(cls, document: dict) -> "Recipient":
        """
        Flat recipient document -> Recipient

        Args:
            document: document from the dvir_recipients collection

        Returns:
            Recipient object
        """
        return cls(
            email=document["email"],
            defect_filter=DefectFilter.from_flag(document.get("send_only_new_defects", True)),
            id=document.get("id"),
            database_name=document.get("database_name"),
            created_at=document.get("created_at"),
        )

    def to_document(self) -> dict:
        """Recipient -> flat recipient document (created_at set by the store)"""
        return {
            "email": self.email,
            "database_name": self.database_name,
            "send_only_new_defects": self.send_only_new_defects,
            "created_at": self.created_at or SERVER_TIMESTAMP,
        }

    @classmethod
    def from_entry(cls, entry: dict, database_name: str = None) -> "Recipient":
        """Embedded array entry -> Recipient"""
        return cls(
            email=entry["email"],
            defect_filter=DefectFilter(entry.get("defect_filter", DefectFilter.NEW.value)),
            database_name=database_name,
            created_at=entry.get("added_at"),
        )

    def to_entry(self) -> dict:
        """Recipient -> embedded array entry"""
        return {
            "email": self.email,
            "defect_filter": self.defect_filter.value,
            "added_at": self.created_at or SERVER_TIMESTAMP,
        }

    def to_dict(self) -> dict:
        """JSON-friendly view for handlers and exports"""
        return {
            "id": self.identifier,
            "email": self.email,
            "defect_filter": self.defect_filter.value,
            "send_only_new_defects": self.send_only_new_defects,
            "created_at": self.created_at,
        }


@dataclass
class TenantConfiguration:
    """Per-database configuration document (embedded layout)"""

    database_name: str
    recipients: List[Recipient] = field(default_factory=list)
    active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_document(cls, document: dict) -> "TenantConfiguration":
        database_name = document["database_name"]
        return cls(
            database_name=database_name,
            recipients=[
                Recipient.from_entry(entry, database_name)
                for entry in document.get("recipients") or []
            ],
            active=document.get("active", True),
            created_at=document.get("created_at"),
            updated_at=document.get("updated_at"),
        )

    def find(self, email: str) -> Optional[Recipient]:
        for recipient in self.recipients:
            if recipient.email == email:
                return recipient
        return None

    def entries(self) -> List[dict]:
        return [recipient.to_entry() for recipient in self.recipients]


@dataclass
class LoadResult:
    """Recipients of a tenant plus the derived shared setting"""

    recipients: List[Recipient]
    send_only_new_defects: bool = True

    @property
    def count(self) -> int:
        return len(self.recipients)

    def emails(self) -> List[str]:
        return [recipient.email for recipient in self.recipients]
