"""
Settings export
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import List

from ..recipients import Recipient

logger = logging.getLogger(__name__)


def export_filename(database: str, now: datetime = None) -> str:
    """
    Download file name for an export

    Args:
        database: database name
        now: export time (default: current UTC time)

    Returns:
        dvir-email-settings-<database>-<YYYY-MM-DD>.json
    """
    if now is None:
        now = datetime.now(timezone.utc)
    return f"dvir-email-settings-{database}-{now.date().isoformat()}.json"


def build_export(
    database: str,
    recipients: List[Recipient],
    send_only_new_defects: bool,
    now: datetime = None,
) -> dict:
    """Export document for the current panel state"""
    if now is None:
        now = datetime.now(timezone.utc)
    return {
        "database": database,
        "recipients": [
            {
                "email": recipient.email,
                "send_only_new_defects": recipient.send_only_new_defects,
            }
            for recipient in recipients
        ],
        "settings": {"send_only_new_defects": send_only_new_defects},
        "exported_at": now.isoformat(),
    }


def write_export(document: dict, directory: str, filename: str) -> str:
    """
    Write an export document as indented JSON

    Returns:
        path of the written file
    """
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, filename)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(document, f, indent=2, ensure_ascii=False)

    logger.info(f"Settings exported: {path}")
    return path
