"""
Recipient list markup
"""
from html import escape
from typing import List

from ..recipients import Recipient
from .notifications import Notification

EMPTY_STATE_HTML = """<div class="empty-state">
    <i class="fas fa-inbox"></i>
    <h5>No recipients configured</h5>
    <p>Add email addresses above to receive DVIR defect notifications</p>
</div>"""


def render_count(recipients: List[Recipient]) -> str:
    """Recipient count label"""
    return str(len(recipients))


def render_recipient(recipient: Recipient) -> str:
    """
    Single recipient row

    Args:
        recipient: recipient to render

    Returns:
        HTML fragment with a remove button carrying the recipient identifier
    """
    email = escape(recipient.email)
    identifier = escape(recipient.identifier, quote=True)
    return f"""<div class="recipient-item" data-recipient-id="{identifier}">
    <div class="recipient-email">{email}</div>
    <span class="badge">{escape(recipient.defect_filter.value)}</span>
    <button class="btn btn-outline-danger btn-sm" data-action="remove" data-recipient-id="{identifier}" data-email="{escape(recipient.email, quote=True)}">
        <i class="fas fa-trash me-1"></i>Remove
    </button>
</div>"""


def render_recipients(recipients: List[Recipient]) -> str:
    """Recipient list, or the empty state when there are none"""
    if not recipients:
        return EMPTY_STATE_HTML
    return "\n".join(render_recipient(recipient) for recipient in recipients)


def render_alert(notification: Notification) -> str:
    level = notification.level
    return (
        f'<div class="alert alert-{level.value} alert-dismissible fade show" role="alert">'
        f'<i class="fas fa-{level.icon} me-2"></i>{escape(notification.message)}'
        f'<button type="button" class="btn-close" data-bs-dismiss="alert"></button></div>'
    )
