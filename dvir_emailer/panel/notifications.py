"""
Transient panel notifications
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class AlertLevel(Enum):
    SUCCESS = "success"
    DANGER = "danger"
    WARNING = "warning"
    INFO = "info"

    @property
    def icon(self) -> str:
        return {
            AlertLevel.SUCCESS: "check-circle",
            AlertLevel.DANGER: "exclamation-triangle",
            AlertLevel.WARNING: "exclamation-triangle",
            AlertLevel.INFO: "info-circle",
        }[self]


_LOG_LEVELS = {
    AlertLevel.SUCCESS: logging.INFO,
    AlertLevel.INFO: logging.INFO,
    AlertLevel.WARNING: logging.WARNING,
    AlertLevel.DANGER: logging.ERROR,
}


@dataclass
class Notification:
    message: str
    level: AlertLevel = AlertLevel.INFO
    created_at: float = field(default_factory=time.monotonic)


class Notifier:
    """Keeps notifications until they auto-dismiss"""

    def __init__(
        self,
        dismiss_after: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
        listener: Optional[Callable[[Notification], None]] = None,
    ):
        """
        Args:
            dismiss_after: seconds a notification stays visible
            clock: monotonic clock
            listener: called with every new notification (UI hook)
        """
        self.dismiss_after = dismiss_after
        self.clock = clock
        self.listener = listener
        self._notifications: List[Notification] = []

    def notify(self, message: str, level: AlertLevel = AlertLevel.INFO) -> Notification:
        notification = Notification(message=message, level=level, created_at=self.clock())
        self._notifications.append(notification)
        logger.log(_LOG_LEVELS[level], message)

        if self.listener is not None:
            self.listener(notification)
        return notification

    def active(self) -> List[Notification]:
        """Notifications that have not been dismissed yet"""
        now = self.clock()
        self._notifications = [
            n for n in self._notifications if now - n.created_at < self.dismiss_after
        ]
        return list(self._notifications)

    @property
    def last(self) -> Optional[Notification]:
        return self._notifications[-1] if self._notifications else None

    def clear(self):
        self._notifications = []
