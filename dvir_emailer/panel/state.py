"""
Panel state and load scheduling
"""
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..recipients import Recipient


@dataclass
class PanelState:
    """State of one panel instance, created on initialize and dropped on teardown"""

    database: Optional[str] = None
    recipients: List[Recipient] = field(default_factory=list)
    send_only_new_defects: bool = True
    visible: bool = False
    loading: bool = False

    def find(self, identifier: str) -> Optional[Recipient]:
        for recipient in self.recipients:
            if recipient.identifier == identifier or recipient.email == identifier:
                return recipient
        return None


class _ImmediateHandle:
    def cancel(self):
        pass


def timer_scheduler(delay: float, fn: Callable[[], None]):
    """Run fn after delay seconds on a daemon timer thread"""
    timer = threading.Timer(delay, fn)
    timer.daemon = True
    timer.start()
    return timer


def immediate_scheduler(delay: float, fn: Callable[[], None]):
    """Run fn right away (CLI, handlers)"""
    fn()
    return _ImmediateHandle()
