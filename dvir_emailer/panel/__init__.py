"""
Panel shell, commands and presentation helpers
"""
from .notifications import AlertLevel, Notification, Notifier
from .plugin import DvirEmailerPanel
from .state import PanelState, immediate_scheduler, timer_scheduler

__all__ = [
    "AlertLevel",
    "Notification",
    "Notifier",
    "DvirEmailerPanel",
    "PanelState",
    "immediate_scheduler",
    "timer_scheduler",
]
