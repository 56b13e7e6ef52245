"""
DVIR email manager panel
Lifecycle hooks (initialize / focus / blur) and the user commands of the add-in
"""

import functools
import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from ..errors import (
    DuplicateRecipient,
    RecipientStoreError,
    RemoteUnavailable,
    SessionUnavailable,
)
from ..recipients import DefectFilter, RecipientRepository, get_recipient_repository
from ..session import SessionProvider
from ..structured_logging import get_structured_logger, log_panel_error
from .export import build_export, export_filename, write_export
from .notifications import AlertLevel, Notifier
from .renderer import render_alert, render_count, render_recipients
from .state import PanelState, timer_scheduler

logger = logging.getLogger(__name__)
structured_logger = get_structured_logger(__name__)


def _synchronized(method):
    """Run under the panel lock; scheduler callbacks may arrive on another thread"""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return wrapper


class DvirEmailerPanel:
    """Recipient management panel for one host session"""

    def __init__(
        self,
        repository: RecipientRepository = None,
        notifier: Notifier = None,
        scheduler: Callable = None,
        load_delay: float = None,
        export_dir: str = None,
    ):
        """
        Args:
            repository: recipient repository (default: configured layout and backend)
            notifier: notification sink
            scheduler: scheduler(delay, fn) -> handle with cancel()
            load_delay: seconds between focus and the first load
            export_dir: directory for exported settings
        """
        from ..config import Config

        self._repository = repository
        self.notifier = notifier or Notifier(dismiss_after=Config.ALERT_DISMISS_SECONDS)
        self.scheduler = scheduler or timer_scheduler
        self.load_delay = Config.LOAD_DELAY_SECONDS if load_delay is None else load_delay
        self.export_dir = export_dir or Config.EXPORT_DIR
        self.session_provider: Optional[SessionProvider] = None
        self.state: Optional[PanelState] = None
        self._pending_load = None
        self._focus_generation = 0
        self._lock = threading.RLock()

    # --- helpers ---
    def _get_repository(self) -> RecipientRepository:
        if self._repository is None:
            try:
                self._repository = get_recipient_repository()
            except ValueError as e:
                raise RemoteUnavailable(f"Database not initialized: {e}") from e
        return self._repository

    def _require_state(self) -> PanelState:
        if self.state is None:
            raise RuntimeError("Panel is not initialized")
        return self.state

    def _report(self, action: str, error: Exception):
        """Log a failed command and show it to the user"""
        logger.error(f"{action}: {error}")
        log_panel_error(structured_logger, action, error, self.state.database if self.state else None)
        self.notifier.notify(f"{action}: {error}", AlertLevel.DANGER)

    def _cancel_pending_load(self):
        if self._pending_load is not None:
            self._pending_load.cancel()
            self._pending_load = None

    # --- lifecycle ---
    def initialize(self, session_provider: SessionProvider = None, callback: Callable[[], None] = None):
        """
        One-time setup. Invokes callback once the panel is ready.
        """
        self.session_provider = session_provider
        self.state = PanelState()
        logger.info("DVIR email panel initialized")

        if callback is not None:
            callback()

    @_synchronized
    def focus(self, session_provider: SessionProvider = None) -> bool:
        """
        Panel entered view: resolve the database, make sure it is configured
        and schedule the recipient load

        Returns:
            True when a load was scheduled
        """
        if session_provider is not None:
            self.session_provider = session_provider
        state = self._require_state()

        self._cancel_pending_load()
        self._focus_generation += 1
        generation = self._focus_generation
        state.visible = True

        try:
            if self.session_provider is None:
                raise SessionUnavailable("No host session provider")
            state.database = self.session_provider.get_session().database
        except SessionUnavailable as e:
            self._report("Error reading session", e)
            return False

        try:
            self._get_repository().ensure_tenant_configured(state.database)
        except RecipientStoreError as e:
            self._report("Error updating settings", e)

        state.loading = True
        self._pending_load = self.scheduler(self.load_delay, lambda: self._delayed_refresh(generation))
        return True

    @_synchronized
    def _delayed_refresh(self, generation: int):
        # a blur or a newer focus invalidates this load
        if generation != self._focus_generation or self.state is None or not self.state.visible:
            return
        self._pending_load = None
        self.refresh()

    @_synchronized
    def blur(self):
        """Panel left view: hide it and drop any pending load"""
        self._cancel_pending_load()
        self._focus_generation += 1
        if self.state is not None:
            self.state.visible = False
            self.state.loading = False

    @_synchronized
    def teardown(self):
        self.blur()
        self.state = None
        self.notifier.clear()
        logger.info("DVIR email panel torn down")

    # --- commands ---
    @_synchronized
    def refresh(self) -> bool:
        """Reload recipients from the store"""
        state = self._require_state()
        state.loading = True
        self.notifier.notify("Loading recipients...", AlertLevel.INFO)

        try:
            result = self._get_repository().load(state.database)
        except RecipientStoreError as e:
            state.recipients = []
            self._report("Error loading recipients", e)
            return False
        finally:
            state.loading = False

        state.recipients = result.recipients
        state.send_only_new_defects = result.send_only_new_defects
        self.notifier.notify(f"Loaded {result.count} recipients", AlertLevel.SUCCESS)
        return True

    @_synchronized
    def add_recipient(self, email: str, send_only_new_defects: bool = None) -> bool:
        """Add-recipient form submit"""
        state = self._require_state()
        email = (email or "").strip()
        if not email:
            self.notifier.notify("Enter an email address", AlertLevel.WARNING)
            return False

        if send_only_new_defects is None:
            send_only_new_defects = state.send_only_new_defects

        self.notifier.notify("Adding recipient...", AlertLevel.INFO)
        try:
            recipient = self._get_repository().add_recipient(state.database, email, send_only_new_defects)
        except ValueError as e:
            self.notifier.notify(str(e), AlertLevel.WARNING)
            return False
        except DuplicateRecipient:
            self.notifier.notify("This email address is already added as a recipient", AlertLevel.WARNING)
            return False
        except RecipientStoreError as e:
            self._report("Error adding recipient", e)
            return False

        state.recipients.append(recipient)
        self.notifier.notify(f"Successfully added {email} as a recipient", AlertLevel.SUCCESS)
        return True

    @_synchronized
    def remove_recipient(self, identifier: str, confirm: Callable[[str], bool] = None) -> bool:
        """
        Remove a recipient after confirmation

        Args:
            identifier: store id (flat layout) or email (embedded layout)
            confirm: asked with the confirmation message, removal happens only on True
        """
        state = self._require_state()
        recipient = state.find(identifier)
        email = recipient.email if recipient else identifier

        if confirm is not None and not confirm(
            f"Are you sure you want to remove {email} from the recipient list?"
        ):
            return False

        if recipient is not None:
            identifier = recipient.identifier

        self.notifier.notify("Removing recipient...", AlertLevel.INFO)
        try:
            self._get_repository().remove_recipient(state.database, identifier)
        except RecipientStoreError as e:
            self._report("Error removing recipient", e)
            return False

        state.recipients = [r for r in state.recipients if r.identifier != identifier]
        self.notifier.notify(f"Successfully removed {email}", AlertLevel.SUCCESS)
        return True

    @_synchronized
    def toggle_shared_setting(self, send_only_new_defects: bool) -> bool:
        """Shared "only new defects" switch changed"""
        state = self._require_state()
        previous = state.send_only_new_defects
        state.send_only_new_defects = send_only_new_defects

        if not state.recipients:
            return True

        self.notifier.notify("Updating settings...", AlertLevel.INFO)
        try:
            self._get_repository().update_shared_setting(state.database, send_only_new_defects)
        except RecipientStoreError as e:
            state.send_only_new_defects = previous
            self._report("Error updating settings", e)
            return False

        defect_filter = DefectFilter.from_flag(send_only_new_defects)
        for recipient in state.recipients:
            recipient.defect_filter = defect_filter

        self.notifier.notify("Settings updated successfully", AlertLevel.SUCCESS)
        return True

    def test_connection(self) -> bool:
        """Check that the recipient store is reachable"""
        try:
            self._get_repository().ping()
        except RecipientStoreError as e:
            self._report("Database connection failed", e)
            return False

        self.notifier.notify("Database connection successful", AlertLevel.SUCCESS)
        return True

    def test_email_system(self) -> bool:
        """Email delivery lives in a separate backend service; only checks there is someone to send to"""
        state = self._require_state()
        if not state.recipients:
            self.notifier.notify(
                "No recipients configured. Add at least one recipient to test the email system.",
                AlertLevel.WARNING,
            )
            return False

        self.notifier.notify(
            "Test email functionality would be implemented in your backend service",
            AlertLevel.INFO,
        )
        return True

    def export_document(self, now: datetime = None) -> dict:
        state = self._require_state()
        return build_export(state.database, state.recipients, state.send_only_new_defects, now)

    @_synchronized
    def export_settings(self, directory: str = None, now: datetime = None) -> Optional[str]:
        """
        Write the current settings to dvir-email-settings-<database>-<date>.json

        Returns:
            path of the exported file, None on failure
        """
        state = self._require_state()
        if not state.database:
            self.notifier.notify("No database selected", AlertLevel.WARNING)
            return None

        document = self.export_document(now)
        filename = export_filename(state.database, now)
        try:
            path = write_export(document, directory or self.export_dir, filename)
        except OSError as e:
            self._report("Error exporting settings", e)
            return None

        self.notifier.notify("Settings exported successfully", AlertLevel.SUCCESS)
        return path

    # --- view ---
    @_synchronized
    def render(self) -> dict:
        """Current view model: count label, list markup and visible alerts"""
        state = self._require_state()
        return {
            "database": state.database,
            "count": render_count(state.recipients),
            "recipients_html": render_recipients(state.recipients),
            "send_only_new_defects": state.send_only_new_defects,
            "alerts": [render_alert(n) for n in self.notifier.active()],
            "visible": state.visible,
            "loading": state.loading,
        }
