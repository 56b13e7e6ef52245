"""
Panel Lifecycle and Command Tests
"""
import json
import threading
import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from dvir_emailer.errors import QueryFailed, SessionUnavailable, WriteFailed
from dvir_emailer.panel import AlertLevel, DvirEmailerPanel, Notifier
from dvir_emailer.recipients import FlatRecipientRepository, EmbeddedRecipientRepository
from dvir_emailer.session import SessionProvider, StaticSessionProvider


class FailingSessionProvider(SessionProvider):
    def get_session(self):
        raise SessionUnavailable("host did not answer")


@pytest.fixture
def repository(store):
    return FlatRecipientRepository(store)


@pytest.fixture
def panel(repository, scheduler, tmp_path):
    panel = DvirEmailerPanel(
        repository=repository,
        scheduler=scheduler,
        load_delay=1.0,
        export_dir=str(tmp_path / "exports"),
    )
    panel.initialize(StaticSessionProvider("acme"))
    return panel


def focused(panel, scheduler):
    """Focus and run the scheduled load"""
    panel.focus()
    scheduler.last.fire()
    return panel


class TestLifecycle:
    """Test initialize / focus / blur"""

    def test_initialize_calls_callback_once(self, repository):
        callback = MagicMock()
        panel = DvirEmailerPanel(repository=repository)

        panel.initialize(StaticSessionProvider("acme"), callback)

        callback.assert_called_once_with()
        assert panel.state is not None

    def test_focus_configures_tenant_and_schedules_load(self, panel, scheduler, store):
        assert panel.focus() is True

        assert panel.state.database == "acme"
        assert panel.state.visible is True
        assert len(store.query("geotab_databases", {"database_name": "acme"})) == 1
        assert scheduler.last.delay == 1.0
        assert panel.state.loading is True

    def test_scheduled_load_fills_state(self, panel, scheduler, repository):
        repository.add_recipient("acme", "a@x.com")

        focused(panel, scheduler)

        assert [r.email for r in panel.state.recipients] == ["a@x.com"]
        assert panel.state.loading is False
        assert panel.notifier.last.message == "Loaded 1 recipients"

    def test_blur_cancels_pending_load(self, panel, scheduler, repository):
        repository.add_recipient("acme", "a@x.com")
        panel.focus()

        panel.blur()

        assert scheduler.last.cancelled is True
        assert panel.state.visible is False
        # a timer that already fired must not load into the hidden panel
        scheduler.last.fire()
        assert panel.state.recipients == []

    def test_refocus_replaces_pending_load(self, panel, scheduler):
        panel.focus()
        first = scheduler.last
        panel.focus()

        assert first.cancelled is True
        assert len(scheduler.handles) == 2

    def test_session_failure_is_reported(self, panel, scheduler):
        assert panel.focus(FailingSessionProvider()) is False

        assert scheduler.handles == []
        assert panel.notifier.last.level is AlertLevel.DANGER

    def test_commands_require_initialize(self, repository):
        panel = DvirEmailerPanel(repository=repository)

        with pytest.raises(RuntimeError):
            panel.refresh()

    def test_timer_thread_waits_for_blur(self, panel, scheduler, repository):
        """A load firing on another thread while the panel is busy sees the blur"""
        repository.add_recipient("acme", "a@x.com")
        panel.focus()
        pending = scheduler.last

        with panel._lock:
            worker = threading.Thread(target=pending.fire)
            worker.start()
            worker.join(timeout=0.2)
            assert worker.is_alive()
            panel.blur()
        worker.join(timeout=5)

        assert not worker.is_alive()
        assert panel.state.recipients == []
        assert panel.state.loading is False

    def test_teardown_clears_state(self, panel, scheduler):
        panel.focus()
        panel.teardown()

        assert panel.state is None
        assert scheduler.last.cancelled is True


class TestCommands:
    """Test user commands"""

    def test_add_and_remove_scenario(self, panel, scheduler):
        focused(panel, scheduler)
        assert panel.render()["count"] == "0"

        assert panel.add_recipient("a@x.com") is True
        assert panel.render()["count"] == "1"
        assert panel.refresh() is True
        assert [(r.email, r.defect_filter.value) for r in panel.state.recipients] == [("a@x.com", "new")]

        assert panel.remove_recipient("a@x.com", confirm=lambda message: True) is True
        assert panel.refresh() is True
        assert panel.render()["count"] == "0"

    def test_add_uses_shared_setting(self, panel, scheduler):
        focused(panel, scheduler)
        panel.toggle_shared_setting(False)

        panel.add_recipient("a@x.com")

        assert panel.state.recipients[0].send_only_new_defects is False

    def test_duplicate_add_warns(self, panel, scheduler):
        focused(panel, scheduler)
        panel.add_recipient("a@x.com")

        assert panel.add_recipient("a@x.com") is False

        assert panel.notifier.last.level is AlertLevel.WARNING
        assert len(panel.state.recipients) == 1

    def test_blank_email_warns(self, panel, scheduler):
        focused(panel, scheduler)

        assert panel.add_recipient("   ") is False
        assert panel.notifier.last.level is AlertLevel.WARNING

    def test_invalid_email_warns(self, panel, scheduler):
        focused(panel, scheduler)

        assert panel.add_recipient("nope") is False
        assert panel.notifier.last.level is AlertLevel.WARNING

    def test_remove_cancelled_by_confirm(self, panel, scheduler):
        focused(panel, scheduler)
        panel.add_recipient("a@x.com")
        prompts = []

        def decline(message):
            prompts.append(message)
            return False

        assert panel.remove_recipient(panel.state.recipients[0].id, confirm=decline) is False

        assert prompts == ["Are you sure you want to remove a@x.com from the recipient list?"]
        assert len(panel.state.recipients) == 1

    def test_load_failure_shows_empty_list(self, panel, scheduler, repository):
        focused(panel, scheduler)
        panel.add_recipient("a@x.com")
        repository.load = MagicMock(side_effect=QueryFailed("offline"))

        assert panel.refresh() is False

        assert panel.state.recipients == []
        assert panel.notifier.last.level is AlertLevel.DANGER
        assert "offline" in panel.notifier.last.message

    def test_toggle_updates_every_recipient(self, panel, scheduler, repository):
        focused(panel, scheduler)
        panel.add_recipient("a@x.com")
        panel.add_recipient("b@x.com")

        assert panel.toggle_shared_setting(False) is True

        assert all(not r.send_only_new_defects for r in panel.state.recipients)
        assert all(not r.send_only_new_defects for r in repository.load("acme").recipients)

    def test_toggle_failure_restores_setting(self, panel, scheduler, repository):
        focused(panel, scheduler)
        panel.add_recipient("a@x.com")
        repository.update_shared_setting = MagicMock(side_effect=WriteFailed("cancelled"))

        assert panel.toggle_shared_setting(False) is False

        assert panel.state.send_only_new_defects is True
        assert panel.notifier.last.level is AlertLevel.DANGER

    def test_connection_check(self, panel, store):
        assert panel.test_connection() is True
        store.ping = MagicMock(side_effect=QueryFailed("unreachable"))

        assert panel.test_connection() is False

    def test_email_system_needs_recipients(self, panel, scheduler):
        focused(panel, scheduler)
        assert panel.test_email_system() is False
        assert panel.notifier.last.level is AlertLevel.WARNING

        panel.add_recipient("a@x.com")
        assert panel.test_email_system() is True
        assert panel.notifier.last.level is AlertLevel.INFO

    def test_export_writes_json(self, panel, scheduler, tmp_path):
        focused(panel, scheduler)
        panel.add_recipient("a@x.com")
        panel.add_recipient("b@x.com")
        now = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

        path = panel.export_settings(now=now)

        assert path.endswith("dvir-email-settings-acme-2026-10-18.json")
        with open(path, encoding="utf-8") as f:
            document = json.load(f)
        assert document["database"] == "acme"
        assert len(document["recipients"]) == len(panel.state.recipients)
        assert document["settings"] == {"send_only_new_defects": True}


class TestEmbeddedPanel:
    """The panel works the same against the embedded layout"""

    def test_add_remove_by_email(self, store, scheduler):
        panel = DvirEmailerPanel(repository=EmbeddedRecipientRepository(store), scheduler=scheduler)
        panel.initialize(StaticSessionProvider("acme"))
        focused(panel, scheduler)

        assert panel.add_recipient("a@x.com") is True
        assert panel.remove_recipient("a@x.com") is True
        assert panel.refresh() is True
        assert panel.state.recipients == []


class TestNotifier:
    """Test auto-dismissing notifications"""

    def test_notifications_expire(self):
        now = [0.0]
        notifier = Notifier(dismiss_after=3.0, clock=lambda: now[0])

        notifier.notify("Saved", AlertLevel.SUCCESS)
        now[0] = 2.9
        assert [n.message for n in notifier.active()] == ["Saved"]

        now[0] = 3.0
        assert notifier.active() == []

    def test_listener_receives_notifications(self):
        listener = MagicMock()
        notifier = Notifier(listener=listener)

        notification = notifier.notify("Hello")

        listener.assert_called_once_with(notification)
