"""
Export and Renderer Tests
"""
from datetime import datetime, timezone

from dvir_emailer.panel.export import build_export, export_filename
from dvir_emailer.panel.notifications import AlertLevel, Notification
from dvir_emailer.panel.renderer import (
    EMPTY_STATE_HTML,
    render_alert,
    render_count,
    render_recipients,
)
from dvir_emailer.recipients import DefectFilter, Recipient

NOW = datetime(2026, 10, 18, 8, 30, tzinfo=timezone.utc)


class TestExport:
    """Test export document layout"""

    def test_filename(self):
        assert export_filename("acme", NOW) == "dvir-email-settings-acme-2026-10-18.json"

    def test_document(self):
        recipients = [
            Recipient("a@x.com", DefectFilter.NEW, id="1"),
            Recipient("b@x.com", DefectFilter.ALL, id="2"),
        ]

        document = build_export("acme", recipients, True, NOW)

        assert document == {
            "database": "acme",
            "recipients": [
                {"email": "a@x.com", "send_only_new_defects": True},
                {"email": "b@x.com", "send_only_new_defects": False},
            ],
            "settings": {"send_only_new_defects": True},
            "exported_at": "2026-10-18T08:30:00+00:00",
        }

    def test_recipient_count_matches(self):
        recipients = [Recipient(f"{i}@x.com") for i in range(5)]

        assert len(build_export("acme", recipients, False, NOW)["recipients"]) == 5


class TestRenderer:
    """Test list markup"""

    def test_empty_state(self):
        assert render_recipients([]) == EMPTY_STATE_HTML
        assert render_count([]) == "0"

    def test_rows_carry_identifier(self):
        html = render_recipients([Recipient("a@x.com", id="doc1"), Recipient("b@x.com")])

        assert html.count('class="recipient-item"') == 2
        assert 'data-recipient-id="doc1"' in html
        assert 'data-recipient-id="b@x.com"' in html

    def test_email_is_escaped(self):
        html = render_recipients([Recipient("<script>@x.com", id="1")])

        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_alert_markup(self):
        html = render_alert(Notification("Saved", AlertLevel.SUCCESS))

        assert "alert-success" in html
        assert "fa-check-circle" in html
