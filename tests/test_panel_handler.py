"""
Panel API Lambda Handler Tests
"""
import json
import pytest
from unittest.mock import patch

from dvir_emailer.api.panel_handler import handler
from dvir_emailer.recipients import EmbeddedRecipientRepository, FlatRecipientRepository


@pytest.fixture
def repository(store):
    repository = FlatRecipientRepository(store)
    with patch("dvir_emailer.api.panel_handler.get_recipient_repository", return_value=repository):
        yield repository


def request(method, path, database="acme", body=None):
    event = {"httpMethod": method, "path": path, "queryStringParameters": {}}
    if database:
        event["queryStringParameters"]["database"] = database
    if body is not None:
        event["body"] = json.dumps(body)
    return event


def body_of(result):
    return json.loads(result["body"])


class TestPanelHandler:
    """Test routes"""

    def test_options_preflight(self, repository):
        result = handler({"httpMethod": "OPTIONS", "path": "/recipients"}, None)

        assert result["statusCode"] == 200
        assert result["headers"]["Access-Control-Allow-Origin"] == "*"

    def test_list_configures_tenant(self, repository, store):
        result = handler(request("GET", "/recipients"), None)

        assert result["statusCode"] == 200
        assert body_of(result) == {
            "database": "acme",
            "count": 0,
            "send_only_new_defects": True,
            "recipients": [],
        }
        assert len(store.query("geotab_databases", {"database_name": "acme"})) == 1

    def test_add_then_list(self, repository):
        created = handler(request("POST", "/recipients", body={"email": "a@x.com"}), None)
        listed = handler(request("GET", "/recipients"), None)

        assert created["statusCode"] == 201
        assert body_of(created)["email"] == "a@x.com"
        assert [r["email"] for r in body_of(listed)["recipients"]] == ["a@x.com"]

    def test_duplicate_returns_409(self, repository):
        handler(request("POST", "/recipients", body={"email": "a@x.com"}), None)

        result = handler(request("POST", "/recipients", body={"email": "a@x.com"}), None)

        assert result["statusCode"] == 409

    def test_invalid_email_returns_400(self, repository):
        result = handler(request("POST", "/recipients", body={"email": "nope"}), None)

        assert result["statusCode"] == 400

    def test_delete(self, repository):
        recipient = repository.add_recipient("acme", "a@x.com")

        result = handler(request("DELETE", f"/recipients/{recipient.id}"), None)

        assert result["statusCode"] == 200
        assert body_of(result)["removed"] is True
        assert repository.load("acme").count == 0

    def test_settings(self, repository):
        repository.add_recipient("acme", "a@x.com")

        result = handler(request("PUT", "/settings", body={"send_only_new_defects": False}), None)

        assert body_of(result) == {"updated": 1}
        assert repository.load("acme").send_only_new_defects is False

    def test_export_attachment(self, repository):
        repository.add_recipient("acme", "a@x.com")

        result = handler(request("GET", "/export"), None)

        assert result["statusCode"] == 200
        assert "dvir-email-settings-acme-" in result["headers"]["Content-Disposition"]
        assert len(body_of(result)["recipients"]) == 1

    def test_health(self, repository):
        result = handler(request("GET", "/health", database=None), None)

        assert body_of(result) == {"status": "ok"}

    def test_missing_database(self, repository):
        result = handler(request("GET", "/recipients", database=None), None)

        assert result["statusCode"] == 400

    def test_unknown_route(self, repository):
        assert handler(request("GET", "/nope"), None)["statusCode"] == 404

    def test_invalid_json(self, repository):
        event = request("POST", "/recipients")
        event["body"] = "{not json"

        assert handler(event, None)["statusCode"] == 400

    def test_function_url_event(self, repository):
        """Function URL events carry the method under requestContext.http"""
        event = {
            "rawPath": "/recipients",
            "requestContext": {"http": {"method": "GET"}},
            "queryStringParameters": {"database": "acme"},
        }

        assert handler(event, None)["statusCode"] == 200

    def test_settings_rejects_non_boolean(self, repository):
        repository.add_recipient("acme", "a@x.com")

        result = handler(request("PUT", "/settings", body={"send_only_new_defects": "false"}), None)

        assert result["statusCode"] == 400
        assert repository.load("acme").send_only_new_defects is True

    def test_settings_requires_flag(self, repository):
        assert handler(request("PUT", "/settings", body={}), None)["statusCode"] == 400

    def test_add_rejects_non_boolean(self, repository):
        body = {"email": "a@x.com", "send_only_new_defects": "false"}

        result = handler(request("POST", "/recipients", body=body), None)

        assert result["statusCode"] == 400
        assert repository.load("acme").count == 0


class TestEmbeddedLayoutRoutes:
    """Routes against the embedded layout, where the recipient id is the email"""

    def test_delete_decodes_encoded_email(self, store):
        repository = EmbeddedRecipientRepository(store)
        repository.ensure_tenant_configured("acme")
        repository.add_recipient("acme", "a+b@x.com")
        event = {
            "rawPath": "/recipients/a%2Bb%40x.com",
            "requestContext": {"http": {"method": "DELETE"}},
            "queryStringParameters": {"database": "acme"},
        }

        with patch("dvir_emailer.api.panel_handler.get_recipient_repository", return_value=repository):
            result = handler(event, None)

        assert result["statusCode"] == 200
        assert body_of(result) == {"removed": True, "id": "a+b@x.com"}
        assert repository.load("acme").emails() == []


def test_store_not_initialized_returns_503():
    with patch(
        "dvir_emailer.api.panel_handler.get_recipient_repository",
        return_value=FlatRecipientRepository(None),
    ):
        result = handler(request("GET", "/recipients"), None)

    assert result["statusCode"] == 503
