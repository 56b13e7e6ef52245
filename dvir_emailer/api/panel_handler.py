"""
Recipient panel API Lambda handler
Called through a Lambda Function URL by the browser add-in
"""
import base64
import json
import logging
from urllib.parse import unquote

from ..errors import (
    ConfigurationMissing,
    DuplicateRecipient,
    QueryFailed,
    RecipientStoreError,
    RemoteUnavailable,
    WriteFailed,
)
from ..panel.export import build_export, export_filename
from ..recipients import get_recipient_repository

logger = logging.getLogger(__name__)

HEADERS = {
    "Content-Type": "application/json; charset=utf-8",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "GET,POST,PUT,DELETE,OPTIONS",
}

_ERROR_STATUS = (
    (ConfigurationMissing, 404),
    (RemoteUnavailable, 503),
    (QueryFailed, 502),
    (WriteFailed, 502),
)


def response(status_code: int, body, headers: dict = None) -> dict:
    """API Gateway proxy response with a JSON body"""
    merged = dict(HEADERS)
    if headers:
        merged.update(headers)
    return {
        "statusCode": status_code,
        "headers": merged,
        "body": json.dumps(body, ensure_ascii=False) if body is not None else "",
    }


def error_response(status_code: int, message: str) -> dict:
    return response(status_code, {"error": message})


def _parse_request(event: dict) -> tuple:
    """
    Method, path, query parameters and JSON body of a Function URL or API Gateway event

    Raises:
        ValueError: body is not valid JSON
    """
    http = (event.get("requestContext") or {}).get("http") or {}
    method = (event.get("httpMethod") or http.get("method") or "GET").upper()
    path = event.get("rawPath") or event.get("path") or "/"
    params = event.get("queryStringParameters") or {}

    raw_body = event.get("body")
    if raw_body and event.get("isBase64Encoded"):
        raw_body = base64.b64decode(raw_body).decode("utf-8")
    body = json.loads(raw_body) if raw_body else {}
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")

    return method, path.rstrip("/") or "/", params, body


def _flag(body: dict, name: str, default: bool = None) -> bool:
    """
    JSON boolean field

    Raises:
        ValueError: field missing without default, or not a JSON boolean
    """
    value = body.get(name, default)
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be true or false")
    return value


def _load_payload(repository, database: str) -> dict:
    repository.ensure_tenant_configured(database)
    result = repository.load(database)
    return {
        "database": database,
        "count": result.count,
        "send_only_new_defects": result.send_only_new_defects,
        "recipients": [recipient.to_dict() for recipient in result.recipients],
    }


def route(repository, method: str, path: str, database: str, body: dict) -> dict:
    """Dispatch a request to the repository"""
    if method == "GET" and path == "/health":
        repository.ping()
        return response(200, {"status": "ok"})

    if method == "GET" and path == "/recipients":
        return response(200, _load_payload(repository, database))

    if method == "POST" and path == "/recipients":
        try:
            send_only_new_defects = _flag(body, "send_only_new_defects", True)
            recipient = repository.add_recipient(database, body.get("email", ""), send_only_new_defects)
        except ValueError as e:
            return error_response(400, str(e))
        except DuplicateRecipient as e:
            return error_response(409, str(e))
        return response(201, recipient.to_dict())

    if method == "DELETE" and path.startswith("/recipients/"):
        identifier = unquote(path[len("/recipients/"):])
        removed = repository.remove_recipient(database, identifier)
        return response(200, {"removed": removed, "id": identifier})

    if method == "PUT" and path == "/settings":
        try:
            send_only_new_defects = _flag(body, "send_only_new_defects")
        except ValueError as e:
            return error_response(400, str(e))
        updated = repository.update_shared_setting(database, send_only_new_defects)
        return response(200, {"updated": updated})

    if method == "GET" and path == "/export":
        result = repository.load(database)
        document = build_export(database, result.recipients, result.send_only_new_defects)
        return response(
            200,
            document,
            headers={"Content-Disposition": f'attachment; filename="{export_filename(database)}"'},
        )

    return error_response(404, f"Unknown route: {method} {path}")


def handler(event, context):
    """
    Panel API Lambda handler

    Args:
        event: Function URL / API Gateway event
        context: Lambda context

    Returns:
        API Gateway response
    """
    safe_event = {k: event.get(k) for k in ("httpMethod", "rawPath", "path", "queryStringParameters")}
    logger.info(f"Panel API request: {json.dumps(safe_event)}")

    try:
        method, path, params, body = _parse_request(event)
    except ValueError as e:
        logger.warning(f"Invalid request body: {e}")
        return error_response(400, "Invalid JSON body")

    # CORS preflight
    if method == "OPTIONS":
        return response(200, None)

    database = params.get("database") or body.get("database")
    if not database and path != "/health":
        return error_response(400, "database is required")

    try:
        repository = get_recipient_repository()
        return route(repository, method, path, database, body)

    except RecipientStoreError as e:
        status_code = next((code for cls, code in _ERROR_STATUS if isinstance(e, cls)), 500)
        logger.error(f"Panel API error ({status_code}): {e}")
        return error_response(status_code, str(e))

    except Exception as e:
        logger.error(f"Panel API handler error: {e}", exc_info=True)
        return error_response(500, "Internal server error")


if __name__ == "__main__":
    # local test
    test_event = {
        "httpMethod": "GET",
        "path": "/recipients",
        "queryStringParameters": {"database": "demo"},
    }
    result = handler(test_event, None)
    print(json.dumps(result, indent=2))
