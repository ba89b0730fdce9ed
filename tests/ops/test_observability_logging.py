import json
import logging
from types import SimpleNamespace

from starlette.requests import Request
from starlette.responses import Response

from app.estore.middleware.observability import build_request_log_payload
from tests.opname_helpers import auth_headers


def test_build_request_log_payload():
    scope = {
        "type": "http",
        "method": "PATCH",
        "path": "/estore/opname/items/abc",
        "headers": [],
        "route": SimpleNamespace(path="/estore/opname/items/{line_id}"),
    }
    request = Request(scope)
    request.state.trace_id = "trace-1"
    request.state.user_id = "user-1"
    request.state.error_code = "OPNAME_SESSION_NOT_OPEN"
    response = Response(status_code=409)

    payload = build_request_log_payload(
        request=request,
        response=response,
        latency_ms=12.3456,
        db_time_ms=4.5678,
    )

    assert payload["trace_id"] == "trace-1"
    assert payload["user_id"] == "user-1"
    assert payload["route"] == "/estore/opname/items/{line_id}"
    assert payload["method"] == "PATCH"
    assert payload["status_code"] == 409
    assert payload["latency_ms"] == 12.35
    assert payload["db_time_ms"] == 4.57
    assert payload["error_code"] == "OPNAME_SESSION_NOT_OPEN"


def test_missing_response_logs_as_server_error():
    request = Request({"type": "http", "method": "GET", "path": "/x", "headers": []})
    payload = build_request_log_payload(request=request, response=None, latency_ms=1.0, db_time_ms=None)
    assert payload["status_code"] == 500
    assert payload["route"] == "/x"
    assert payload["db_time_ms"] is None


def test_request_log_includes_route_template_and_user(client, caplog):
    with caplog.at_level(logging.INFO, logger="estore.request"):
        response = client.get("/estore/opname/sessions", headers=auth_headers())
    assert response.status_code == 200

    entries = [json.loads(record.getMessage()) for record in caplog.records if record.name == "estore.request"]
    entry = next(item for item in entries if item["route"] == "/estore/opname/sessions")
    assert entry["status_code"] == 200
    assert entry["user_id"]
    assert entry["trace_id"] == response.headers["X-Trace-ID"]
    assert entry["db_time_ms"] is not None
