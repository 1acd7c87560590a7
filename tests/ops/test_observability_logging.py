import json
import logging
from types import SimpleNamespace

from starlette.requests import Request
from starlette.responses import Response

from app.shopgate.middleware.observability import build_request_log_payload
from tests.factories import auth_headers, shop_world


def test_build_request_log_payload():
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/shopgate/approvals/123/decision",
        "headers": [],
        "route": SimpleNamespace(path="/shopgate/approvals/{request_id}/decision"),
    }
    request = Request(scope)
    request.state.trace_id = "trace-1"
    request.state.shop_id = "shop-1"
    request.state.user_id = "user-1"
    request.state.error_code = "STALE_APPROVAL_TARGET"
    response = Response(status_code=409)

    payload = build_request_log_payload(
        request=request,
        response=response,
        latency_ms=12.3456,
        db_time_ms=4.5678,
    )

    assert payload["trace_id"] == "trace-1"
    assert payload["shop_id"] == "shop-1"
    assert payload["user_id"] == "user-1"
    assert payload["route"] == "/shopgate/approvals/{request_id}/decision"
    assert payload["method"] == "POST"
    assert payload["status_code"] == 409
    assert payload["latency_ms"] == 12.35
    assert payload["db_time_ms"] == 4.57
    assert payload["error_code"] == "STALE_APPROVAL_TARGET"


def test_request_is_logged_with_shop_and_user(client, db_session, caplog):
    owner, shop, _ = shop_world(db_session)
    headers = auth_headers(client, owner)

    with caplog.at_level(logging.INFO, logger="shopgate.request"):
        response = client.get("/shopgate/shops/current", headers=headers)

    assert response.status_code == 200
    records = [json.loads(record.getMessage()) for record in caplog.records if record.name == "shopgate.request"]
    assert records[-1]["route"] == "/shopgate/shops/current"
    assert records[-1]["shop_id"] == str(shop.id)
    assert records[-1]["user_id"] == str(owner.id)
    assert records[-1]["trace_id"] == response.headers["X-Trace-ID"]
