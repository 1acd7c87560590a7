import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.shopgate.core.errors import setup_exception_handlers
from app.shopgate.core.metrics import Metrics, metrics


@pytest.fixture
def failing_app():
    app = FastAPI()
    setup_exception_handlers(app)

    @app.post("/approvals/decide")
    def locked_decision():
        raise OperationalError("UPDATE approval_requests", {}, Exception("database is locked"))

    @app.get("/boom")
    def boom():
        raise RuntimeError("boom")

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


def test_lock_timeout_is_conflict_and_counted(failing_app):
    metrics.reset()

    response = failing_app.post("/approvals/decide")

    assert response.status_code == 409
    assert response.json()["code"] == "LOCK_TIMEOUT"
    content = metrics.render().content.decode("utf-8")
    if metrics.enabled:
        assert "lock_wait_timeout_total 1.0" in content
    else:
        assert "metrics_disabled" in content


def test_unexpected_error_is_internal_error(failing_app):
    response = failing_app.get("/boom")

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "INTERNAL_ERROR"
    assert body["details"] == {"type": "RuntimeError"}


def test_domain_counters_are_labelled():
    registry = Metrics(enabled=True)
    registry.increment_permission_denied("PRODUCT_MANAGEMENT", "EDIT")
    registry.increment_approval_transition("APPLIED")
    registry.increment_cascade_change("ShopWorker", 5)
    registry.increment_cascade_change("Shop", 0)

    content = registry.render().content.decode("utf-8")
    assert 'permission_denied_total{action="EDIT",module="PRODUCT_MANAGEMENT"} 1.0' in content
    assert 'approval_transitions_total{status="APPLIED"} 1.0' in content
    assert 'cascade_changes_total{entity_type="ShopWorker"} 5.0' in content
    assert 'entity_type="Shop"' not in content


def test_disabled_metrics_render_placeholder():
    registry = Metrics(enabled=False)
    registry.increment_lock_wait_timeout()
    snapshot = registry.render()
    assert snapshot.content == b"metrics_disabled\n"
    assert snapshot.content_type == "text/plain"
