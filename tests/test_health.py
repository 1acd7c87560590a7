def test_health(client):
    response = client.get("/shopgate/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["trace_id"]
    assert response.headers["X-Trace-ID"] == payload["trace_id"]


def test_health_echoes_incoming_trace_id(client):
    response = client.get("/shopgate/health", headers={"X-Trace-ID": "trace-from-gateway"})
    assert response.json()["trace_id"] == "trace-from-gateway"
    assert response.headers["X-Trace-ID"] == "trace-from-gateway"

    oversized = client.get("/shopgate/health", headers={"X-Trace-ID": "x" * 200})
    assert oversized.headers["X-Trace-ID"] != "x" * 200
