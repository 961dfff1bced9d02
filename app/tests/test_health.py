def test_health_echoes_request_id(client):
    r = client.get("/api/v1/health", headers={"X-Request-Id": "abc-1"})
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "request_id": "abc-1", "environment": "test"}
    assert r.headers["X-Request-Id"] == "abc-1"


def test_health_generates_request_id(client):
    r = client.get("/api/v1/health")
    assert r.headers["X-Request-Id"]
