def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "OK"
    assert body["environment"] == "test"
    assert body["uptime"] >= 0
    assert body["timestamp"].endswith("Z")


def test_root_lists_endpoints(client):
    body = client.get("/").json()
    assert body["endpoints"]["offlineProviders"] == "/api/offline/providers"
    assert body["endpoints"]["auth"] == "/api/auth"


def test_unknown_route_envelope(client):
    res = client.get("/api/nowhere")
    assert res.status_code == 404
    body = res.json()
    assert body["error"] is True
    assert body["message"] == "Endpoint not found"
    assert body["code"] == "NOT_FOUND"
    assert "timestamp" in body


def test_validation_error_envelope(client):
    res = client.post("/api/auth/login", json={"email": "not-an-email"})
    assert res.status_code == 400
    assert res.json()["code"] == "VALIDATION_ERROR"
