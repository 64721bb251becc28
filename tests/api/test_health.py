"""API tests for the health probes and the root route."""


async def test_health_reports_components(client):
    response = await client.get("/api/v1/health")

    assert response.status_code == 200
    body = response.json()
    assert body["checks"]["database"]["status"] == "healthy"
    assert body["checks"]["email"]["status"] == "degraded"
    assert body["status"] in ("healthy", "degraded")


async def test_ready_and_live(client):
    assert (await client.get("/api/v1/ready")).json() == {"status": "ready"}
    assert (await client.get("/api/v1/live")).json() == {"status": "alive"}


async def test_security_headers_and_request_id(client):
    response = await client.get("/api/v1/live", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Request-ID"] == "req-123"


async def test_unknown_route_uses_error_envelope(client):
    response = await client.get("/api/v1/nope")

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "NOT_FOUND"
