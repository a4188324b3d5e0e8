from fastapi.testclient import TestClient


def test_health(client: TestClient):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert "X-Correlation-ID" in response.headers


def test_correlation_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Correlation-ID": "abc-123"})

    assert response.headers["X-Correlation-ID"] == "abc-123"


def test_unknown_route_returns_not_found(client: TestClient):
    response = client.get("/api/v1/does-not-exist")

    assert response.status_code == 404
