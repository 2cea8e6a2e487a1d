from fastapi.testclient import TestClient

from dealdesk.main import app

client = TestClient(app)


def test_health_returns_200():
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == "0.1.0"
    assert data["settings"]["default_money_factor"] == "0.00125"


def test_derive_no_body_returns_422():
    response = client.post("/api/calculations/derive")
    assert response.status_code == 422
