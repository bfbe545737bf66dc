# tests/test_routes/test_inventory_routes.py
import pytest
from fastapi.testclient import TestClient

from inventory_service.core.exceptions import TransportError
from inventory_service.dependencies import get_stock_service
from inventory_service.main import app


@pytest.fixture
def client(stock_service):
    """Client without lifespan startup; the stock service is injected directly"""
    app.dependency_overrides[get_stock_service] = lambda: stock_service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_get_item(client):
    response = client.get("/inventory/A")

    assert response.status_code == 200
    body = response.json()
    assert body["productCode"] == "A"
    assert body["quantity"] == 10

def test_get_missing_item_404(client):
    assert client.get("/inventory/MISSING").status_code == 404

def test_create_item(client, ledger):
    response = client.post(
        "/inventory",
        json={"productCode": "NEW-1", "name": "Gadget", "description": "test", "quantity": 3, "price": 4.5},
    )

    assert response.status_code == 201
    assert response.json()["productCode"] == "NEW-1"
    assert ledger.quantity("NEW-1") == 3

def test_create_duplicate_item_409(client, ledger):
    ledger.add("DUP-001", 5, name="Existing")
    response = client.post("/inventory", json={"productCode": "DUP-001", "name": "Again", "quantity": 1, "price": 1})
    assert response.status_code == 409

def test_create_rejects_invalid_body(client):
    response = client.post("/inventory", json={"name": "ab", "quantity": 0, "price": 1})
    assert response.status_code == 422

def test_update_stock(client, ledger):
    response = client.put("/inventory/A/stock", json={"quantity": 25})

    assert response.status_code == 200
    assert response.json()["quantity"] == 25
    assert ledger.quantity("A") == 25

def test_update_stock_missing_404(client):
    assert client.put("/inventory/MISSING/stock", json={"quantity": 1}).status_code == 404

def test_deduct_stock_insufficient_409(client, ledger):
    response = client.post("/inventory/A/deduct", json={"quantity": 11})

    assert response.status_code == 409
    assert "Available: 10" in response.json()["detail"]
    assert ledger.quantity("A") == 10

def test_event_not_delivered_503(client, ledger, mock_publisher):
    mock_publisher.publish_stock_event.side_effect = TransportError("broker down")

    response = client.put("/inventory/A/stock", json={"quantity": 2})

    assert response.status_code == 503
    assert ledger.quantity("A") == 2

def test_health_without_broker(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["broker"] == "DISCONNECTED"
