"""Tests for the FastAPI API."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from checkout_service.errors import GatewayError, NotificationError
from checkout_service.main import create_app
from checkout_service.workflow import OrderWorkflow

from .conftest import CUSTOMER, PAYPAL_ORDER_ID, FakeGateway, FakeNotifier

CART = {"total": 6.0, "items": [{"productName": "A", "quantity": 2, "price": 3.0}]}

ORDER_BODY = {
    "user": CUSTOMER,
    "cartItems": [{"productName": "A", "quantity": 2, "price": 3.0}],
    "totalAmount": 6.0,
    "paymentMethod": "cash_on_delivery",
}


def place(api_client, **overrides):
    body = dict(ORDER_BODY, **overrides)
    return api_client.post("/api/orders/place", json=body)


class TestCreateOrder:
    def test_returns_paypal_payload_and_status(self, client, gateway):
        response = client.post("/api/orders", json={"cart": CART})

        assert response.status_code == 201
        assert response.json() == {"id": PAYPAL_ORDER_ID, "status": "CREATED"}
        assert len(gateway.authorizations) == 1

    def test_missing_cart(self, client, gateway):
        response = client.post("/api/orders", json={})

        assert response.status_code == 400
        assert response.json()["error"] == "Cart data is required"
        assert gateway.authorizations == []

    def test_invalid_cart(self, client, gateway, store):
        response = client.post("/api/orders", json={"cart": {"total": 0, "items": []}})

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "Failed to create order"
        assert "Invalid cart" in data["details"]
        assert gateway.authorizations == []
        assert store.list() == []

    def test_gateway_error(self, store, notifier):
        gateway = FakeGateway(error=GatewayError("PayPal API Error", "HTTP 422: UNPROCESSABLE_ENTITY", status_code=422))
        api_client = TestClient(create_app(workflow=OrderWorkflow(gateway, store, notifier)))

        response = api_client.post("/api/orders", json={"cart": CART})

        assert response.status_code == 500
        assert response.json() == {
            "error": "Failed to create order",
            "details": "PayPal API Error: HTTP 422: UNPROCESSABLE_ENTITY",
        }

    def test_malformed_item_is_client_error(self, client, gateway):
        cart = {"total": 6.0, "items": [{"productName": "A", "quantity": 0, "price": 3.0}]}
        response = client.post("/api/orders", json={"cart": cart})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request data"
        assert gateway.authorizations == []

    @pytest.mark.parametrize("cart", [
        {"total": "1e30", "items": [{"productName": "A", "quantity": 1, "price": "1"}]},
        {"total": "6.00", "items": [{"productName": "A", "quantity": 1, "price": "1e30"}]},
    ])
    def test_oversized_amount_is_client_error(self, client, gateway, cart):
        response = client.post("/api/orders", json={"cart": cart})

        assert response.status_code == 400
        assert response.headers["content-type"].startswith("application/json")
        data = response.json()
        assert data["error"] == "Invalid request data"
        assert "digits" in data["details"]
        assert gateway.authorizations == []


class TestCaptureOrder:
    def test_capture(self, client, gateway):
        response = client.post(f"/api/orders/{PAYPAL_ORDER_ID}/capture")

        assert response.status_code == 201
        assert response.json()["status"] == "COMPLETED"
        assert gateway.captures == [PAYPAL_ORDER_ID]

    def test_blank_id(self, client, gateway):
        response = client.post("/api/orders/%20/capture")

        assert response.status_code == 400
        assert response.json()["error"] == "Order ID is required"
        assert gateway.captures == []

    def test_gateway_error(self, store, notifier):
        gateway = FakeGateway(error=GatewayError("PayPal API Capture Error", "HTTP 404: RESOURCE_NOT_FOUND", status_code=404))
        api_client = TestClient(create_app(workflow=OrderWorkflow(gateway, store, notifier)))

        response = api_client.post(f"/api/orders/{PAYPAL_ORDER_ID}/capture")

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to capture order"
        assert "RESOURCE_NOT_FOUND" in response.json()["details"]


class TestPlaceOrder:
    def test_created(self, client, notifier):
        response = place(client)

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Order created successfully"
        assert "notificationError" not in data
        assert notifier.sent[0].orderId == data["orderId"]

        order = client.get(f"/api/orders/{data['orderId']}").json()
        assert order["status"] == "pending"
        assert order["customer"]["name"] == "Awa Diallo"
        assert Decimal(order["totalAmount"]) == Decimal("6.00")
        assert Decimal(order["items"][0]["price"]) == Decimal("3.00")

    def test_plain_customer_keys(self, client):
        user = {"email": "a@b.sn", "name": "Moussa", "city": "Thiès", "district": "Randoulène", "phoneNumber": "77"}
        response = place(client, user=user, order_status="authorized")

        order = client.get(f"/api/orders/{response.json()['orderId']}").json()
        assert order["status"] == "authorized"
        assert order["customer"]["city"] == "Thiès"

    def test_incomplete(self, client, store):
        response = client.post("/api/orders/place", json={"user": CUSTOMER, "cartItems": []})

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Incomplete order data"
        assert "totalAmount" in data["details"]
        assert store.list() == []

    def test_notification_failure_still_created(self, gateway, store):
        notifier = FakeNotifier(error=NotificationError("Notification could not be sent", "AMQPConnectionError"))
        api_client = TestClient(create_app(workflow=OrderWorkflow(gateway, store, notifier)))

        response = place(api_client)

        assert response.status_code == 201
        data = response.json()
        assert data["orderId"]
        assert "AMQPConnectionError" in data["notificationError"]
        assert store.get(data["orderId"]) is not None


class TestAdministration:
    def test_list(self, client):
        place(client)
        place(client)

        response = client.get("/api/orders")

        assert response.status_code == 200
        assert len(response.json()["data"]) == 2

    def test_get_missing(self, client):
        response = client.get("/api/orders/999")
        assert response.status_code == 404
        assert response.json()["error"] == "Order not found"

    def test_get_non_numeric_id(self, client):
        assert client.get("/api/orders/abc").status_code == 400

    def test_update_status(self, client):
        order_id = place(client).json()["orderId"]

        response = client.put(f"/api/orders/{order_id}", json={"orderStatus": "captured"})

        assert response.status_code == 200
        assert response.json()["updatedStatus"] == "captured"
        assert client.get(f"/api/orders/{order_id}").json()["status"] == "captured"

    def test_update_without_status(self, client):
        order_id = place(client).json()["orderId"]
        response = client.put(f"/api/orders/{order_id}", json={})
        assert response.status_code == 400
        assert response.json()["error"] == "Order status is required"

    def test_update_unknown_status_value(self, client):
        order_id = place(client).json()["orderId"]
        response = client.put(f"/api/orders/{order_id}", json={"orderStatus": "shipped"})
        assert response.status_code == 400

    def test_update_missing_order(self, client):
        response = client.put("/api/orders/999", json={"orderStatus": "failed"})
        assert response.status_code == 404

    def test_delete(self, client):
        order_id = place(client).json()["orderId"]

        response = client.delete(f"/api/orders/{order_id}")
        assert response.status_code == 200
        assert response.json()["deletedOrderId"] == order_id

        assert client.delete(f"/api/orders/{order_id}").status_code == 404


class TestHealthCheck:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "database": "ok"}
