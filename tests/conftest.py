"""Pytest fixtures for checkout service tests."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from checkout_service.main import create_app
from checkout_service.models import CartItem, Customer, DirectPlacement, GatewayResponse
from checkout_service.store import OrderStore
from checkout_service.workflow import OrderWorkflow

# Storefront payload in the legacy key format
CUSTOMER = {
    "email_customer": "awa.diallo@example.com",
    "user_Name": "Awa Diallo",
    "ville": "Dakar",
    "quartier": "Plateau",
    "phoneNumber": "+221770000000",
}

PAYPAL_ORDER_ID = "5O190127TN364715T"


class FakeGateway:
    """Records every call; answers like PayPal with `return=minimal`."""

    def __init__(self, error=None):
        self.error = error
        self.authorizations = []
        self.captures = []

    def create_authorization(self, cart):
        self.authorizations.append(cart)
        if self.error:
            raise self.error
        return GatewayResponse(
            externalId=PAYPAL_ORDER_ID,
            rawPayload={"id": PAYPAL_ORDER_ID, "status": "CREATED"},
            statusCode=201,
        )

    def capture_authorization(self, external_id):
        self.captures.append(external_id)
        if self.error:
            raise self.error
        return GatewayResponse(
            externalId=external_id,
            rawPayload={
                "id": external_id,
                "status": "COMPLETED",
                "purchase_units": [{"payments": {"captures": [{"id": "3C679366HH908993F"}]}}],
            },
            statusCode=201,
        )


class FakeNotifier:
    def __init__(self, error=None):
        self.error = error
        self.sent = []

    def notify(self, summary):
        self.sent.append(summary)
        if self.error:
            raise self.error


@pytest.fixture
def store():
    """Fresh in-memory order store."""
    store = OrderStore.from_url("sqlite://")
    store.create_schema()
    yield store
    store.engine.dispose()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def workflow(gateway, store, notifier):
    return OrderWorkflow(gateway=gateway, store=store, notifier=notifier)


@pytest.fixture
def client(workflow):
    """API test client around the fake gateway, in-memory store and fake notifier."""
    return TestClient(create_app(workflow=workflow))


@pytest.fixture
def placement():
    return DirectPlacement(
        user=Customer(**CUSTOMER),
        cartItems=[CartItem(productName="A", quantity=2, price=Decimal("3.00"))],
        totalAmount=Decimal("6.00"),
        paymentMethod="cash_on_delivery",
    )
