"""
mock_payment_service.py — Mock Implementation of the PayPal Orders API (REST)

This module provides a simulated payment authority for local runs and integration tests.
It mimics the three PayPal endpoints the checkout service uses; point
`PAYPAL_BASE_URL` at it (e.g. http://localhost:8001).

Simulation Scenarios:
    • Successful authorization and capture
    • Declined order: an item name containing "DECLINE" → HTTP 422 UNPROCESSABLE_ENTITY
    • Unknown order id on capture → HTTP 404 RESOURCE_NOT_FOUND
    • Repeated capture → HTTP 422 ORDER_ALREADY_CAPTURED

Endpoints:
    POST /v1/oauth2/token                     — Issues an access token.
    POST /v2/checkout/orders                  — Creates an order (authorization).
    POST /v2/checkout/orders/{order_id}/capture — Captures an order.

Port:
    Default: 8001 (HTTP)
"""

import logging
import uuid
from typing import Dict, List, Optional
from urllib.parse import parse_qs

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

app = FastAPI(title="Mock PayPal Service")
logging.basicConfig(level=logging.INFO)

# Angelegte Orders: id -> status
ORDERS: Dict[str, str] = {}


class Money(BaseModel):
    currency_code: str
    value: str


class Item(BaseModel):
    name: str
    quantity: str
    unit_amount: Money


class PurchaseUnit(BaseModel):
    amount: Money
    items: List[Item] = []


class OrderRequest(BaseModel):
    """
    Represents a PayPal checkout-order request payload.

    Attributes:
        intent (str): Always "CAPTURE" for the checkout service.
        purchase_units (List[PurchaseUnit]): Amount and item breakdown.
    """
    intent: str
    purchase_units: List[PurchaseUnit]


def _paypal_error(status_code: int, name: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"name": name, "message": message, "debug_id": uuid.uuid4().hex[:13]},
    )


def _links(order_id: str) -> list:
    return [{"href": f"/v2/checkout/orders/{order_id}", "rel": "self", "method": "GET"}]


@app.post("/v1/oauth2/token")
async def issue_token(request: Request):
    """Issues a bearer token for the client-credentials grant (form-encoded body)."""
    form = parse_qs((await request.body()).decode())
    if form.get("grant_type") != ["client_credentials"]:
        return JSONResponse(status_code=400, content={"error": "unsupported_grant_type"})
    return {
        "access_token": f"A21AA{uuid.uuid4().hex}",
        "token_type": "Bearer",
        "expires_in": 32400,
    }


@app.post("/v2/checkout/orders", status_code=201)
def create_order(
        request: OrderRequest,
        request_id: Optional[str] = Header(None, alias="PayPal-Request-Id")
):
    """
    Creates an order awaiting payer approval.

    Returns:
        dict: Minimal PayPal representation (`id`, `status`, `links`), HTTP 201.
        HTTP 422 if an item name contains "DECLINE".
    """
    logging.info(f"[PayPal] Order-Anfrage (Request-Id: {request_id})")

    for unit in request.purchase_units:
        for item in unit.items:
            if "DECLINE" in item.name:
                logging.warning(f"[PayPal] Artikel {item.name} abgelehnt.")
                return _paypal_error(422, "UNPROCESSABLE_ENTITY",
                                     "The requested action could not be performed.")

    order_id = uuid.uuid4().hex[:17].upper()
    ORDERS[order_id] = "CREATED"
    logging.info(f"[PayPal] Order {order_id} angelegt.")
    return {"id": order_id, "status": "CREATED", "links": _links(order_id)}


@app.post("/v2/checkout/orders/{order_id}/capture", status_code=201)
def capture_order(order_id: str):
    """
    Captures an order created before.

    Returns:
        dict: `id`, `status` COMPLETED and `links`, HTTP 201.
        HTTP 404 for unknown orders, HTTP 422 for orders already captured.
    """
    status = ORDERS.get(order_id)
    if status is None:
        logging.error(f"[PayPal] Order {order_id} nicht gefunden.")
        return _paypal_error(404, "RESOURCE_NOT_FOUND",
                             "The specified resource does not exist.")
    if status == "COMPLETED":
        logging.warning(f"[PayPal] Order {order_id} wurde bereits erfasst.")
        return _paypal_error(422, "UNPROCESSABLE_ENTITY", "ORDER_ALREADY_CAPTURED")

    ORDERS[order_id] = "COMPLETED"
    logging.info(f"[PayPal] Zahlung für {order_id} erfasst.")
    return {"id": order_id, "status": "COMPLETED", "links": _links(order_id)}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8001)
