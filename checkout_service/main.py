"""
main.py — FastAPI Entry Point for the Checkout Service

This module provides the REST API between the storefront and the checkout workflow.
Route functions are synchronous: FastAPI runs them on its thread pool, so a request
waiting for PayPal, the database or the broker does not hold up other requests.

Responsibilities:
    • Create and capture PayPal authorizations for carts
    • Place, list, read, update and delete stored orders
    • Translate workflow errors into `{error, details}` responses
    • Refuse to start without PayPal credentials
    • Provide system health information
"""

import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .clients import NotificationClient, PayPalClient
from .config import Settings, load_settings
from .errors import (
    CheckoutError,
    InvalidArgumentError,
    InvalidOrderError,
    NotFoundError,
)
from .logging_config import get_logger, setup_logging
from .models import CreateOrderRequest, DirectPlacement, UpdateStatusRequest
from .store import OrderStore
from .workflow import OrderWorkflow

log = get_logger(__name__)
router = APIRouter()


def get_workflow(request: Request) -> OrderWorkflow:
    """FastAPI dependency: the workflow the app was built with."""
    return request.app.state.workflow


def _error(status_code: int, error: str, details=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "details": details})


# --- Gateway flow ---

@router.post("/api/orders")
def create_order(payload: Optional[CreateOrderRequest] = None,
                 workflow: OrderWorkflow = Depends(get_workflow)):
    """
    Opens a PayPal authorization for the submitted cart.

    Returns:
        PayPal's response body with PayPal's status code, both unmodified.
        400 if no cart is sent, 500 with details if the cart is invalid or PayPal fails.
    """
    if payload is None or payload.cart is None:
        return _error(400, "Cart data is required")

    try:
        response = workflow.create_order(payload.cart)
    except CheckoutError as e:
        log.error(f"Failed to create order: {e.describe()}")
        return JSONResponse(status_code=500, content=e.to_response("Failed to create order"))

    return JSONResponse(status_code=response.statusCode, content=response.rawPayload)


@router.post("/api/orders/{orderID}/capture")
def capture_order(orderID: str, workflow: OrderWorkflow = Depends(get_workflow)):
    """Captures the payment of a PayPal authorization (PayPal's order id in the path)."""
    try:
        response = workflow.capture_order(orderID)
    except InvalidArgumentError as e:
        return _error(400, e.message)
    except CheckoutError as e:
        log.error(f"[Order: {orderID}] Failed to capture order: {e.describe()}")
        return JSONResponse(status_code=500, content=e.to_response("Failed to capture order"))

    return JSONResponse(status_code=response.statusCode, content=response.rawPayload)


# --- Direct flow / administration ---

@router.post("/api/orders/place")
def place_order(payload: Optional[DirectPlacement] = None,
                workflow: OrderWorkflow = Depends(get_workflow)):
    """
    Stores an order and notifies the customer.

    Returns:
        201 with the order id. If the notification failed the order still exists;
        the response then carries `notificationError`.
    """
    try:
        result = workflow.place_order(payload or DirectPlacement())
    except InvalidOrderError as e:
        log.warning(f"Unvollständige Bestellung abgelehnt: {e.describe()}")
        return _error(400, e.message, e.details)
    except CheckoutError as e:
        log.error(f"Failed to place order: {e.describe()}")
        return JSONResponse(status_code=500, content=e.to_response("Failed to create order"))

    if result.notificationError:
        content = {
            "message": "Order created, but the notification could not be sent",
            "orderId": result.orderId,
            "notificationError": result.notificationError,
        }
    else:
        content = {"message": "Order created successfully", "orderId": result.orderId}
    return JSONResponse(status_code=201, content=content)


@router.get("/api/orders")
def list_orders(workflow: OrderWorkflow = Depends(get_workflow)):
    try:
        orders = workflow.list_orders()
    except CheckoutError as e:
        log.error(f"Orders retrieval failed: {e.describe()}")
        return JSONResponse(status_code=500, content=e.to_response("Database error during orders retrieval"))

    return {
        "message": "Orders retrieved successfully",
        "data": [order.model_dump(mode="json") for order in orders],
    }


@router.get("/api/orders/{order_id}")
def get_order(order_id: int, workflow: OrderWorkflow = Depends(get_workflow)):
    try:
        order = workflow.get_order(order_id)
    except NotFoundError as e:
        return _error(404, e.message)
    except CheckoutError as e:
        log.error(f"[Order: {order_id}] Order retrieval failed: {e.describe()}")
        return JSONResponse(status_code=500, content=e.to_response("Database error during order retrieval"))

    return order.model_dump(mode="json")


@router.put("/api/orders/{order_id}")
def update_order(order_id: int, payload: Optional[UpdateStatusRequest] = None,
                 workflow: OrderWorkflow = Depends(get_workflow)):
    """Overwrites the order status. No transition rules are enforced."""
    try:
        status = workflow.update_status(order_id, payload.orderStatus if payload else None)
    except InvalidArgumentError as e:
        return _error(400, e.message)
    except NotFoundError as e:
        return _error(404, e.message)
    except CheckoutError as e:
        log.error(f"[Order: {order_id}] Order update failed: {e.describe()}")
        return JSONResponse(status_code=500, content=e.to_response("Database error during order update"))

    return {"message": "Order updated successfully", "updatedStatus": status.value}


@router.delete("/api/orders/{order_id}")
def delete_order(order_id: int, workflow: OrderWorkflow = Depends(get_workflow)):
    try:
        deleted_id = workflow.delete_order(order_id)
    except NotFoundError as e:
        return _error(404, e.message)
    except CheckoutError as e:
        log.error(f"[Order: {order_id}] Order deletion failed: {e.describe()}")
        return JSONResponse(status_code=500, content=e.to_response("Database error during order deletion"))

    return {"message": "Order deleted successfully", "deletedOrderId": deleted_id}


# Health Check Endpoint
@router.get("/health")
def health_check(workflow: OrderWorkflow = Depends(get_workflow)):
    """
    Health check for monitoring and container orchestrators.

    Returns:
        dict: Service status and database reachability.
    """
    database = "ok" if workflow.store.ping() else "unavailable"
    return {"status": "ok", "database": database}


async def _validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and path parameters are client errors (400)."""
    details = "; ".join(
        f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    log.warning(f"Ungültige Anfrage auf {request.url.path}: {details}")
    return _error(400, "Invalid request data", details)


def build_workflow(settings: Settings) -> OrderWorkflow:
    """Wires the production clients from the settings."""
    store = OrderStore.from_url(settings.database_url)
    store.create_schema()
    return OrderWorkflow(
        gateway=PayPalClient.from_settings(settings),
        store=store,
        notifier=NotificationClient.from_settings(settings),
    )


def create_app(workflow: Optional[OrderWorkflow] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Builds the FastAPI application.

    Args:
        workflow (OrderWorkflow | None): Preassembled workflow (tests). Built from the
            environment if omitted.
        settings (Settings | None): Settings to build the workflow from.
    Raises:
        ConfigurationError: If the workflow is built from an environment without PayPal credentials.
    """
    if workflow is None:
        setup_logging()
        workflow = build_workflow(settings or load_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info("Checkout-Service startet...")
        yield
        close = getattr(app.state.workflow.gateway, "close", None)
        if close is not None:
            close()
        log.info("Checkout-Service beendet.")

    app = FastAPI(title="Checkout Service", lifespan=lifespan)
    app.state.workflow = workflow
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.include_router(router)
    return app


def run():
    """Console entry point: `checkout-service`."""
    import uvicorn

    setup_logging()
    try:
        settings = load_settings()
        app = create_app(settings=settings)
    except CheckoutError as e:
        log.critical(f"Start abgebrochen: {e.describe()}")
        sys.exit(1)

    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
