"""
workflow.py — Core Orchestration Logic for Checkout and Order Processing

Coordinates cart validation, the payment authority, the order store and the mailer.
Two ways of placing an order exist and are kept apart, because they fail differently:

Gateway flow (create_order, later capture_order):
1. Validate the cart (no external call for an invalid cart)
2. Open a payment authorization at PayPal
3. Hand PayPal's payload back; its order id is the handle for the capture
   No order record is written in this flow.

Direct flow (place_order):
1. Validate the order fields (nothing is stored for an incomplete order)
2. Store the order (status 'pending' unless given)
3. Send the order notification to the mailer
   A failed notification never undoes the stored order; it is reported next to the order id.

There is no distributed transaction: nothing is compensated at PayPal, and concurrent
status updates of the same order are last-write-wins.
"""

import logging
from typing import List, Union

from .errors import InvalidArgumentError, InvalidCartError, NotFoundError, NotificationError
from .models import (
    Cart,
    DirectPlacement,
    GatewayPlacement,
    GatewayResponse,
    NotificationSummary,
    Order,
    OrderDraft,
    OrderStatus,
    Placement,
    PlacementResult,
)
from .validation import validate_cart, validate_order_fields

log = logging.getLogger(__name__)


class OrderWorkflow:
    """
    Order lifecycle coordinator.

    Args:
        gateway: Payment authority client (`create_authorization`, `capture_authorization`).
        store: Order store (`create`, `get`, `list`, `update_status`, `delete`).
        notifier: Notification client (`notify`).
    """

    def __init__(self, gateway, store, notifier):
        self.gateway = gateway
        self.store = store
        self.notifier = notifier

    def place(self, placement: Placement) -> Union[GatewayResponse, PlacementResult]:
        """Places an order through the flow its variant names."""
        if isinstance(placement, GatewayPlacement):
            return self.create_order(placement.cart)
        return self.place_order(placement)

    # --- Gateway flow ---

    def create_order(self, cart: Cart) -> GatewayResponse:
        """
        Opens a PayPal authorization for a cart.

        Raises:
            InvalidCartError: If the cart is incomplete; PayPal is not called.
            GatewayError: If PayPal fails, times out or rejects the order.
        """
        log.info("[Order: neu] Schritt 1: Prüfe Warenkorb...")
        try:
            validate_cart(cart)
        except InvalidCartError as e:
            log.warning(f"[Order: neu] Abgelehnt: {e}")
            raise

        log.info(f"[Order: neu] Schritt 2: Lege Autorisierung bei PayPal an ({len(cart.items)} Artikel)...")
        response = self.gateway.create_authorization(cart)
        log.info(f"[Order: {response.externalId}] Autorisierung erfolgreich. Warte auf Capture.")
        return response

    def capture_order(self, external_id: str) -> GatewayResponse:
        """
        Captures the payment of a PayPal authorization. Repeated captures are not
        deduplicated here; PayPal decides how to answer them.

        Raises:
            InvalidArgumentError: If the id is empty; PayPal is not called.
            GatewayError: If PayPal fails, times out or rejects the capture.
        """
        if not external_id or not str(external_id).strip():
            log.warning("[Order: ?] Capture ohne Order-ID abgelehnt.")
            raise InvalidArgumentError("Order ID is required")

        log.info(f"[Order: {external_id}] Starte Capture bei PayPal...")
        response = self.gateway.capture_authorization(external_id)
        log.info(f"[Order: {external_id}] Capture abgeschlossen (HTTP {response.statusCode}).")
        return response

    # --- Direct flow ---

    def place_order(self, placement: DirectPlacement) -> PlacementResult:
        """
        Stores an order and notifies the customer.

        Returns:
            PlacementResult: The new order id, plus the notification error if the mailer
                could not be reached.
        Raises:
            InvalidOrderError: If required fields are missing; nothing is stored.
            PersistenceError: If the order could not be stored; no notification is sent.
        """
        log.info("[Order: neu] Schritt 1: Prüfe Bestelldaten...")
        validate_order_fields(placement.user, placement.cartItems,
                              placement.totalAmount, placement.paymentMethod)

        draft = OrderDraft(
            customer=placement.user,
            items=placement.cartItems,
            totalAmount=placement.totalAmount,
            paymentMethod=placement.paymentMethod,
            status=placement.order_status or OrderStatus.PENDING,
            externalAuthorizationId=placement.externalAuthorizationId,
        )

        log.info("[Order: neu] Schritt 2: Speichere Bestellung...")
        order_id = self.store.create(draft)
        log_prefix = f"[Order: {order_id}]"
        log.info(f"{log_prefix} Bestellung gespeichert (Status: {draft.status.value}).")

        # Ab hier ist die Bestellung angelegt, Fehler werden nur noch gemeldet
        log.info(f"{log_prefix} Schritt 3: Sende Benachrichtigung...")
        try:
            self.notifier.notify(NotificationSummary.for_order(order_id, draft))
        except NotificationError as e:
            log.warning(f"{log_prefix} Bestellung angelegt, aber Benachrichtigung fehlgeschlagen: {e.describe()}")
            return PlacementResult(orderId=order_id, notificationError=e.describe())
        except Exception as e:
            log.critical(f"{log_prefix} Unbekannter Fehler bei der Benachrichtigung: {e}", exc_info=True)
            return PlacementResult(orderId=order_id, notificationError=str(e) or type(e).__name__)

        log.info(f"{log_prefix} Verarbeitung erfolgreich abgeschlossen.")
        return PlacementResult(orderId=order_id)

    # --- Administration ---

    def list_orders(self) -> List[Order]:
        return self.store.list()

    def get_order(self, order_id: int) -> Order:
        order = self.store.get(order_id)
        if order is None:
            raise NotFoundError(order_id)
        return order

    def update_status(self, order_id: int, status: OrderStatus) -> OrderStatus:
        """
        Sets the status of an order. Any status may follow any other.

        Raises:
            InvalidArgumentError: If no status is given.
            NotFoundError: If no order has this id.
        """
        if status is None:
            raise InvalidArgumentError("Order status is required")
        if not self.store.update_status(order_id, status):
            raise NotFoundError(order_id)
        log.info(f"[Order: {order_id}] Status gesetzt: {OrderStatus(status).value}")
        return OrderStatus(status)

    def delete_order(self, order_id: int) -> int:
        if not self.store.delete(order_id):
            raise NotFoundError(order_id)
        log.info(f"[Order: {order_id}] Bestellung gelöscht.")
        return order_id
