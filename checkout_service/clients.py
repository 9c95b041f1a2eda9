"""
This module provides communication clients for the external systems used by the checkout service:
- Payment authority (PayPal Orders API v2, REST)
- Order notifications for the mailer (RabbitMQ)
Each class encapsulates its protocol logic, error handling, and connection management.
Errors leave this module only as GatewayError / NotificationError (see errors.py).
"""

import json
import logging
import threading
import time
import uuid
from decimal import ROUND_HALF_UP, Decimal
from urllib.parse import quote

import httpx
import pika

from .errors import GatewayError, InvalidArgumentError, NotificationError
from .models import Cart, GatewayResponse, NotificationSummary

log = logging.getLogger(__name__)

# Token wird kurz vor Ablauf erneuert
TOKEN_EXPIRY_MARGIN_SECONDS = 60


def format_amount(value) -> str:
    """Formats a money value with exactly two decimals, as PayPal expects it."""
    return str(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text[:200]}"
    if isinstance(body, dict):
        name = body.get("name") or body.get("error")
        message = body.get("message") or body.get("error_description")
        return f"HTTP {response.status_code}: {' - '.join(str(p) for p in (name, message) if p)}"
    return f"HTTP {response.status_code}"


# --- Payment Client (REST) ---
class PayPalClient:
    """
    Client for the PayPal Orders API.
    Opens payment authorizations (checkout orders with intent CAPTURE) and captures them.
    The response body and status code of PayPal are handed back unmodified.
    """
    def __init__(self, base_url: str, client_id: str, client_secret: str,
                 currency: str = "USD", timeout: float = 5.0, http_client: httpx.Client = None):
        """
        Args:
            base_url (str): PayPal API base URL (sandbox, live or a local mock).
            client_id (str): OAuth client id.
            client_secret (str): OAuth client secret.
            currency (str): ISO currency code for all purchase units.
            timeout (float): Timeout in seconds for every request.
            http_client (httpx.Client): Preconfigured client, e.g. a TestClient in tests.
        """
        if http_client is None:
            http_client = httpx.Client(base_url=base_url, timeout=httpx.Timeout(timeout))
        self.client = http_client
        self.currency = currency
        self.timeout = timeout
        self._credentials = (client_id, client_secret)
        self._token = None
        self._token_expires_at = 0.0
        self._token_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings) -> "PayPalClient":
        return cls(
            base_url=settings.paypal_api_url,
            client_id=settings.paypal_client_id,
            client_secret=settings.paypal_client_secret,
            currency=settings.payment_currency,
            timeout=float(settings.payment_timeout_seconds),
        )

    def close(self):
        """Closes the HTTP client session."""
        self.client.close()

    def _access_token(self) -> str:
        """
        Returns a cached OAuth2 access token, fetching a new one when it is about to expire.
        Raises:
            httpx.HTTPError: If the token endpoint fails.
        """
        with self._token_lock:
            if self._token and time.monotonic() < self._token_expires_at:
                return self._token

            response = self.client.post(
                "/v1/oauth2/token",
                data={"grant_type": "client_credentials"},
                auth=self._credentials,
            )
            response.raise_for_status()
            body = response.json()
            self._token = body["access_token"]
            lifetime = int(body.get("expires_in", 0)) - TOKEN_EXPIRY_MARGIN_SECONDS
            self._token_expires_at = time.monotonic() + max(lifetime, 0)
            return self._token

    def _post(self, path: str, payload, error_label: str, ref: str) -> GatewayResponse:
        try:
            headers = {
                "Authorization": f"Bearer {self._access_token()}",
                "Content-Type": "application/json",
                "PayPal-Request-Id": str(uuid.uuid4()),
                "Prefer": "return=minimal",
            }
            if payload is None:
                response = self.client.post(path, headers=headers)
            else:
                response = self.client.post(path, json=payload, headers=headers)
            response.raise_for_status()  # Löst HTTPStatusError bei 4xx/5xx aus
            body = response.json() if response.content else {}
        except httpx.TimeoutException as e:
            log.error(f"[Order: {ref}] PayPal Timeout nach {self.timeout}s. Status unbekannt.")
            raise GatewayError(error_label, f"timeout after {self.timeout}s ({type(e).__name__})",
                               timeout=True) from e
        except httpx.HTTPStatusError as e:
            details = _error_message(e.response)
            if e.response.status_code == 422:
                log.warning(f"[Order: {ref}] PayPal hat die Anfrage abgelehnt: {details}")
            else:
                log.error(f"[Order: {ref}] HTTP-Fehler bei PayPal: {details}")
            raise GatewayError(error_label, details, status_code=e.response.status_code) from e
        except httpx.HTTPError as e:
            log.error(f"[Order: {ref}] PayPal nicht erreichbar: {e}")
            raise GatewayError(error_label, str(e) or type(e).__name__) from e
        except (KeyError, ValueError) as e:
            log.error(f"[Order: {ref}] Ungültige Antwort von PayPal: {e}")
            raise GatewayError(error_label, f"invalid response: {e}") from e

        external_id = body.get("id") if isinstance(body, dict) else None
        return GatewayResponse(externalId=external_id, rawPayload=body, statusCode=response.status_code)

    def build_order_request(self, cart: Cart) -> dict:
        """Builds the PayPal checkout-order body for a validated cart."""
        total = format_amount(cart.total)
        return {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "amount": {
                        "currency_code": self.currency,
                        "value": total,
                        "breakdown": {
                            "item_total": {"currency_code": self.currency, "value": total},
                        },
                    },
                    "items": [
                        {
                            "name": item.productName,
                            "quantity": str(item.quantity),
                            "unit_amount": {
                                "currency_code": self.currency,
                                "value": format_amount(item.price),
                            },
                        }
                        for item in cart.items
                    ],
                }
            ],
        }

    def create_authorization(self, cart: Cart) -> GatewayResponse:
        """
        Opens a payment authorization for a validated cart.
        Returns:
            GatewayResponse: PayPal's order id, raw body and status code.
        Raises:
            GatewayError: On transport errors, timeouts or rejection by PayPal.
        """
        response = self._post("/v2/checkout/orders", self.build_order_request(cart),
                              "PayPal API Error", ref="neu")
        log.info(f"[Order: {response.externalId}] Autorisierung bei PayPal angelegt (HTTP {response.statusCode}).")
        return response

    def capture_authorization(self, external_id: str) -> GatewayResponse:
        """
        Captures a previously authorized PayPal order.
        Raises:
            InvalidArgumentError: If the id is empty; PayPal is not called.
            GatewayError: On transport errors, timeouts or rejection by PayPal.
        """
        if not external_id or not str(external_id).strip():
            raise InvalidArgumentError("Order ID is required")

        path = f"/v2/checkout/orders/{quote(str(external_id), safe='')}/capture"
        response = self._post(path, None, "PayPal API Capture Error", ref=external_id)
        log.info(f"[Order: {external_id}] Zahlung bei PayPal erfasst (HTTP {response.statusCode}).")
        return response


# --- Notification Client (MQ) ---
class NotificationClient:
    """
    Publishes order summaries to the mailer queue (RabbitMQ).
    A connection is opened per notification and always closed again, because a
    pika BlockingConnection must not be shared between request threads.
    """
    def __init__(self, host: str, user: str = "shopag", password: str = "shopag",
                 queue: str = "orders.notifications", connection_factory=None):
        self.host = host
        self.queue = queue
        self._credentials = pika.PlainCredentials(user, password)
        self._connection_factory = connection_factory or self._connect

    @classmethod
    def from_settings(cls, settings) -> "NotificationClient":
        return cls(
            host=settings.rabbitmq_host,
            user=settings.rabbitmq_user,
            password=settings.rabbitmq_password,
            queue=settings.notification_queue,
        )

    def _connect(self) -> pika.BlockingConnection:
        """
        Establishes a RabbitMQ connection with short timeouts.
        Raises:
            pika.exceptions.AMQPConnectionError: If the connection fails.
        """
        return pika.BlockingConnection(
            pika.ConnectionParameters(
                host=self.host,
                credentials=self._credentials,
                heartbeat=60,
                connection_attempts=1,
                socket_timeout=5,
                blocked_connection_timeout=5,
            )
        )

    def notify(self, summary: NotificationSummary):
        """
        Sends an order summary to the mailer queue.
        Args:
            summary (NotificationSummary): The order summary to deliver.
        Raises:
            NotificationError: If the broker cannot be reached or publishing fails.
        """
        message = {
            "notificationId": str(uuid.uuid4()),
            "orderId": summary.orderId,
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "summary": summary.model_dump(mode="json"),
        }
        connection = None
        try:
            connection = self._connection_factory()
            channel = connection.channel()
            channel.queue_declare(queue=self.queue, durable=True)
            channel.basic_publish(
                exchange='',
                routing_key=self.queue,
                body=json.dumps(message),
                properties=pika.BasicProperties(
                    delivery_mode=2,  # Macht Nachricht persistent
                    content_type="application/json",
                ),
            )
            log.info(f"[Order: {summary.orderId}] Benachrichtigung an Mailer-Queue gesendet.")
        except (pika.exceptions.AMQPError, OSError) as e:
            log.error(f"[Order: {summary.orderId}] FEHLER beim Senden an Mailer-Queue: {e!r}")
            raise NotificationError("Notification could not be sent", repr(e)) from e
        finally:
            if connection is not None and connection.is_open:
                connection.close()
