"""
errors.py — Error Hierarchy for the Checkout Service

Every failure the workflow can report is one of the exceptions below. Each carries
a stable summary (`message`), an optional `details` string with the underlying cause,
and the HTTP status the API layer answers with.

    - InvalidCartError / InvalidOrderError: client input, detected before any external call
    - InvalidArgumentError: a required identifier is missing
    - GatewayError: transport failure, timeout or rejection by the payment authority
    - PersistenceError: the order store is unavailable or a query failed
    - NotFoundError: no order with the given id
    - NotificationError: notification could not be dispatched (never fatal for an order)
    - ConfigurationError: the process cannot start
"""

from typing import Optional


class CheckoutError(Exception):
    """Base exception for all checkout failures."""

    http_status = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_response(self, summary: Optional[str] = None) -> dict:
        """
        Builds the structured error body `{error, details}`.

        Args:
            summary (str | None): Overrides the error summary (routes use a per-endpoint summary
                and report the exception message as details).
        """
        if summary is None:
            return {"error": self.message, "details": self.details}
        return {"error": summary, "details": self.describe()}

    def describe(self) -> str:
        """Message plus underlying cause, for logs and `details` fields."""
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class InvalidCartError(CheckoutError):
    """The submitted cart cannot be sent to the payment authority."""


class InvalidOrderError(CheckoutError):
    """A direct order placement is missing required fields."""
    http_status = 400


class InvalidArgumentError(CheckoutError):
    """A required identifier is empty or absent."""
    http_status = 400


class GatewayError(CheckoutError):
    """
    The payment authority could not be reached, timed out or rejected the request.

    Attributes:
        status_code (int | None): HTTP status returned by the authority, if any.
        timeout (bool): True if the call was aborted by the client timeout.
    """

    def __init__(self, message: str, details: Optional[str] = None,
                 status_code: Optional[int] = None, timeout: bool = False):
        super().__init__(message, details)
        self.status_code = status_code
        self.timeout = timeout


class PersistenceError(CheckoutError):
    """The order store failed."""


class NotFoundError(CheckoutError):
    """No order exists with the requested id."""
    http_status = 404

    def __init__(self, order_id, message: str = "Order not found"):
        super().__init__(message)
        self.order_id = order_id


class NotificationError(CheckoutError):
    """The order notification could not be dispatched."""


class ConfigurationError(CheckoutError):
    """Required configuration is missing or invalid."""
