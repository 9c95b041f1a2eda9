"""
config.py — Environment Configuration

All settings come from environment variables (case-insensitive, field name = variable
name). PayPal credentials are mandatory: `load_settings()` raises ConfigurationError
without them and the service refuses to start.
"""

from decimal import Decimal
from typing import Mapping, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

PAYPAL_BASE_URLS = {
    "sandbox": "https://api-m.sandbox.paypal.com",
    "live": "https://api-m.paypal.com",
}

REQUIRED_FIELDS = ("paypal_client_id", "paypal_client_secret")


class Settings(BaseSettings):
    """
    Runtime settings of the checkout service.

    Attributes:
        paypal_client_id (str): OAuth client id of the PayPal app.
        paypal_client_secret (str): OAuth client secret of the PayPal app.
        paypal_environment (str): 'sandbox' or 'live'.
        paypal_base_url (str | None): Explicit API base URL (e.g. the local mock), overrides the environment.
        payment_currency (str): ISO 4217 currency code used for all purchase units.
        payment_timeout_seconds (Decimal): Timeout for every call to the payment authority.
        database_url (str): SQLAlchemy URL of the order store.
        rabbitmq_host (str): Broker host for order notifications.
        notification_queue (str): Queue consumed by the mailer.
    """
    model_config = SettingsConfigDict(case_sensitive=False)

    paypal_client_id: str = Field(..., min_length=1)
    paypal_client_secret: str = Field(..., min_length=1)
    paypal_environment: str = Field("sandbox", pattern="^(sandbox|live)$")
    paypal_base_url: Optional[str] = None
    payment_currency: str = "USD"
    payment_timeout_seconds: Decimal = Field(Decimal("5"), gt=0)
    database_url: str = "sqlite:///orders.db"
    rabbitmq_host: str = "localhost"
    rabbitmq_user: str = "shopag"
    rabbitmq_password: str = "shopag"
    notification_queue: str = "orders.notifications"
    port: int = 8808

    @field_validator("paypal_environment", mode="before")
    @classmethod
    def normalize_environment(cls, v):
        return v.lower() if isinstance(v, str) else v

    @field_validator("paypal_base_url", mode="before")
    @classmethod
    def empty_base_url_is_unset(cls, v):
        return v or None

    @property
    def paypal_api_url(self) -> str:
        return self.paypal_base_url or PAYPAL_BASE_URLS[self.paypal_environment]


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Reads the settings from the process environment, or from `environ` when given.

    Raises:
        ConfigurationError: If PayPal credentials are absent or a value is malformed.
    """
    try:
        if environ is None:
            return Settings()
        values = {name.lower(): value for name, value in environ.items()
                  if name.lower() in Settings.model_fields}
        return Settings(**values)
    except ValidationError as e:
        failed = {str(err["loc"][0]) for err in e.errors()
                  if err["loc"] and err["type"] in ("missing", "string_too_short")}
        missing = [name.upper() for name in REQUIRED_FIELDS if name in failed]
        if missing:
            raise ConfigurationError("Missing required environment variable", ", ".join(missing)) from e
        raise ConfigurationError("Invalid configuration", str(e)) from e
