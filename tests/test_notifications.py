"""Tests for the notification client and the mock mailer consumer."""

import json
from decimal import Decimal
from unittest.mock import MagicMock

import pika
import pytest

from checkout_service.clients import NotificationClient
from checkout_service.errors import NotificationError
from checkout_service.models import NotificationSummary
from mock_services import mock_mailer

SUMMARY = NotificationSummary(
    orderId=42,
    clientName="Awa Diallo",
    email="awa.diallo@example.com",
    productNames="Bissap 1L, Thieboudienne",
    totalAmount=Decimal("6.00"),
    location="Plateau, Dakar",
    phoneNumber="+221770000000",
)


@pytest.fixture
def connection():
    connection = MagicMock()
    connection.is_open = True
    return connection


class TestNotificationClient:
    def test_publishes_persistent_message(self, connection):
        client = NotificationClient("localhost", connection_factory=lambda: connection)
        client.notify(SUMMARY)

        channel = connection.channel.return_value
        channel.queue_declare.assert_called_once_with(queue="orders.notifications", durable=True)
        kwargs = channel.basic_publish.call_args.kwargs
        assert kwargs["routing_key"] == "orders.notifications"
        assert kwargs["properties"].delivery_mode == 2

        message = json.loads(kwargs["body"])
        assert message["orderId"] == 42
        assert message["notificationId"]
        assert message["summary"]["location"] == "Plateau, Dakar"
        assert message["summary"]["totalAmount"] == "6.00"
        connection.close.assert_called_once()

    def test_broker_unreachable(self):
        def refuse():
            raise pika.exceptions.AMQPConnectionError("connection refused")

        client = NotificationClient("localhost", connection_factory=refuse)
        with pytest.raises(NotificationError) as exc_info:
            client.notify(SUMMARY)
        assert "connection refused" in exc_info.value.details

    def test_publish_failure_closes_connection(self, connection):
        connection.channel.return_value.basic_publish.side_effect = pika.exceptions.ChannelClosed(406, "PRECONDITION_FAILED")
        client = NotificationClient("localhost", connection_factory=lambda: connection)

        with pytest.raises(NotificationError):
            client.notify(SUMMARY)
        connection.close.assert_called_once()


class TestMockMailer:
    def test_renders_and_acks(self):
        channel, method = MagicMock(), MagicMock()
        body = json.dumps({"orderId": 42, "summary": SUMMARY.model_dump(mode="json")})

        mock_mailer.on_notification_received(channel, method, None, body)

        channel.basic_ack.assert_called_once_with(delivery_tag=method.delivery_tag)
        channel.basic_nack.assert_not_called()

    @pytest.mark.parametrize("body", ["not json", json.dumps({"orderId": 42})])
    def test_malformed_message_goes_to_dlq(self, body):
        channel, method = MagicMock(), MagicMock()

        mock_mailer.on_notification_received(channel, method, None, body)

        channel.basic_nack.assert_called_once_with(delivery_tag=method.delivery_tag, requeue=False)

    def test_email_text(self):
        text = mock_mailer.render_email(SUMMARY.model_dump(mode="json"))
        assert "Awa Diallo" in text
        assert "Bissap 1L, Thieboudienne" in text
        assert "Plateau, Dakar" in text
