"""
mock_mailer.py — Mock Implementation of the Order Mailer

This module simulates the mailer that receives order notifications from the checkout
service (via RabbitMQ) and turns them into customer e-mails. Instead of sending the
e-mail it logs the rendered text.

Communication Channels:
    - Input Queue: 'orders.notifications'  ← Receives order summaries
"""

import json
import logging
import os
import time

import pika

logging.basicConfig(level=logging.INFO)
RABBITMQ_HOST = os.environ.get("RABBITMQ_HOST", "localhost")
NOTIFICATION_QUEUE = os.environ.get("NOTIFICATION_QUEUE", "orders.notifications")


def get_mq_connection():
    """
    Establishes and returns a connection to the RabbitMQ message broker.

    Returns:
        pika.BlockingConnection: Active connection to the RabbitMQ broker.

    Raises:
        pika.exceptions.AMQPConnectionError: If the broker is unavailable.
    """
    credentials = pika.PlainCredentials('shopag', 'shopag')
    return pika.BlockingConnection(
        pika.ConnectionParameters(host=RABBITMQ_HOST, credentials=credentials)
    )


def render_email(summary: dict) -> str:
    """
    Renders the order confirmation e-mail for an order summary.

    Args:
        summary (dict): The `summary` part of a notification message.
    Raises:
        KeyError: If a required summary field is missing.
    """
    return (
        f"Bonjour {summary['clientName']},\n\n"
        f"Nouvelle commande #{summary['orderId']}\n"
        f"Produits : {summary['productNames']}\n"
        f"Montant total : {summary['totalAmount']}\n"
        f"Lieu de livraison : {summary['location']}\n"
        f"Téléphone : {summary['phoneNumber']}\n"
    )


def on_notification_received(ch, method, properties, body):
    """
    Callback function triggered when a new message arrives on the notification queue.

    Behavior:
        - Renders and logs the e-mail for the customer.
        - Acknowledges successful message handling.
        - Rejects malformed messages to the Dead Letter Queue (DLQ).
    """
    try:
        data = json.loads(body)
        summary = data["summary"]
        email = render_email(summary)
        logging.info(f"[MAILER] E-Mail an {summary['email']} (Order {data.get('orderId')}):\n{email}")
        ch.basic_ack(delivery_tag=method.delivery_tag)
    except (ValueError, KeyError, TypeError) as e:
        logging.error(f"[MAILER] Ungültige Benachrichtigung erhalten: {e}")
        ch.basic_nack(delivery_tag=method.delivery_tag, requeue=False)  # In DLQ (falls konfiguriert)


def main():
    """
    Starts the mock mailer consumer loop.
    Retries the broker connection every 5 seconds; stops on Ctrl+C.
    """
    logging.info("Mock Mailer (MQ) startet...")
    while True:
        try:
            connection = get_mq_connection()
            channel = connection.channel()
            channel.queue_declare(queue=NOTIFICATION_QUEUE, durable=True)

            logging.info("[MAILER] Wartet auf Benachrichtigungen. (Consumer aktiv)")
            channel.basic_consume(queue=NOTIFICATION_QUEUE, on_message_callback=on_notification_received)
            channel.start_consuming()
        except pika.exceptions.AMQPConnectionError as e:
            logging.warning(f"MQ-Verbindung fehlgeschlagen, versuche erneut in 5s... {e}")
            time.sleep(5)
        except KeyboardInterrupt:
            break


if __name__ == '__main__':
    main()
