"""Checkout service: PayPal authorization and capture, order storage and notification."""
