"""
logging_config.py — Centralized Logging Configuration for the Checkout Service

Configures one logging setup for the API process, the workflow and all clients,
so that every order can be followed through the log by its `[Order: <id>]` prefix.

Features:
    • Combined console and file logging output
    • Process ID tagging (uvicorn may run several workers)
    • Reduced verbosity for pika, httpx and the SQLAlchemy engine
"""

import logging
import sys

LOG_FORMAT = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(name)s - %(message)s'

_NOISY_LOGGERS = ("pika", "httpx", "httpcore", "sqlalchemy.engine")


def setup_logging(level=logging.INFO, log_file="checkout_processing.log"):
    """
    Configures the global logging system for the application.

    Args:
        level (int): Root log level, INFO by default.
        log_file (str | None): Persistent log file. ``None`` logs to stdout only.
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name):
    """Returns the logger for a module; use instead of calling logging.getLogger() directly."""
    return logging.getLogger(name)
