"""Structured JSON logging configuration."""

import logging
import sys
from pythonjsonlogger import jsonlogger


LOGGER_NAME = "pgbouncer_exporter"


def setup_logger(name: str = LOGGER_NAME, level: str = "INFO") -> logging.Logger:
    """
    Configure structured JSON logging.

    Module-level loggers under the ``pgbouncer_exporter`` package propagate
    to the logger configured here.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers to avoid duplicates
    logger.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    formatter = jsonlogger.JsonFormatter(
        '%(asctime)s %(name)s %(levelname)s %(message)s',
        timestamp=True
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Don't propagate to root logger
    logger.propagate = False

    return logger
