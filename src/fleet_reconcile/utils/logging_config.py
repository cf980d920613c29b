"""Logging configuration using AWS Lambda Powertools."""

import logging
import os
import sys

from aws_lambda_powertools import Logger

# Read log level from environment (default to INFO)
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# Structured JSON logs go to stderr; stdout carries the report
logger = Logger(
    service="fleet-reconcile",
    level=LOG_LEVEL,
    logger_handler=logging.StreamHandler(sys.stderr),
)


def get_logger():
    """Get the configured logger instance.

    Returns Powertools Logger with:
    - Structured JSON logging
    - Run-wide keys added through ``logger.append_keys``
    """
    return logger
