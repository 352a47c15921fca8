"""Operational alerts for conditions that need a human."""

import logging
from typing import Any

import sentry_sdk

logger = logging.getLogger(__name__)


def raise_operational_alert(message: str, **context: Any) -> None:
    """Log at CRITICAL and forward to Sentry (no-op when Sentry is not configured)."""
    details = ", ".join(f"{key}={value}" for key, value in context.items())
    logger.critical(f"OPERATIONAL_ALERT: {message} ({details})", extra={"alert": context})
    sentry_sdk.set_context("alert", {key: str(value) for key, value in context.items()})
    sentry_sdk.capture_message(message, level="fatal")
