"""Startup environment validation utilities."""
import os
import sys
import logging
from typing import Any, List, Mapping

logger = logging.getLogger(__name__)

# Required in all environments
REQUIRED_ENV_VARS = [
    "DATABASE_URL",
]

# Features degrade (webhook answers 500 / emails are skipped) when missing
RECOMMENDED_ENV_VARS = [
    "STRIPE_WEBHOOK_SECRET",
    "RESEND_API_KEY",
]


def get_missing_vars() -> List[str]:
    """
    Get list of missing required environment variables.

    Returns:
        List of missing variable names.
    """
    missing = []

    for var in REQUIRED_ENV_VARS:
        if not os.environ.get(var):
            missing.append(var)

    return missing


def validate_environment() -> bool:
    """
    Validate required environment variables are set.

    In production mode:
    - Exits with code 1 if required variables are missing

    In all modes:
    - Logs an error for each missing recommended variable; the service
      still starts and the webhook fails closed per request

    Returns:
        True if all required variables are present.
    """
    is_production = os.environ.get("FLASK_ENV") == "production"
    missing = get_missing_vars()

    for var in RECOMMENDED_ENV_VARS:
        if not os.environ.get(var):
            logger.error(f"{var} is not set")

    if missing:
        logger.error(f"Missing required environment variables: {missing}")
        if is_production:
            logger.critical(
                "Cannot start in production with missing required variables"
            )
            sys.exit(1)
        else:
            logger.warning("Continuing in development mode with missing variables")

    return len(missing) == 0


def validate_timeouts(config: Mapping[str, Any]) -> None:
    """
    Check that outbound notification calls finish before Stripe gives up.

    Args:
        config: Flask config mapping.

    Raises:
        ValueError: If the notification timeout is not strictly shorter than
            the webhook response deadline.
    """
    timeout = float(config["NOTIFICATION_TIMEOUT_SECONDS"])
    deadline = float(config["WEBHOOK_RESPONSE_DEADLINE_SECONDS"])
    if timeout <= 0:
        raise ValueError("NOTIFICATION_TIMEOUT_SECONDS must be positive")
    if timeout >= deadline:
        raise ValueError(
            f"NOTIFICATION_TIMEOUT_SECONDS ({timeout}) must be shorter than "
            f"WEBHOOK_RESPONSE_DEADLINE_SECONDS ({deadline})"
        )
