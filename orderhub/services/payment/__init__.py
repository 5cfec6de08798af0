"""
Payment Service Factory

Provides a single entry point for obtaining a payment service instance.

Usage:
    from orderhub.services.payment import get_payment_service

    payment_service = get_payment_service()
    result = await payment_service.create_checkout_session(...)

Environment Switching:
    - ENV_MODE=development → MockPaymentService (no API calls)
    - ENV_MODE=staging → StripePaymentService (test keys)
    - ENV_MODE=production → StripePaymentService (live keys)
"""

import logging
from functools import lru_cache

from orderhub.core.config import get_settings
from orderhub.services.payment.base import (
    BasePaymentService,
    CheckoutLineItem,
    CheckoutSessionResult,
)
from orderhub.services.payment.mock import MockPaymentService
from orderhub.services.payment.stripe import StripePaymentService

logger = logging.getLogger(__name__)


@lru_cache()
def get_payment_service() -> BasePaymentService:
    """
    Get the configured payment service instance (cached per process).

    Raises:
        ValueError: If staging/production but STRIPE_SECRET_KEY is not configured
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Payment Service: Using MockPaymentService (development mode)")
        return MockPaymentService(
            failure_rate=0.05,
            min_latency=0.1,
            max_latency=0.4,
            webhook_secret=settings.stripe_webhook_secret,
            webhook_tolerance=settings.stripe_webhook_tolerance,
        )

    logger.info(
        f"Payment Service: Using StripePaymentService "
        f"({settings.env_mode.value} mode)"
    )
    return StripePaymentService()


__all__ = [
    "get_payment_service",
    "BasePaymentService",
    "CheckoutLineItem",
    "CheckoutSessionResult",
    "MockPaymentService",
    "StripePaymentService",
]
