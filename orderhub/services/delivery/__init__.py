"""
Delivery Service Factory

Selects Mock or Nash based on ENV_MODE configuration.

Usage:
    from orderhub.services.delivery import get_delivery_service

    delivery_service = get_delivery_service()
    result = await delivery_service.create_delivery(request)
"""

import logging
from functools import lru_cache

from orderhub.core.config import get_settings
from orderhub.services.delivery.base import (
    BaseDeliveryService,
    DeliveryRequest,
    DeliveryResult,
)
from orderhub.services.delivery.mock import MockDeliveryService
from orderhub.services.delivery.nash import NashDeliveryService

logger = logging.getLogger(__name__)


@lru_cache()
def get_delivery_service() -> BaseDeliveryService:
    """
    Get the configured delivery service instance (cached per process).

    Raises:
        ValueError: If staging/production but Nash credentials are not configured
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Delivery Service: Using MockDeliveryService (development mode)")
        return MockDeliveryService(webhook_secret=settings.nash_webhook_secret)

    logger.info(
        f"Delivery Service: Using NashDeliveryService "
        f"({settings.env_mode.value} mode)"
    )
    return NashDeliveryService()


__all__ = [
    "get_delivery_service",
    "BaseDeliveryService",
    "DeliveryRequest",
    "DeliveryResult",
    "MockDeliveryService",
    "NashDeliveryService",
]
