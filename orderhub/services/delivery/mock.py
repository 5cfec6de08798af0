"""
Mock Delivery Service Implementation

Simulates Nash dispatch in development mode. Deliveries get Nash-like
ids and a tracking URL; nothing leaves the process. Use
scripts/simulate.py to push delivery webhooks for them.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from orderhub.services.delivery.base import (
    BaseDeliveryService,
    DeliveryRequest,
    DeliveryResult,
)

logger = logging.getLogger(__name__)


class MockDeliveryService(BaseDeliveryService):
    """
    Attributes:
        fee: Delivery fee reported for every dispatched delivery
        deliveries: Requests keyed by delivery id
        cancelled: Ids of cancelled deliveries
    """

    def __init__(
        self,
        fee: float = 3.99,
        webhook_secret: Optional[str] = None,
        fail: bool = False,
    ):
        super().__init__(webhook_secret=webhook_secret)
        self.fee = fee
        self.fail = fail
        self.deliveries: dict[str, DeliveryRequest] = {}
        self.cancelled: list[str] = []

        logger.info("MockDeliveryService initialized")

    @property
    def provider_name(self) -> str:
        return "Nash"

    async def create_delivery(self, request: DeliveryRequest) -> DeliveryResult:
        if self.fail:
            return DeliveryResult(
                success=False,
                error_message="Delivery service temporarily unavailable",
                error_code="connection_error",
            )

        delivery_id = f"ord_mock_{uuid.uuid4().hex[:16]}"
        self.deliveries[delivery_id] = request
        now = datetime.now(timezone.utc)

        logger.info(f"Mock: Delivery dispatched - {delivery_id} for order {request.external_id}")

        return DeliveryResult(
            success=True,
            delivery_id=delivery_id,
            quote_id=f"qot_mock_{uuid.uuid4().hex[:12]}",
            fee=self.fee,
            tracking_url=f"https://example.com/track/{delivery_id}",
            estimated_pickup_time=(now + timedelta(minutes=15)).isoformat(),
            estimated_delivery_time=(now + timedelta(minutes=45)).isoformat(),
        )

    async def cancel_delivery(
        self,
        delivery_id: str,
        reason: Optional[str] = None,
    ) -> DeliveryResult:
        self.cancelled.append(delivery_id)
        logger.info(f"Mock: Delivery cancelled - {delivery_id} ({reason or 'no reason'})")
        return DeliveryResult(success=True, delivery_id=delivery_id)

    async def health_check(self) -> bool:
        return True
