"""
Delivery-Event Reconciler

Applies Nash webhooks (``type``, ``event``, ``data``) to the order that
carries the matching delivery.

Event types:
    - delivery: delivery status, order status, ETAs and tracking URL
    - courier_location: courier position only
    - job: tracking URL only

Courier identity and position are merged into ``Order.driver`` from any
event that carries them. Orders are located by scanning ``delivery_info``
for the provider's delivery id, falling back to ``externalIdentifier``
(our order id, sent when the delivery was created).
"""

import json
import logging
from typing import Any, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.core.exceptions import InvalidPayloadError
from orderhub.models import DeliveryStatus, Order
from orderhub.schemas import NashDelivery, NashWebhookPayload, WebhookAck
from orderhub.services.order_status import (
    TERMINAL_DELIVERY_STATUSES,
    apply_status,
    map_delivery_status_to_order_status,
    map_nash_event_to_delivery_status,
)

logger = logging.getLogger(__name__)

PROVIDER_NAME = "Nash"


def parse_delivery_payload(body: bytes) -> NashWebhookPayload:
    """
    Raises:
        InvalidPayloadError: Not JSON, missing type/event, or no identifier
    """
    try:
        raw = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidPayloadError("Webhook body is not valid JSON")

    try:
        payload = NashWebhookPayload.model_validate(raw)
    except ValidationError as e:
        raise InvalidPayloadError(f"Malformed delivery webhook: {e.error_count()} error(s)")

    if not payload.data.id and not payload.data.external_identifier:
        raise InvalidPayloadError("Delivery webhook carries no delivery identifier")

    return payload


def merge_driver(existing: Optional[dict], delivery: Optional[NashDelivery]) -> Optional[dict]:
    """Overlay courier fields present in ``delivery`` onto the stored driver."""
    if delivery is None:
        return existing

    driver = dict(existing or {})
    if delivery.id:
        driver["id"] = delivery.id
    if delivery.courier_name:
        driver["name"] = delivery.courier_name
    if delivery.courier_phone_number:
        driver["phone"] = delivery.courier_phone_number
    if delivery.courier_location is not None:
        driver["currentLocation"] = delivery.courier_location.model_dump()

    # Only a delivery id is not a courier
    if set(driver) <= {"id"} and not existing:
        return existing
    return driver


class DeliveryEventReconciler:
    """
    Usage:
        reconciler = get_delivery_event_reconciler()
        ack = await reconciler.handle_event(payload, db)
    """

    def __init__(self):
        self._handlers = {
            "delivery": self._on_delivery,
            "courier_location": self._on_courier_location,
            "job": self._on_job,
        }

    async def find_order(self, payload: NashWebhookPayload, db: AsyncSession) -> Optional[Order]:
        """Linear scan over orders for the delivery id, then the external id."""
        delivery_id = payload.data.id

        if delivery_id:
            result = await db.execute(select(Order))
            for order in result.scalars():
                if order.delivery_info and order.delivery_info.get("deliveryId") == delivery_id:
                    return order

        external_id = payload.data.external_identifier
        if external_id:
            result = await db.execute(select(Order).where(Order.id == external_id))
            return result.scalar_one_or_none()

        return None

    async def handle_event(self, payload: NashWebhookPayload, db: AsyncSession) -> WebhookAck:
        handler = self._handlers.get(payload.type)
        if handler is None:
            logger.info(f"Nash: Ignoring webhook type={payload.type} event={payload.event}")
            return WebhookAck(handled=False, detail=f"Unhandled webhook type: {payload.type}")

        order = await self.find_order(payload, db)
        if order is None:
            logger.warning(
                f"Nash: No order for delivery {payload.data.id} "
                f"(external {payload.data.external_identifier})"
            )
            return WebhookAck(handled=False, detail="No matching order")

        logger.info(f"Nash: {payload.type}/{payload.event} for order {order.id}")

        await handler(order, payload)

        driver = merge_driver(order.driver, payload.data.delivery)
        if driver != order.driver:
            order.driver = driver

        await db.commit()
        return WebhookAck(detail=f"Order {order.id} is {order.status.value}")

    async def _on_delivery(self, order: Order, payload: NashWebhookPayload) -> None:
        delivery_status = map_nash_event_to_delivery_status(payload.event)
        info = dict(order.delivery_info or {})

        current = info.get("status")
        if current in {s.value for s in TERMINAL_DELIVERY_STATUSES} and current != delivery_status.value:
            logger.warning(
                f"Nash: Order {order.id} delivery already {current}, "
                f"ignoring {payload.event}"
            )
        else:
            info["status"] = delivery_status.value
            apply_status(order, map_delivery_status_to_order_status(delivery_status), "nash")

        if payload.data.id:
            info.setdefault("deliveryId", payload.data.id)
        info.setdefault("provider", PROVIDER_NAME)

        delivery = payload.data.delivery
        if delivery is not None:
            if delivery.pickup_eta:
                info["estimatedPickupTime"] = delivery.pickup_eta
            if delivery.dropoff_eta:
                info["estimatedDeliveryTime"] = delivery.dropoff_eta

        if payload.data.tracking_url:
            info["trackingUrl"] = payload.data.tracking_url

        order.delivery_info = info

    async def _on_courier_location(self, order: Order, payload: NashWebhookPayload) -> None:
        delivery = payload.data.delivery
        if delivery is None or delivery.courier_location is None:
            logger.debug(f"Nash: courier_location for order {order.id} has no location")

    async def _on_job(self, order: Order, payload: NashWebhookPayload) -> None:
        tracking_url = payload.data.tracking_url
        if tracking_url:
            info = dict(order.delivery_info or {})
            info["trackingUrl"] = tracking_url
            order.delivery_info = info


# Singleton instance
_reconciler_instance: Optional[DeliveryEventReconciler] = None


def get_delivery_event_reconciler() -> DeliveryEventReconciler:
    global _reconciler_instance

    if _reconciler_instance is None:
        _reconciler_instance = DeliveryEventReconciler()

    return _reconciler_instance


def initial_delivery_info(
    delivery_id: str,
    provider: str,
    quote_id: Optional[str] = None,
    fee: Optional[float] = None,
    tracking_url: Optional[str] = None,
    estimated_pickup_time: Optional[str] = None,
    estimated_delivery_time: Optional[str] = None,
) -> dict[str, Any]:
    """The ``delivery_info`` document stored when a delivery is dispatched."""
    info = {
        "deliveryId": delivery_id,
        "provider": provider,
        "status": DeliveryStatus.PENDING.value,
        "quoteId": quote_id,
        "fee": fee,
        "trackingUrl": tracking_url,
        "estimatedPickupTime": estimated_pickup_time,
        "estimatedDeliveryTime": estimated_delivery_time,
    }
    return {k: v for k, v in info.items() if v is not None}
