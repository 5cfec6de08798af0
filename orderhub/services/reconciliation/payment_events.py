"""
Payment-Event Reconciler

Applies verified Stripe checkout events to the matching order.

Handled events:
    - checkout.session.completed: PAID, customer details and payment intent
    - checkout.session.async_payment_succeeded: PAID
    - checkout.session.expired: CANCELLED
    - checkout.session.async_payment_failed: CANCELLED

Anything else is acknowledged without touching the store so Stripe stops
retrying it.

A checkout retry opens a new session and records it on the order. Expiry
or failure of an older session is acknowledged with ``handled=False`` and
leaves the order alone; the ack also reports ``handled=False`` whenever
the transition guard refuses the status write.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.core.exceptions import InvalidPayloadError, ResourceNotFoundError
from orderhub.models import Order, OrderStatus
from orderhub.schemas import WebhookAck
from orderhub.services.order_status import apply_status

logger = logging.getLogger(__name__)


def extract_order_id(session: dict[str, Any]) -> Optional[str]:
    """``metadata.orderId`` first, then ``client_reference_id``."""
    metadata = session.get("metadata") or {}
    return metadata.get("orderId") or session.get("client_reference_id")


def format_address(address: Optional[dict[str, Any]]) -> Optional[str]:
    """Flatten a Stripe address object into one line."""
    if not address:
        return None
    locality = " ".join(
        part for part in (address.get("state"), address.get("postal_code")) if part
    )
    parts = [
        address.get("line1"),
        address.get("line2"),
        address.get("city"),
        locality,
        address.get("country"),
    ]
    line = ", ".join(part for part in parts if part)
    return line or None


def _shipping_details(session: dict[str, Any]) -> dict[str, Any]:
    # Newer API versions nest shipping under collected_information
    collected = session.get("collected_information") or {}
    return collected.get("shipping_details") or session.get("shipping_details") or {}


class PaymentEventReconciler:
    """
    Maps checkout session events onto order state.

    Usage:
        reconciler = get_payment_event_reconciler()
        ack = await reconciler.handle_event(event, db)
    """

    def __init__(self):
        self._handlers = {
            "checkout.session.completed": self._on_session_completed,
            "checkout.session.async_payment_succeeded": self._on_payment_succeeded,
            "checkout.session.expired": self._on_session_cancelled,
            "checkout.session.async_payment_failed": self._on_session_cancelled,
        }

    async def handle_event(self, event: dict[str, Any], db: AsyncSession) -> WebhookAck:
        """
        Apply one verified event.

        Raises:
            InvalidPayloadError: Event has no session object or order id
            ResourceNotFoundError: Order id is not in the store
        """
        event_type = event.get("type")
        handler = self._handlers.get(event_type)

        if handler is None:
            logger.info(f"Stripe: Ignoring unhandled event type {event_type}")
            return WebhookAck(handled=False, detail=f"Unhandled event type: {event_type}")

        session = (event.get("data") or {}).get("object")
        if not isinstance(session, dict):
            raise InvalidPayloadError("Event has no data.object")

        order_id = extract_order_id(session)
        if not order_id:
            raise InvalidPayloadError("No orderId in session metadata")

        result = await db.execute(select(Order).where(Order.id == order_id))
        order = result.scalar_one_or_none()
        if order is None:
            raise ResourceNotFoundError(f"Order {order_id} not found")

        logger.info(f"Stripe: {event_type} for order {order_id} (event {event.get('id')})")

        previous = order.status
        applied = await handler(order, session)
        await db.commit()

        if not applied:
            return WebhookAck(
                handled=False,
                detail=f"Order {order_id} left at {order.status.value}",
            )
        if order.status != previous:
            detail = f"Order {order_id} moved {previous.value} -> {order.status.value}"
        else:
            detail = f"Order {order_id} already {order.status.value}"
        return WebhookAck(detail=detail)

    async def _on_session_completed(self, order: Order, session: dict[str, Any]) -> bool:
        applied = apply_status(order, OrderStatus.PAID, "stripe")

        details = session.get("customer_details") or {}
        shipping = _shipping_details(session)

        if details.get("email"):
            order.customer_email = details["email"]
        if details.get("phone"):
            order.customer_phone = details["phone"]

        name = shipping.get("name") or details.get("name")
        if name:
            order.customer_name = name

        address = format_address(shipping.get("address")) or format_address(details.get("address"))
        if address:
            order.delivery_address = address

        payment_intent = session.get("payment_intent")
        if isinstance(payment_intent, dict):
            payment_intent = payment_intent.get("id")
        if payment_intent:
            order.stripe_payment_intent_id = payment_intent

        # The session that was paid becomes the current one
        if session.get("id") and applied:
            order.stripe_checkout_session_id = session["id"]

        return applied

    async def _on_payment_succeeded(self, order: Order, session: dict[str, Any]) -> bool:
        return apply_status(order, OrderStatus.PAID, "stripe")

    async def _on_session_cancelled(self, order: Order, session: dict[str, Any]) -> bool:
        current_session = order.stripe_checkout_session_id
        if current_session and session.get("id") != current_session:
            logger.info(
                f"Stripe: Order {order.id} ignoring {session.get('id')}, "
                f"superseded by {current_session}"
            )
            return False
        return apply_status(order, OrderStatus.CANCELLED, "stripe")


# Singleton instance
_reconciler_instance: Optional[PaymentEventReconciler] = None


def get_payment_event_reconciler() -> PaymentEventReconciler:
    global _reconciler_instance

    if _reconciler_instance is None:
        _reconciler_instance = PaymentEventReconciler()

    return _reconciler_instance
