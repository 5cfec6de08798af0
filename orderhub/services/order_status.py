"""
Order and delivery status tables.

Holds the fixed mappings used by the webhook reconcilers and the
transition guard that every status write goes through. Webhooks from
the payment processor and the delivery provider both write
``Order.status``; the guard keeps them from regressing each other.
"""

import logging
from typing import Optional

from orderhub.models import OrderStatus, DeliveryStatus

logger = logging.getLogger(__name__)


# Nash delivery event -> internal delivery status
NASH_EVENT_TO_DELIVERY_STATUS: dict[str, DeliveryStatus] = {
    "created": DeliveryStatus.PENDING,
    "assigned_driver": DeliveryStatus.CONFIRMED,
    "pickup_enroute": DeliveryStatus.PICKING_UP,
    "pickup_arrived": DeliveryStatus.PICKING_UP,
    "pickup_complete": DeliveryStatus.PICKED_UP,
    "dropoff_enroute": DeliveryStatus.PICKED_UP,
    "dropoff_arrived": DeliveryStatus.DELIVERING,
    "dropoff_complete": DeliveryStatus.COMPLETED,
    "failed": DeliveryStatus.FAILED,
}

CANCELED_EVENT_PREFIX = "canceled_by_"

DELIVERY_STATUS_TO_ORDER_STATUS: dict[DeliveryStatus, OrderStatus] = {
    DeliveryStatus.PENDING: OrderStatus.PREPARING,
    DeliveryStatus.CONFIRMED: OrderStatus.PREPARING,
    DeliveryStatus.PICKING_UP: OrderStatus.PREPARING,
    DeliveryStatus.PICKED_UP: OrderStatus.PREPARING,
    DeliveryStatus.DELIVERING: OrderStatus.PREPARING,
    DeliveryStatus.COMPLETED: OrderStatus.COMPLETED,
    DeliveryStatus.CANCELLED: OrderStatus.CANCELLED,
    DeliveryStatus.FAILED: OrderStatus.CANCELLED,
}

# Forward order of the happy path; CANCELLED sits outside it.
ORDER_PROGRESSION: tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.PAYMENT_PROCESSING,
    OrderStatus.PAID,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.COMPLETED,
)

TERMINAL_ORDER_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})

TERMINAL_DELIVERY_STATUSES = frozenset({
    DeliveryStatus.COMPLETED,
    DeliveryStatus.CANCELLED,
    DeliveryStatus.FAILED,
})


def map_nash_event_to_delivery_status(event: Optional[str]) -> DeliveryStatus:
    """Map a Nash delivery event code; unknown codes fall back to PENDING."""
    if not event:
        return DeliveryStatus.PENDING
    code = event.strip().lower()
    if code.startswith(CANCELED_EVENT_PREFIX):
        return DeliveryStatus.CANCELLED
    status = NASH_EVENT_TO_DELIVERY_STATUS.get(code)
    if status is None:
        logger.info(f"Unrecognized Nash delivery event '{event}', treating as PENDING")
        return DeliveryStatus.PENDING
    return status


def map_delivery_status_to_order_status(status: DeliveryStatus) -> OrderStatus:
    return DELIVERY_STATUS_TO_ORDER_STATUS[status]


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """
    Whether an order may move from ``current`` to ``target``.

    Rules:
        - same status is always allowed (idempotent re-delivery)
        - nothing leaves COMPLETED or CANCELLED
        - CANCELLED is reachable from any other status
        - otherwise only forward along ORDER_PROGRESSION
    """
    if current == target:
        return True
    if current in TERMINAL_ORDER_STATUSES:
        return False
    if target == OrderStatus.CANCELLED:
        return True
    return ORDER_PROGRESSION.index(target) > ORDER_PROGRESSION.index(current)


def apply_status(order, target: OrderStatus, source: str) -> bool:
    """
    Set ``order.status`` to ``target`` when the guard allows it.

    Args:
        order: Order model instance
        target: Desired status
        source: Who is asking (for logs), e.g. "stripe", "nash", "portal"

    Returns:
        True when the order now has ``target`` as its status
    """
    current = order.status
    if not can_transition(current, target):
        logger.warning(
            f"Order {order.id}: ignoring {source} transition "
            f"{current.value} -> {target.value}"
        )
        return False
    if current != target:
        logger.info(f"Order {order.id}: {current.value} -> {target.value} ({source})")
        order.status = target
    return True
