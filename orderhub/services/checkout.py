"""
Checkout-Session Builder

Prices an order from its items' current menu prices, adds the platform's
fees, and opens a hosted checkout session on the restaurant's connected
account. All arithmetic is done in integer cents.

Fee model:
    items_total      sum of menu price x quantity
    delivery_fee     order.delivery_fee for delivery orders, else 0
    service_fee      SERVICE_FEE_CENTS
    processing_fee   round_half_up((items + delivery + service) x PROCESSING_FEE_RATE)
    platform_fee     service + delivery + processing (withheld as application fee)

The restaurant's connected account receives items_total.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.core.config import get_settings
from orderhub.core.exceptions import (
    CheckoutError,
    PaymentProviderError,
    ResourceNotFoundError,
)
from orderhub.models import MenuItem, Order, OrderItem, OrderStatus, Restaurant
from orderhub.services.order_status import apply_status
from orderhub.services.payment.base import BasePaymentService, CheckoutLineItem

logger = logging.getLogger(__name__)

CHECKOUT_ALLOWED_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.PAYMENT_PROCESSING})


def to_cents(amount: float) -> int:
    """Major units to cents, half-up."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_major(cents: int) -> float:
    return float(Decimal(cents) / 100)


@dataclass
class CheckoutTotals:
    """Breakdown of one checkout, all amounts in cents."""
    items_total: int
    delivery_fee_amount: int
    service_fee: int
    processing_fee: int
    line_items: list[CheckoutLineItem] = field(default_factory=list)

    @property
    def platform_fee(self) -> int:
        return self.service_fee + self.delivery_fee_amount + self.processing_fee

    @property
    def amount_total(self) -> int:
        return self.items_total + self.platform_fee


def compute_checkout_totals(
    item_lines: list[CheckoutLineItem],
    is_delivery: bool,
    delivery_fee: float,
    service_fee_cents: int,
    processing_fee_rate: float,
) -> CheckoutTotals:
    """
    Build the fee lines for a set of priced item lines.

    Args:
        item_lines: One line per order item, unit amounts in cents
        is_delivery: Whether the delivery fee applies
        delivery_fee: Delivery fee in major units
        service_fee_cents: Fixed platform service fee
        processing_fee_rate: Fraction of the pre-processing total

    Returns:
        CheckoutTotals whose line items sum to ``amount_total``
    """
    items_total = sum(line.amount for line in item_lines)
    delivery_fee_amount = to_cents(delivery_fee) if is_delivery and delivery_fee else 0

    base = Decimal(items_total + delivery_fee_amount + service_fee_cents)
    processing_fee = int(
        (base * Decimal(str(processing_fee_rate))).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    )

    line_items = list(item_lines)
    if delivery_fee_amount:
        line_items.append(CheckoutLineItem(name="Delivery Fee", unit_amount=delivery_fee_amount))
    line_items.append(CheckoutLineItem(name="Service Fee", unit_amount=service_fee_cents))
    if processing_fee:
        line_items.append(CheckoutLineItem(name="Processing Fee", unit_amount=processing_fee))

    return CheckoutTotals(
        items_total=items_total,
        delivery_fee_amount=delivery_fee_amount,
        service_fee=service_fee_cents,
        processing_fee=processing_fee,
        line_items=line_items,
    )


@dataclass
class CheckoutSession:
    session_id: str
    url: Optional[str]
    totals: CheckoutTotals


class CheckoutSessionBuilder:
    """Validates an order, prices it, and hands it to the payment service."""

    def __init__(self, payment_service: BasePaymentService):
        self.payment_service = payment_service
        self.settings = get_settings()

    async def _load(self, db: AsyncSession, model, object_id: str, label: str):
        result = await db.execute(select(model).where(model.id == object_id))
        obj = result.scalar_one_or_none()
        if obj is None:
            raise ResourceNotFoundError(f"{label} {object_id} not found")
        return obj

    async def _price_items(self, db: AsyncSession, order: Order) -> list[CheckoutLineItem]:
        result = await db.execute(select(OrderItem).where(OrderItem.order_id == order.id))
        order_items = result.scalars().all()
        if not order_items:
            raise CheckoutError(f"Order {order.id} has no items")

        lines = []
        for item in order_items:
            menu_item = await self._load(db, MenuItem, item.menu_item_id, "Menu item")
            lines.append(
                CheckoutLineItem(
                    name=menu_item.name,
                    unit_amount=to_cents(menu_item.price),
                    quantity=item.quantity or 1,
                    description=menu_item.description,
                )
            )
        return lines

    def _redirect_urls(self, order_id: str) -> tuple[str, str]:
        base = self.settings.app_base_url.rstrip("/")
        success_url = f"{base}/order/success?session_id={{CHECKOUT_SESSION_ID}}&order_id={order_id}"
        cancel_url = f"{base}/order/cancel?order_id={order_id}"
        return success_url, cancel_url

    async def create_session(
        self,
        db: AsyncSession,
        order_id: str,
        restaurant_id: str,
    ) -> CheckoutSession:
        """
        Raises:
            ResourceNotFoundError: Order, restaurant or a menu item is missing
            CheckoutError: Order not checkout-able (400, or 409 for status)
            PaymentProviderError: Processor refused or was unreachable
        """
        order = await self._load(db, Order, order_id, "Order")
        restaurant = await self._load(db, Restaurant, restaurant_id, "Restaurant")

        if order.restaurant_id != restaurant.id:
            raise CheckoutError(f"Order {order_id} does not belong to restaurant {restaurant_id}")

        if order.status not in CHECKOUT_ALLOWED_STATUSES:
            raise CheckoutError(
                f"Order {order_id} is {order.status.value} and cannot be checked out",
                status_code=409,
            )

        if not restaurant.stripe_account_id:
            raise CheckoutError("Restaurant has not connected their Stripe account")

        item_lines = await self._price_items(db, order)
        totals = compute_checkout_totals(
            item_lines,
            is_delivery=order.is_delivery,
            delivery_fee=order.delivery_fee,
            service_fee_cents=self.settings.service_fee_cents,
            processing_fee_rate=self.settings.processing_fee_rate,
        )

        success_url, cancel_url = self._redirect_urls(order.id)
        result = await self.payment_service.create_checkout_session(
            line_items=totals.line_items,
            application_fee_amount=totals.platform_fee,
            destination_account=restaurant.stripe_account_id,
            metadata={"orderId": order.id, "restaurantId": restaurant.id},
            success_url=success_url,
            cancel_url=cancel_url,
            customer_email=order.customer_email,
            collect_shipping_address=order.is_delivery,
            client_reference_id=order.id,
        )

        if not result.success:
            logger.error(f"Checkout failed for order {order.id}: {result.error_message}")
            raise PaymentProviderError(
                result.error_message or "Could not create checkout session",
                code=(result.error_code or "payment_provider_error").upper(),
            )

        apply_status(order, OrderStatus.PAYMENT_PROCESSING, "checkout")
        order.stripe_checkout_session_id = result.session_id
        order.subtotal = to_major(totals.items_total)
        order.service_fee = to_major(totals.service_fee)
        order.processing_fee = to_major(totals.processing_fee)
        order.platform_fee = to_major(totals.platform_fee)
        order.total = to_major(totals.amount_total)
        await db.commit()

        logger.info(
            f"Checkout session {result.session_id} for order {order.id}: "
            f"{totals.amount_total} cents, platform fee {totals.platform_fee}"
        )

        return CheckoutSession(session_id=result.session_id, url=result.url, totals=totals)
