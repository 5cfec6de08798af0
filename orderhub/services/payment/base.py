"""
Payment Service Abstract Base Class

Defines the interface contract for payment processor adapters.
Both MockPaymentService and StripePaymentService implement these methods,
so checkout and the payment webhook behave the same regardless of which
adapter is active.

Design Pattern: Strategy Pattern
    - Runtime switching between the mock and Stripe via ENV_MODE
    - Tests inject a deterministic mock through FastAPI dependency overrides
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

import stripe

from orderhub.core.exceptions import InvalidPayloadError, WebhookSignatureError

logger = logging.getLogger(__name__)


@dataclass
class CheckoutLineItem:
    """
    One priced line on a checkout session.

    Attributes:
        name: Product name shown on the hosted checkout page
        unit_amount: Price per unit in minor currency units (cents)
        quantity: Number of units
        description: Optional product description
    """
    name: str
    unit_amount: int
    quantity: int = 1
    description: Optional[str] = None

    @property
    def amount(self) -> int:
        return self.unit_amount * self.quantity

    def to_stripe(self, currency: str) -> dict:
        product_data = {"name": self.name}
        if self.description:
            product_data["description"] = self.description
        return {
            "price_data": {
                "currency": currency,
                "product_data": product_data,
                "unit_amount": self.unit_amount,
            },
            "quantity": self.quantity,
        }


@dataclass
class CheckoutSessionResult:
    """
    Standardized result from checkout session creation.

    Attributes:
        success: Whether the session was created
        session_id: Processor session identifier (Stripe format: cs_xxx)
        url: Hosted checkout URL to redirect the customer to
        error_message: Error description if creation failed
        error_code: Machine-readable error code
        response_time_ms: Time taken by the processor call
        metadata: Additional data from the processor
    """
    success: bool
    session_id: Optional[str] = None
    url: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0
    metadata: dict = field(default_factory=dict)


def construct_signed_event(
    payload: bytes,
    signature: Optional[str],
    secret: str,
    tolerance: int,
) -> dict:
    """
    Verify a ``Stripe-Signature`` header and return the event as a dict.

    Raises:
        WebhookSignatureError: Missing or invalid signature
        InvalidPayloadError: Body is not valid JSON
    """
    if not signature:
        raise WebhookSignatureError("Missing Stripe-Signature header")

    try:
        stripe.Webhook.construct_event(payload, signature, secret, tolerance=tolerance)
    except stripe.SignatureVerificationError as e:
        logger.warning(f"Stripe: Webhook signature invalid - {e}")
        raise WebhookSignatureError("Invalid webhook signature")
    except ValueError:
        raise InvalidPayloadError("Webhook body is not valid JSON")

    return parse_event_payload(payload)


def parse_event_payload(payload: bytes) -> dict:
    try:
        event = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidPayloadError("Webhook body is not valid JSON")
    if not isinstance(event, dict):
        raise InvalidPayloadError("Webhook body must be a JSON object")
    return event


class BasePaymentService(ABC):
    """
    Abstract base class for payment processor adapters.

    Example:
        >>> service = get_payment_service()  # Returns Mock or Stripe
        >>> result = await service.create_checkout_session(
        ...     line_items=[CheckoutLineItem("Burger", 1000, 2)],
        ...     application_fee_amount=308,
        ...     destination_account="acct_123",
        ...     metadata={"orderId": "..."},
        ...     success_url="https://shop/order/success",
        ...     cancel_url="https://shop/order/cancel",
        ... )
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the payment provider (e.g., "mock", "stripe")."""
        pass

    @abstractmethod
    async def create_checkout_session(
        self,
        line_items: list[CheckoutLineItem],
        application_fee_amount: int,
        destination_account: str,
        metadata: dict,
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str] = None,
        collect_shipping_address: bool = False,
        client_reference_id: Optional[str] = None,
    ) -> CheckoutSessionResult:
        """
        Create a hosted checkout session on behalf of a connected account.

        Args:
            line_items: Priced lines, amounts in minor units
            application_fee_amount: Amount withheld by the platform (minor units)
            destination_account: Connected account receiving the remainder
            metadata: Key-value data attached to the session and payment
            success_url: Redirect after successful payment
            cancel_url: Redirect when the customer abandons checkout
            customer_email: Prefill for the checkout form
            collect_shipping_address: Ask for a shipping address (delivery orders)
            client_reference_id: Our order id, echoed back in webhooks

        Returns:
            CheckoutSessionResult: Standardized result object
        """
        pass

    @abstractmethod
    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> dict:
        """
        Verify and parse a webhook from the payment provider.

        Args:
            payload: Raw request body bytes
            signature: Signature header from the request

        Returns:
            dict: Parsed webhook event

        Raises:
            WebhookSignatureError: Signature missing or invalid
            InvalidPayloadError: Body is not a JSON object
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify connectivity to the payment service."""
        pass
