"""
Mock Payment Service Implementation

Simulates Stripe Checkout without making real API calls.
Used in development mode (ENV_MODE=development) to:
    - Run the full checkout -> webhook flow locally
    - Develop without Stripe credentials or connectivity

Behavior:
    - Simulates response times
    - Optionally fails a fraction of session creations
    - Generates Stripe-like IDs (cs_test_mock_xxx)
    - Verifies webhook signatures when STRIPE_WEBHOOK_SECRET is set,
      otherwise accepts any signed-or-not JSON body
"""

import asyncio
import logging
import random
import uuid
from typing import Optional

from orderhub.services.payment.base import (
    BasePaymentService,
    CheckoutLineItem,
    CheckoutSessionResult,
    construct_signed_event,
    parse_event_payload,
)

logger = logging.getLogger(__name__)


class MockPaymentService(BasePaymentService):
    """
    Mock implementation of the payment service.

    Attributes:
        failure_rate: Probability of a simulated processor failure (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds
        webhook_secret: When set, webhook signatures are checked like Stripe does
        sessions: Every session created, keyed by id
    """

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
        webhook_secret: Optional[str] = None,
        webhook_tolerance: int = 300,
        checkout_base_url: str = "https://checkout.stripe.com/c/pay",
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.webhook_secret = webhook_secret
        self.webhook_tolerance = webhook_tolerance
        self.checkout_base_url = checkout_base_url
        self.sessions: dict[str, dict] = {}

        logger.info(
            f"MockPaymentService initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={min_latency}-{max_latency}s, "
            f"signed_webhooks={bool(webhook_secret)})"
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "mock"

    def _generate_session_id(self) -> str:
        """Generate a Stripe-like checkout session ID."""
        return f"cs_test_mock_{uuid.uuid4().hex[:24]}"

    async def _simulate_latency(self) -> float:
        """Sleep for a random latency; returns it in milliseconds."""
        latency = random.uniform(self.min_latency, self.max_latency)
        if latency > 0:
            await asyncio.sleep(latency)
        return latency * 1000

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

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
        """Simulate creating a checkout session and remember its parameters."""
        latency_ms = await self._simulate_latency()

        if self._should_fail():
            logger.debug("Mock: Simulated checkout session failure")
            return CheckoutSessionResult(
                success=False,
                error_message="Payment service temporarily unavailable",
                error_code="connection_error",
                response_time_ms=latency_ms,
            )

        session_id = self._generate_session_id()
        self.sessions[session_id] = {
            "line_items": line_items,
            "amount_total": sum(item.amount for item in line_items),
            "application_fee_amount": application_fee_amount,
            "destination_account": destination_account,
            "metadata": dict(metadata),
            "customer_email": customer_email,
            "collect_shipping_address": collect_shipping_address,
            "client_reference_id": client_reference_id,
            "success_url": success_url,
            "cancel_url": cancel_url,
        }

        logger.info(
            f"Mock: Checkout session created - {session_id} - "
            f"{self.sessions[session_id]['amount_total']} cents"
        )

        return CheckoutSessionResult(
            success=True,
            session_id=session_id,
            url=f"{self.checkout_base_url}/{session_id}",
            response_time_ms=latency_ms,
            metadata={"mock": True},
        )

    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> dict:
        """
        Verify like Stripe when a secret is configured; otherwise only parse.
        """
        if self.webhook_secret:
            return construct_signed_event(
                payload, signature, self.webhook_secret, self.webhook_tolerance
            )

        logger.warning("Mock: STRIPE_WEBHOOK_SECRET not set, accepting unsigned webhook")
        return parse_event_payload(payload)

    async def health_check(self) -> bool:
        logger.debug("Mock: Health check passed")
        return True
