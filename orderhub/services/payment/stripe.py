"""
Stripe Payment Service Implementation

Production implementation using the official Stripe Python SDK.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - STRIPE_SECRET_KEY must be set in environment
    - STRIPE_WEBHOOK_SECRET for webhook verification

Checkout sessions are created on the platform account with a destination
charge: the application fee stays with the platform, the remainder is
transferred to the restaurant's connected account.
"""

import logging
from datetime import datetime
from typing import Optional

import stripe

from orderhub.core.config import get_settings
from orderhub.core.exceptions import WebhookSignatureError
from orderhub.services.payment.base import (
    BasePaymentService,
    CheckoutLineItem,
    CheckoutSessionResult,
    construct_signed_event,
)

logger = logging.getLogger(__name__)


class StripePaymentService(BasePaymentService):
    """
    Production Stripe payment service implementation.

    Configuration:
        Requires STRIPE_SECRET_KEY environment variable.
        Webhooks are rejected unless STRIPE_WEBHOOK_SECRET is set.
    """

    def __init__(self):
        """
        Initialize Stripe with API key from settings.

        Raises:
            ValueError: If STRIPE_SECRET_KEY is not configured
        """
        settings = get_settings()

        if not settings.stripe_secret_key:
            raise ValueError(
                "STRIPE_SECRET_KEY is required for production mode. "
                "Set it in your .env file or environment variables."
            )

        stripe.api_key = settings.stripe_secret_key

        self._webhook_secret = settings.stripe_webhook_secret
        self._webhook_tolerance = settings.stripe_webhook_tolerance
        self._currency = settings.stripe_currency

        logger.info("StripePaymentService initialized")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "stripe"

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
        """Create a Stripe Checkout Session with a destination charge."""
        start_time = datetime.now()

        params = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [item.to_stripe(self._currency) for item in line_items],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
            "payment_intent_data": {
                "application_fee_amount": application_fee_amount,
                "transfer_data": {"destination": destination_account},
                "metadata": metadata,
            },
            "phone_number_collection": {"enabled": True},
        }
        if customer_email:
            params["customer_email"] = customer_email
        if client_reference_id:
            params["client_reference_id"] = client_reference_id
        if collect_shipping_address:
            params["shipping_address_collection"] = {"allowed_countries": ["US"]}

        try:
            session = stripe.checkout.Session.create(**params)

            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
            logger.info(
                f"Stripe: Checkout session created - {session.id} "
                f"(fee={application_fee_amount}, destination={destination_account})"
            )

            return CheckoutSessionResult(
                success=True,
                session_id=session.id,
                url=session.url,
                response_time_ms=elapsed_ms,
                metadata={"payment_status": session.payment_status},
            )

        except stripe.InvalidRequestError as e:
            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
            logger.error(f"Stripe: Invalid checkout request - {e}")

            return CheckoutSessionResult(
                success=False,
                error_message=str(e),
                error_code="invalid_request",
                response_time_ms=elapsed_ms,
            )

        except stripe.AuthenticationError as e:
            logger.critical(f"Stripe: Authentication failed - {e}")

            return CheckoutSessionResult(
                success=False,
                error_message="Payment service configuration error",
                error_code="authentication_error",
            )

        except stripe.APIConnectionError as e:
            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
            logger.error(f"Stripe: Connection error - {e}")

            return CheckoutSessionResult(
                success=False,
                error_message="Payment service temporarily unavailable",
                error_code="connection_error",
                response_time_ms=elapsed_ms,
            )

        except stripe.StripeError as e:
            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
            logger.error(f"Stripe: Error - {e}")

            return CheckoutSessionResult(
                success=False,
                error_message="Payment processing error",
                error_code="stripe_error",
                response_time_ms=elapsed_ms,
            )

    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> dict:
        """
        Verify and parse a Stripe webhook event.

        Events are never accepted unsigned in staging or production.
        """
        if not self._webhook_secret:
            logger.error("Stripe: STRIPE_WEBHOOK_SECRET not configured, rejecting webhook")
            raise WebhookSignatureError("Webhook signing secret not configured")

        event = construct_signed_event(
            payload, signature, self._webhook_secret, self._webhook_tolerance
        )
        logger.debug(f"Stripe: Webhook verified - {event.get('type')}")
        return event

    async def health_check(self) -> bool:
        """Verify Stripe API connectivity with a lightweight account lookup."""
        try:
            stripe.Account.retrieve()
            logger.debug("Stripe: Health check passed")
            return True

        except stripe.StripeError as e:
            logger.error(f"Stripe: Health check failed - {e}")
            return False
