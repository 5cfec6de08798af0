"""
Nash Delivery Service Implementation

Production implementation against the Nash delivery orchestration API.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - NASH_API_KEY and NASH_ORG_ID must be set in environment
    - NASH_WEBHOOK_SECRET to verify delivery webhooks

API Documentation:
    https://docs.usenash.com/api-reference
"""

import logging
from typing import Any, Optional

import httpx

from orderhub.core.config import get_settings
from orderhub.services.delivery.base import (
    BaseDeliveryService,
    DeliveryRequest,
    DeliveryResult,
)

logger = logging.getLogger(__name__)

CREATE_ORDER = "/v1/order"


def _split_name(name: str) -> tuple[str, str]:
    parts = name.split()
    if len(parts) < 2:
        return name, ""
    return " ".join(parts[:-1]), parts[-1]


class NashDeliveryService(BaseDeliveryService):
    """
    Nash adapter: creates an order, autodispatches it, and cancels it.

    Every call is a short-lived ``httpx.AsyncClient`` request; failures are
    reported through ``DeliveryResult`` rather than raised.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Raises:
            ValueError: If NASH_API_KEY or NASH_ORG_ID is not configured
        """
        settings = get_settings()

        if not settings.nash_api_key or not settings.nash_org_id:
            raise ValueError(
                "NASH_API_KEY and NASH_ORG_ID are required for production mode. "
                "Set them in your .env file or environment variables."
            )

        super().__init__(webhook_secret=settings.nash_webhook_secret)
        self._base_url = settings.nash_api_base_url.rstrip("/")
        self._timeout = settings.nash_timeout_seconds
        self._headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {settings.nash_api_key}",
            "X-Nash-Org-ID": settings.nash_org_id,
        }
        self._transport = transport

        logger.info(f"NashDeliveryService initialized ({self._base_url})")

    @property
    def provider_name(self) -> str:
        return "Nash"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _post(self, client: httpx.AsyncClient, path: str, body: Optional[dict] = None) -> dict[str, Any]:
        response = await client.post(path, json=body)
        response.raise_for_status()
        return response.json()

    def _build_order_body(self, request: DeliveryRequest) -> dict[str, Any]:
        dropoff_first, dropoff_last = _split_name(request.dropoff_name)
        body = {
            "pickupAddress": request.pickup_address,
            "pickupPhoneNumber": request.pickup_phone,
            "pickupBusinessName": request.pickup_business_name,
            "pickupInstructions": request.pickup_instructions,
            "dropoffAddress": request.dropoff_address,
            "dropoffPhoneNumber": request.dropoff_phone,
            "dropoffFirstName": dropoff_first,
            "dropoffLastName": dropoff_last,
            "dropoffInstructions": request.dropoff_instructions,
            "dropoffEmail": request.dropoff_email,
            "description": "Food delivery",
            "itemsCount": request.items_count,
            "currency": "USD",
            "valueCents": request.value_cents,
            "deliveryMode": "now",
            "externalId": request.external_id,
        }
        return {k: v for k, v in body.items() if v is not None}

    async def create_delivery(self, request: DeliveryRequest) -> DeliveryResult:
        """
        Create the Nash order, then autodispatch it to the preferred quote.

        When autodispatch fails the freshly created Nash order is cancelled
        so no undispatched order is left behind on the Nash side.
        """
        logger.info(f"Nash: Creating delivery for order {request.external_id}")

        try:
            async with self._client() as client:
                created = await self._post(client, CREATE_ORDER, self._build_order_body(request))
                nash_order_id = created["id"]
                try:
                    dispatched = await self._post(client, f"{CREATE_ORDER}/{nash_order_id}/autodispatch")
                except (httpx.HTTPError, ValueError):
                    await self._cancel_undispatched(client, nash_order_id)
                    raise

        except httpx.HTTPStatusError as e:
            logger.error(
                f"Nash: API error {e.response.status_code} creating delivery - "
                f"{e.response.text[:500]}"
            )
            return DeliveryResult(
                success=False,
                error_message=f"Nash API error ({e.response.status_code})",
                error_code="nash_api_error",
            )

        except httpx.RequestError as e:
            logger.error(f"Nash: Connection error - {e}")
            return DeliveryResult(
                success=False,
                error_message="Delivery service temporarily unavailable",
                error_code="connection_error",
            )

        except (KeyError, TypeError, ValueError) as e:
            # Missing order id, or a 2xx body that is not JSON
            logger.error(f"Nash: Unexpected response creating delivery - {e!r}")
            return DeliveryResult(
                success=False,
                error_message="Unexpected response from delivery service",
                error_code="invalid_response",
            )

        if not isinstance(dispatched, dict):
            dispatched = {}
        winner = dispatched.get("winnerQuote") or {}
        price_cents = winner.get("price_cents") or winner.get("priceCents")

        logger.info(f"Nash: Delivery dispatched - {nash_order_id}")

        return DeliveryResult(
            success=True,
            delivery_id=nash_order_id,
            quote_id=winner.get("id"),
            fee=price_cents / 100.0 if price_cents is not None else None,
            tracking_url=dispatched.get("publicTrackingUrl") or created.get("publicTrackingUrl"),
            estimated_pickup_time=dispatched.get("pickupEta"),
            estimated_delivery_time=dispatched.get("dropoffEta"),
        )

    async def _cancel_undispatched(self, client: httpx.AsyncClient, nash_order_id: str) -> None:
        try:
            await self._post(
                client, f"{CREATE_ORDER}/{nash_order_id}/cancel", {"reason": "Autodispatch failed"}
            )
            logger.info(f"Nash: Cancelled undispatched order {nash_order_id}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Nash: Could not cancel undispatched order {nash_order_id} - {e}")

    async def cancel_delivery(
        self,
        delivery_id: str,
        reason: Optional[str] = None,
    ) -> DeliveryResult:
        try:
            async with self._client() as client:
                await self._post(client, f"{CREATE_ORDER}/{delivery_id}/cancel", {"reason": reason})

        except httpx.HTTPStatusError as e:
            logger.error(f"Nash: Cancel failed for {delivery_id} ({e.response.status_code})")
            return DeliveryResult(
                success=False,
                delivery_id=delivery_id,
                error_message=f"Nash API error ({e.response.status_code})",
                error_code="nash_api_error",
            )

        except httpx.RequestError as e:
            logger.error(f"Nash: Connection error cancelling {delivery_id} - {e}")
            return DeliveryResult(
                success=False,
                delivery_id=delivery_id,
                error_message="Delivery service temporarily unavailable",
                error_code="connection_error",
            )

        logger.info(f"Nash: Delivery cancelled - {delivery_id}")
        return DeliveryResult(success=True, delivery_id=delivery_id)

    async def health_check(self) -> bool:
        try:
            async with self._client() as client:
                response = await client.get("/v1/organization")
            return response.status_code < 500
        except httpx.RequestError as e:
            logger.error(f"Nash: Health check failed - {e}")
            return False
