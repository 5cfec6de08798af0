"""
Delivery Service Abstract Base Class

Interface contract for delivery-dispatch adapters (Nash in staging and
production, a mock in development), plus the signature check used for
delivery webhooks.

Nash signs webhooks through Svix; verification is delegated to the
``svix`` SDK. Headers may arrive as ``svix-*``, ``webhook-*`` or, behind
some proxies, ``x-svix-*``.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Mapping, Optional

from svix.webhooks import Webhook, WebhookVerificationError

from orderhub.core.exceptions import InvalidPayloadError, WebhookSignatureError

logger = logging.getLogger(__name__)


@dataclass
class DeliveryResult:
    """
    Standardized result from creating or cancelling a delivery.

    Attributes:
        success: Whether the provider accepted the request
        delivery_id: Provider-assigned delivery identifier
        quote_id: Quote chosen by autodispatch
        fee: Delivery fee in major units
        tracking_url: Public tracking page
        estimated_pickup_time: ISO timestamp
        estimated_delivery_time: ISO timestamp
        error_message: Error description if the call failed
        error_code: Machine-readable error code
    """
    success: bool
    delivery_id: Optional[str] = None
    quote_id: Optional[str] = None
    fee: Optional[float] = None
    tracking_url: Optional[str] = None
    estimated_pickup_time: Optional[str] = None
    estimated_delivery_time: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None


@dataclass
class DeliveryRequest:
    """What the provider needs to dispatch a courier for one order."""
    external_id: str
    pickup_address: str
    pickup_phone: str
    pickup_business_name: str
    dropoff_address: str
    dropoff_phone: str
    dropoff_name: str
    dropoff_email: Optional[str] = None
    pickup_instructions: Optional[str] = None
    dropoff_instructions: Optional[str] = None
    items_count: int = 1
    value_cents: Optional[int] = None


def svix_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Lower-case the headers and strip the ``x-`` from ``x-svix-*`` names."""
    normalized = {}
    for name, value in headers.items():
        key = name.lower()
        if key.startswith("x-svix-"):
            key = key[len("x-"):]
        normalized[key] = value
    return normalized


def verify_webhook_signature(payload: bytes, headers: Mapping[str, str], secret: str) -> None:
    """
    Check the Svix signature headers of a delivery webhook.

    Raises:
        WebhookSignatureError: Headers missing, timestamp stale, or no matching signature
        InvalidPayloadError: Signature valid but the body is not JSON
    """
    webhook = Webhook(secret)
    try:
        webhook.verify(payload, svix_headers(headers))
    except WebhookVerificationError as e:
        logger.warning(f"Delivery webhook signature rejected - {e}")
        raise WebhookSignatureError("Invalid webhook signature")
    except ValueError:
        raise InvalidPayloadError("Webhook body is not valid JSON")


class BaseDeliveryService(ABC):
    """
    Abstract base class for delivery-dispatch adapters.

    Example:
        >>> service = get_delivery_service()
        >>> result = await service.create_delivery(request)
        >>> if result.success:
        ...     print(result.tracking_url)
    """

    def __init__(self, webhook_secret: Optional[str] = None):
        self.webhook_secret = webhook_secret

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Display name stored in ``delivery_info.provider``."""
        pass

    @abstractmethod
    async def create_delivery(self, request: DeliveryRequest) -> DeliveryResult:
        """Create a delivery and dispatch it to the best quote."""
        pass

    @abstractmethod
    async def cancel_delivery(
        self,
        delivery_id: str,
        reason: Optional[str] = None,
    ) -> DeliveryResult:
        """Cancel an active delivery."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass

    def verify_webhook(self, payload: bytes, headers: Mapping[str, str]) -> None:
        """
        Verify a delivery webhook when a signing secret is configured.

        Raises:
            WebhookSignatureError: Secret configured and signature does not verify
        """
        if not self.webhook_secret:
            logger.debug("Delivery webhook secret not configured, skipping verification")
            return
        verify_webhook_signature(payload, headers, self.webhook_secret)
