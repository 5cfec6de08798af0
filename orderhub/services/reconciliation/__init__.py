"""Webhook reconcilers for the payment processor and the delivery provider."""

from orderhub.services.reconciliation.delivery_events import (
    DeliveryEventReconciler,
    get_delivery_event_reconciler,
    initial_delivery_info,
    parse_delivery_payload,
)
from orderhub.services.reconciliation.payment_events import (
    PaymentEventReconciler,
    get_payment_event_reconciler,
)

__all__ = [
    "DeliveryEventReconciler",
    "PaymentEventReconciler",
    "get_delivery_event_reconciler",
    "get_payment_event_reconciler",
    "initial_delivery_info",
    "parse_delivery_payload",
]
