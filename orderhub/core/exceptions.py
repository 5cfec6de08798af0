"""Error taxonomy shared by the webhook handlers, checkout and portal routes."""


class OrderHubError(Exception):
    """Base class for all application errors rendered as JSON responses."""

    def __init__(
        self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(self.message)


class WebhookSignatureError(OrderHubError):
    """Raised when a webhook signature is missing or does not verify."""

    def __init__(self, message: str):
        super().__init__(message, code="INVALID_SIGNATURE", status_code=400)


class InvalidPayloadError(OrderHubError):
    """Raised when a request or webhook body is malformed."""

    def __init__(self, message: str):
        super().__init__(message, code="INVALID_PAYLOAD", status_code=400)


class ResourceNotFoundError(OrderHubError):
    """Raised when an order, restaurant or menu item does not exist."""

    def __init__(self, message: str):
        super().__init__(message, code="RESOURCE_NOT_FOUND", status_code=404)


class CheckoutError(OrderHubError):
    """Raised when an order cannot be checked out."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message, code="CHECKOUT_REJECTED", status_code=status_code)


class InvalidTransitionError(OrderHubError):
    """Raised when a requested order status change would regress the order."""

    def __init__(self, message: str):
        super().__init__(message, code="INVALID_STATUS_TRANSITION", status_code=409)


class PaymentProviderError(OrderHubError):
    """Raised when the payment processor is unreachable or rejects a call."""

    def __init__(self, message: str, code: str = "PAYMENT_PROVIDER_ERROR"):
        super().__init__(message, code=code, status_code=502)


class DeliveryProviderError(OrderHubError):
    """Raised when the delivery provider is unreachable or rejects a call."""

    def __init__(self, message: str, code: str = "DELIVERY_PROVIDER_ERROR"):
        super().__init__(message, code=code, status_code=502)
