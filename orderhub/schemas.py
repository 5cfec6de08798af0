"""
Pydantic Schemas for Request/Response Validation

API bodies use camelCase on the wire (storefront and provider payloads
are camelCase) and snake_case in Python.
"""

import re
from datetime import datetime
from typing import Optional, List, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from orderhub.models import OrderStatus, DeliveryStatus

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# EMBEDDED DELIVERY DOCUMENTS
# =============================================================================

class Location(CamelModel):
    lat: float
    lng: float


class Driver(CamelModel):
    """Courier assigned to a delivery. Every field is optional so partial updates merge."""
    id: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    current_location: Optional[Location] = None


class DeliveryInfo(CamelModel):
    delivery_id: Optional[str] = None
    provider: Optional[str] = None
    status: Optional[DeliveryStatus] = None
    quote_id: Optional[str] = None
    fee: Optional[float] = None
    estimated_pickup_time: Optional[str] = None
    estimated_delivery_time: Optional[str] = None
    tracking_url: Optional[str] = None


# =============================================================================
# ORDER SCHEMAS
# =============================================================================

class OrderItemCreate(CamelModel):
    """Single item in an order."""
    menu_item_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1, le=99, examples=[2])
    special_instructions: Optional[str] = Field(None, max_length=200)


class OrderCreate(CamelModel):
    """Request schema for creating a new order at checkout start."""
    restaurant_id: str = Field(..., min_length=1)
    customer_name: Optional[str] = Field(None, max_length=100)
    customer_email: Optional[str] = Field(None, examples=["jane@example.com"])
    customer_phone: Optional[str] = Field(None, max_length=30)
    is_delivery: bool = False
    delivery_fee: float = Field(default=0.0, ge=0)
    delivery_address: Optional[str] = Field(None, max_length=500)
    special_instructions: Optional[str] = Field(None, max_length=500)
    items: List[OrderItemCreate] = Field(..., min_length=1)

    @field_validator("customer_email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        if not re.match(r"^[\w\.\+-]+@[\w\.-]+\.\w+$", v):
            raise ValueError("Invalid email format")
        return v

    @model_validator(mode="after")
    def require_address_for_delivery(self) -> "OrderCreate":
        if self.is_delivery and not self.delivery_address:
            raise ValueError("deliveryAddress is required for delivery orders")
        return self


class OrderItemResponse(CamelModel):
    id: str
    menu_item_id: str
    quantity: int
    special_instructions: Optional[str] = None


class OrderResponse(CamelModel):
    """Response schema for a single order."""
    id: str
    restaurant_id: str
    status: OrderStatus
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    delivery_address: Optional[str] = None
    special_instructions: Optional[str] = None
    is_delivery: bool
    delivery_fee: float
    subtotal: Optional[float] = None
    service_fee: Optional[float] = None
    processing_fee: Optional[float] = None
    platform_fee: Optional[float] = None
    total: Optional[float] = None
    stripe_checkout_session_id: Optional[str] = None
    delivery_info: Optional[DeliveryInfo] = None
    driver: Optional[Driver] = None
    items: List[OrderItemResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderListResponse(CamelModel):
    total: int
    orders: List[OrderResponse]


class OrderStatusUpdate(CamelModel):
    status: OrderStatus


class DeliveryDispatchRequest(CamelModel):
    pickup_instructions: Optional[str] = Field(None, max_length=500)
    dropoff_instructions: Optional[str] = Field(None, max_length=500)


# =============================================================================
# CHECKOUT SCHEMAS
# =============================================================================

class CheckoutSessionRequest(CamelModel):
    order_id: str = Field(..., min_length=1)
    restaurant_id: str = Field(..., min_length=1)


class CheckoutSessionResponse(CamelModel):
    session_id: str
    url: Optional[str] = None


# =============================================================================
# MENU SCHEMAS
# =============================================================================

class MenuItemCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    category_id: Optional[str] = None
    image_url: Optional[str] = None
    is_available: bool = True


class MenuItemUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    category_id: Optional[str] = None
    image_url: Optional[str] = None
    is_available: Optional[bool] = None


class MenuItemResponse(CamelModel):
    id: str
    restaurant_id: str
    category_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    price: float
    image_url: Optional[str] = None
    is_available: bool


class MenuCategoryResponse(CamelModel):
    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    items: List[MenuItemResponse] = Field(default_factory=list)


class MenuResponse(CamelModel):
    restaurant_id: str
    categories: List[MenuCategoryResponse]


# =============================================================================
# BUSINESS HOURS SCHEMAS
# =============================================================================

class BusinessHoursEntry(CamelModel):
    day_of_week: int = Field(..., ge=0, le=6)
    is_open: bool = True
    open_time: str = Field(default="11:00", pattern=TIME_PATTERN)
    close_time: str = Field(default="21:00", pattern=TIME_PATTERN)


class BusinessHoursUpdate(CamelModel):
    timezone: Optional[str] = None
    hours: List[BusinessHoursEntry] = Field(..., max_length=7)

    @field_validator("hours")
    @classmethod
    def unique_days(cls, v: List[BusinessHoursEntry]) -> List[BusinessHoursEntry]:
        days = [entry.day_of_week for entry in v]
        if len(days) != len(set(days)):
            raise ValueError("Each day of week may appear only once")
        return v


class AcceptingOrdersUpdate(CamelModel):
    """Portal open/closed toggle."""
    is_accepting_orders: bool


class AcceptingOrdersResponse(CamelModel):
    restaurant_id: str
    is_accepting_orders: bool


class NextOpening(CamelModel):
    day: str
    time: str


class RestaurantStatusResponse(CamelModel):
    is_open: bool
    message: str
    next_opening: Optional[NextOpening] = None


# =============================================================================
# NASH WEBHOOK PAYLOAD
# =============================================================================

class NashDelivery(CamelModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    pickup_eta: Optional[str] = None
    dropoff_eta: Optional[str] = None
    courier_name: Optional[str] = None
    courier_phone_number: Optional[str] = None
    courier_location: Optional[Location] = None


class NashTask(CamelModel):
    model_config = ConfigDict(extra="allow")

    delivery: Optional[NashDelivery] = None


class NashJobConfiguration(CamelModel):
    model_config = ConfigDict(extra="allow")

    tasks: List[NashTask] = Field(default_factory=list)


class NashWebhookData(CamelModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    portal_url: Optional[str] = None
    public_tracking_url: Optional[str] = None
    external_identifier: Optional[str] = None
    job_configurations: List[NashJobConfiguration] = Field(default_factory=list)

    @property
    def delivery(self) -> Optional[NashDelivery]:
        """The first task's delivery, where Nash reports courier and ETAs."""
        if not self.job_configurations or not self.job_configurations[0].tasks:
            return None
        return self.job_configurations[0].tasks[0].delivery

    @property
    def tracking_url(self) -> Optional[str]:
        return self.public_tracking_url or self.portal_url


class NashWebhookPayload(CamelModel):
    model_config = ConfigDict(extra="allow")

    type: str = Field(..., min_length=1)
    event: str = Field(..., min_length=1)
    data: NashWebhookData = Field(default_factory=NashWebhookData)


# =============================================================================
# GENERIC RESPONSES
# =============================================================================

class WebhookAck(CamelModel):
    received: bool = True
    handled: bool = True
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[Any] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    payment_service: str
    delivery_service: str
    timestamp: datetime
