"""
SQLAlchemy Database Models

Restaurants, their menus and business hours, and customer orders.

Delivery tracking and courier details are embedded on the order as JSON
documents (``delivery_info`` and ``driver``) rather than separate tables;
both are always replaced wholesale so change tracking picks them up.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)

from orderhub.database import Base


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, enum.Enum):
    """Order lifecycle. CANCELLED is reachable from any non-terminal state."""
    PENDING = "PENDING"
    PAYMENT_PROCESSING = "PAYMENT_PROCESSING"
    PAID = "PAID"
    PREPARING = "PREPARING"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class DeliveryStatus(str, enum.Enum):
    """Status of the third-party delivery attached to an order."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PICKING_UP = "PICKING_UP"
    PICKED_UP = "PICKED_UP"
    DELIVERING = "DELIVERING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


class Restaurant(Base):
    """A tenant of the platform."""
    __tablename__ = "restaurants"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    slug = Column(String(200), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    phone = Column(String(30), nullable=True)
    address = Column(String(255), nullable=True)
    timezone = Column(String(64), nullable=False, default="America/Los_Angeles")

    # Stripe Connect account receiving the items total
    stripe_account_id = Column(String(100), nullable=True)
    is_accepting_orders = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)

    def __repr__(self):
        return f"<Restaurant {self.slug}>"


class BusinessHours(Base):
    """Opening hours for one day of the week (0 = Sunday)."""
    __tablename__ = "business_hours"
    __table_args__ = (UniqueConstraint("restaurant_id", "day_of_week"),)

    id = Column(String(36), primary_key=True, default=new_id)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)
    is_open = Column(Boolean, nullable=False, default=True)
    open_time = Column(String(5), nullable=False, default="11:00")
    close_time = Column(String(5), nullable=False, default="21:00")


class MenuCategory(Base):
    __tablename__ = "menu_categories"

    id = Column(String(36), primary_key=True, default=new_id)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(String(36), primary_key=True, default=new_id)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("menu_categories.id"), nullable=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)  # major currency units
    image_url = Column(String(500), nullable=True)
    is_available = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<MenuItem {self.name} ${self.price:.2f}>"


class Order(Base):
    """
    A customer's purchase, tracked through payment and delivery.

    Created by the storefront at checkout start, mutated by both webhook
    handlers and by portal staff, never deleted.
    """
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), nullable=False, index=True)

    # =========================================================================
    # CUSTOMER INFORMATION
    # =========================================================================
    customer_name = Column(String(100), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(30), nullable=True)
    delivery_address = Column(String(500), nullable=True)
    special_instructions = Column(Text, nullable=True)

    # =========================================================================
    # PRICING (amounts in major units, filled at checkout)
    # =========================================================================
    is_delivery = Column(Boolean, nullable=False, default=False)
    delivery_fee = Column(Float, nullable=False, default=0.0)
    subtotal = Column(Float, nullable=True)
    service_fee = Column(Float, nullable=True)
    processing_fee = Column(Float, nullable=True)
    platform_fee = Column(Float, nullable=True)
    total = Column(Float, nullable=True)

    # =========================================================================
    # STATUS & PAYMENT
    # =========================================================================
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )
    stripe_checkout_session_id = Column(String(255), nullable=True, index=True)
    stripe_payment_intent_id = Column(String(255), nullable=True)

    # =========================================================================
    # DELIVERY (embedded documents)
    # =========================================================================
    delivery_info = Column(JSON, nullable=True)
    driver = Column(JSON, nullable=True)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Order {self.id} - {self.status.value}>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    menu_item_id = Column(String(36), ForeignKey("menu_items.id"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    special_instructions = Column(Text, nullable=True)
