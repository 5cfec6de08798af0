"""
FastAPI Application Entry Point

Multi-tenant restaurant ordering backend - Hybrid Architecture
Mock payment/delivery services in development, Stripe and Nash otherwise.

Endpoints:
    - POST /webhook/stripe: Stripe checkout events
    - POST /webhook/nash: Nash delivery events
    - POST /api/create-checkout-session: Hosted checkout for an order
    - POST /api/orders: Storefront order creation
    - GET /api/orders/{id}: Order detail (tracking page)
    - GET /api/restaurants/{id}/orders: Portal order list
    - PATCH /api/orders/{id}/status: Portal status change
    - POST /api/orders/{id}/delivery: Dispatch a courier
    - GET /api/restaurants/{id}/menu, POST /api/restaurants/{id}/menu-items,
      PATCH /api/menu-items/{id}: Menu
    - PUT /api/restaurants/{id}/hours, GET /api/restaurants/{id}/status,
      PATCH /api/restaurants/{id}/accepting-orders: Hours and open/closed toggle
    - GET /health: System health check
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import FastAPI, Depends, Query, Request, Header
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, text

from orderhub.core.config import get_settings, setup_logging
from orderhub.core.exceptions import (
    DeliveryProviderError,
    InvalidPayloadError,
    InvalidTransitionError,
    OrderHubError,
    ResourceNotFoundError,
)
from orderhub.database import get_db, init_db, engine
from orderhub.models import (
    BusinessHours,
    DeliveryStatus,
    MenuCategory,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    Restaurant,
)
from orderhub.schemas import (
    AcceptingOrdersResponse,
    AcceptingOrdersUpdate,
    BusinessHoursEntry,
    BusinessHoursUpdate,
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    DeliveryDispatchRequest,
    ErrorResponse,
    HealthResponse,
    MenuCategoryResponse,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    MenuResponse,
    OrderCreate,
    OrderItemResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    RestaurantStatusResponse,
    WebhookAck,
)
from orderhub.services.business_hours import default_business_hours, get_restaurant_status
from orderhub.services.checkout import CheckoutSessionBuilder, to_cents
from orderhub.services.delivery import BaseDeliveryService, DeliveryRequest, get_delivery_service
from orderhub.services.order_status import TERMINAL_DELIVERY_STATUSES, can_transition
from orderhub.services.payment import BasePaymentService, get_payment_service
from orderhub.services.reconciliation import (
    get_delivery_event_reconciler,
    get_payment_event_reconciler,
    initial_delivery_info,
    parse_delivery_payload,
)

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

DISPATCHABLE_STATUSES = frozenset({OrderStatus.PAID, OrderStatus.PREPARING, OrderStatus.READY})


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    logger.info("Database initialized")

    payment_service = get_payment_service()
    delivery_service = get_delivery_service()
    logger.info(f"Payment Service: {payment_service.provider_name}")
    logger.info(f"Delivery Service: {delivery_service.provider_name}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"Missing production config: {missing}")

    logger.info("Application ready")

    yield

    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant ordering backend: storefront and portal APIs, Stripe "
        "Checkout on Connect accounts, and Nash delivery dispatch."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

async def _get_or_404(db: AsyncSession, model, object_id: str, label: str):
    result = await db.execute(select(model).where(model.id == object_id))
    obj = result.scalar_one_or_none()
    if obj is None:
        raise ResourceNotFoundError(f"{label} {object_id} not found")
    return obj


def _order_payload(order: Order, items: list[OrderItem]) -> OrderResponse:
    data = {column.key: getattr(order, column.key) for column in Order.__table__.columns}
    data["items"] = [OrderItemResponse.model_validate(item) for item in items]
    return OrderResponse.model_validate(data)


async def _order_response(db: AsyncSession, order: Order) -> OrderResponse:
    result = await db.execute(select(OrderItem).where(OrderItem.order_id == order.id))
    return _order_payload(order, list(result.scalars().all()))


def _has_active_delivery(order: Order) -> bool:
    info = order.delivery_info or {}
    if not info.get("deliveryId"):
        return False
    return info.get("status") not in {s.value for s in TERMINAL_DELIVERY_STATUSES}


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
    delivery_service: BaseDeliveryService = Depends(get_delivery_service),
) -> HealthResponse:
    """Verify all system components are operational."""

    db_status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    payment_status = "healthy" if await payment_service.health_check() else "unhealthy"
    delivery_status = "healthy" if await delivery_service.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, payment_status, delivery_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        payment_service=payment_status,
        delivery_service=delivery_status,
        timestamp=datetime.now(timezone.utc),
    )


# =============================================================================
# WEBHOOK ENDPOINTS
# =============================================================================

@app.post(
    "/webhook/stripe",
    response_model=WebhookAck,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["Webhooks"],
    summary="Stripe Webhook Endpoint",
)
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
) -> WebhookAck:
    """
    Handle checkout events from Stripe.

    Configure this URL in the Stripe dashboard:
        https://your-domain.com/webhook/stripe
    """
    body = await request.body()
    event = await payment_service.verify_webhook(body, stripe_signature)

    logger.info(f"Stripe webhook received: {event.get('type', 'unknown')}")

    return await get_payment_event_reconciler().handle_event(event, db)


@app.post(
    "/webhook/nash",
    response_model=WebhookAck,
    responses={400: {"model": ErrorResponse}},
    tags=["Webhooks"],
    summary="Nash Webhook Endpoint",
)
async def nash_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    delivery_service: BaseDeliveryService = Depends(get_delivery_service),
) -> WebhookAck:
    """
    Handle delivery, courier and job events from Nash.

    Answers 200 for every well-formed event, including ones that match no
    order, so Nash does not retry them.
    """
    body = await request.body()
    delivery_service.verify_webhook(body, request.headers)
    payload = parse_delivery_payload(body)

    logger.info(f"Nash webhook received: {payload.type}/{payload.event}")

    return await get_delivery_event_reconciler().handle_event(payload, db)


# =============================================================================
# CHECKOUT
# =============================================================================

@app.post(
    "/api/create-checkout-session",
    response_model=CheckoutSessionResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    tags=["Checkout"],
)
async def create_checkout_session(
    request_data: CheckoutSessionRequest,
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
) -> CheckoutSessionResponse:
    """Open a hosted checkout session for a PENDING order."""
    builder = CheckoutSessionBuilder(payment_service)
    session = await builder.create_session(db, request_data.order_id, request_data.restaurant_id)
    return CheckoutSessionResponse(session_id=session.session_id, url=session.url)


# =============================================================================
# ORDER API ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders",
    response_model=OrderResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Create Order",
)
async def create_order(
    order_data: OrderCreate,
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """
    Create a PENDING order from the storefront cart.

    Prices are not taken from the client; checkout re-prices every item
    from the menu.
    """
    restaurant = await _get_or_404(db, Restaurant, order_data.restaurant_id, "Restaurant")

    if not restaurant.is_accepting_orders:
        raise OrderHubError(
            f"{restaurant.name} is not accepting orders",
            code="NOT_ACCEPTING_ORDERS",
            status_code=409,
        )

    menu_ids = {item.menu_item_id for item in order_data.items}
    result = await db.execute(select(MenuItem).where(MenuItem.id.in_(menu_ids)))
    menu_items = {m.id: m for m in result.scalars().all()}

    for menu_id in menu_ids:
        menu_item = menu_items.get(menu_id)
        if menu_item is None or menu_item.restaurant_id != restaurant.id:
            raise ResourceNotFoundError(f"Menu item {menu_id} not found")
        if not menu_item.is_available:
            raise InvalidPayloadError(f"{menu_item.name} is currently unavailable")

    order = Order(
        restaurant_id=restaurant.id,
        customer_name=order_data.customer_name,
        customer_email=order_data.customer_email,
        customer_phone=order_data.customer_phone,
        delivery_address=order_data.delivery_address if order_data.is_delivery else None,
        special_instructions=order_data.special_instructions,
        is_delivery=order_data.is_delivery,
        delivery_fee=order_data.delivery_fee if order_data.is_delivery else 0.0,
        status=OrderStatus.PENDING,
    )
    db.add(order)
    await db.flush()

    items = [
        OrderItem(
            order_id=order.id,
            menu_item_id=item.menu_item_id,
            quantity=item.quantity,
            special_instructions=item.special_instructions,
        )
        for item in order_data.items
    ]
    db.add_all(items)
    await db.commit()

    logger.info(
        f"Order {order.id} created for {restaurant.slug} "
        f"({len(items)} items, {'delivery' if order.is_delivery else 'pickup'})"
    )

    return _order_payload(order, items)


@app.get(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def get_order(
    order_id: str,
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Get a specific order by ID."""
    order = await _get_or_404(db, Order, order_id, "Order")
    return await _order_response(db, order)


@app.get(
    "/api/restaurants/{restaurant_id}/orders",
    response_model=OrderListResponse,
    tags=["Orders"],
    summary="List Restaurant Orders",
)
async def list_restaurant_orders(
    restaurant_id: str,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """Paginated orders for the portal, newest first."""
    await _get_or_404(db, Restaurant, restaurant_id, "Restaurant")

    query = select(Order).where(Order.restaurant_id == restaurant_id)
    count_query = select(func.count(Order.id)).where(Order.restaurant_id == restaurant_id)

    if status:
        try:
            status_enum = OrderStatus(status.upper())
        except ValueError:
            raise InvalidPayloadError(
                f"Invalid status. Options: {[s.value for s in OrderStatus]}"
            )
        query = query.where(Order.status == status_enum)
        count_query = count_query.where(Order.status == status_enum)

    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    query = query.order_by(Order.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    orders = result.scalars().all()

    items_by_order: dict[str, list[OrderItem]] = {order.id: [] for order in orders}
    if orders:
        items_result = await db.execute(
            select(OrderItem).where(OrderItem.order_id.in_(list(items_by_order)))
        )
        for item in items_result.scalars().all():
            items_by_order[item.order_id].append(item)

    return OrderListResponse(
        total=total,
        orders=[_order_payload(order, items_by_order[order.id]) for order in orders],
    )


@app.patch(
    "/api/orders/{order_id}/status",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Update Order Status (Portal)",
)
async def update_order_status(
    order_id: str,
    update: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
    delivery_service: BaseDeliveryService = Depends(get_delivery_service),
) -> OrderResponse:
    """
    Move an order forward, or cancel it.

    Cancelling an order with an active delivery cancels the delivery first.
    """
    order = await _get_or_404(db, Order, order_id, "Order")

    if not can_transition(order.status, update.status):
        raise InvalidTransitionError(
            f"Cannot move order {order_id} from {order.status.value} to {update.status.value}"
        )

    if update.status == OrderStatus.CANCELLED and _has_active_delivery(order):
        info = dict(order.delivery_info)
        result = await delivery_service.cancel_delivery(
            info["deliveryId"], reason="Order cancelled by restaurant"
        )
        if not result.success:
            raise DeliveryProviderError(
                result.error_message or "Could not cancel delivery",
            )
        info["status"] = DeliveryStatus.CANCELLED.value
        order.delivery_info = info

    if order.status != update.status:
        logger.info(f"Order {order.id}: {order.status.value} -> {update.status.value} (portal)")
        order.status = update.status
    await db.commit()

    return await _order_response(db, order)


@app.post(
    "/api/orders/{order_id}/delivery",
    response_model=OrderResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    tags=["Delivery"],
    summary="Dispatch Delivery",
)
async def dispatch_delivery(
    order_id: str,
    dispatch: Optional[DeliveryDispatchRequest] = None,
    db: AsyncSession = Depends(get_db),
    delivery_service: BaseDeliveryService = Depends(get_delivery_service),
) -> OrderResponse:
    """Create and autodispatch a courier for a paid delivery order."""
    order = await _get_or_404(db, Order, order_id, "Order")
    restaurant = await _get_or_404(db, Restaurant, order.restaurant_id, "Restaurant")
    dispatch = dispatch or DeliveryDispatchRequest()

    if not order.is_delivery:
        raise InvalidPayloadError(f"Order {order_id} is a pickup order")
    if order.status not in DISPATCHABLE_STATUSES:
        raise InvalidTransitionError(
            f"Order {order_id} is {order.status.value}; only paid orders can be dispatched"
        )
    if _has_active_delivery(order):
        raise OrderHubError(
            f"Order {order_id} already has an active delivery",
            code="DELIVERY_ALREADY_ACTIVE",
            status_code=409,
        )
    if not restaurant.address or not restaurant.phone:
        raise InvalidPayloadError("Restaurant needs an address and phone number for delivery")
    if not order.delivery_address or not order.customer_phone:
        raise InvalidPayloadError("Order needs a delivery address and customer phone")

    items_result = await db.execute(
        select(func.sum(OrderItem.quantity)).where(OrderItem.order_id == order.id)
    )

    result = await delivery_service.create_delivery(
        DeliveryRequest(
            external_id=order.id,
            pickup_address=restaurant.address,
            pickup_phone=restaurant.phone,
            pickup_business_name=restaurant.name,
            dropoff_address=order.delivery_address,
            dropoff_phone=order.customer_phone,
            dropoff_name=order.customer_name or "Customer",
            dropoff_email=order.customer_email,
            pickup_instructions=dispatch.pickup_instructions,
            dropoff_instructions=dispatch.dropoff_instructions or order.special_instructions,
            items_count=items_result.scalar() or 1,
            value_cents=to_cents(order.subtotal) if order.subtotal is not None else None,
        )
    )

    if not result.success:
        raise DeliveryProviderError(
            result.error_message or "Could not dispatch delivery",
            code=(result.error_code or "delivery_provider_error").upper(),
        )

    order.delivery_info = initial_delivery_info(
        delivery_id=result.delivery_id,
        provider=delivery_service.provider_name,
        quote_id=result.quote_id,
        fee=result.fee,
        tracking_url=result.tracking_url,
        estimated_pickup_time=result.estimated_pickup_time,
        estimated_delivery_time=result.estimated_delivery_time,
    )
    await db.commit()

    logger.info(f"Order {order.id}: delivery {result.delivery_id} dispatched")

    return await _order_response(db, order)


# =============================================================================
# MENU ENDPOINTS
# =============================================================================

@app.get(
    "/api/restaurants/{restaurant_id}/menu",
    response_model=MenuResponse,
    tags=["Menu"],
)
async def get_menu(
    restaurant_id: str,
    include_unavailable: bool = Query(False, alias="includeUnavailable"),
    db: AsyncSession = Depends(get_db),
) -> MenuResponse:
    """Menu grouped by category; uncategorized items are listed last."""
    await _get_or_404(db, Restaurant, restaurant_id, "Restaurant")

    categories_result = await db.execute(
        select(MenuCategory)
        .where(MenuCategory.restaurant_id == restaurant_id)
        .order_by(MenuCategory.sort_order, MenuCategory.name)
    )
    categories = categories_result.scalars().all()

    items_query = select(MenuItem).where(MenuItem.restaurant_id == restaurant_id)
    if not include_unavailable:
        items_query = items_query.where(MenuItem.is_available.is_(True))
    items_result = await db.execute(items_query.order_by(MenuItem.name))

    grouped: dict[Optional[str], list[MenuItemResponse]] = {}
    for item in items_result.scalars().all():
        grouped.setdefault(item.category_id, []).append(MenuItemResponse.model_validate(item))

    sections = [
        MenuCategoryResponse(
            id=category.id,
            name=category.name,
            description=category.description,
            items=grouped.pop(category.id, []),
        )
        for category in categories
    ]

    leftovers = [item for items in grouped.values() for item in items]
    if leftovers:
        sections.append(MenuCategoryResponse(id=None, name="Other", items=leftovers))

    return MenuResponse(restaurant_id=restaurant_id, categories=sections)


@app.post(
    "/api/restaurants/{restaurant_id}/menu-items",
    response_model=MenuItemResponse,
    status_code=201,
    tags=["Menu"],
)
async def create_menu_item(
    restaurant_id: str,
    item_data: MenuItemCreate,
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    await _get_or_404(db, Restaurant, restaurant_id, "Restaurant")

    if item_data.category_id:
        category = await _get_or_404(db, MenuCategory, item_data.category_id, "Category")
        if category.restaurant_id != restaurant_id:
            raise ResourceNotFoundError(f"Category {item_data.category_id} not found")

    item = MenuItem(restaurant_id=restaurant_id, **item_data.model_dump())
    db.add(item)
    await db.commit()

    logger.info(f"Menu item {item.id} ({item.name}) added to {restaurant_id}")
    return MenuItemResponse.model_validate(item)


@app.patch(
    "/api/menu-items/{item_id}",
    response_model=MenuItemResponse,
    tags=["Menu"],
)
async def update_menu_item(
    item_id: str,
    update: MenuItemUpdate,
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    item = await _get_or_404(db, MenuItem, item_id, "Menu item")

    changes = update.model_dump(exclude_unset=True)
    if changes.get("category_id"):
        category = await _get_or_404(db, MenuCategory, changes["category_id"], "Category")
        if category.restaurant_id != item.restaurant_id:
            raise ResourceNotFoundError(f"Category {changes['category_id']} not found")

    for field_name, value in changes.items():
        setattr(item, field_name, value)
    await db.commit()

    return MenuItemResponse.model_validate(item)


# =============================================================================
# BUSINESS HOURS ENDPOINTS
# =============================================================================

@app.put(
    "/api/restaurants/{restaurant_id}/hours",
    response_model=list[BusinessHoursEntry],
    tags=["Business Hours"],
)
async def update_business_hours(
    restaurant_id: str,
    update: BusinessHoursUpdate,
    db: AsyncSession = Depends(get_db),
) -> list[BusinessHoursEntry]:
    """Replace the given days' hours, and optionally the timezone."""
    restaurant = await _get_or_404(db, Restaurant, restaurant_id, "Restaurant")

    if update.timezone:
        try:
            ZoneInfo(update.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise InvalidPayloadError(f"Unknown timezone: {update.timezone}")
        restaurant.timezone = update.timezone

    result = await db.execute(
        select(BusinessHours).where(BusinessHours.restaurant_id == restaurant_id)
    )
    existing = {row.day_of_week: row for row in result.scalars().all()}

    for entry in update.hours:
        row = existing.get(entry.day_of_week)
        if row is None:
            row = BusinessHours(restaurant_id=restaurant_id, day_of_week=entry.day_of_week)
            db.add(row)
            existing[entry.day_of_week] = row
        row.is_open = entry.is_open
        row.open_time = entry.open_time
        row.close_time = entry.close_time

    await db.commit()

    return [
        BusinessHoursEntry.model_validate(existing[day]) for day in sorted(existing)
    ]


@app.patch(
    "/api/restaurants/{restaurant_id}/accepting-orders",
    response_model=AcceptingOrdersResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Business Hours"],
    summary="Toggle Order Acceptance (Portal)",
)
async def update_accepting_orders(
    restaurant_id: str,
    update: AcceptingOrdersUpdate,
    db: AsyncSession = Depends(get_db),
) -> AcceptingOrdersResponse:
    """Stop or resume taking storefront orders, independent of business hours."""
    restaurant = await _get_or_404(db, Restaurant, restaurant_id, "Restaurant")

    if restaurant.is_accepting_orders != update.is_accepting_orders:
        logger.info(
            f"Restaurant {restaurant.slug}: "
            f"{'accepting' if update.is_accepting_orders else 'not accepting'} orders"
        )
        restaurant.is_accepting_orders = update.is_accepting_orders
        await db.commit()

    return AcceptingOrdersResponse(
        restaurant_id=restaurant.id,
        is_accepting_orders=restaurant.is_accepting_orders,
    )


@app.get(
    "/api/restaurants/{restaurant_id}/status",
    response_model=RestaurantStatusResponse,
    tags=["Business Hours"],
)
async def restaurant_status(
    restaurant_id: str,
    db: AsyncSession = Depends(get_db),
) -> RestaurantStatusResponse:
    """Open/closed banner in the restaurant's local time."""
    restaurant = await _get_or_404(db, Restaurant, restaurant_id, "Restaurant")

    result = await db.execute(
        select(BusinessHours).where(BusinessHours.restaurant_id == restaurant_id)
    )
    hours: list[Any] = list(result.scalars().all())
    if not hours:
        hours = [BusinessHoursEntry(**entry) for entry in default_business_hours()]

    return RestaurantStatusResponse.model_validate(get_restaurant_status(restaurant.timezone, hours))


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(OrderHubError)
async def orderhub_exception_handler(request: Request, exc: OrderHubError) -> JSONResponse:
    """Render application errors with their own status code."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} - {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.code} - {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.code, "detail": exc.message},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "orderhub.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
