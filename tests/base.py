"""Shared fixtures for the API tests: temp SQLite store, mock providers, signers."""

import asyncio
import base64
import hashlib
import hmac
import json
import os
import shutil
import tempfile
import time
import uuid
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Optional

from absl.testing import parameterized
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from svix.webhooks import Webhook

from orderhub.database import Base, get_db
from orderhub.main import app
from orderhub.models import MenuCategory, MenuItem, Order, OrderItem, OrderStatus, Restaurant
from orderhub.services.delivery import MockDeliveryService, get_delivery_service
from orderhub.services.payment import MockPaymentService, get_payment_service

STRIPE_WEBHOOK_SECRET = "whsec_test_secret"
NASH_WEBHOOK_SECRET = "whsec_" + base64.b64encode(b"nash-test-signing-key").decode("ascii")


def stripe_signature(payload: bytes, secret: str = STRIPE_WEBHOOK_SECRET) -> str:
    """Build a Stripe-Signature header the way Stripe signs events."""
    timestamp = int(time.time())
    signed = f"{timestamp}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def svix_headers(payload: bytes, secret: str = NASH_WEBHOOK_SECRET) -> dict[str, str]:
    """Sign ``payload`` with the Svix SDK the way Nash delivers webhooks."""
    msg_id = f"msg_{uuid.uuid4().hex}"
    timestamp = datetime.now(timezone.utc)
    return {
        "svix-id": msg_id,
        "svix-timestamp": str(int(timestamp.timestamp())),
        "svix-signature": Webhook(secret).sign(msg_id, timestamp, payload.decode("utf-8")),
    }


class OrderHubTestCase(parameterized.TestCase):
    """Per-test SQLite database with the app's dependencies pointed at it."""

    def setUp(self) -> None:
        super().setUp()
        self.test_dir = tempfile.mkdtemp()
        db_url = f"sqlite+aiosqlite:///{os.path.join(self.test_dir, 'orderhub.db')}"
        self.engine = create_async_engine(db_url, echo=False, poolclass=NullPool)
        self.session_factory = async_sessionmaker(
            self.engine, expire_on_commit=False, class_=AsyncSession
        )

        async def init_schema() -> None:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

        asyncio.run(init_schema())

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            async with self.session_factory() as session:
                yield session

        self.payment_service = MockPaymentService(webhook_secret=STRIPE_WEBHOOK_SECRET)
        self.delivery_service = MockDeliveryService()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_payment_service] = lambda: self.payment_service
        app.dependency_overrides[get_delivery_service] = lambda: self.delivery_service

        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        asyncio.run(self.engine.dispose())
        shutil.rmtree(self.test_dir)
        super().tearDown()

    # -------------------------------------------------------------------------
    # Seeding
    # -------------------------------------------------------------------------

    def _add(self, *objects) -> None:
        async def add() -> None:
            async with self.session_factory() as session:
                session.add_all(objects)
                await session.commit()

        asyncio.run(add())

    def seed_restaurant(self, **overrides: Any) -> str:
        restaurant = Restaurant(
            id=str(uuid.uuid4()),
            name="Vessel Cafe",
            slug=f"vessel-{uuid.uuid4().hex[:8]}",
            phone="+15555550100",
            address="100 Harbor Way, Seattle, WA 98101",
            timezone="America/Los_Angeles",
            stripe_account_id="acct_test_restaurant",
        )
        for key, value in overrides.items():
            setattr(restaurant, key, value)
        self._add(restaurant)
        return restaurant.id

    def seed_category(self, restaurant_id: str, name: str, sort_order: int = 0) -> str:
        category = MenuCategory(
            id=str(uuid.uuid4()), restaurant_id=restaurant_id, name=name, sort_order=sort_order
        )
        self._add(category)
        return category.id

    def seed_menu_item(
        self,
        restaurant_id: str,
        name: str,
        price: float,
        category_id: Optional[str] = None,
        is_available: bool = True,
    ) -> str:
        item = MenuItem(
            id=str(uuid.uuid4()),
            restaurant_id=restaurant_id,
            category_id=category_id,
            name=name,
            price=price,
            is_available=is_available,
        )
        self._add(item)
        return item.id

    def seed_order(
        self,
        restaurant_id: str,
        items: Optional[list[tuple[str, int]]] = None,
        status: OrderStatus = OrderStatus.PENDING,
        **fields: Any,
    ) -> str:
        values = {
            "customer_name": "Jane Diner",
            "customer_email": "jane@example.com",
            "customer_phone": "+15555550199",
        }
        values.update(fields)
        order = Order(
            id=str(uuid.uuid4()),
            restaurant_id=restaurant_id,
            status=status,
            **values,
        )
        order_items = [
            OrderItem(
                id=str(uuid.uuid4()),
                order_id=order.id,
                menu_item_id=menu_item_id,
                quantity=quantity,
            )
            for menu_item_id, quantity in (items or [])
        ]
        self._add(order, *order_items)
        return order.id

    def load_order(self, order_id: str) -> Order:
        async def load() -> Order:
            async with self.session_factory() as session:
                result = await session.execute(select(Order).where(Order.id == order_id))
                return result.scalar_one()

        return asyncio.run(load())

    # -------------------------------------------------------------------------
    # Webhook helpers
    # -------------------------------------------------------------------------

    def post_stripe_event(
        self,
        event_type: str,
        session_object: dict[str, Any],
        signature: Optional[str] = None,
        sign: bool = True,
    ):
        payload = json.dumps({
            "id": f"evt_{uuid.uuid4().hex[:16]}",
            "object": "event",
            "type": event_type,
            "data": {"object": session_object},
        }).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if sign:
            headers["Stripe-Signature"] = signature or stripe_signature(payload)
        return self.client.post("/webhook/stripe", content=payload, headers=headers)

    def post_nash_event(self, body: Any, headers: Optional[dict[str, str]] = None):
        payload = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
        request_headers = {"Content-Type": "application/json"}
        request_headers.update(headers or {})
        return self.client.post("/webhook/nash", content=payload, headers=request_headers)
