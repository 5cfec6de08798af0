"""
Order Lifecycle Simulation Script

Drives a running OrderHub server through a full order: storefront order,
checkout session, a signed Stripe ``checkout.session.completed`` event,
courier dispatch and a sequence of signed Nash delivery events.

Run from project root (server on API_BASE_URL, development mode):
    python scripts/simulate.py --restaurant <id> --menu-item <id> [--delivery]
    python scripts/simulate.py --orders 20 --delivery ...
"""

import argparse
import asyncio
import hashlib
import hmac
import json
import random
import sys
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from svix.webhooks import Webhook

from orderhub.core.config import get_settings

if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

API_BASE_URL = "http://localhost:8000"

FIRST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa"]
LAST_NAMES = ["Smith", "Johnson", "Brown", "Garcia", "Miller", "Davis", "Wilson"]
STREETS = ["Pike St", "Harbor Way", "Broadway", "Pine St", "Yesler Way"]

DELIVERY_EVENTS = [
    "created",
    "assigned_driver",
    "pickup_enroute",
    "pickup_complete",
    "dropoff_enroute",
    "dropoff_complete",
]

settings = get_settings()


# =============================================================================
# SIGNED WEBHOOKS
# =============================================================================

def stripe_headers(payload: bytes) -> dict[str, str]:
    """Sign ``payload`` with STRIPE_WEBHOOK_SECRET the way Stripe does."""
    secret = settings.stripe_webhook_secret or ""
    timestamp = int(time.time())
    digest = hmac.new(
        secret.encode("utf-8"), f"{timestamp}.".encode("utf-8") + payload, hashlib.sha256
    ).hexdigest()
    return {"Content-Type": "application/json", "Stripe-Signature": f"t={timestamp},v1={digest}"}


def nash_headers(payload: bytes) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if settings.nash_webhook_secret:
        msg_id = f"msg_{uuid.uuid4().hex}"
        timestamp = datetime.now(timezone.utc)
        signature = Webhook(settings.nash_webhook_secret).sign(
            msg_id, timestamp, payload.decode("utf-8")
        )
        headers.update({
            "svix-id": msg_id,
            "svix-timestamp": str(int(timestamp.timestamp())),
            "svix-signature": signature,
        })
    return headers


async def send_stripe_event(
    client: httpx.AsyncClient,
    event_type: str,
    order_id: str,
    session_id: str,
    customer: dict[str, str],
) -> httpx.Response:
    payload = json.dumps({
        "id": f"evt_sim_{uuid.uuid4().hex[:16]}",
        "object": "event",
        "type": event_type,
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "metadata": {"orderId": order_id},
                "client_reference_id": order_id,
                "payment_intent": f"pi_sim_{uuid.uuid4().hex[:16]}",
                "customer_details": {
                    "name": customer["name"],
                    "email": customer["email"],
                    "phone": customer["phone"],
                },
            }
        },
    }).encode("utf-8")
    return await client.post(
        f"{API_BASE_URL}/webhook/stripe", content=payload, headers=stripe_headers(payload)
    )


async def send_nash_event(
    client: httpx.AsyncClient,
    delivery_id: str,
    event: str,
) -> httpx.Response:
    delivery: dict[str, Any] = {"id": f"dlv_sim_{delivery_id[-6:]}"}
    if event != "created":
        delivery.update({
            "courierName": "Sim Courier",
            "courierPhoneNumber": "+15555550123",
            "courierLocation": {
                "lat": round(47.60 + random.random() / 100, 5),
                "lng": round(-122.33 - random.random() / 100, 5),
            },
        })
    payload = json.dumps({
        "type": "delivery",
        "event": event,
        "data": {
            "id": delivery_id,
            "publicTrackingUrl": f"https://example.com/track/{delivery_id}",
            "jobConfigurations": [{"tasks": [{"delivery": delivery}]}],
        },
    }).encode("utf-8")
    return await client.post(
        f"{API_BASE_URL}/webhook/nash", content=payload, headers=nash_headers(payload)
    )


# =============================================================================
# ORDER LIFECYCLE
# =============================================================================

def random_customer() -> dict[str, str]:
    first = random.choice(FIRST_NAMES)
    last = random.choice(LAST_NAMES)
    return {
        "name": f"{first} {last}",
        "email": f"{first.lower()}.{last.lower()}@example.com",
        "phone": f"+1555{random.randint(1000000, 9999999)}",
        "address": f"{random.randint(1, 999)} {random.choice(STREETS)}, Seattle, WA 98101",
    }


async def run_order(
    client: httpx.AsyncClient,
    order_num: int,
    restaurant_id: str,
    menu_item_id: str,
    delivery: bool,
) -> dict[str, Any]:
    """Walk one order from creation to completion; returns a summary row."""
    customer = random_customer()
    start_time = time.time()
    result: dict[str, Any] = {"order_num": order_num, "success": False}

    order_body: dict[str, Any] = {
        "restaurantId": restaurant_id,
        "customerName": customer["name"],
        "customerEmail": customer["email"],
        "customerPhone": customer["phone"],
        "items": [{"menuItemId": menu_item_id, "quantity": random.randint(1, 3)}],
    }
    if delivery:
        order_body.update({
            "isDelivery": True,
            "deliveryFee": 4.99,
            "deliveryAddress": customer["address"],
        })

    try:
        response = await client.post(f"{API_BASE_URL}/api/orders", json=order_body)
        response.raise_for_status()
        order_id = response.json()["id"]
        result["order_id"] = order_id

        response = await client.post(
            f"{API_BASE_URL}/api/create-checkout-session",
            json={"orderId": order_id, "restaurantId": restaurant_id},
        )
        response.raise_for_status()
        session_id = response.json()["sessionId"]

        response = await send_stripe_event(
            client, "checkout.session.completed", order_id, session_id, customer
        )
        response.raise_for_status()

        if delivery:
            response = await client.post(f"{API_BASE_URL}/api/orders/{order_id}/delivery")
            response.raise_for_status()
            delivery_id = response.json()["deliveryInfo"]["deliveryId"]
            for event in DELIVERY_EVENTS:
                response = await send_nash_event(client, delivery_id, event)
                response.raise_for_status()
        else:
            for status in ("PREPARING", "READY", "COMPLETED"):
                response = await client.patch(
                    f"{API_BASE_URL}/api/orders/{order_id}/status", json={"status": status}
                )
                response.raise_for_status()

        response = await client.get(f"{API_BASE_URL}/api/orders/{order_id}")
        response.raise_for_status()
        order = response.json()
        result.update({
            "success": order["status"] == "COMPLETED",
            "status": order["status"],
            "total": order.get("total") or 0.0,
        })
    except httpx.HTTPStatusError as e:
        result["error"] = f"{e.response.status_code} {e.response.text[:100]}"
    except httpx.RequestError as e:
        result["error"] = str(e)[:100]

    result["time"] = round(time.time() - start_time, 3)
    return result


async def run_simulation(
    restaurant_id: str,
    menu_item_id: str,
    num_orders: int,
    delivery: bool,
) -> dict[str, Any]:
    print("=" * 70)
    print("ORDER LIFECYCLE SIMULATION")
    print("=" * 70)
    print(f"Orders: {num_orders} ({'delivery' if delivery else 'pickup'})")
    print(f"Target: {API_BASE_URL}")
    print(f"Nash signing: {'on' if settings.nash_webhook_secret else 'off'}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()
    async with httpx.AsyncClient(timeout=30.0) as client:
        health = await client.get(f"{API_BASE_URL}/health")
        print(f"\nHealth: {health.json().get('status')}")

        results = await asyncio.gather(*[
            run_order(client, i + 1, restaurant_id, menu_item_id, delivery)
            for i in range(num_orders)
        ])

    total_time = round(time.time() - start_time, 2)
    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    print("\n" + "=" * 70)
    print("RESULTS")
    print("=" * 70)
    print(f"Completed orders: {len(successful)}/{num_orders}")
    print(f"Failed orders: {len(failed)}/{num_orders}")
    print(f"Total time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        revenue = sum(r["total"] for r in successful)
        print(f"Average lifecycle: {avg_time}s")
        print(f"Total charged: ${revenue:.2f}")

    if failed:
        print("\nFailures (first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']} [{f.get('status', 'n/a')}]: {f.get('error', 'not completed')}")

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


def main(argv: Optional[list[str]] = None) -> int:
    global API_BASE_URL

    parser = argparse.ArgumentParser(description="Simulate orders against a running server")
    parser.add_argument("--restaurant", required=True, help="Restaurant id")
    parser.add_argument("--menu-item", required=True, help="Available menu item id")
    parser.add_argument("--orders", type=int, default=1, help="Number of orders")
    parser.add_argument("--delivery", action="store_true", help="Delivery instead of pickup")
    parser.add_argument("--base-url", default=API_BASE_URL)
    args = parser.parse_args(argv)

    API_BASE_URL = args.base_url.rstrip("/")
    summary = asyncio.run(
        run_simulation(args.restaurant, args.menu_item, args.orders, args.delivery)
    )
    return 0 if summary["failed"] == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
