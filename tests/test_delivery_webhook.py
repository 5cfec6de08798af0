"""POST /webhook/nash: delivery, courier and job events."""

import base64

from absl.testing import absltest
from absl.testing import parameterized

from orderhub.main import app
from orderhub.models import DeliveryStatus, OrderStatus
from orderhub.services.delivery import MockDeliveryService, get_delivery_service
from tests.base import NASH_WEBHOOK_SECRET, OrderHubTestCase, svix_headers

DELIVERY_ID = "ord_nash_0001"


def _event(event_type, event, delivery=None, **data):
    body = {"type": event_type, "event": event, "data": {"id": DELIVERY_ID}}
    body["data"].update(data)
    if delivery is not None:
        body["data"]["jobConfigurations"] = [{"tasks": [{"delivery": delivery}]}]
    return body


class DeliveryWebhookTest(OrderHubTestCase):

    def setUp(self) -> None:
        super().setUp()
        self.restaurant_id = self.seed_restaurant()
        self.order_id = self.seed_order(
            self.restaurant_id,
            status=OrderStatus.PAID,
            is_delivery=True,
            delivery_address="1 Main St, Seattle, WA",
            delivery_info={
                "deliveryId": DELIVERY_ID,
                "provider": "Nash",
                "status": "PENDING",
                "quoteId": "qot_1",
                "fee": 5.0,
            },
        )

    @parameterized.parameters(
        ("created", DeliveryStatus.PENDING, OrderStatus.PREPARING),
        ("assigned_driver", DeliveryStatus.CONFIRMED, OrderStatus.PREPARING),
        ("pickup_enroute", DeliveryStatus.PICKING_UP, OrderStatus.PREPARING),
        ("pickup_arrived", DeliveryStatus.PICKING_UP, OrderStatus.PREPARING),
        ("pickup_complete", DeliveryStatus.PICKED_UP, OrderStatus.PREPARING),
        ("dropoff_enroute", DeliveryStatus.PICKED_UP, OrderStatus.PREPARING),
        ("dropoff_arrived", DeliveryStatus.DELIVERING, OrderStatus.PREPARING),
        ("dropoff_complete", DeliveryStatus.COMPLETED, OrderStatus.COMPLETED),
        ("canceled_by_provider", DeliveryStatus.CANCELLED, OrderStatus.CANCELLED),
        ("canceled_by_customer", DeliveryStatus.CANCELLED, OrderStatus.CANCELLED),
        ("canceled_by_nash", DeliveryStatus.CANCELLED, OrderStatus.CANCELLED),
        ("failed", DeliveryStatus.FAILED, OrderStatus.CANCELLED),
        ("quote_expired", DeliveryStatus.PENDING, OrderStatus.PREPARING),
    )
    def test_delivery_event(self, event, delivery_status, order_status):
        response = self.post_nash_event(_event("delivery", event))

        self.assertEqual(response.status_code, 200, response.text)
        self.assertTrue(response.json()["handled"])
        order = self.load_order(self.order_id)
        self.assertEqual(order.status, order_status)
        self.assertEqual(order.delivery_info["status"], delivery_status.value)

    def test_dropoff_complete_on_preparing_order(self):
        order_id = self.seed_order(
            self.restaurant_id,
            status=OrderStatus.PREPARING,
            delivery_info={"deliveryId": "ord_nash_0002", "provider": "Nash", "status": "DELIVERING"},
        )
        body = _event("delivery", "dropoff_complete")
        body["data"]["id"] = "ord_nash_0002"

        self.post_nash_event(body)

        order = self.load_order(order_id)
        self.assertEqual(order.status, OrderStatus.COMPLETED)
        self.assertEqual(order.delivery_info["status"], "COMPLETED")

    def test_delivery_event_updates_info_and_keeps_existing_fields(self):
        self.post_nash_event(
            _event(
                "delivery",
                "assigned_driver",
                delivery={
                    "id": "dlv_1",
                    "pickupEta": "2026-10-19T18:10:00Z",
                    "dropoffEta": "2026-10-19T18:40:00Z",
                },
                portalUrl="https://portal.usenash.com/job/1",
                publicTrackingUrl="https://track.usenash.com/abc",
            )
        )

        info = self.load_order(self.order_id).delivery_info
        self.assertEqual(info["deliveryId"], DELIVERY_ID)
        self.assertEqual(info["provider"], "Nash")
        self.assertEqual(info["quoteId"], "qot_1")
        self.assertEqual(info["fee"], 5.0)
        self.assertEqual(info["estimatedPickupTime"], "2026-10-19T18:10:00Z")
        self.assertEqual(info["estimatedDeliveryTime"], "2026-10-19T18:40:00Z")
        self.assertEqual(info["trackingUrl"], "https://track.usenash.com/abc")

    def test_portal_url_used_without_public_tracking_url(self):
        self.post_nash_event(
            _event("delivery", "created", portalUrl="https://portal.usenash.com/job/1")
        )

        info = self.load_order(self.order_id).delivery_info
        self.assertEqual(info["trackingUrl"], "https://portal.usenash.com/job/1")

    def test_driver_captured_from_delivery_event(self):
        self.post_nash_event(
            _event(
                "delivery",
                "assigned_driver",
                delivery={
                    "id": "dlv_1",
                    "courierName": "Sam Rider",
                    "courierPhoneNumber": "+15555550111",
                    "courierLocation": {"lat": 47.61, "lng": -122.33},
                },
            )
        )

        driver = self.load_order(self.order_id).driver
        self.assertEqual(driver["id"], "dlv_1")
        self.assertEqual(driver["name"], "Sam Rider")
        self.assertEqual(driver["phone"], "+15555550111")
        self.assertEqual(driver["currentLocation"], {"lat": 47.61, "lng": -122.33})

    def test_courier_location_merges_without_clobbering(self):
        order_id = self.seed_order(
            self.restaurant_id,
            status=OrderStatus.PREPARING,
            delivery_info={"deliveryId": "ord_nash_0003", "provider": "Nash", "status": "PICKED_UP"},
            driver={"id": "dlv_3", "name": "Sam Rider", "phone": "+15555550111"},
        )
        body = _event("courier_location", "updated", delivery={"courierLocation": {"lat": 1.5, "lng": 2.5}})
        body["data"]["id"] = "ord_nash_0003"

        response = self.post_nash_event(body)

        self.assertEqual(response.status_code, 200)
        order = self.load_order(order_id)
        self.assertEqual(order.status, OrderStatus.PREPARING)
        self.assertEqual(order.delivery_info["status"], "PICKED_UP")
        self.assertEqual(
            order.driver,
            {
                "id": "dlv_3",
                "name": "Sam Rider",
                "phone": "+15555550111",
                "currentLocation": {"lat": 1.5, "lng": 2.5},
            },
        )

    def test_job_event_only_sets_tracking_url(self):
        self.post_nash_event(
            _event("job", "created", publicTrackingUrl="https://track.usenash.com/job")
        )

        order = self.load_order(self.order_id)
        self.assertEqual(order.status, OrderStatus.PAID)
        self.assertEqual(order.delivery_info["status"], "PENDING")
        self.assertEqual(order.delivery_info["trackingUrl"], "https://track.usenash.com/job")

    def test_unknown_type_is_acknowledged(self):
        response = self.post_nash_event(_event("quote", "created"))

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["handled"])
        order = self.load_order(self.order_id)
        self.assertEqual(order.status, OrderStatus.PAID)
        self.assertEqual(order.delivery_info["status"], "PENDING")

    def test_no_matching_order(self):
        body = _event("delivery", "dropoff_complete")
        body["data"]["id"] = "ord_nash_unknown"

        response = self.post_nash_event(body)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["received"], True)
        self.assertEqual(response.json()["handled"], False)

    def test_external_identifier_fallback(self):
        order_id = self.seed_order(self.restaurant_id, status=OrderStatus.PAID, is_delivery=True)
        body = _event("delivery", "created", externalIdentifier=order_id)
        body["data"]["id"] = "job_not_stored"

        self.post_nash_event(body)

        order = self.load_order(order_id)
        self.assertEqual(order.status, OrderStatus.PREPARING)
        self.assertEqual(order.delivery_info["deliveryId"], "job_not_stored")
        self.assertEqual(order.delivery_info["provider"], "Nash")

    def test_redelivery_is_idempotent(self):
        body = _event(
            "delivery",
            "pickup_complete",
            delivery={"id": "dlv_1", "courierName": "Sam Rider", "courierPhoneNumber": "+1555"},
            publicTrackingUrl="https://track.usenash.com/abc",
        )

        self.post_nash_event(body)
        first = self.load_order(self.order_id)
        self.post_nash_event(body)
        second = self.load_order(self.order_id)

        self.assertEqual(first.status, second.status)
        self.assertEqual(first.delivery_info, second.delivery_info)
        self.assertEqual(first.driver, second.driver)

    def test_late_event_does_not_regress_completed_delivery(self):
        self.post_nash_event(_event("delivery", "dropoff_complete"))
        self.post_nash_event(_event("delivery", "pickup_complete"))

        order = self.load_order(self.order_id)
        self.assertEqual(order.status, OrderStatus.COMPLETED)
        self.assertEqual(order.delivery_info["status"], "COMPLETED")

    @parameterized.named_parameters(
        ("not_json", b"{not json"),
        ("missing_event", {"type": "delivery", "data": {"id": DELIVERY_ID}}),
        ("missing_type", {"event": "created", "data": {"id": DELIVERY_ID}}),
        ("no_identifier", {"type": "delivery", "event": "created", "data": {}}),
    )
    def test_malformed_payload(self, body):
        response = self.post_nash_event(body)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "INVALID_PAYLOAD")
        self.assertEqual(self.load_order(self.order_id).status, OrderStatus.PAID)


class SignedDeliveryWebhookTest(OrderHubTestCase):

    def setUp(self) -> None:
        super().setUp()
        self.delivery_service = MockDeliveryService(webhook_secret=NASH_WEBHOOK_SECRET)
        app.dependency_overrides[get_delivery_service] = lambda: self.delivery_service
        restaurant_id = self.seed_restaurant()
        self.order_id = self.seed_order(
            restaurant_id,
            status=OrderStatus.PAID,
            delivery_info={"deliveryId": DELIVERY_ID, "provider": "Nash", "status": "PENDING"},
        )

    def test_valid_signature(self):
        payload = b'{"type": "delivery", "event": "assigned_driver", "data": {"id": "ord_nash_0001"}}'

        response = self.post_nash_event(payload, headers=svix_headers(payload))

        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(self.load_order(self.order_id).delivery_info["status"], "CONFIRMED")

    def test_x_prefixed_headers(self):
        payload = b'{"type": "delivery", "event": "assigned_driver", "data": {"id": "ord_nash_0001"}}'
        headers = {f"x-{k}": v for k, v in svix_headers(payload).items()}

        response = self.post_nash_event(payload, headers=headers)

        self.assertEqual(response.status_code, 200, response.text)

    def test_webhook_prefixed_headers(self):
        payload = b'{"type": "delivery", "event": "assigned_driver", "data": {"id": "ord_nash_0001"}}'
        headers = {k.replace("svix-", "webhook-"): v for k, v in svix_headers(payload).items()}

        response = self.post_nash_event(payload, headers=headers)

        self.assertEqual(response.status_code, 200, response.text)

    def test_signed_by_other_secret(self):
        payload = b'{"type": "delivery", "event": "failed", "data": {"id": "ord_nash_0001"}}'
        other_secret = "whsec_" + base64.b64encode(b"some-other-key").decode("ascii")

        response = self.post_nash_event(payload, headers=svix_headers(payload, other_secret))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "INVALID_SIGNATURE")

    def test_missing_signature(self):
        response = self.post_nash_event(_event("delivery", "dropoff_complete"))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "INVALID_SIGNATURE")
        self.assertEqual(self.load_order(self.order_id).status, OrderStatus.PAID)

    def test_tampered_body(self):
        signed = b'{"type": "delivery", "event": "created", "data": {"id": "ord_nash_0001"}}'
        tampered = b'{"type": "delivery", "event": "failed", "data": {"id": "ord_nash_0001"}}'

        response = self.post_nash_event(tampered, headers=svix_headers(signed))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.load_order(self.order_id).status, OrderStatus.PAID)


if __name__ == "__main__":
    absltest.main()
