"""Stripe and Nash adapters against stubbed transports."""

import asyncio
import json
from types import SimpleNamespace
from unittest import mock

import httpx
import stripe
from absl.testing import absltest

from orderhub.core.exceptions import WebhookSignatureError
from orderhub.services.delivery import DeliveryRequest
from orderhub.services.delivery.nash import NashDeliveryService
from orderhub.services.payment.base import CheckoutLineItem
from orderhub.services.payment.stripe import StripePaymentService
from tests.base import stripe_signature


def _delivery_request():
    return DeliveryRequest(
        external_id="order-1",
        pickup_address="100 Harbor Way, Seattle, WA 98101",
        pickup_phone="+15555550100",
        pickup_business_name="Vessel Cafe",
        dropoff_address="1 Main St, Seattle, WA 98101",
        dropoff_phone="+15555550199",
        dropoff_name="Jane Q Diner",
        dropoff_email="jane@example.com",
        items_count=3,
        value_cents=2500,
    )


class NashDeliveryServiceTest(absltest.TestCase):

    def setUp(self) -> None:
        super().setUp()
        self.requests = []

    def _service(self, handler):
        def record(request):
            self.requests.append(request)
            return handler(request)

        return NashDeliveryService(transport=httpx.MockTransport(record))

    def test_create_and_autodispatch(self):
        def handler(request):
            if request.url.path == "/v1/order":
                return httpx.Response(200, json={"id": "ord_123", "publicTrackingUrl": "https://t/1"})
            return httpx.Response(200, json={
                "winnerQuote": {"id": "qot_9", "price_cents": 599},
                "pickupEta": "2026-10-19T18:10:00Z",
                "dropoffEta": "2026-10-19T18:40:00Z",
            })

        result = asyncio.run(self._service(handler).create_delivery(_delivery_request()))

        self.assertTrue(result.success)
        self.assertEqual(result.delivery_id, "ord_123")
        self.assertEqual(result.quote_id, "qot_9")
        self.assertEqual(result.fee, 5.99)
        self.assertEqual(result.tracking_url, "https://t/1")
        self.assertEqual(result.estimated_delivery_time, "2026-10-19T18:40:00Z")

        create, dispatch = self.requests
        self.assertEqual(str(create.url), "https://nash.test/v1/order")
        self.assertEqual(create.headers["Authorization"], "Bearer nash_test_key")
        self.assertEqual(create.headers["X-Nash-Org-ID"], "org_test")
        body = json.loads(create.content)
        self.assertEqual(body["externalId"], "order-1")
        self.assertEqual(body["dropoffFirstName"], "Jane Q")
        self.assertEqual(body["dropoffLastName"], "Diner")
        self.assertEqual(body["itemsCount"], 3)
        self.assertEqual(body["valueCents"], 2500)
        self.assertNotIn("pickupInstructions", body)
        self.assertEqual(dispatch.url.path, "/v1/order/ord_123/autodispatch")

    def test_api_error(self):
        service = self._service(lambda request: httpx.Response(422, json={"error": "bad address"}))

        result = asyncio.run(service.create_delivery(_delivery_request()))

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "nash_api_error")
        self.assertLen(self.requests, 1)

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = asyncio.run(self._service(handler).create_delivery(_delivery_request()))

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "connection_error")

    def test_unexpected_create_response(self):
        service = self._service(lambda request: httpx.Response(200, json={"status": "ok"}))

        result = asyncio.run(service.create_delivery(_delivery_request()))

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "invalid_response")

    def test_non_json_create_response(self):
        service = self._service(lambda request: httpx.Response(200, text="<html>busy</html>"))

        result = asyncio.run(service.create_delivery(_delivery_request()))

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "invalid_response")
        self.assertLen(self.requests, 1)

    def test_failed_autodispatch_cancels_created_order(self):
        def handler(request):
            if request.url.path == "/v1/order":
                return httpx.Response(200, json={"id": "ord_123"})
            if request.url.path.endswith("/autodispatch"):
                return httpx.Response(500, json={"error": "no couriers"})
            return httpx.Response(200, json={"id": "ord_123", "status": "cancelled"})

        result = asyncio.run(self._service(handler).create_delivery(_delivery_request()))

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "nash_api_error")
        self.assertEqual(
            [request.url.path for request in self.requests],
            ["/v1/order", "/v1/order/ord_123/autodispatch", "/v1/order/ord_123/cancel"],
        )

    def test_failed_cancel_after_autodispatch_still_reports_failure(self):
        def handler(request):
            if request.url.path == "/v1/order":
                return httpx.Response(200, json={"id": "ord_123"})
            if request.url.path.endswith("/autodispatch"):
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(503)

        result = asyncio.run(self._service(handler).create_delivery(_delivery_request()))

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "connection_error")
        self.assertEqual(self.requests[-1].url.path, "/v1/order/ord_123/cancel")

    def test_cancel(self):
        service = self._service(lambda request: httpx.Response(200, json={"id": "ord_123"}))

        result = asyncio.run(service.cancel_delivery("ord_123", reason="Kitchen closed"))

        self.assertTrue(result.success)
        self.assertEqual(self.requests[0].url.path, "/v1/order/ord_123/cancel")
        self.assertEqual(json.loads(self.requests[0].content), {"reason": "Kitchen closed"})

    def test_health_check(self):
        healthy = self._service(lambda request: httpx.Response(200, json={}))
        down = self._service(lambda request: httpx.Response(503))

        self.assertTrue(asyncio.run(healthy.health_check()))
        self.assertFalse(asyncio.run(down.health_check()))
        self.assertEqual(self.requests[0].url.path, "/v1/organization")


class StripePaymentServiceTest(absltest.TestCase):

    def setUp(self) -> None:
        super().setUp()
        self.service = StripePaymentService()

    def _create(self, **overrides):
        params = {
            "line_items": [CheckoutLineItem("Burger", 1000, 2), CheckoutLineItem("Service Fee", 229)],
            "application_fee_amount": 308,
            "destination_account": "acct_test_restaurant",
            "metadata": {"orderId": "order-1", "restaurantId": "rest-1"},
            "success_url": "https://shop.example.com/order/success",
            "cancel_url": "https://shop.example.com/order/cancel",
            "client_reference_id": "order-1",
        }
        params.update(overrides)
        return asyncio.run(self.service.create_checkout_session(**params))

    def test_destination_charge(self):
        session = SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.com/c/1", payment_status="unpaid")
        with mock.patch.object(stripe.checkout.Session, "create", return_value=session) as create:
            result = self._create(collect_shipping_address=True)

        self.assertTrue(result.success)
        self.assertEqual(result.session_id, "cs_test_1")
        self.assertEqual(result.url, "https://checkout.stripe.com/c/1")

        params = create.call_args.kwargs
        self.assertEqual(params["mode"], "payment")
        self.assertEqual(params["client_reference_id"], "order-1")
        self.assertEqual(params["payment_intent_data"]["application_fee_amount"], 308)
        self.assertEqual(
            params["payment_intent_data"]["transfer_data"], {"destination": "acct_test_restaurant"}
        )
        self.assertEqual(params["shipping_address_collection"], {"allowed_countries": ["US"]})
        self.assertEqual(params["line_items"][0]["price_data"]["unit_amount"], 1000)
        self.assertEqual(params["line_items"][0]["quantity"], 2)

    def test_pickup_does_not_collect_shipping(self):
        session = SimpleNamespace(id="cs_test_2", url=None, payment_status="unpaid")
        with mock.patch.object(stripe.checkout.Session, "create", return_value=session) as create:
            self._create()

        self.assertNotIn("shipping_address_collection", create.call_args.kwargs)

    def test_invalid_request(self):
        error = stripe.InvalidRequestError("No such destination", "destination")
        with mock.patch.object(stripe.checkout.Session, "create", side_effect=error):
            result = self._create()

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "invalid_request")

    def test_connection_error(self):
        with mock.patch.object(
            stripe.checkout.Session, "create", side_effect=stripe.APIConnectionError("timeout")
        ):
            result = self._create()

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "connection_error")

    def test_verify_webhook(self):
        payload = json.dumps({
            "id": "evt_1",
            "object": "event",
            "type": "checkout.session.completed",
            "data": {"object": {"id": "cs_test_1", "metadata": {"orderId": "order-1"}}},
        }).encode("utf-8")

        event = asyncio.run(self.service.verify_webhook(payload, stripe_signature(payload)))

        self.assertEqual(event["type"], "checkout.session.completed")
        self.assertEqual(event["data"]["object"]["metadata"], {"orderId": "order-1"})

    def test_verify_webhook_rejects_bad_signature(self):
        payload = b'{"id": "evt_1", "object": "event", "type": "checkout.session.expired"}'

        with self.assertRaises(WebhookSignatureError):
            asyncio.run(self.service.verify_webhook(payload, stripe_signature(payload, "whsec_other")))
        with self.assertRaises(WebhookSignatureError):
            asyncio.run(self.service.verify_webhook(payload, None))


if __name__ == "__main__":
    absltest.main()
