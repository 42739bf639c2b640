"""Checkout load test scenarios.

Stateful SequentialTaskSet journeys from listing a product to a settled
order, one per payment method.
"""

import random

from locust import SequentialTaskSet, task

from loadtests.data_generators import (
    buyer_id,
    card_settlement,
    checkout_data,
    product_data,
    store_id,
    webhook_success,
)
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import CheckoutState

WEBHOOK_HEADERS = {"X-Gateway-Signature": "test-signature"}


class _CheckoutJourney(SequentialTaskSet):
    payment_method = "cod"

    def on_start(self):
        self.state = CheckoutState(buyer_id=buyer_id(), store_id=store_id(), payment_method=self.payment_method)

    @task
    def list_product(self):
        with self.client.post(
            "/products",
            json=product_data(store=self.state.store_id),
            catch_response=True,
            name="POST /products",
        ) as resp:
            if resp.status_code == 201:
                self.state.product_id = resp.json()["product_id"]
            else:
                resp.failure(f"List product failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def add_to_cart(self):
        with self.client.post(
            f"/carts/{self.state.buyer_id}/items",
            json={"product_id": self.state.product_id, "quantity": random.randint(1, 3)},
            catch_response=True,
            name="POST /carts/{buyer}/items",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Add to cart failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def place_order(self):
        with self.client.post(
            "/orders",
            json=checkout_data(self.state.buyer_id, self.state.payment_method),
            catch_response=True,
            name="POST /orders",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_id = resp.json()["order_id"]
            else:
                resp.failure(f"Place order failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()


class CardCheckoutJourney(_CheckoutJourney):
    """List -> Cart -> Order -> Card settlement.

    A 402 is a legitimate outcome while the fake gateway is set to decline.
    """

    payment_method = "card"

    @task
    def settle(self):
        with self.client.post(
            f"/payments/orders/{self.state.order_id}/settle",
            json=card_settlement(),
            catch_response=True,
            name="POST /payments/orders/{id}/settle (card)",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = "confirmed"
            elif resp.status_code in (402, 503):
                resp.success()
                self.state.current_status = "cancelled" if resp.status_code == 402 else "pending"
            else:
                resp.failure(f"Card settlement failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class QrCheckoutJourney(_CheckoutJourney):
    """List -> Cart -> Order -> QR source -> Signed webhook."""

    payment_method = "qr"

    @task
    def settle(self):
        with self.client.post(
            f"/payments/orders/{self.state.order_id}/settle",
            json={"payment_method": "qr"},
            catch_response=True,
            name="POST /payments/orders/{id}/settle (qr)",
        ) as resp:
            if resp.status_code == 200:
                self.state.source_id = resp.json()["source_id"]
            else:
                resp.failure(f"QR settlement failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def webhook(self):
        with self.client.post(
            "/payments/webhook",
            json=webhook_success(self.state.source_id),
            headers=WEBHOOK_HEADERS,
            catch_response=True,
            name="POST /payments/webhook",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = "confirmed"
            else:
                resp.failure(f"Webhook failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class CashOnDeliveryJourney(_CheckoutJourney):
    """List -> Cart -> Order -> Seller confirms, ships and delivers."""

    payment_method = "cod"

    @task
    def fulfil(self):
        for action in ("confirm", "ship", "deliver"):
            with self.client.put(
                f"/orders/{self.state.order_id}/{action}",
                json={"store_id": self.state.store_id},
                catch_response=True,
                name=f"PUT /orders/{{id}}/{action}",
            ) as resp:
                if resp.status_code != 200:
                    resp.failure(f"{action} failed: {resp.status_code} - {extract_error_detail(resp)}")
                    self.interrupt()
                    return
        self.state.current_status = "delivered"

    @task
    def review_history(self):
        self.client.get("/orders", params={"buyer_id": self.state.buyer_id}, name="GET /orders")
        self.client.get(f"/sellers/{self.state.store_id}/sales", name="GET /sellers/{store}/sales")

    @task
    def done(self):
        self.interrupt()
