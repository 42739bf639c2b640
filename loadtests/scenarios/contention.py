"""Stock contention scenario.

Every ScarceStockUser races for the same product, listed once with a small
stock. Rejected checkouts (400, insufficient stock) are the expected
outcome once the stock runs out; the product must never go below zero and
the number of accepted orders must never exceed the initial stock.
"""

import threading

from locust import HttpUser, between, events, task

from loadtests.data_generators import buyer_id, checkout_data, product_data

SCARCE_STOCK = 25
CONTENTION_STORE = "store-contention"

_lock = threading.Lock()
_scarce = {"product_id": None, "accepted": 0, "rejected": 0}


class ScarceStockUser(HttpUser):
    """Many buyers, one product, little stock."""

    wait_time = between(0.1, 0.5)

    def on_start(self):
        with _lock:
            if _scarce["product_id"] is None:
                resp = self.client.post(
                    "/products",
                    json=product_data(store=CONTENTION_STORE, stock=SCARCE_STOCK),
                    name="[CONTENTION] POST /products",
                )
                _scarce["product_id"] = resp.json()["product_id"]

    @task
    def checkout(self):
        buyer = buyer_id()
        self.client.post(
            f"/carts/{buyer}/items",
            json={"product_id": _scarce["product_id"], "quantity": 1},
            name="[CONTENTION] POST /carts/{buyer}/items",
        )
        with self.client.post(
            "/orders",
            json=checkout_data(buyer, "cod"),
            catch_response=True,
            name="[CONTENTION] POST /orders",
        ) as resp:
            with _lock:
                if resp.status_code == 201:
                    _scarce["accepted"] += 1
                elif resp.status_code == 400:
                    _scarce["rejected"] += 1
                    resp.success()
                else:
                    resp.failure(f"Unexpected checkout status {resp.status_code}")


@events.test_stop.add_listener
def _report_contention(**_kwargs):
    if _scarce["product_id"] is not None:
        print(
            f"[LOADTEST] Scarce product {_scarce['product_id']}: "
            f"{_scarce['accepted']} accepted, {_scarce['rejected']} rejected, stock {SCARCE_STOCK}"
        )
