import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from storefront.api import (
    cart_router,
    order_router,
    payment_router,
    product_router,
    register_storefront_exception_handlers,
    seller_router,
)


@pytest.fixture()
def client():
    app = FastAPI()
    for router in (product_router, cart_router, order_router, payment_router, seller_router):
        app.include_router(router)
    register_storefront_exception_handlers(app)
    return TestClient(app)


@pytest.fixture()
def api_product(client):
    """Factory: list a product over the API and return its id."""

    def _list(unit_price="500.00", stock=10, store_id="store-001", name="Teak serving board"):
        response = client.post(
            "/products",
            json={"store_id": store_id, "name": name, "unit_price": unit_price, "stock": stock},
        )
        assert response.status_code == 201
        return response.json()["product_id"]

    return _list


@pytest.fixture()
def api_order(client, api_product):
    """Factory: fill a cart and check it out over the API, returning ``(order_id, product_id)``."""

    def _order(payment_method="cod", quantity=1, unit_price="500.00", stock=10, buyer_id="buyer-001"):
        product_id = api_product(unit_price=unit_price, stock=stock)
        client.post(f"/carts/{buyer_id}/items", json={"product_id": product_id, "quantity": quantity})
        response = client.post(
            "/orders",
            json={
                "buyer_id": buyer_id,
                "shipping_address": "99/1 Sukhumvit Rd, Bangkok 10110",
                "phone": "0812345678",
                "payment_method": payment_method,
            },
        )
        assert response.status_code == 201
        return response.json()["order_id"], product_id

    return _order
