"""Shared BDD fixtures and step definitions for the storefront."""

from decimal import Decimal

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then
from storefront.catalogue.product import Product
from storefront.errors import InvalidTransition
from storefront.order.order import Order
from storefront.order.placement import place_order
from storefront.shared.money import to_minor_units

BUYER = "buyer-bdd"
STORE = "store-bdd"


@pytest.fixture()
def error():
    """Container for the exception a When step captured."""
    return {"exc": None}


@pytest.fixture()
def products():
    """Product ids by the name a scenario gives them ("product", "second product")."""
    return {}


def _list(make_product, products, key, stock, price):
    products[key] = make_product(unit_price=to_minor_units(Decimal(price)), stock=stock, store_id=STORE)
    return products[key]


def _place(add_to_cart, product_id, quantity, payment_method):
    add_to_cart(BUYER, product_id, quantity)
    return place_order(
        buyer_id=BUYER,
        shipping_address="12 Nimman Rd, Chiang Mai 50200",
        phone="0891112222",
        payment_method=payment_method,
    )


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("a product with {stock:d} units in stock priced at {price}"), target_fixture="product_id")
def _(make_product, products, stock, price):
    return _list(make_product, products, "product", stock, price)


@given(parsers.cfparse("a second product with {stock:d} units in stock priced at {price}"))
def _(make_product, products, stock, price):
    _list(make_product, products, "second product", stock, price)


@given(parsers.cfparse("the buyer placed a cash on delivery order for {quantity:d} units"), target_fixture="order_id")
def _(add_to_cart, product_id, quantity):
    return _place(add_to_cart, product_id, quantity, "cod")


@given(parsers.cfparse("the buyer placed a card order for {quantity:d} units"), target_fixture="order_id")
def _(add_to_cart, product_id, quantity):
    return _place(add_to_cart, product_id, quantity, "card")


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(order_id, status):
    assert current_domain.repository_for(Order).get(order_id).status == status


@then(parsers.re(r"the (?P<key>product|second product) has (?P<stock>\d+) units in stock"))
def _(products, key, stock):
    assert current_domain.repository_for(Product).get(products[key]).stock == int(stock)


@then("the action fails with an invalid transition")
def _(error):
    assert error["exc"] is not None, "Expected an invalid transition but none was raised"
    assert isinstance(error["exc"], InvalidTransition)


@pytest.fixture()
def buyer_id():
    return BUYER


@pytest.fixture()
def store_id():
    return STORE
