"""BDD tests for placing orders from the cart."""

from decimal import Decimal

from pytest_bdd import given, parsers, scenarios, then, when
from storefront.cart.snapshot import read_cart_snapshot
from storefront.errors import EmptyCart, InsufficientStock
from storefront.order.placement import place_order
from storefront.order.queries import order_detail
from storefront.reporting.seller_sales import seller_sales
from storefront.shared.money import to_major_units


scenarios("features/checkout.feature")


@given(parsers.re(r"the buyer has (?P<quantity>\d+) units? of the (?P<key>product|second product) in the cart"))
def _(add_to_cart, buyer_id, products, quantity, key):
    add_to_cart(buyer_id, products[key], int(quantity))


@when("the buyer places a cash on delivery order", target_fixture="order_id")
def _(buyer_id, error):
    try:
        return place_order(
            buyer_id=buyer_id,
            shipping_address="12 Nimman Rd, Chiang Mai 50200",
            phone="0891112222",
            payment_method="cod",
        )
    except (EmptyCart, InsufficientStock) as exc:
        error["exc"] = exc
        return None


@then(parsers.cfparse("the order total is {total}"))
def _(order_id, total):
    assert to_major_units(order_detail(order_id).total_amount) == Decimal(total)


@then(parsers.cfparse("the seller net for the order is {net}"))
def _(store_id, net):
    assert seller_sales(store_id).net_payout == Decimal(net)


@then("the checkout fails with insufficient stock")
def _(error):
    assert isinstance(error["exc"], InsufficientStock)


@then("the checkout fails with an empty cart")
def _(error):
    assert isinstance(error["exc"], EmptyCart)


@then(parsers.cfparse("the cart still holds {count:d} lines"))
def _(buyer_id, count):
    assert len(read_cart_snapshot(buyer_id).lines) == count
