import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(scope="session", autouse=True)
def setup_db(storefront_bed):
    from storefront.domain import storefront
    from storefront.utils.db import drop_db, setup_db

    setup_db(storefront)

    yield

    drop_db(storefront)


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    with storefront_bed.domain_context():
        yield

        from protean import current_domain

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()


@pytest.fixture()
def gateway():
    """The active FakeGateway, for configuring and inspecting calls."""
    from storefront.payments.gateway import get_gateway

    return get_gateway()


@pytest.fixture()
def make_product():
    """Factory: list a product and return its id. Prices are in minor units."""
    from storefront.catalogue.management import ListProduct
    from storefront.dispatch import dispatch

    def _make(unit_price=50000, stock=10, store_id="store-001", name="Celadon bowl", is_available=True):
        return dispatch(
            ListProduct(
                store_id=store_id,
                name=name,
                unit_price=unit_price,
                stock=stock,
                is_available=is_available,
            )
        )

    return _make


@pytest.fixture()
def add_to_cart():
    """Put ``quantity`` of a product into a buyer's cart."""
    from storefront.cart.management import AddToCart
    from storefront.dispatch import dispatch

    def _add(buyer_id, product_id, quantity=1):
        return dispatch(AddToCart(buyer_id=buyer_id, product_id=product_id, quantity=quantity))

    return _add


@pytest.fixture()
def checkout(make_product, add_to_cart):
    """Place a one-line order and return ``(order_id, product_id)``."""
    from storefront.order.placement import place_order

    def _checkout(payment_method="cod", quantity=1, unit_price=50000, stock=10, buyer_id="buyer-001", store_id="store-001"):
        product_id = make_product(unit_price=unit_price, stock=stock, store_id=store_id)
        add_to_cart(buyer_id, product_id, quantity)
        order_id = place_order(
            buyer_id=buyer_id,
            shipping_address="99/1 Sukhumvit Rd, Bangkok 10110",
            phone="0812345678",
            payment_method=payment_method,
        )
        return order_id, product_id

    return _checkout
