"""Domain events for the Product aggregate."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Product")
class ProductListed:
    """A seller put a new product on sale."""

    __version__ = 1

    product_id = Identifier(required=True)
    store_id = Identifier(required=True)
    name = String(required=True)
    unit_price = Integer(required=True)
    stock = Integer(required=True)
    listed_at = DateTime(required=True)


@storefront.event(part_of="Product")
class ProductPriceChanged:
    """The catalogue price changed. Existing order lines keep their frozen price."""

    __version__ = 1

    product_id = Identifier(required=True)
    previous_price = Integer(required=True)
    new_price = Integer(required=True)


@storefront.event(part_of="Product")
class ProductAvailabilityChanged:
    __version__ = 1

    product_id = Identifier(required=True)
    is_available = Boolean(required=True)


@storefront.event(part_of="Product")
class StockReserved:
    """Units were taken out of stock by a checkout."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)


@storefront.event(part_of="Product")
class StockReleased:
    """Units went back into stock after a rollback or a cancelled order."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
