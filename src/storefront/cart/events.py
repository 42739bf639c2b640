"""Domain events for the CartLine aggregate."""

from protean.fields import Identifier, Integer

from storefront.domain import storefront


@storefront.event(part_of="CartLine")
class CartLineAdded:
    """A product was put in a buyer's cart, or its quantity was topped up."""

    __version__ = 1

    cart_line_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@storefront.event(part_of="CartLine")
class CartLineQuantityChanged:
    __version__ = 1

    cart_line_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
