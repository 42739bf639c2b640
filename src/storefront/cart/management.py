"""Cart management: add, update and remove cart lines.

A buyer's cart holds at most one row per product: adding a product that is
already in the cart tops up the existing row, and setting a quantity of zero
or less removes it.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from storefront.cart.cart import CartLine
from storefront.catalogue.product import Product
from storefront.domain import storefront


@storefront.command(part_of="CartLine")
class AddToCart:
    buyer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(default=1, min_value=1)


@storefront.command(part_of="CartLine")
class UpdateCartQuantity:
    """Set the quantity of a product in the cart. Zero or less removes the line."""

    buyer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@storefront.command(part_of="CartLine")
class RemoveFromCart:
    buyer_id = Identifier(required=True)
    product_id = Identifier(required=True)


def _purchasable_product(product_id) -> Product:
    try:
        product = current_domain.repository_for(Product).get(str(product_id))
    except ObjectNotFoundError as exc:
        raise ValidationError({"product_id": [f"Product {product_id} does not exist"]}) from exc

    if not product.is_available:
        raise ValidationError({"product_id": [f"Product {product_id} is not available"]})
    return product


@storefront.command_handler(part_of=CartLine)
class ManageCartHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        _purchasable_product(command.product_id)
        quantity = command.quantity or 1

        repo = current_domain.repository_for(CartLine)
        line = repo.find_line(command.buyer_id, command.product_id)
        if line is None:
            line = CartLine.create(
                buyer_id=command.buyer_id,
                product_id=command.product_id,
                quantity=quantity,
            )
        else:
            line.add_quantity(quantity)

        repo.add(line)
        return str(line.id)

    @handle(UpdateCartQuantity)
    def update_quantity(self, command):
        repo = current_domain.repository_for(CartLine)
        line = repo.find_line(command.buyer_id, command.product_id)
        if line is None:
            raise ObjectNotFoundError(f"Product {command.product_id} is not in the cart of buyer {command.buyer_id}")

        if command.quantity <= 0:
            repo.remove(line)
            return None

        line.change_quantity(command.quantity)
        repo.add(line)
        return str(line.id)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(CartLine)
        line = repo.find_line(command.buyer_id, command.product_id)
        if line is not None:
            repo.remove(line)
