"""Catalogue management: the minimal product commands checkout depends on."""

from protean import handle
from protean.fields import Boolean, Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.domain import storefront


@storefront.command(part_of="Product")
class ListProduct:
    store_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    unit_price = Integer(required=True, min_value=0)
    stock = Integer(default=0, min_value=0)
    is_available = Boolean(default=True)


@storefront.command(part_of="Product")
class ChangeProductPrice:
    product_id = Identifier(required=True)
    unit_price = Integer(required=True, min_value=0)


@storefront.command(part_of="Product")
class SetProductAvailability:
    product_id = Identifier(required=True)
    is_available = Boolean(required=True)


@storefront.command_handler(part_of=Product)
class CatalogueHandler:
    @handle(ListProduct)
    def list_product(self, command):
        product = Product.create(
            store_id=command.store_id,
            name=command.name,
            unit_price=command.unit_price,
            stock=command.stock or 0,
            is_available=command.is_available if command.is_available is not None else True,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(ChangeProductPrice)
    def change_price(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.change_price(command.unit_price)
        repo.add(product)

    @handle(SetProductAvailability)
    def set_availability(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.set_availability(command.is_available)
        repo.add(product)
