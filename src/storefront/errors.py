"""Domain error taxonomy for order placement and fulfillment.

Every error here is a Protean ``ValidationError`` so the FastAPI exception
handlers answer with a 400 and a ``{field: [messages]}`` body. Gateway
outages are not domain errors; see ``storefront.payments.gateway.port``.
"""

from protean.exceptions import ValidationError


class EmptyCart(ValidationError):
    """Checkout was attempted with nothing in the cart."""

    def __init__(self, buyer_id):
        self.buyer_id = str(buyer_id)
        super().__init__({"cart": [f"Cart of buyer {buyer_id} is empty"]})


class InsufficientStock(ValidationError):
    """A line asked for more units than the product has, or the product is gone."""

    def __init__(self, product_id, requested: int, available: int):
        self.product_id = str(product_id)
        self.requested = requested
        self.available = available
        super().__init__(
            {
                "product_id": [
                    f"Insufficient stock for product {product_id}: {available} available, {requested} requested"
                ]
            }
        )


class PaymentDeclined(ValidationError):
    """The gateway rejected the charge. The order has already been cancelled."""

    def __init__(self, order_id, reason: str):
        self.order_id = str(order_id)
        self.reason = reason
        super().__init__({"payment": [reason]})


class InvalidTransition(ValidationError):
    """An order status change that the fulfillment state machine does not allow."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__({"status": [f"Cannot transition from {current} to {target}"]})
