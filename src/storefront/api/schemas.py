"""Pydantic request/response schemas for the storefront API.

These are external contracts, kept separate from the Protean commands.
Money crosses the API in major units as decimals ("1250.50"); the domain
stores it in integer minor units.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------
class ListProductRequest(BaseModel):
    store_id: str
    name: str
    unit_price: Decimal = Field(ge=0, decimal_places=2)
    stock: int = Field(ge=0, default=0)
    is_available: bool = True

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "store_id": "store-001",
                    "name": "Handwoven silk scarf",
                    "unit_price": "1250.00",
                    "stock": 12,
                }
            ]
        }
    }


class ChangePriceRequest(BaseModel):
    unit_price: Decimal = Field(ge=0, decimal_places=2)


class SetAvailabilityRequest(BaseModel):
    is_available: bool


class ProductIdResponse(BaseModel):
    product_id: str


class ProductResponse(BaseModel):
    product_id: str
    store_id: str
    name: str
    unit_price: Decimal
    stock: int
    is_available: bool


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)


class UpdateCartQuantityRequest(BaseModel):
    quantity: int


class CartLineResponse(BaseModel):
    product_id: str
    name: str | None = None
    quantity: int
    unit_price: Decimal | None = None
    subtotal: Decimal
    is_available: bool


class CartResponse(BaseModel):
    buyer_id: str
    lines: list[CartLineResponse]
    total: Decimal


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    buyer_id: str
    shipping_address: str
    phone: str
    payment_method: str = Field(description="card | qr | cod")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "buyer_id": "buyer-001",
                    "shipping_address": "99/1 Sukhumvit Rd, Khlong Toei, Bangkok 10110",
                    "phone": "0812345678",
                    "payment_method": "card",
                }
            ]
        }
    }


class SellerActionRequest(BaseModel):
    store_id: str


class CancelOrderRequest(BaseModel):
    store_id: str
    reason: str


class OrderIdResponse(BaseModel):
    order_id: str


class OrderLineResponse(BaseModel):
    product_id: str
    store_id: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class StatusChangeResponse(BaseModel):
    status: str
    actor: str
    changed_at: datetime


class OrderResponse(BaseModel):
    order_id: str
    buyer_id: str
    status: str
    payment_method: str
    total_amount: Decimal
    currency: str
    shipping_address: str
    phone: str
    cancellation_reason: str | None = None
    created_at: datetime | None = None
    lines: list[OrderLineResponse]
    history: list[StatusChangeResponse]


class OrderHistoryResponse(BaseModel):
    buyer_id: str
    counts: dict[str, int]
    orders: list[OrderResponse]


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class SettleRequest(BaseModel):
    payment_method: str = Field(description="card | qr | cod")
    card_token: str | None = None
    amount: Decimal | None = Field(default=None, ge=0, decimal_places=2)


class SettlementResponse(BaseModel):
    order_id: str
    payment_method: str
    outcome: str
    reason: str | None = None
    retryable: bool = False
    charge_id: str | None = None
    source_id: str | None = None
    scannable_image_url: str | None = None
    authorize_uri: str | None = None


class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Card declined"
    available: bool = True
    requires_authorization: bool = False


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str
    available: bool
    requires_authorization: bool


class ReconcileRequest(BaseModel):
    max_age_minutes: int = Field(ge=0, default=30)


class ReconcileResponse(BaseModel):
    confirmed: list[str]
    cancelled: list[str]
    still_unresolved: list[str]


# ---------------------------------------------------------------------------
# Seller reporting
# ---------------------------------------------------------------------------
class SoldLineResponse(BaseModel):
    order_id: str
    product_id: str
    quantity: int
    unit_price: Decimal
    fee_rate: Decimal
    gross: Decimal
    fee: Decimal
    net: Decimal
    order_status: str


class SellerSalesResponse(BaseModel):
    store_id: str
    order_count: int
    total_sales: Decimal
    total_fees: Decimal
    net_payout: Decimal
    lines: list[SoldLineResponse]
