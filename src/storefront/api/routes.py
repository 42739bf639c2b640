"""FastAPI routes for the storefront: products, carts, orders, payments and seller reports."""

import os
from datetime import timedelta

from fastapi import APIRouter, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from protean.utils.globals import current_domain

from storefront.api.schemas import (
    AddToCartRequest,
    CancelOrderRequest,
    CartLineResponse,
    CartResponse,
    ChangePriceRequest,
    ConfigureGatewayRequest,
    GatewayConfigResponse,
    ListProductRequest,
    OrderHistoryResponse,
    OrderIdResponse,
    OrderLineResponse,
    OrderResponse,
    PlaceOrderRequest,
    ProductIdResponse,
    ProductResponse,
    ReconcileRequest,
    ReconcileResponse,
    SellerActionRequest,
    SellerSalesResponse,
    SetAvailabilityRequest,
    SettlementResponse,
    SettleRequest,
    SoldLineResponse,
    StatusChangeResponse,
    StatusResponse,
    UpdateCartQuantityRequest,
)
from storefront.cart.management import AddToCart, RemoveFromCart, UpdateCartQuantity
from storefront.cart.snapshot import read_cart_snapshot
from storefront.catalogue.management import ChangeProductPrice, ListProduct, SetProductAvailability
from storefront.catalogue.product import Product
from storefront.dispatch import dispatch
from storefront.order import fulfillment
from storefront.order.order import Order
from storefront.order.placement import place_order
from storefront.order.queries import order_detail, order_history
from storefront.payments.gateway import get_gateway
from storefront.payments.gateway.fake_adapter import FakeGateway
from storefront.payments.methods import payload_for
from storefront.payments.reconciliation import reconcile_unresolved_payments
from storefront.payments.settlement import settle
from storefront.payments.webhook import AcknowledgeQrPayment, ProcessPaymentWebhook
from storefront.reporting.seller_sales import seller_sales
from storefront.shared.money import to_major_units, to_minor_units


def _order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        buyer_id=str(order.buyer_id),
        status=order.status,
        payment_method=order.payment_method,
        total_amount=to_major_units(order.total_amount),
        currency=order.currency,
        shipping_address=order.shipping_address,
        phone=order.phone,
        cancellation_reason=order.cancellation_reason,
        created_at=order.created_at,
        lines=[
            OrderLineResponse(
                product_id=str(line.product_id),
                store_id=str(line.store_id),
                quantity=line.quantity,
                unit_price=to_major_units(line.unit_price),
                subtotal=to_major_units(line.subtotal),
            )
            for line in order.lines
        ],
        history=[
            StatusChangeResponse(status=change.status, actor=change.actor, changed_at=change.changed_at)
            for change in sorted(order.history, key=lambda change: change.changed_at)
        ],
    )


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.post("", status_code=201, response_model=ProductIdResponse)
def list_product(body: ListProductRequest) -> ProductIdResponse:
    command = ListProduct(
        store_id=body.store_id,
        name=body.name,
        unit_price=to_minor_units(body.unit_price),
        stock=body.stock,
        is_available=body.is_available,
    )
    result = dispatch(command)
    return ProductIdResponse(product_id=result)


@product_router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str) -> ProductResponse:
    product = current_domain.repository_for(Product).get(product_id)
    return ProductResponse(
        product_id=str(product.id),
        store_id=str(product.store_id),
        name=product.name,
        unit_price=to_major_units(product.unit_price),
        stock=product.stock,
        is_available=product.is_available,
    )


@product_router.put("/{product_id}/price", response_model=StatusResponse)
def change_price(product_id: str, body: ChangePriceRequest) -> StatusResponse:
    dispatch(ChangeProductPrice(product_id=product_id, unit_price=to_minor_units(body.unit_price)))
    return StatusResponse()


@product_router.put("/{product_id}/availability", response_model=StatusResponse)
def set_availability(product_id: str, body: SetAvailabilityRequest) -> StatusResponse:
    dispatch(SetProductAvailability(product_id=product_id, is_available=body.is_available))
    return StatusResponse()


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.get("/{buyer_id}", response_model=CartResponse)
async def view_cart(buyer_id: str) -> CartResponse:
    snapshot = read_cart_snapshot(buyer_id)
    return CartResponse(
        buyer_id=buyer_id,
        lines=[
            CartLineResponse(
                product_id=line.product_id,
                name=line.name,
                quantity=line.quantity,
                unit_price=to_major_units(line.unit_price) if line.unit_price is not None else None,
                subtotal=to_major_units(line.subtotal),
                is_available=line.is_available,
            )
            for line in snapshot.lines
        ],
        total=to_major_units(snapshot.total),
    )


@cart_router.post("/{buyer_id}/items", response_model=StatusResponse)
def add_cart_item(buyer_id: str, body: AddToCartRequest) -> StatusResponse:
    dispatch(AddToCart(buyer_id=buyer_id, product_id=body.product_id, quantity=body.quantity))
    return StatusResponse()


@cart_router.put("/{buyer_id}/items/{product_id}", response_model=StatusResponse)
def update_cart_item(buyer_id: str, product_id: str, body: UpdateCartQuantityRequest) -> StatusResponse:
    dispatch(UpdateCartQuantity(buyer_id=buyer_id, product_id=product_id, quantity=body.quantity))
    return StatusResponse()


@cart_router.delete("/{buyer_id}/items/{product_id}", response_model=StatusResponse)
def remove_cart_item(buyer_id: str, product_id: str) -> StatusResponse:
    dispatch(RemoveFromCart(buyer_id=buyer_id, product_id=product_id))
    return StatusResponse()


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
def create_order(body: PlaceOrderRequest) -> OrderIdResponse:
    """Check out the buyer's cart."""
    order_id = place_order(
        buyer_id=body.buyer_id,
        shipping_address=body.shipping_address,
        phone=body.phone,
        payment_method=body.payment_method,
    )
    return OrderIdResponse(order_id=order_id)


@order_router.get("", response_model=OrderHistoryResponse)
async def list_orders(buyer_id: str, status: str | None = None) -> OrderHistoryResponse:
    history = order_history(buyer_id, status=status)
    return OrderHistoryResponse(
        buyer_id=history.buyer_id,
        counts=history.counts,
        orders=[_order_response(order) for order in history.orders],
    )


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    return _order_response(order_detail(order_id))


@order_router.put("/{order_id}/confirm", response_model=StatusResponse)
def confirm_order(order_id: str, body: SellerActionRequest) -> StatusResponse:
    fulfillment.confirm(order_id, body.store_id)
    return StatusResponse(status="confirmed")


@order_router.put("/{order_id}/ship", response_model=StatusResponse)
def ship_order(order_id: str, body: SellerActionRequest) -> StatusResponse:
    fulfillment.ship(order_id, body.store_id)
    return StatusResponse(status="shipped")


@order_router.put("/{order_id}/deliver", response_model=StatusResponse)
def deliver_order(order_id: str, body: SellerActionRequest) -> StatusResponse:
    fulfillment.deliver(order_id, body.store_id)
    return StatusResponse(status="delivered")


@order_router.put("/{order_id}/cancel", response_model=StatusResponse)
def cancel_order(order_id: str, body: CancelOrderRequest) -> StatusResponse:
    fulfillment.cancel(order_id, body.store_id, body.reason)
    return StatusResponse(status="cancelled")


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/orders/{order_id}/settle", response_model=SettlementResponse)
def settle_order(order_id: str, body: SettleRequest) -> SettlementResponse:
    """Settle an order with the chosen payment method.

    Runs in the worker thread pool: a card charge waits on the gateway.
    A decline answers 402 and an outage 503.
    """
    payment = payload_for(body.payment_method, card_token=body.card_token)
    amount = to_minor_units(body.amount) if body.amount is not None else None

    settlement = settle(order_id, payment, amount=amount).raise_for_status()
    return SettlementResponse(
        order_id=settlement.order_id,
        payment_method=settlement.method.value,
        outcome=settlement.outcome.value,
        reason=settlement.reason,
        retryable=settlement.retryable,
        charge_id=settlement.charge_id,
        source_id=settlement.source_id,
        scannable_image_url=settlement.scannable_image_url,
        authorize_uri=settlement.authorize_uri,
    )


@payment_router.post("/webhook", response_model=StatusResponse)
async def process_webhook(request: Request) -> StatusResponse:
    """Apply a gateway notification. Only correctly signed payloads are accepted.

    Each gateway signs with its own headers, so all of them go to the adapter.
    """
    payload = (await request.body()).decode()
    gateway = get_gateway()
    if not gateway.verify_webhook_signature(payload, request.headers):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    event = gateway.parse_webhook(payload)
    # The write guard is a thread lock; wait for it off the event loop
    payment_status = await run_in_threadpool(
        dispatch,
        ProcessPaymentWebhook(
            status=event.status,
            charge_id=event.charge_id,
            source_id=event.source_id,
            failure_reason=event.failure_reason,
        ),
    )
    return StatusResponse(status=payment_status)


@payment_router.post("/orders/{order_id}/acknowledge", response_model=StatusResponse)
def acknowledge_qr_payment(order_id: str) -> StatusResponse:
    """Record the buyer's "I have paid". The order stays pending until the gateway confirms."""
    dispatch(AcknowledgeQrPayment(order_id=order_id))
    return StatusResponse(status="acknowledged")


@payment_router.post("/reconcile", response_model=ReconcileResponse)
def reconcile(body: ReconcileRequest) -> ReconcileResponse:
    report = reconcile_unresolved_payments(max_age=timedelta(minutes=body.max_age_minutes))
    return ReconcileResponse(
        confirmed=report.confirmed,
        cancelled=report.cancelled,
        still_unresolved=report.still_unresolved,
    )


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only)."""
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        available=body.available,
        requires_authorization=body.requires_authorization,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
        available=gateway.available,
        requires_authorization=gateway.requires_authorization,
    )


# ---------------------------------------------------------------------------
# Seller Router
# ---------------------------------------------------------------------------
seller_router = APIRouter(prefix="/sellers", tags=["sellers"])


@seller_router.get("/{store_id}/sales", response_model=SellerSalesResponse)
async def sales_report(store_id: str) -> SellerSalesResponse:
    report = seller_sales(store_id)
    return SellerSalesResponse(
        store_id=report.store_id,
        order_count=report.order_count,
        total_sales=report.total_sales,
        total_fees=report.total_fees,
        net_payout=report.net_payout,
        lines=[
            SoldLineResponse(
                order_id=line.order_id,
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                fee_rate=line.fee_rate,
                gross=line.gross,
                fee=line.fee,
                net=line.net,
                order_status=line.order_status,
            )
            for line in report.lines
        ],
    )
