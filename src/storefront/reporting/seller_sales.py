"""Seller sales report: gross, platform fee and net payout per store.

Every line a store sold in a non-cancelled order counts, priced at the unit
price frozen on the order line. Fees come from the fee calculator, one rate
per line.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from protean.utils.globals import current_domain

from storefront.fees.calculator import line_revenue
from storefront.order.order import Order, OrderStatus


@dataclass(frozen=True)
class SoldLine:
    order_id: str
    product_id: str
    quantity: int
    unit_price: Decimal
    fee_rate: Decimal
    gross: Decimal
    fee: Decimal
    net: Decimal
    order_status: str
    ordered_at: datetime | None


@dataclass
class SellerSalesReport:
    store_id: str
    lines: list[SoldLine] = field(default_factory=list)

    @property
    def total_sales(self) -> Decimal:
        return sum((line.gross for line in self.lines), Decimal("0.00"))

    @property
    def total_fees(self) -> Decimal:
        return sum((line.fee for line in self.lines), Decimal("0.00"))

    @property
    def net_payout(self) -> Decimal:
        return sum((line.net for line in self.lines), Decimal("0.00"))

    @property
    def order_count(self) -> int:
        return len({line.order_id for line in self.lines})


def seller_sales(store_id) -> SellerSalesReport:
    # TODO: read from a projection keyed by store_id once order volume makes the full scan noticeable
    store_id = str(store_id)
    report = SellerSalesReport(store_id=store_id)

    orders = current_domain.repository_for(Order).all_orders()
    for order in sorted(orders, key=lambda o: o.created_at):
        if order.status == OrderStatus.CANCELLED.value:
            continue
        for line in order.lines:
            if str(line.store_id) != store_id:
                continue
            revenue = line_revenue(line.quantity, line.unit_price)
            report.lines.append(
                SoldLine(
                    order_id=str(order.id),
                    product_id=str(line.product_id),
                    quantity=line.quantity,
                    unit_price=revenue.unit_price,
                    fee_rate=revenue.rate,
                    gross=revenue.gross,
                    fee=revenue.fee,
                    net=revenue.net,
                    order_status=order.status,
                    ordered_at=order.created_at,
                )
            )

    return report
