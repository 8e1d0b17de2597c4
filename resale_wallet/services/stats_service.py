# Overview: Point-in-time financial summary; pure recomputation from a snapshot.

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from ..domain import ZERO, Product, Sale, UserSettings, format_money
from ..repositories.base import Repository
from ..validation import CapabilityUnavailableError
from .period_service import PeriodNavigator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Stats:
    starting_budget: Decimal
    total_invested: Decimal
    total_earned: Decimal
    inventory_value: Decimal
    total_products: int
    total_items_sold: int
    total_items_available: int
    # False when the store cannot serve sale history; earned figures are then 0
    sales_available: bool = True

    @property
    def net_profit(self) -> Decimal:
        """Earned revenue minus the cost basis of stock no longer on hand."""
        return self.total_earned - (self.total_invested - self.inventory_value)

    @property
    def wallet_balance(self) -> Decimal:
        """Starting capital, minus all inventory spend, plus all revenue."""
        return self.starting_budget - self.total_invested + self.total_earned

    @property
    def sell_through_rate(self) -> Decimal | None:
        stocked = self.total_items_sold + self.total_items_available
        if stocked == 0:
            return None
        return Decimal(self.total_items_sold) / Decimal(stocked)

    @property
    def profit_margin(self) -> Decimal | None:
        if self.total_invested == 0:
            return None
        return self.net_profit / self.total_invested

    def to_dict(self) -> dict:
        return {
            "starting_budget": format_money(self.starting_budget),
            "total_invested": format_money(self.total_invested),
            "total_earned": format_money(self.total_earned),
            "inventory_value": format_money(self.inventory_value),
            "net_profit": format_money(self.net_profit),
            "wallet_balance": format_money(self.wallet_balance),
            "total_products": self.total_products,
            "total_items_sold": self.total_items_sold,
            "total_items_available": self.total_items_available,
            "sell_through_rate": _ratio(self.sell_through_rate),
            "profit_margin": _ratio(self.profit_margin),
            "sales_available": self.sales_available,
        }


@dataclass(frozen=True)
class ProductSummary:
    product: Product
    units_sold: int
    units_available: int
    revenue: Decimal
    average_sale_price: Decimal | None

    @property
    def realized_profit(self) -> Decimal:
        return self.revenue - self.product.purchase_price * self.units_sold

    def to_dict(self) -> dict:
        return {
            "product_id": self.product.id,
            "units_sold": self.units_sold,
            "units_available": self.units_available,
            "revenue": format_money(self.revenue),
            "average_sale_price": format_money(self.average_sale_price),
            "realized_profit": format_money(self.realized_profit),
        }


def _ratio(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return str(value.quantize(Decimal("0.0001")))


def compute_stats(
    products: Iterable[Product],
    sales: Iterable[Sale],
    settings: UserSettings,
    *,
    sales_available: bool = True,
) -> Stats:
    """
    Aggregate a snapshot of one user's products, sales and settings.

    Variant-based figures count active products only. total_earned sums every
    sale, including sales of products that were soft-deleted afterwards.
    """
    total_invested = ZERO
    inventory_value = ZERO
    total_products = 0
    items_sold = 0
    items_available = 0

    for product in products:
        if not product.is_active:
            continue
        total_products += 1
        for v in product.variants:
            total_invested += v.total_quantity * product.purchase_price
            inventory_value += v.available_quantity * product.purchase_price
            items_sold += v.sold_quantity
            items_available += v.available_quantity

    total_earned = sum((s.revenue for s in sales), ZERO)

    return Stats(
        starting_budget=settings.starting_budget,
        total_invested=total_invested,
        total_earned=total_earned,
        inventory_value=inventory_value,
        total_products=total_products,
        total_items_sold=items_sold,
        total_items_available=items_available,
        sales_available=sales_available,
    )


def average_sale_price(product: Product, sales: Iterable[Sale]) -> Decimal | None:
    """Quantity-weighted mean sale price over the product's sales; None without sales."""
    variant_ids = {v.id for v in product.variants}
    revenue = ZERO
    units = 0
    for s in sales:
        if s.variant_id in variant_ids:
            revenue += s.revenue
            units += s.quantity
    if units == 0:
        return None
    return (revenue / units).quantize(Decimal("0.01"))


def product_summaries(products: Iterable[Product], sales: Iterable[Sale]) -> dict[int, ProductSummary]:
    """Per-product unit counts, revenue and average sale price, keyed by product id."""
    sales = list(sales)
    summaries: dict[int, ProductSummary] = {}
    for product in products:
        variant_ids = {v.id for v in product.variants}
        own_sales = [s for s in sales if s.variant_id in variant_ids]
        summaries[product.id] = ProductSummary(
            product=product,
            units_sold=sum(v.sold_quantity for v in product.variants),
            units_available=sum(v.available_quantity for v in product.variants),
            revenue=sum((s.revenue for s in own_sales), ZERO),
            average_sale_price=average_sale_price(product, own_sales),
        )
    return summaries


def load_sales_or_empty(repo: Repository, user_id: str) -> tuple[list[Sale], bool]:
    """Sale history, or ([], False) when the store cannot serve it."""
    try:
        return repo.load_sales(user_id), True
    except CapabilityUnavailableError as exc:
        logger.warning("sale history unavailable for user %s: %s", user_id, exc.message)
        return [], False


def get_overview_stats(repo: Repository, user_id: str) -> Stats:
    products = repo.load_products(user_id, include_deleted=True)
    sales, sales_available = load_sales_or_empty(repo, user_id)
    settings = repo.load_user_settings(user_id)
    return compute_stats(products, sales, settings, sales_available=sales_available)


def get_dashboard(repo: Repository, user_id: str, *, offsets: dict | None = None, today: date | None = None) -> dict:
    """
    Overview stats plus the three period tuples.

    Period figures degrade to "no data" on their own; the overview is
    computed independently so it stays available either way.
    """
    stats = get_overview_stats(repo, user_id)
    navigator = PeriodNavigator(repo, user_id, today=today, offsets=offsets)
    return {
        "stats": stats.to_dict(),
        "periods": {pt.value: earnings.to_dict() for pt, earnings in navigator.all().items()},
    }
