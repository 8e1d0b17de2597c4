"""
Sales Service - append-only sale recording

Recording a sale appends a Sale and increments the variant's sold_quantity
in one atomic step (repository.record_sale). Nothing is cached: average sale
prices and totals are always recomputed from sale history.
"""
from __future__ import annotations

import logging
from typing import Any

from ..domain import Sale
from ..repositories.base import Repository
from ..time_utils import utcnow
from ..validation import InsufficientStockError, coerce_datetime, coerce_money, coerce_quantity, optional_text

logger = logging.getLogger(__name__)


def record_sale(
    repo: Repository,
    user_id: str,
    variant_id: int,
    *,
    sale_price: Any,
    quantity: Any = 1,
    notes: Any = None,
    sold_at: Any = None,
) -> Sale:
    """
    Sell quantity units of a variant at sale_price each.

    Raises:
        ValidationError: sale_price <= 0 or quantity < 1
        NotFoundError: variant does not exist for user_id
        InsufficientStockError: quantity exceeds available stock; no state change
    """
    sale = Sale(
        id=None,
        variant_id=variant_id,
        sale_price=coerce_money(sale_price, "sale_price"),
        quantity=coerce_quantity(quantity, "quantity"),
        sold_at=coerce_datetime(sold_at, "sold_at") if sold_at is not None else utcnow(),
        notes=optional_text(notes),
    )

    try:
        recorded = repo.record_sale(user_id, sale)
    except InsufficientStockError as exc:
        logger.warning("sale rejected for variant %s: %s", variant_id, exc.message)
        raise

    logger.info(
        "sale %s recorded: variant %s qty %d at %s",
        recorded.id, variant_id, recorded.quantity, recorded.sale_price,
    )
    return recorded


def list_sales(repo: Repository, user_id: str, *, product_id: int | None = None) -> list[Sale]:
    """Sales newest first, optionally limited to one product's variants."""
    sales = repo.load_sales(user_id)
    if product_id is None:
        return sales

    product = repo.get_product(user_id, product_id)
    variant_ids = {v.id for v in product.variants}
    return [s for s in sales if s.variant_id in variant_ids]
