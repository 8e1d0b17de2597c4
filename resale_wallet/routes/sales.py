# Overview: Flask API routes for recording and listing sales.

from flask import Blueprint, request, g

from ..decorators import require_user
from ..repositories import get_repository
from ..services import sales_service
from ..services.return_service import sale_return_deadline
from ..time_utils import today
from . import json_payload

sales_bp = Blueprint("sales", __name__, url_prefix="/api")


@sales_bp.post("/variants/<int:variant_id>/sales")
@require_user
def record_sale_route(variant_id: int):
    """
    Record a sale against a variant.

    Body: sale_price (> 0), quantity (default 1), notes?, sold_at? (ISO-8601, default now)

    Returns 409 with available_quantity in details when stock is insufficient.
    """
    payload = json_payload()

    sale = sales_service.record_sale(
        get_repository(),
        g.user_id,
        variant_id,
        sale_price=payload.get("sale_price"),
        quantity=payload.get("quantity", 1),
        notes=payload.get("notes"),
        sold_at=payload.get("sold_at"),
    )
    return sale.to_dict(), 201


@sales_bp.get("/sales")
@require_user
def list_sales_route():
    """
    List sales newest first, each with its buyer return deadline.

    Query params:
    - product_id: int (optional) - only sales of this product's variants
    """
    product_id = request.args.get("product_id", type=int)
    sales = sales_service.list_sales(get_repository(), g.user_id, product_id=product_id)
    as_of = today()
    return {
        "items": [
            {**s.to_dict(), "return_deadline": sale_return_deadline(s.sold_at, as_of).to_dict()}
            for s in sales
        ],
        "count": len(sales),
    }
