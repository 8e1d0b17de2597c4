# Overview: Flask API routes for products and their variants; parses input and returns JSON responses.

"""
Product and variant management routes.

All routes are scoped to g.user_id (set by @require_user). Ids belonging
to another user answer 404 exactly like ids that do not exist.

Domain errors are turned into JSON by routes/errors.py:
- ValidationError -> 400
- NotFoundError -> 404
- InvariantViolation / InsufficientStockError -> 409
"""
from flask import Blueprint, request, g

from ..decorators import require_user
from ..repositories import get_repository
from ..services import inventory_service
from ..services.return_service import has_return_warning, purchase_return_status, sale_return_deadline
from ..services.stats_service import load_sales_or_empty, product_summaries
from ..time_utils import today
from ..validation import ValidationError
from . import json_payload

products_bp = Blueprint("products", __name__, url_prefix="/api")


def _product_view(product, summary, as_of) -> dict:
    data = product.to_dict()
    data["summary"] = summary.to_dict()
    data["return_status"] = purchase_return_status(product.purchase_date, as_of).to_dict()
    data["has_return_warning"] = has_return_warning(product.purchase_date, as_of)
    return data


@products_bp.get("/products")
@require_user
def list_products():
    """
    List the caller's products, newest first.

    Query params:
    - include_deleted: 1/true to include soft-deleted products (default: active only)
    """
    include_deleted = request.args.get("include_deleted", "").lower() in {"1", "true", "yes"}
    repo = get_repository()

    products = inventory_service.list_products(repo, g.user_id, include_deleted=include_deleted)
    sales, _ = load_sales_or_empty(repo, g.user_id)
    summaries = product_summaries(products, sales)
    as_of = today()
    return {
        "items": [_product_view(p, summaries[p.id], as_of) for p in products],
        "count": len(products),
    }


@products_bp.post("/products")
@require_user
def create_product_route():
    """
    Create a product with its variants.

    Body: name, purchase_price, purchase_date, notes?, image_ref?,
          variants: [{label, quantity}] or quantity (single "One Size" variant)
    """
    payload = json_payload()
    variants = payload.get("variants") or []
    if not isinstance(variants, list) or not all(isinstance(v, dict) for v in variants):
        raise ValidationError("variants must be a list of {label, quantity} objects")

    created = inventory_service.create_product(
        get_repository(),
        g.user_id,
        name=payload.get("name"),
        purchase_price=payload.get("purchase_price"),
        purchase_date=payload.get("purchase_date"),
        notes=payload.get("notes"),
        image_ref=payload.get("image_ref"),
        variants=variants,
        quantity=payload.get("quantity"),
    )
    return created.to_dict(), 201


@products_bp.get("/products/<int:product_id>")
@require_user
def get_product_route(product_id: int):
    """Product with variants, summary, purchase return status and its sales."""
    repo = get_repository()
    product = inventory_service.get_product(repo, g.user_id, product_id)
    variant_ids = {v.id for v in product.variants}
    all_sales, _ = load_sales_or_empty(repo, g.user_id)
    sales = [s for s in all_sales if s.variant_id in variant_ids]
    summary = product_summaries([product], sales)[product.id]

    as_of = today()
    data = _product_view(product, summary, as_of)
    data["sales"] = [
        {**s.to_dict(), "return_deadline": sale_return_deadline(s.sold_at, as_of).to_dict()}
        for s in sales
    ]
    return data


@products_bp.put("/products/<int:product_id>")
@require_user
def update_product_route(product_id: int):
    """Update name, purchase_price, purchase_date, notes or image_ref."""
    updated = inventory_service.update_product(get_repository(), g.user_id, product_id, json_payload())
    return updated.to_dict(), 200


@products_bp.delete("/products/<int:product_id>")
@require_user
def delete_product_route(product_id: int):
    """Soft-delete a product (idempotent)."""
    inventory_service.soft_delete_product(get_repository(), g.user_id, product_id)
    return {"ok": True}, 200


@products_bp.post("/products/<int:product_id>/variants")
@require_user
def add_variant_route(product_id: int):
    payload = json_payload()
    variant = inventory_service.add_variant(
        get_repository(),
        g.user_id,
        product_id,
        label=payload.get("label"),
        quantity=payload.get("quantity"),
    )
    return variant.to_dict(), 201


@products_bp.post("/variants/<int:variant_id>/stock")
@require_user
def add_stock_route(variant_id: int):
    """Body: delta (integer > 0)."""
    variant = inventory_service.add_stock(get_repository(), g.user_id, variant_id, json_payload().get("delta"))
    return variant.to_dict(), 200


@products_bp.put("/variants/<int:variant_id>")
@require_user
def set_variant_total_route(variant_id: int):
    """Body: total_quantity (integer >= sold_quantity)."""
    payload = json_payload()
    if "total_quantity" not in payload:
        raise ValidationError("total_quantity is required")
    variant = inventory_service.set_variant_total(
        get_repository(), g.user_id, variant_id, payload["total_quantity"]
    )
    return variant.to_dict(), 200


@products_bp.delete("/variants/<int:variant_id>")
@require_user
def remove_variant_route(variant_id: int):
    inventory_service.remove_variant(get_repository(), g.user_id, variant_id)
    return {"ok": True}, 200
