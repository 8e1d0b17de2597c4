# Overview: Inventory ledger operations; products, variants and their stock counts.

"""
Inventory Invariants (authoritative)

- Every variant satisfies 0 <= sold_quantity <= total_quantity. Requests that
  would break this are rejected (InvariantViolation), never clamped.
- total_quantity grows with add_stock and may be set explicitly, but never
  below what has already been sold.
- A variant with sales cannot be removed; a product always keeps at least
  one variant.
- Products are soft-deleted (status=DELETED); variants and sales are kept so
  historical figures still resolve.

All mutations go through the repository's atomic primitives so a concurrent
sale cannot slip in between the check and the write.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable

from ..domain import ONE_SIZE_LABEL, Product, ProductStatus, Variant, normalize_label
from ..repositories.base import Repository
from ..time_utils import utcnow
from ..validation import (
    InvariantViolation,
    MAX_LABEL_LENGTH,
    ValidationError,
    coerce_date,
    coerce_int,
    coerce_money,
    coerce_quantity,
    optional_text,
    require_text,
)

logger = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = {"name", "purchase_price", "purchase_date", "notes", "image_ref"}


def _build_variants(variants: Iterable[dict] | None, quantity: Any) -> list[Variant]:
    specs = list(variants or [])
    if not specs:
        if quantity is None:
            raise ValidationError("At least one variant (or a quantity) is required")
        specs = [{"label": ONE_SIZE_LABEL, "quantity": quantity}]

    built: list[Variant] = []
    seen: set[str] = set()
    for entry in specs:
        label = require_text(entry.get("label"), "variant label", max_length=MAX_LABEL_LENGTH)
        key = normalize_label(label)
        if key in seen:
            raise ValidationError(f"Duplicate variant label {label!r}", details={"label": label})
        seen.add(key)
        qty = coerce_quantity(entry.get("quantity"), "variant quantity")
        built.append(Variant(id=None, product_id=None, label=label, total_quantity=qty))
    return built


def create_product(
    repo: Repository,
    user_id: str,
    *,
    name: Any,
    purchase_price: Any,
    purchase_date: Any,
    notes: Any = None,
    image_ref: Any = None,
    variants: Iterable[dict] | None = None,
    quantity: Any = None,
) -> Product:
    """
    Create a product together with its variants.

    variants is a list of {"label", "quantity"} dicts. When it is empty a
    fallback quantity creates a single "One Size" variant.

    Raises:
        ValidationError: empty name, purchase_price <= 0, no variants and no
            fallback quantity, blank/duplicate labels, quantity < 1
    """
    product = Product(
        id=None,
        user_id=user_id,
        name=require_text(name, "name"),
        purchase_price=coerce_money(purchase_price, "purchase_price"),
        purchase_date=coerce_date(purchase_date, "purchase_date"),
        notes=optional_text(notes),
        image_ref=optional_text(image_ref),
        created_at=utcnow(),
        variants=_build_variants(variants, quantity),
    )
    created = repo.persist_product(product)
    logger.info(
        "product %s created for user %s with %d variant(s)",
        created.id, user_id, len(created.variants),
    )
    return created


def get_product(repo: Repository, user_id: str, product_id: int) -> Product:
    return repo.get_product(user_id, product_id)


def list_products(repo: Repository, user_id: str, *, include_deleted: bool = False) -> list[Product]:
    return repo.load_products(user_id, include_deleted=include_deleted)


def update_product(repo: Repository, user_id: str, product_id: int, patch: dict) -> Product:
    """
    Update descriptive fields (name, purchase_price, purchase_date, notes,
    image_ref). Variants and sales are never touched here.
    """
    product = repo.get_product(user_id, product_id)
    unknown = set(patch) - PRODUCT_MUTABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown or read-only fields: {', '.join(sorted(unknown))}")

    if "name" in patch:
        product.name = require_text(patch["name"], "name")
    if "purchase_price" in patch:
        product.purchase_price = coerce_money(patch["purchase_price"], "purchase_price")
    if "purchase_date" in patch:
        product.purchase_date = coerce_date(patch["purchase_date"], "purchase_date")
    if "notes" in patch:
        product.notes = optional_text(patch["notes"])
    if "image_ref" in patch:
        product.image_ref = optional_text(patch["image_ref"])

    updated = repo.persist_product(product)
    logger.info("product %s updated fields: %s", product_id, ", ".join(sorted(patch)))
    return updated


def soft_delete_product(repo: Repository, user_id: str, product_id: int) -> Product:
    """Mark a product DELETED. Idempotent; a second call changes nothing."""
    product = repo.get_product(user_id, product_id)
    if product.status is ProductStatus.DELETED:
        return product

    product.status = ProductStatus.DELETED
    product.deleted_at = utcnow()
    deleted = repo.persist_product(product)
    logger.info("product %s soft-deleted", product_id)
    return deleted


def add_variant(repo: Repository, user_id: str, product_id: int, *, label: Any, quantity: Any) -> Variant:
    """Add a new size to an existing product."""
    product = repo.get_product(user_id, product_id)
    clean_label = require_text(label, "variant label", max_length=MAX_LABEL_LENGTH)
    qty = coerce_quantity(quantity, "variant quantity")

    key = normalize_label(clean_label)
    if any(normalize_label(v.label) == key for v in product.variants):
        raise ValidationError(
            f"Variant {clean_label!r} already exists for this product",
            details={"product_id": product_id, "label": clean_label},
        )

    variant = repo.persist_variant(
        user_id,
        Variant(id=None, product_id=product.id, label=clean_label, total_quantity=qty),
    )
    logger.info("variant %s (%s) added to product %s", variant.id, variant.label, product_id)
    return variant


def add_stock(repo: Repository, user_id: str, variant_id: int, delta: Any) -> Variant:
    """Increase total_quantity by delta (> 0)."""
    amount = coerce_quantity(delta, "delta")

    def _mutate(variant: Variant) -> None:
        variant.total_quantity += amount

    variant = repo.update_variant(user_id, variant_id, _mutate)
    logger.info("variant %s stock +%d -> total %d", variant_id, amount, variant.total_quantity)
    return variant


def set_variant_total(repo: Repository, user_id: str, variant_id: int, new_total: Any) -> Variant:
    """
    Set total_quantity explicitly.

    Raises:
        ValidationError: new_total < 0
        InvariantViolation: new_total < sold_quantity (state unchanged)
    """
    total = coerce_int(new_total, "total_quantity")
    if total < 0:
        raise ValidationError("total_quantity must be zero or more", details={"total_quantity": total})

    def _mutate(variant: Variant) -> None:
        if total < variant.sold_quantity:
            logger.warning(
                "rejected total %d for variant %s: %d already sold",
                total, variant.id, variant.sold_quantity,
            )
            raise InvariantViolation(
                f"Cannot set total of variant {variant.id} ({variant.label}) to {total}: "
                f"{variant.sold_quantity} already sold",
                details={
                    "variant_id": variant.id,
                    "label": variant.label,
                    "requested_total": total,
                    "sold_quantity": variant.sold_quantity,
                },
            )
        variant.total_quantity = total

    return repo.update_variant(user_id, variant_id, _mutate)


def remove_variant(repo: Repository, user_id: str, variant_id: int) -> None:
    """
    Remove a size from a product.

    Both checks run inside the repository's delete, against the product's
    current variants.

    Raises:
        InvariantViolation: the variant has sales, or it is the product's last variant
    """
    def _guard(product: Product, variant: Variant) -> None:
        if len(product.variants) <= 1:
            logger.warning("rejected removal of variant %s: last variant of product %s", variant.id, product.id)
            raise InvariantViolation(
                "A product must keep at least one variant",
                details={"product_id": product.id, "variant_id": variant.id},
            )
        if variant.sold_quantity > 0:
            logger.warning("rejected removal of variant %s with %d sold", variant.id, variant.sold_quantity)
            raise InvariantViolation(
                f"Cannot remove variant {variant.id} ({variant.label}): "
                f"{variant.sold_quantity} of {variant.total_quantity} sold",
                details={
                    "variant_id": variant.id,
                    "label": variant.label,
                    "total_quantity": variant.total_quantity,
                    "sold_quantity": variant.sold_quantity,
                },
            )

    repo.delete_variant(user_id, variant_id, guard=_guard)
    logger.info("variant %s removed", variant_id)
