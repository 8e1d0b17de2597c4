"""
Flask-SQLAlchemy backed repository.

Concurrency:
- record_sale is a single conditional UPDATE (compare-and-set on available
  stock) plus the sale INSERT in one transaction; two sales racing for the
  last unit cannot both match the WHERE clause.
- Other variant mutations lock the row (SELECT ... FOR UPDATE where the
  dialect supports it) and rely on version_id optimistic locking; a racing
  sale bumps version_id, so a stale write raises StaleDataError and is
  retried against fresh counts by run_in_transaction.
- delete_variant also locks and re-versions the owning product, so the
  sibling count its guard sees cannot change before the delete commits.

Every public write commits once at the end or rolls back entirely.
"""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import inspect, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..domain import Product, ProductStatus, Sale, UserSettings, Variant, normalize_label
from ..extensions import db
from ..models import (
    Product as ProductRow,
    ProductVariant as VariantRow,
    Sale as SaleRow,
    UserSettings as UserSettingsRow,
    to_cents,
)
from ..services.concurrency import lock_for_update, run_in_transaction
from ..time_utils import utcnow
from ..validation import CapabilityUnavailableError, NotFoundError, ValidationError
from .base import Repository, VariantGuard, VariantMutation, check_available, check_variant_invariant

logger = logging.getLogger(__name__)


class SqlRepository(Repository):
    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def _write(self, op, label: str):
        """Run op in its own transaction, with retry on lock/version conflicts."""
        return run_in_transaction(op, session=self.session, label=label)

    def _product_query(self, user_id: str):
        return self.session.query(ProductRow).filter(ProductRow.user_id == user_id)

    def _variant_query(self, user_id: str, variant_id: int):
        return (
            self.session.query(VariantRow)
            .join(ProductRow, VariantRow.product_id == ProductRow.id)
            .filter(VariantRow.id == variant_id, ProductRow.user_id == user_id)
        )

    def _sales_query(self, user_id: str):
        return (
            self.session.query(SaleRow)
            .join(VariantRow, SaleRow.variant_id == VariantRow.id)
            .join(ProductRow, VariantRow.product_id == ProductRow.id)
            .filter(ProductRow.user_id == user_id)
        )

    def _has_sales_table(self) -> bool:
        return inspect(self.session.get_bind()).has_table(SaleRow.__tablename__)

    # -- reads --------------------------------------------------------------

    def load_products(self, user_id: str, *, include_deleted: bool = True) -> list[Product]:
        query = self._product_query(user_id)
        if not include_deleted:
            query = query.filter(ProductRow.status == ProductStatus.ACTIVE.value)
        rows = query.order_by(ProductRow.created_at.desc(), ProductRow.id.desc()).all()
        return [row.to_entity() for row in rows]

    def _require_sales_table(self) -> None:
        if not self._has_sales_table():
            raise CapabilityUnavailableError("Sale history table is not provisioned")

    def load_sales(self, user_id: str) -> list[Sale]:
        self._require_sales_table()
        rows = self._sales_query(user_id).order_by(SaleRow.sold_at.desc(), SaleRow.id.desc()).all()
        return [row.to_entity() for row in rows]

    def load_sales_between(self, user_id: str, start: datetime, end: datetime) -> list[Sale]:
        self._require_sales_table()
        rows = (
            self._sales_query(user_id)
            .filter(SaleRow.sold_at >= start, SaleRow.sold_at < end)
            .order_by(SaleRow.sold_at.desc(), SaleRow.id.desc())
            .all()
        )
        return [row.to_entity() for row in rows]

    def load_user_settings(self, user_id: str) -> UserSettings:
        row = self.session.query(UserSettingsRow).filter_by(user_id=user_id).first()
        return row.to_entity() if row else UserSettings(user_id=user_id)

    def get_product(self, user_id: str, product_id: int) -> Product:
        row = self._product_query(user_id).filter(ProductRow.id == product_id).first()
        if row is None:
            raise NotFoundError("Product not found", details={"product_id": product_id})
        return row.to_entity()

    def get_variant(self, user_id: str, variant_id: int) -> tuple[Product, Variant]:
        row = self._variant_query(user_id, variant_id).first()
        if row is None:
            raise NotFoundError("Variant not found", details={"variant_id": variant_id})
        return row.product.to_entity(), row.to_entity()

    # -- writes -------------------------------------------------------------

    def persist_product(self, product: Product) -> Product:
        if product.id is None:
            return self._write(lambda: self._insert_product(product), "insert_product")
        return self._write(lambda: self._update_product(product), "update_product")

    def _insert_product(self, product: Product) -> Product:
        for v in product.variants:
            check_variant_invariant(v)

        row = ProductRow()
        row.apply(product)
        self.session.add(row)
        self.session.flush()  # ensure row.id exists before variants reference it

        for v in product.variants:
            self.session.add(VariantRow(
                product_id=row.id,
                label=v.label,
                label_key=normalize_label(v.label),
                total_quantity=v.total_quantity,
                sold_quantity=v.sold_quantity,
            ))
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise ValidationError("Variant labels must be unique per product") from exc

        self.session.commit()
        return row.to_entity()

    def _update_product(self, product: Product) -> Product:
        row = lock_for_update(
            self._product_query(product.user_id).filter(ProductRow.id == product.id)
        ).populate_existing().first()
        if row is None:
            raise NotFoundError("Product not found", details={"product_id": product.id})
        row.apply(product)
        self.session.commit()
        return row.to_entity()

    def persist_variant(self, user_id: str, variant: Variant) -> Variant:
        def _op():
            check_variant_invariant(variant)
            product = self._product_query(user_id).filter(ProductRow.id == variant.product_id).first()
            if product is None:
                raise NotFoundError("Product not found", details={"product_id": variant.product_id})
            row = VariantRow(
                product_id=product.id,
                label=variant.label,
                label_key=normalize_label(variant.label),
                total_quantity=variant.total_quantity,
                sold_quantity=variant.sold_quantity,
            )
            self.session.add(row)
            try:
                self.session.flush()
            except IntegrityError as exc:
                raise ValidationError(
                    f"Variant {variant.label!r} already exists for this product",
                    details={"product_id": product.id, "label": variant.label},
                ) from exc
            self.session.commit()
            return row.to_entity()

        return self._write(_op, "persist_variant")

    def _lock_variant(self, user_id: str, variant_id: int) -> VariantRow:
        row = lock_for_update(self._variant_query(user_id, variant_id)).populate_existing().first()
        if row is None:
            raise NotFoundError("Variant not found", details={"variant_id": variant_id})
        return row

    def delete_variant(self, user_id: str, variant_id: int, *, guard: VariantGuard | None = None) -> None:
        def _op():
            row = self._lock_variant(user_id, variant_id)
            product_row = lock_for_update(
                self._product_query(user_id).filter(ProductRow.id == row.product_id)
            ).populate_existing().first()
            if guard is not None:
                siblings = (
                    self.session.query(VariantRow)
                    .filter(VariantRow.product_id == product_row.id)
                    .order_by(VariantRow.id)
                    .all()
                )
                product = product_row.to_entity()
                product.variants = [v.to_entity() for v in siblings]
                guard(product, row.to_entity())
            # bumps the product's version_id: a concurrent delete of a sibling goes stale and is retried
            product_row.updated_at = utcnow()
            self.session.delete(row)
            self.session.commit()

        self._write(_op, "delete_variant")

    def update_variant(self, user_id: str, variant_id: int, mutate: VariantMutation) -> Variant:
        def _op():
            row = self._lock_variant(user_id, variant_id)
            entity = row.to_entity()
            mutate(entity)
            check_variant_invariant(entity)
            row.label = entity.label
            row.label_key = normalize_label(entity.label)
            row.total_quantity = entity.total_quantity
            row.sold_quantity = entity.sold_quantity
            self.session.commit()
            return row.to_entity()

        return self._write(_op, "update_variant")

    def persist_sale(self, user_id: str, sale: Sale) -> Sale:
        def _op():
            if self._variant_query(user_id, sale.variant_id).first() is None:
                raise NotFoundError("Variant not found", details={"variant_id": sale.variant_id})
            row = self._sale_row(sale)
            self.session.add(row)
            self.session.commit()
            return row.to_entity()

        return self._write(_op, "persist_sale")

    def record_sale(self, user_id: str, sale: Sale) -> Sale:
        def _op():
            if self._variant_query(user_id, sale.variant_id).first() is None:
                raise NotFoundError("Variant not found", details={"variant_id": sale.variant_id})

            result = self.session.execute(
                update(VariantRow)
                .where(
                    VariantRow.id == sale.variant_id,
                    VariantRow.total_quantity - VariantRow.sold_quantity >= sale.quantity,
                )
                .values(
                    sold_quantity=VariantRow.sold_quantity + sale.quantity,
                    version_id=VariantRow.version_id + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                current = self._lock_variant(user_id, sale.variant_id).to_entity()
                check_available(current, sale.quantity)
                # counts changed between the CAS and the re-read; let the retry loop go again
                raise StaleDataError(f"variant {sale.variant_id} changed during sale")

            row = self._sale_row(sale)
            self.session.add(row)
            self.session.commit()
            logger.debug("sale %s committed for variant %s", row.id, sale.variant_id)
            return row.to_entity()

        return self._write(_op, "record_sale")

    def _sale_row(self, sale: Sale) -> SaleRow:
        return SaleRow(
            variant_id=sale.variant_id,
            sale_price_cents=to_cents(sale.sale_price),
            quantity=sale.quantity,
            sold_at=sale.sold_at,
            notes=sale.notes,
        )

    def persist_user_settings(self, settings: UserSettings) -> UserSettings:
        def _op():
            row = self.session.query(UserSettingsRow).filter_by(user_id=settings.user_id).first()
            if row is None:
                row = UserSettingsRow(user_id=settings.user_id)
                self.session.add(row)
            row.starting_budget_cents = to_cents(settings.starting_budget)
            self.session.commit()
            return row.to_entity()

        return self._write(_op, "persist_user_settings")
