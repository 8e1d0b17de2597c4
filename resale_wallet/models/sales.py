from __future__ import annotations

from ..extensions import db
from ..domain import Sale as SaleEntity
from .inventory import from_cents


class Sale(db.Model):
    """
    Append-only sale record against a variant.

    Rows are never updated or deleted; the variant's sold_quantity is the
    running sum of quantity over its sales.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_variant_sold_at", "variant_id", "sold_at"),
        db.CheckConstraint("quantity >= 1", name="ck_sales_quantity_positive"),
        db.CheckConstraint("sale_price_cents >= 0", name="ck_sales_price_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=False, index=True)

    sale_price_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    sold_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Sale id={self.id} variant_id={self.variant_id} qty={self.quantity} price_cents={self.sale_price_cents}>"

    def to_entity(self) -> SaleEntity:
        return SaleEntity(
            id=self.id,
            variant_id=self.variant_id,
            sale_price=from_cents(self.sale_price_cents),
            quantity=self.quantity,
            sold_at=self.sold_at,
            notes=self.notes,
        )
