from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..domain import Product as ProductEntity, ProductStatus, Variant as VariantEntity


def to_cents(amount: Decimal) -> int:
    return int((amount * 100).to_integral_value())


def from_cents(cents: int | None) -> Decimal:
    return (Decimal(cents or 0) / 100).quantize(Decimal("0.01"))


class Product(db.Model):
    """
    A purchase of resale stock.

    Authoritative money storage is integer cents; the domain layer sees Decimal.
    Soft delete is the status column (ACTIVE/DELETED); deleted_at records when.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_user_status", "user_id", "status"),
        db.Index("ix_products_user_created", "user_id", "created_at"),
        db.CheckConstraint("purchase_price_cents >= 0", name="ck_products_price_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    purchase_price_cents = db.Column(db.Integer, nullable=False)
    purchase_date = db.Column(db.Date, nullable=False)
    notes = db.Column(db.Text, nullable=True)
    image_ref = db.Column(db.String(1024), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=ProductStatus.ACTIVE.value, index=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    variants = db.relationship(
        "ProductVariant",
        backref="product",
        lazy="selectin",
        order_by="ProductVariant.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} user_id={self.user_id!r} status={self.status}>"

    def apply(self, entity: ProductEntity) -> None:
        self.user_id = entity.user_id
        self.name = entity.name
        self.purchase_price_cents = to_cents(entity.purchase_price)
        self.purchase_date = entity.purchase_date
        self.notes = entity.notes
        self.image_ref = entity.image_ref
        self.status = entity.status.value
        self.deleted_at = entity.deleted_at
        if entity.created_at is not None:
            self.created_at = entity.created_at

    def to_entity(self) -> ProductEntity:
        return ProductEntity(
            id=self.id,
            user_id=self.user_id,
            name=self.name,
            purchase_price=from_cents(self.purchase_price_cents),
            purchase_date=self.purchase_date,
            notes=self.notes,
            image_ref=self.image_ref,
            created_at=self.created_at,
            status=ProductStatus(self.status),
            deleted_at=self.deleted_at,
            variants=[v.to_entity() for v in self.variants],
        )


class ProductVariant(db.Model):
    """
    One stock-keeping unit (size) of a product.

    The CHECK constraints mirror the service-level invariant so a bug in the
    application layer can never persist an oversold row.
    """
    __tablename__ = "product_variants"
    __table_args__ = (
        db.UniqueConstraint("product_id", "label_key", name="uq_variants_product_label"),
        db.CheckConstraint("total_quantity >= 0", name="ck_variants_total_nonneg"),
        db.CheckConstraint("sold_quantity >= 0", name="ck_variants_sold_nonneg"),
        db.CheckConstraint("sold_quantity <= total_quantity", name="ck_variants_sold_le_total"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    label = db.Column(db.String(64), nullable=False)
    # casefolded, whitespace-collapsed label for uniqueness
    label_key = db.Column(db.String(64), nullable=False)

    total_quantity = db.Column(db.Integer, nullable=False, default=0)
    sold_quantity = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return (
            f"<ProductVariant id={self.id} product_id={self.product_id} label={self.label!r} "
            f"total={self.total_quantity} sold={self.sold_quantity}>"
        )

    def to_entity(self) -> VariantEntity:
        return VariantEntity(
            id=self.id,
            product_id=self.product_id,
            label=self.label,
            total_quantity=self.total_quantity,
            sold_quantity=self.sold_quantity,
        )
