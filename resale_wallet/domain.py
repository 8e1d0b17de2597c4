"""
Domain entities shared by both repositories and all services.

Invariants (authoritative):
- Every Variant satisfies 0 <= sold_quantity <= total_quantity.
- For every Variant, sum(sale.quantity for its sales) == sold_quantity.
- Sales are append-only and reference their Variant by id only.
- A Product is ACTIVE or DELETED; DELETED products keep their variants and
  sales for historical figures but drop out of active views.

Money is held as Decimal quantized to cents. Datetimes are UTC-naive.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from resale_wallet.time_utils import to_iso_date, to_utc_z

ONE_SIZE_LABEL = "One Size"

ZERO = Decimal("0.00")


def format_money(amount: Decimal | None) -> str | None:
    if amount is None:
        return None
    return str(amount.quantize(Decimal("0.01")))


def normalize_label(label: str) -> str:
    """Key used for label uniqueness within a product."""
    return " ".join(label.split()).casefold()


class ProductStatus(str, Enum):
    ACTIVE = "ACTIVE"
    DELETED = "DELETED"


@dataclass
class Variant:
    id: int | None
    product_id: int | None
    label: str
    total_quantity: int
    sold_quantity: int = 0

    @property
    def available_quantity(self) -> int:
        return self.total_quantity - self.sold_quantity

    def copy(self) -> "Variant":
        return replace(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "label": self.label,
            "total_quantity": self.total_quantity,
            "sold_quantity": self.sold_quantity,
            "available_quantity": self.available_quantity,
        }


@dataclass
class Product:
    id: int | None
    user_id: str
    name: str
    purchase_price: Decimal
    purchase_date: date
    notes: str | None = None
    image_ref: str | None = None
    created_at: datetime | None = None
    status: ProductStatus = ProductStatus.ACTIVE
    deleted_at: datetime | None = None
    variants: list[Variant] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status is ProductStatus.ACTIVE

    def variant(self, variant_id: int) -> Variant | None:
        for v in self.variants:
            if v.id == variant_id:
                return v
        return None

    def copy(self) -> "Product":
        return replace(self, variants=[v.copy() for v in self.variants])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "purchase_price": format_money(self.purchase_price),
            "purchase_date": to_iso_date(self.purchase_date),
            "notes": self.notes,
            "image_ref": self.image_ref,
            "created_at": to_utc_z(self.created_at),
            "status": self.status.value,
            "deleted_at": to_utc_z(self.deleted_at),
            "variants": [v.to_dict() for v in self.variants],
        }


@dataclass
class Sale:
    id: int | None
    variant_id: int
    sale_price: Decimal
    quantity: int
    sold_at: datetime
    notes: str | None = None

    @property
    def revenue(self) -> Decimal:
        return self.sale_price * self.quantity

    def copy(self) -> "Sale":
        return replace(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "variant_id": self.variant_id,
            "sale_price": format_money(self.sale_price),
            "quantity": self.quantity,
            "revenue": format_money(self.revenue),
            "sold_at": to_utc_z(self.sold_at),
            "notes": self.notes,
        }


@dataclass
class UserSettings:
    user_id: str
    starting_budget: Decimal = ZERO

    def copy(self) -> "UserSettings":
        return replace(self)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "starting_budget": format_money(self.starting_budget),
        }
