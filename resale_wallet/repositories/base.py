"""
Abstract persistence collaborator.

Every method is scoped to a user id; ids belonging to another user behave
exactly like ids that do not exist (NotFoundError).

Atomic primitives:
- update_variant(): load -> mutate (may raise) -> write, indivisible with
  respect to other mutations of the same variant.
- record_sale(): availability check + sold_quantity increment + sale append,
  indivisible with respect to other sales on the same variant.
Both leave no trace when they raise.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable

from ..domain import Product, Sale, UserSettings, Variant
from ..validation import InsufficientStockError, InvariantViolation


VariantMutation = Callable[[Variant], None]
# (owning product with all current variants, variant being removed)
VariantGuard = Callable[[Product, Variant], None]


def check_variant_invariant(variant: Variant) -> None:
    """Raise InvariantViolation unless 0 <= sold <= total."""
    if variant.total_quantity < 0 or variant.sold_quantity < 0:
        raise InvariantViolation(
            f"Variant {variant.id} quantities must not be negative",
            details={
                "variant_id": variant.id,
                "total_quantity": variant.total_quantity,
                "sold_quantity": variant.sold_quantity,
            },
        )
    if variant.sold_quantity > variant.total_quantity:
        raise InvariantViolation(
            f"Variant {variant.id} ({variant.label}) would have sold {variant.sold_quantity} "
            f"of only {variant.total_quantity}",
            details={
                "variant_id": variant.id,
                "label": variant.label,
                "total_quantity": variant.total_quantity,
                "sold_quantity": variant.sold_quantity,
            },
        )


def check_available(variant: Variant, quantity: int) -> None:
    if quantity > variant.available_quantity:
        raise InsufficientStockError(
            f"Only {variant.available_quantity} of variant {variant.id} ({variant.label}) available",
            details={
                "variant_id": variant.id,
                "label": variant.label,
                "requested_quantity": quantity,
                "available_quantity": variant.available_quantity,
            },
        )


class Repository(ABC):
    """One interface, two implementations: SqlRepository and InMemoryRepository."""

    # -- reads --------------------------------------------------------------

    @abstractmethod
    def load_products(self, user_id: str, *, include_deleted: bool = True) -> list[Product]:
        """Products (with variants) owned by user_id, newest first."""

    @abstractmethod
    def load_sales(self, user_id: str) -> list[Sale]:
        """
        All sales on variants of products owned by user_id, newest first.

        Raises CapabilityUnavailableError like load_sales_between.
        """

    @abstractmethod
    def load_sales_between(self, user_id: str, start: datetime, end: datetime) -> list[Sale]:
        """
        Sales with start <= sold_at < end.

        May raise CapabilityUnavailableError when the store cannot serve sale
        history (callers that can degrade gracefully catch it).
        """

    @abstractmethod
    def load_user_settings(self, user_id: str) -> UserSettings:
        """Settings for user_id; defaults when none were persisted."""

    @abstractmethod
    def get_product(self, user_id: str, product_id: int) -> Product:
        """Raise NotFoundError if missing or owned by another user."""

    @abstractmethod
    def get_variant(self, user_id: str, variant_id: int) -> tuple[Product, Variant]:
        """Owning product and the variant; NotFoundError if missing."""

    # -- writes -------------------------------------------------------------

    @abstractmethod
    def persist_product(self, product: Product) -> Product:
        """
        Insert (id is None) or update a product's descriptive fields and status.

        On insert, variants attached to the product are inserted too. On
        update, variants are left untouched; use persist_variant/update_variant.
        """

    @abstractmethod
    def persist_variant(self, user_id: str, variant: Variant) -> Variant:
        """Insert a new variant into an existing product owned by user_id."""

    @abstractmethod
    def delete_variant(self, user_id: str, variant_id: int, *, guard: VariantGuard | None = None) -> None:
        """
        Remove a variant. guard sees the product with its current siblings and
        may raise to abort; check and delete are indivisible with respect to
        other deletes on the same product.
        """

    @abstractmethod
    def update_variant(self, user_id: str, variant_id: int, mutate: VariantMutation) -> Variant:
        """Apply mutate() to the variant atomically and persist the result."""

    @abstractmethod
    def persist_sale(self, user_id: str, sale: Sale) -> Sale:
        """
        Append a sale record without touching variant counts.

        Only for importing history whose counts were already persisted;
        new sales go through record_sale().
        """

    @abstractmethod
    def record_sale(self, user_id: str, sale: Sale) -> Sale:
        """Atomic check + increment + append; InsufficientStockError leaves no trace."""

    @abstractmethod
    def persist_user_settings(self, settings: UserSettings) -> UserSettings:
        """Insert or replace settings for settings.user_id."""
