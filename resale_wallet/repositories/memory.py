"""
In-process repository.

Used for demo mode and tests. State lives on the instance; nothing is
module-level, so every InMemoryRepository() starts empty.

Locking:
- one lock per variant serializes check-then-act on that variant;
- a short state lock guards the dicts so readers copy a consistent snapshot
  and never observe a sale appended without its sold_quantity increment.
Entities handed out are copies; callers cannot mutate stored state.
"""
from __future__ import annotations

import itertools
import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime

from ..domain import Product, Sale, UserSettings, Variant, normalize_label
from ..time_utils import utcnow
from ..validation import CapabilityUnavailableError, NotFoundError, ValidationError
from .base import Repository, VariantGuard, VariantMutation, check_available, check_variant_invariant

logger = logging.getLogger(__name__)


class InMemoryRepository(Repository):
    def __init__(self, *, sales_history_available: bool = True):
        # False simulates a store whose sale-history capability is not provisioned
        self.sales_history_available = sales_history_available

        self._products: dict[int, Product] = {}
        self._variant_owner: dict[int, int] = {}
        self._sales: list[Sale] = []
        self._settings: dict[str, UserSettings] = {}

        self._product_ids = itertools.count(1)
        self._variant_ids = itertools.count(1)
        self._sale_ids = itertools.count(1)

        self._state_lock = threading.RLock()
        self._registry_lock = threading.Lock()
        self._variant_locks: defaultdict[int, threading.Lock] = defaultdict(threading.Lock)

    @contextmanager
    def _locked_variant(self, variant_id: int):
        with self._registry_lock:
            lock = self._variant_locks[variant_id]
        with lock:
            yield

    def _owned_product(self, user_id: str, product_id: int) -> Product:
        product = self._products.get(product_id)
        if product is None or product.user_id != user_id:
            raise NotFoundError("Product not found", details={"product_id": product_id})
        return product

    def _owned_variant(self, user_id: str, variant_id: int) -> tuple[Product, Variant]:
        product_id = self._variant_owner.get(variant_id)
        product = self._products.get(product_id) if product_id is not None else None
        variant = product.variant(variant_id) if product is not None else None
        if product is None or variant is None or product.user_id != user_id:
            raise NotFoundError("Variant not found", details={"variant_id": variant_id})
        return product, variant

    def _user_variant_ids(self, user_id: str) -> set[int]:
        return {
            variant_id
            for variant_id, product_id in self._variant_owner.items()
            if self._products[product_id].user_id == user_id
        }

    # -- reads --------------------------------------------------------------

    def load_products(self, user_id: str, *, include_deleted: bool = True) -> list[Product]:
        with self._state_lock:
            products = [
                p.copy() for p in self._products.values()
                if p.user_id == user_id and (include_deleted or p.is_active)
            ]
        products.sort(key=lambda p: (p.created_at or datetime.min, p.id), reverse=True)
        return products

    def load_sales(self, user_id: str) -> list[Sale]:
        self._require_sales_history()
        with self._state_lock:
            variant_ids = self._user_variant_ids(user_id)
            sales = [s.copy() for s in self._sales if s.variant_id in variant_ids]
        sales.sort(key=lambda s: (s.sold_at, s.id), reverse=True)
        return sales

    def _require_sales_history(self) -> None:
        if not self.sales_history_available:
            raise CapabilityUnavailableError("Sale history is not available in this store")

    def load_sales_between(self, user_id: str, start: datetime, end: datetime) -> list[Sale]:
        return [s for s in self.load_sales(user_id) if start <= s.sold_at < end]

    def load_user_settings(self, user_id: str) -> UserSettings:
        with self._state_lock:
            settings = self._settings.get(user_id)
            return settings.copy() if settings else UserSettings(user_id=user_id)

    def get_product(self, user_id: str, product_id: int) -> Product:
        with self._state_lock:
            return self._owned_product(user_id, product_id).copy()

    def get_variant(self, user_id: str, variant_id: int) -> tuple[Product, Variant]:
        with self._state_lock:
            product, variant = self._owned_variant(user_id, variant_id)
            return product.copy(), variant.copy()

    # -- writes -------------------------------------------------------------

    def persist_product(self, product: Product) -> Product:
        with self._state_lock:
            if product.id is None:
                stored = product.copy()
                for v in stored.variants:
                    check_variant_invariant(v)
                stored.id = next(self._product_ids)
                if stored.created_at is None:
                    stored.created_at = utcnow()
                for v in stored.variants:
                    v.id = next(self._variant_ids)
                    v.product_id = stored.id
                    self._variant_owner[v.id] = stored.id
                self._products[stored.id] = stored
                return stored.copy()

            current = self._owned_product(product.user_id, product.id)
            updated = product.copy()
            # variants are owned by update_variant/persist_variant/delete_variant
            updated.variants = current.variants
            updated.created_at = current.created_at
            self._products[product.id] = updated
            return updated.copy()

    def persist_variant(self, user_id: str, variant: Variant) -> Variant:
        with self._state_lock:
            product = self._owned_product(user_id, variant.product_id)
            key = normalize_label(variant.label)
            if any(normalize_label(v.label) == key for v in product.variants):
                raise ValidationError(
                    f"Variant {variant.label!r} already exists for this product",
                    details={"product_id": product.id, "label": variant.label},
                )
            stored = variant.copy()
            check_variant_invariant(stored)
            stored.id = next(self._variant_ids)
            product.variants.append(stored)
            self._variant_owner[stored.id] = product.id
            return stored.copy()

    def delete_variant(self, user_id: str, variant_id: int, *, guard: VariantGuard | None = None) -> None:
        with self._locked_variant(variant_id):
            with self._state_lock:
                product, variant = self._owned_variant(user_id, variant_id)
                if guard is not None:
                    guard(product.copy(), variant.copy())
                product.variants = [v for v in product.variants if v.id != variant_id]
                del self._variant_owner[variant_id]

    def update_variant(self, user_id: str, variant_id: int, mutate: VariantMutation) -> Variant:
        with self._locked_variant(variant_id):
            with self._state_lock:
                _, current = self._owned_variant(user_id, variant_id)
                working = current.copy()
            # mutate runs outside the state lock; the variant lock still excludes writers
            mutate(working)
            check_variant_invariant(working)
            with self._state_lock:
                current.label = working.label
                current.total_quantity = working.total_quantity
                current.sold_quantity = working.sold_quantity
                return current.copy()

    def persist_sale(self, user_id: str, sale: Sale) -> Sale:
        with self._state_lock:
            self._owned_variant(user_id, sale.variant_id)
            stored = sale.copy()
            stored.id = next(self._sale_ids)
            self._sales.append(stored)
            return stored.copy()

    def record_sale(self, user_id: str, sale: Sale) -> Sale:
        with self._locked_variant(sale.variant_id):
            with self._state_lock:
                _, variant = self._owned_variant(user_id, sale.variant_id)
                check_available(variant, sale.quantity)
                stored = sale.copy()
                stored.id = next(self._sale_ids)
                variant.sold_quantity += sale.quantity
                self._sales.append(stored)
        logger.debug("in-memory sale %s appended to variant %s", stored.id, sale.variant_id)
        return stored.copy()

    def persist_user_settings(self, settings: UserSettings) -> UserSettings:
        with self._state_lock:
            self._settings[settings.user_id] = settings.copy()
            return settings.copy()
