# Overview: Pytest coverage for sale recording, oversell rejection and concurrency.

from datetime import datetime
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest
from sqlalchemy import update

from resale_wallet.extensions import db
from resale_wallet.models import ProductVariant
from resale_wallet.services import inventory_service, sales_service
from resale_wallet.repositories import SqlRepository
from resale_wallet.validation import InsufficientStockError, InvariantViolation, ValidationError

from .conftest import USER, variant_by_label


class TestRecordSale:
    def test_sale_increments_sold_and_appends(self, repo, blazer):
        small = variant_by_label(blazer, "S")
        sale = sales_service.record_sale(
            repo, USER, small.id, sale_price="55.00", notes="Vinted", sold_at="2026-03-10T12:00:00Z",
        )

        assert sale.id is not None
        assert sale.revenue == Decimal("55.00")
        assert sale.sold_at == datetime(2026, 3, 10, 12, 0)

        _, current = repo.get_variant(USER, small.id)
        assert current.sold_quantity == 1
        assert [s.id for s in sales_service.list_sales(repo, USER)] == [sale.id]

    def test_oversell_rejected_without_state_change(self, repo, blazer):
        small = variant_by_label(blazer, "S")

        with pytest.raises(InsufficientStockError) as excinfo:
            sales_service.record_sale(repo, USER, small.id, sale_price="55", quantity=2)

        assert excinfo.value.details["available_quantity"] == 1
        _, current = repo.get_variant(USER, small.id)
        assert current.sold_quantity == 0
        assert sales_service.list_sales(repo, USER) == []

    def test_sold_out_variant_rejects_next_sale(self, repo, sneakers):
        variant_id = sneakers.variants[0].id
        sales_service.record_sale(repo, USER, variant_id, sale_price="85")

        with pytest.raises(InsufficientStockError):
            sales_service.record_sale(repo, USER, variant_id, sale_price="85")

    @pytest.mark.parametrize("price,quantity", [("0", 1), ("-5", 1), ("abc", 1), ("10", 0), ("10", "2.5")])
    def test_invalid_sale_input(self, repo, sneakers, price, quantity):
        with pytest.raises(ValidationError):
            sales_service.record_sale(repo, USER, sneakers.variants[0].id, sale_price=price, quantity=quantity)

    def test_list_sales_filtered_by_product(self, repo, sneakers, blazer):
        sales_service.record_sale(repo, USER, sneakers.variants[0].id, sale_price="85")
        blazer_sale = sales_service.record_sale(repo, USER, variant_by_label(blazer, "M").id, sale_price="50")

        only_blazer = sales_service.list_sales(repo, USER, product_id=blazer.id)
        assert [s.id for s in only_blazer] == [blazer_sale.id]

    def test_sales_of_deleted_products_are_kept(self, repo, sneakers):
        sales_service.record_sale(repo, USER, sneakers.variants[0].id, sale_price="85")
        inventory_service.soft_delete_product(repo, USER, sneakers.id)

        assert len(sales_service.list_sales(repo, USER)) == 1


class TestConcurrentSales:
    def test_threads_never_oversell(self, memory_repo):
        product = inventory_service.create_product(
            memory_repo, USER, name="Basic T-Shirts Pack", purchase_price="5",
            purchase_date="2026-03-01", variants=[{"label": "M", "quantity": 5}],
        )
        variant_id = product.variants[0].id

        def sell(_):
            try:
                sales_service.record_sale(memory_repo, USER, variant_id, sale_price="12")
                return True
            except InsufficientStockError:
                return False

        with ThreadPoolExecutor(max_workers=8) as pool:
            outcomes = list(pool.map(sell, range(40)))

        assert outcomes.count(True) == 5
        _, current = memory_repo.get_variant(USER, variant_id)
        assert current.sold_quantity == 5
        assert sum(s.quantity for s in memory_repo.load_sales(USER)) == 5

    def test_stock_change_racing_with_sales_keeps_invariant(self, memory_repo):
        product = inventory_service.create_product(
            memory_repo, USER, name="Hoodie", purchase_price="15",
            purchase_date="2026-03-01", variants=[{"label": "L", "quantity": 10}],
        )
        variant_id = product.variants[0].id

        def sell(_):
            try:
                sales_service.record_sale(memory_repo, USER, variant_id, sale_price="30")
            except InsufficientStockError:
                pass

        def shrink(total):
            try:
                inventory_service.set_variant_total(memory_repo, USER, variant_id, total)
            except InvariantViolation:
                pass

        with ThreadPoolExecutor(max_workers=8) as pool:
            for i in range(10):
                pool.submit(sell, i)
                pool.submit(shrink, 10 - i)

        _, current = memory_repo.get_variant(USER, variant_id)
        assert 0 <= current.sold_quantity <= current.total_quantity
        assert sum(s.quantity for s in memory_repo.load_sales(USER)) == current.sold_quantity

    def test_sql_sale_rechecks_stock_changed_underneath(self, db_session):
        """A sale that read stale counts is refused by the conditional update."""
        repo = SqlRepository()
        product = inventory_service.create_product(
            repo, USER, name="Vintage Sunglasses", purchase_price="20",
            purchase_date="2026-03-01", quantity=1,
        )
        variant_id = product.variants[0].id

        # another writer sells the last unit directly in the table
        db.session.execute(
            update(ProductVariant)
            .where(ProductVariant.id == variant_id)
            .values(sold_quantity=1, version_id=ProductVariant.version_id + 1)
        )
        db.session.commit()

        with pytest.raises(InsufficientStockError):
            sales_service.record_sale(repo, USER, variant_id, sale_price="12")
        assert repo.load_sales(USER) == []
