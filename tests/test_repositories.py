# Overview: Pytest coverage for repository-specific behavior.

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from resale_wallet.domain import Sale
from resale_wallet.extensions import db
from resale_wallet.models import Sale as SaleRow
from resale_wallet.repositories import InMemoryRepository, SqlRepository, build_repository
from resale_wallet.services import inventory_service, sales_service
from resale_wallet.services.period_service import PeriodType, compute_period_earnings
from resale_wallet.services.stats_service import get_dashboard, get_overview_stats
from resale_wallet.validation import CapabilityUnavailableError, NotFoundError

from .conftest import OTHER_USER, TODAY, USER


class TestInMemoryRepository:
    def test_returned_entities_are_copies(self, memory_repo):
        product = inventory_service.create_product(
            memory_repo, USER, name="Belt", purchase_price="8", purchase_date="2026-03-01", quantity=1,
        )
        product.variants[0].sold_quantity = 1
        product.name = "changed"

        stored = memory_repo.get_product(USER, product.id)
        assert stored.name == "Belt"
        assert stored.variants[0].sold_quantity == 0

    def test_instances_do_not_share_state(self, memory_repo):
        inventory_service.create_product(
            memory_repo, USER, name="Belt", purchase_price="8", purchase_date="2026-03-01", quantity=1,
        )
        assert build_repository("memory").load_products(USER) == []


class TestSalesBetween:
    def test_half_open_range(self, repo):
        product = inventory_service.create_product(
            repo, USER, name="Tees", purchase_price="5", purchase_date="2026-03-01", quantity=3,
        )
        variant_id = product.variants[0].id
        sales_service.record_sale(repo, USER, variant_id, sale_price="12", sold_at=datetime(2026, 3, 1))
        sales_service.record_sale(repo, USER, variant_id, sale_price="12", sold_at=datetime(2026, 3, 31, 23, 59))
        sales_service.record_sale(repo, USER, variant_id, sale_price="12", sold_at=datetime(2026, 4, 1))

        march = repo.load_sales_between(USER, datetime(2026, 3, 1), datetime(2026, 4, 1))
        assert len(march) == 2


@pytest.fixture
def repo_without_sales_table(app):
    """SqlRepository on its own database whose sales table was dropped after provisioning."""
    engine = create_engine("sqlite://")
    db.metadata.create_all(engine)
    SaleRow.__table__.drop(engine)
    repo = SqlRepository(session=Session(bind=engine))
    yield repo
    repo.session.close()
    engine.dispose()


class TestSqlRepository:
    def test_missing_sales_table_means_no_data(self, repo_without_sales_table):
        with pytest.raises(CapabilityUnavailableError):
            repo_without_sales_table.load_sales_between(USER, datetime(2026, 3, 1), datetime(2026, 4, 1))
        with pytest.raises(CapabilityUnavailableError):
            repo_without_sales_table.load_sales(USER)

    def test_dashboard_survives_missing_sales_table(self, repo_without_sales_table):
        repo = repo_without_sales_table
        inventory_service.create_product(
            repo, USER, name="Tees", purchase_price="5", purchase_date="2026-03-01", quantity=4,
        )

        dashboard = get_dashboard(repo, USER, today=TODAY)

        assert dashboard["stats"]["total_invested"] == "20.00"
        assert dashboard["stats"]["inventory_value"] == "20.00"
        assert dashboard["stats"]["total_earned"] == "0.00"
        assert dashboard["stats"]["sales_available"] is False
        assert all(period["available"] is False for period in dashboard["periods"].values())

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            build_repository("redis")


class TestMissingSaleHistoryInMemory:
    def test_overview_and_periods_degrade(self):
        repo = InMemoryRepository(sales_history_available=False)
        inventory_service.create_product(
            repo, USER, name="Belt", purchase_price="8", purchase_date="2026-03-01", quantity=1,
        )

        stats = get_overview_stats(repo, USER)
        assert stats.sales_available is False
        assert stats.total_invested == Decimal("8.00")

        week = compute_period_earnings(repo, USER, PeriodType.WEEK, today=TODAY)
        assert week.available is False
        assert week.sales_count == 0


class TestPersistSale:
    def test_raw_append_leaves_counts_alone(self, repo):
        product = inventory_service.create_product(
            repo, USER, name="Tees", purchase_price="5", purchase_date="2026-03-01", quantity=2,
        )
        variant_id = product.variants[0].id

        stored = repo.persist_sale(
            USER, Sale(id=None, variant_id=variant_id, sale_price=Decimal("9.00"), quantity=1, sold_at=datetime(2026, 3, 2)),
        )
        assert stored.id is not None
        assert [s.id for s in repo.load_sales(USER)] == [stored.id]
        assert repo.get_variant(USER, variant_id)[1].sold_quantity == 0

    def test_foreign_variant_rejected(self, repo):
        product = inventory_service.create_product(
            repo, USER, name="Tees", purchase_price="5", purchase_date="2026-03-01", quantity=2,
        )
        with pytest.raises(NotFoundError):
            repo.persist_sale(
                OTHER_USER,
                Sale(id=None, variant_id=product.variants[0].id, sale_price=Decimal("9.00"), quantity=1, sold_at=datetime(2026, 3, 2)),
            )
