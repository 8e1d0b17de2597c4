# Overview: Demo data set for the in-memory store (and for manual testing against SQL).

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from .repositories.base import Repository
from .services import inventory_service, sales_service, settings_service
from .time_utils import utcnow

logger = logging.getLogger(__name__)

DEMO_STARTING_BUDGET = "500.00"

# (name, purchase_price, days_ago, notes, [(label, quantity)])
DEMO_PRODUCTS = [
    ("Nike Air Max 90", "45.00", 30, "Bought second hand, good condition", [("42", 1)]),
    ("Zara Oversized Blazer", "25.00", 21, "Bulk buy, 3 for 75", [("S", 1), ("M", 1), ("L", 1)]),
    ("H&M Premium Hoodie", "15.00", 14, None, [("M", 2), ("L", 1)]),
    ("Vintage Levi's Belt", "8.00", 45, "Thrift store find", [("One Size", 1)]),
    ("The North Face Puffer Jacket", "65.00", 60, "Seasonal buy, expect higher price in winter", [("M", 1), ("L", 1)]),
    ("Adidas Superstar", "35.00", 3, "New with tags", [("40", 1), ("41", 1)]),
    ("Basic T-Shirts Pack", "5.00", 7, "Lot of 10 for 50", [("M", 5), ("L", 5)]),
    ("Vintage Sunglasses", "20.00", 90, "Misjudged, hard to sell", [("One Size", 1)]),
]

# (product name, variant label, sale_price, quantity, hours_ago, notes)
DEMO_SALES = [
    ("Basic T-Shirts Pack", "M", "12.00", 2, 24, None),
    ("Basic T-Shirts Pack", "L", "13.00", 1, 48, "Quick sale"),
    ("Nike Air Max 90", "42", "85.00", 1, 24 * 15, None),
    ("Zara Oversized Blazer", "S", "55.00", 1, 24 * 10, None),
    ("Basic T-Shirts Pack", "M", "12.50", 1, 24 * 5, None),
    ("Basic T-Shirts Pack", "L", "12.50", 1, 24 * 8, None),
    ("Vintage Levi's Belt", "One Size", "22.00", 1, 24 * 40, None),
    ("The North Face Puffer Jacket", "M", "125.00", 1, 24 * 35, "Good deal"),
    ("Vintage Sunglasses", "One Size", "12.00", 1, 24 * 85, "Took the loss"),
]


def seed_demo_data(repo: Repository, user_id: str, *, now: datetime | None = None) -> int:
    """
    Populate repo with the demo products, sales and budget for user_id.

    Dates are relative to now so return warnings and period figures look
    the same whenever the demo is started. Returns the number of products.
    """
    now = now or utcnow()
    created = {}
    for name, price, days_ago, notes, sizes in DEMO_PRODUCTS:
        product = inventory_service.create_product(
            repo,
            user_id,
            name=name,
            purchase_price=price,
            purchase_date=(now - timedelta(days=days_ago)).date(),
            notes=notes,
            variants=[{"label": label, "quantity": qty} for label, qty in sizes],
        )
        created[name] = product

    for name, label, price, qty, hours_ago, notes in DEMO_SALES:
        variant = next(v for v in created[name].variants if v.label == label)
        sales_service.record_sale(
            repo,
            user_id,
            variant.id,
            sale_price=price,
            quantity=qty,
            notes=notes,
            sold_at=now - timedelta(hours=hours_ago),
        )

    settings_service.update_starting_budget(repo, user_id, DEMO_STARTING_BUDGET)
    logger.info("seeded %d demo products for user %s", len(created), user_id)
    return len(created)
