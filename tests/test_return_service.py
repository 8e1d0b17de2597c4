# Overview: Pytest coverage for purchase and sale return windows.

from datetime import date, datetime, timedelta

import pytest

from resale_wallet.services.return_service import (
    ReturnState,
    has_return_warning,
    purchase_return_status,
    sale_return_deadline,
)

from .conftest import TODAY


class TestPurchaseReturnStatus:
    @pytest.mark.parametrize("days_ago,state,days_left", [
        (0, ReturnState.NORMAL, 30),
        (22, ReturnState.NORMAL, 8),
        (23, ReturnState.WARNING, 7),
        (25, ReturnState.WARNING, 5),
        (30, ReturnState.WARNING, 0),
        (31, ReturnState.EXPIRED, 0),
        (90, ReturnState.EXPIRED, 0),
    ])
    def test_status_by_age(self, days_ago, state, days_left):
        status = purchase_return_status(TODAY - timedelta(days=days_ago), TODAY)
        assert status.status is state
        assert status.days_left == days_left

    def test_messages(self):
        assert purchase_return_status(TODAY - timedelta(days=25), TODAY).message == "5 days left to return"
        assert purchase_return_status(TODAY - timedelta(days=29), TODAY).message == "1 day left to return"
        assert purchase_return_status(TODAY - timedelta(days=31), TODAY).message == "Return deadline passed"
        assert purchase_return_status(TODAY, TODAY).message is None

    def test_time_of_day_is_ignored(self):
        purchased = datetime(2026, 2, 21, 23, 59)
        assert purchase_return_status(purchased, TODAY).days_left == 5

    def test_missing_purchase_date(self):
        status = purchase_return_status(None, TODAY)
        assert status.status is ReturnState.NORMAL
        assert status.to_dict() == {"status": "normal", "days_left": None, "deadline": None, "message": None}
        assert has_return_warning(None, TODAY) is False

    def test_warning_flag(self):
        assert has_return_warning(TODAY - timedelta(days=25), TODAY) is True
        assert has_return_warning(TODAY - timedelta(days=40), TODAY) is True
        assert has_return_warning(TODAY - timedelta(days=3), TODAY) is False


class TestSaleReturnDeadline:
    def test_open_window(self):
        deadline = sale_return_deadline(datetime(2026, 3, 10, 18, 45), TODAY)
        assert deadline.deadline == date(2026, 3, 24)
        assert deadline.days_left == 6
        assert deadline.is_expired is False

    def test_last_day_is_still_open(self):
        deadline = sale_return_deadline(TODAY - timedelta(days=14), TODAY)
        assert deadline.days_left == 0
        assert deadline.is_expired is False

    def test_expired(self):
        deadline = sale_return_deadline(date(2026, 2, 1), TODAY)
        assert deadline.days_left == 0
        assert deadline.is_expired is True
        assert deadline.to_dict()["deadline"] == "2026-02-15"
