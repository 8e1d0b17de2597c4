# Overview: Return-window calculations for purchases and individual sales.

"""
Return windows

- A purchase may be returned up to 30 days after purchase_date. The last
  7 days of that window are a warning; after day 30 it is expired.
- A sale may be returned by the buyer up to 14 days after sold_at.

All functions are pure: "today" is always passed in, never read from a clock.
Both dates are compared as calendar dates (midnight-normalized).
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum

from ..time_utils import normalize_datetime, to_iso_date

PURCHASE_RETURN_DAYS = 30
PURCHASE_WARNING_DAYS = 7
SALE_RETURN_DAYS = 14


class ReturnState(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    EXPIRED = "expired"


@dataclass(frozen=True)
class ReturnStatus:
    status: ReturnState
    days_left: int | None
    deadline: date | None

    @property
    def message(self) -> str | None:
        if self.status is ReturnState.EXPIRED:
            return "Return deadline passed"
        if self.status is ReturnState.WARNING:
            unit = "day" if self.days_left == 1 else "days"
            return f"{self.days_left} {unit} left to return"
        return None

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "days_left": self.days_left,
            "deadline": to_iso_date(self.deadline),
            "message": self.message,
        }


@dataclass(frozen=True)
class SaleReturnDeadline:
    deadline: date
    days_left: int
    is_expired: bool

    def to_dict(self) -> dict:
        return {
            "deadline": to_iso_date(self.deadline),
            "days_left": self.days_left,
            "is_expired": self.is_expired,
        }


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return normalize_datetime(value).date()
    return value


def purchase_return_status(purchase_date: date | datetime | None, today: date) -> ReturnStatus:
    if purchase_date is None:
        return ReturnStatus(status=ReturnState.NORMAL, days_left=None, deadline=None)

    purchased = _as_date(purchase_date)
    days_since = (today - purchased).days
    days_left = PURCHASE_RETURN_DAYS - days_since
    deadline = purchased + timedelta(days=PURCHASE_RETURN_DAYS)

    if days_since > PURCHASE_RETURN_DAYS:
        return ReturnStatus(status=ReturnState.EXPIRED, days_left=0, deadline=deadline)
    if days_left <= PURCHASE_WARNING_DAYS:
        return ReturnStatus(status=ReturnState.WARNING, days_left=days_left, deadline=deadline)
    return ReturnStatus(status=ReturnState.NORMAL, days_left=days_left, deadline=deadline)


def has_return_warning(purchase_date: date | datetime | None, today: date) -> bool:
    return purchase_return_status(purchase_date, today).status in (ReturnState.WARNING, ReturnState.EXPIRED)


def sale_return_deadline(sold_at: date | datetime, today: date) -> SaleReturnDeadline:
    deadline = _as_date(sold_at) + timedelta(days=SALE_RETURN_DAYS)
    # whole calendar days between midnights, so ceil() of the difference is the difference
    raw_days_left = (deadline - today).days
    return SaleReturnDeadline(
        deadline=deadline,
        days_left=max(raw_days_left, 0),
        is_expired=raw_days_left < 0,
    )
