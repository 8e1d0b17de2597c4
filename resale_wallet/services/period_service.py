# Overview: Earnings, profit and unit counts within navigable week/month/year windows.

"""
Period semantics (authoritative)

- Windows are calendar-date ranges [start_date, end_date], both inclusive,
  compared against the UTC date of sale.sold_at.
    week:  Monday..Sunday of the ISO week containing today + 7*offset days
    month: first..last day of month(today) + offset
    year:  Jan 1..Dec 31 of year(today) + offset
- Offsets are <= 0; a step forward from 0 stays at 0 so a window never
  lies entirely in the future.
- profit = sum((sale_price - purchase_price) * quantity); the purchase price
  is resolved through the sale's variant. A sale whose variant no longer
  resolves still counts towards earned and sales_count.
- sales_count counts units (sum of quantity), not sale rows.
- If the store cannot serve sale history the result is a "no data" tuple
  (available=False) instead of an error.
"""
from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Iterable

from ..domain import ZERO, Product, Sale, format_money
from ..repositories.base import Repository
from ..time_utils import to_iso_date, today as utc_today
from ..validation import CapabilityUnavailableError, ValidationError, coerce_int

logger = logging.getLogger(__name__)


class PeriodType(str, Enum):
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


def parse_period_type(value) -> PeriodType:
    try:
        return PeriodType(value)
    except ValueError:
        raise ValidationError("period type must be week, month, or year", details={"period_type": value})


@dataclass(frozen=True)
class PeriodEarnings:
    period_type: PeriodType
    offset: int
    start_date: date
    end_date: date
    earned: Decimal = ZERO
    profit: Decimal = ZERO
    sales_count: int = 0
    available: bool = True

    def to_dict(self) -> dict:
        return {
            "period_type": self.period_type.value,
            "offset": self.offset,
            "start_date": to_iso_date(self.start_date),
            "end_date": to_iso_date(self.end_date),
            "earned": format_money(self.earned),
            "profit": format_money(self.profit),
            "sales_count": self.sales_count,
            "available": self.available,
        }


def clamp_offset(offset) -> int:
    return min(coerce_int(offset, "offset"), 0)


def _window(period_type: PeriodType, offset: int, today: date) -> tuple[date, date]:
    if period_type is PeriodType.WEEK:
        anchor = today + timedelta(days=7 * offset)
        start = anchor - timedelta(days=anchor.weekday())
        return start, start + timedelta(days=6)

    if period_type is PeriodType.MONTH:
        year, month_index = divmod(today.year * 12 + (today.month - 1) + offset, 12)
        month = month_index + 1
        last_day = calendar.monthrange(year, month)[1]
        return date(year, month, 1), date(year, month, last_day)

    if period_type is PeriodType.YEAR:
        year = today.year + offset
        return date(year, 1, 1), date(year, 12, 31)

    raise ValidationError("period type must be week, month, or year")


def period_window(period_type: PeriodType, offset: int, today: date) -> tuple[date, date]:
    """Inclusive [start, end] dates; an offset reaching past year 1 is a ValidationError."""
    try:
        return _window(period_type, offset, today)
    except (ValueError, OverflowError) as exc:
        if isinstance(exc, ValidationError):
            raise
        raise ValidationError(
            f"{period_type.value} offset {offset} is out of range",
            details={"period_type": period_type.value, "offset": offset},
        ) from exc


def summarize_sales(
    period_type: PeriodType,
    offset: int,
    start: date,
    end: date,
    sales: Iterable[Sale],
    products: Iterable[Product],
) -> PeriodEarnings:
    """Pure aggregation of the sales falling inside [start, end]."""
    purchase_price_by_variant = {
        v.id: p.purchase_price for p in products for v in p.variants
    }

    earned = ZERO
    profit = ZERO
    units = 0
    for s in sales:
        if not (start <= s.sold_at.date() <= end):
            continue
        earned += s.revenue
        units += s.quantity
        purchase_price = purchase_price_by_variant.get(s.variant_id)
        if purchase_price is not None:
            profit += (s.sale_price - purchase_price) * s.quantity

    return PeriodEarnings(
        period_type=period_type,
        offset=offset,
        start_date=start,
        end_date=end,
        earned=earned,
        profit=profit,
        sales_count=units,
    )


def compute_period_earnings(
    repo: Repository,
    user_id: str,
    period_type: PeriodType,
    *,
    offset: int = 0,
    today: date | None = None,
) -> PeriodEarnings:
    period_type = parse_period_type(period_type)
    offset = clamp_offset(offset)
    today = today or utc_today()
    start, end = period_window(period_type, offset, today)

    try:
        sales = repo.load_sales_between(
            user_id,
            datetime.combine(start, time.min),
            datetime.combine(end + timedelta(days=1), time.min),
        )
    except CapabilityUnavailableError as exc:
        logger.warning("period earnings unavailable for user %s: %s", user_id, exc.message)
        return PeriodEarnings(
            period_type=period_type,
            offset=offset,
            start_date=start,
            end_date=end,
            available=False,
        )

    products = repo.load_products(user_id, include_deleted=True)
    return summarize_sales(period_type, offset, start, end, sales, products)


class PeriodNavigator:
    """
    Independent offsets for the three period types.

    navigate() and reset() recompute only the period they touch; the other
    tuples are served from the last computation.
    """

    def __init__(self, repo: Repository, user_id: str, *, today: date | None = None, offsets: dict | None = None):
        self.repo = repo
        self.user_id = user_id
        self.today = today or utc_today()
        self.offsets = {pt: 0 for pt in PeriodType}
        for key, value in (offsets or {}).items():
            self.offsets[parse_period_type(key)] = clamp_offset(value)
        self._results: dict[PeriodType, PeriodEarnings] = {}

    def _compute(self, period_type: PeriodType, offset: int) -> PeriodEarnings:
        result = compute_period_earnings(
            self.repo,
            self.user_id,
            period_type,
            offset=offset,
            today=self.today,
        )
        # only a successful computation moves the offset
        self.offsets[period_type] = result.offset
        self._results[period_type] = result
        return result

    def current(self, period_type) -> PeriodEarnings:
        period_type = parse_period_type(period_type)
        if period_type not in self._results:
            return self._compute(period_type, self.offsets[period_type])
        return self._results[period_type]

    def all(self) -> dict[PeriodType, PeriodEarnings]:
        return {pt: self.current(pt) for pt in PeriodType}

    def navigate(self, period_type, direction: int) -> PeriodEarnings:
        """Step one period back (-1) or forward (+1); forward stops at the current period."""
        period_type = parse_period_type(period_type)
        if direction not in (-1, 1):
            raise ValidationError("direction must be -1 or 1", details={"direction": direction})
        return self._compute(period_type, min(self.offsets[period_type] + direction, 0))

    def reset(self, period_type) -> PeriodEarnings:
        return self._compute(parse_period_type(period_type), 0)
