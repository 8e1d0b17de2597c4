# Overview: Flask API routes for overview statistics and period earnings.

from flask import Blueprint, request, g

from ..decorators import require_user
from ..repositories import get_repository
from ..services.period_service import PeriodNavigator, PeriodType
from ..services.stats_service import get_dashboard, get_overview_stats

stats_bp = Blueprint("stats", __name__, url_prefix="/api/stats")


def _offsets_from_query() -> dict:
    """week/month/year query params; anything positive is clamped to 0 downstream."""
    return {
        pt.value: request.args[pt.value]
        for pt in PeriodType
        if request.args.get(pt.value) not in (None, "")
    }


@stats_bp.get("/overview")
@require_user
def overview():
    return get_overview_stats(get_repository(), g.user_id).to_dict()


@stats_bp.get("/periods")
@require_user
def periods():
    """
    Earnings per period type.

    Query params:
    - week, month, year: int offsets (0 = current period, -1 = previous, ...)
    """
    navigator = PeriodNavigator(get_repository(), g.user_id, offsets=_offsets_from_query())
    return {pt.value: earnings.to_dict() for pt, earnings in navigator.all().items()}


@stats_bp.get("/dashboard")
@require_user
def dashboard():
    return get_dashboard(get_repository(), g.user_id, offsets=_offsets_from_query())
