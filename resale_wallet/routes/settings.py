# Overview: Flask API routes for user settings (starting budget).

from flask import Blueprint, g

from ..decorators import require_user
from ..repositories import get_repository
from ..services import settings_service
from . import json_payload

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("/budget")
@require_user
def get_budget():
    return settings_service.get_settings(get_repository(), g.user_id).to_dict()


@settings_bp.put("/budget")
@require_user
def update_budget():
    """Body: starting_budget (>= 0)."""
    payload = json_payload()
    saved = settings_service.update_starting_budget(
        get_repository(), g.user_id, payload.get("starting_budget")
    )
    return saved.to_dict(), 200
