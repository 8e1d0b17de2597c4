# Overview: Liveness endpoint.

from flask import Blueprint, current_app

from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api/system")


@system_bp.get("/health")
def health():
    return {
        "status": "ok",
        "repository": current_app.config["WALLET_REPOSITORY"],
        "time": to_utc_z(utcnow()),
    }
