# Overview: App-wide translation of domain errors into JSON responses.

import logging

from flask import Blueprint

from ..extensions import db
from ..validation import (
    CapabilityUnavailableError,
    InsufficientStockError,
    InvariantViolation,
    NotFoundError,
    ValidationError,
    WalletError,
)

logger = logging.getLogger(__name__)

errors_bp = Blueprint("errors", __name__)

STATUS_BY_ERROR = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (InsufficientStockError, 409),
    (InvariantViolation, 409),
    (CapabilityUnavailableError, 503),
)


def _status_for(error: WalletError) -> int:
    for error_type, status in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 400


@errors_bp.app_errorhandler(WalletError)
def wallet_error(error: WalletError):
    return {"error": error.message, "details": error.details}, _status_for(error)


@errors_bp.app_errorhandler(404)
def not_found_error(error):
    return {"error": getattr(error, "description", "Not found")}, 404


@errors_bp.app_errorhandler(500)
def internal_error(error):
    db.session.rollback()
    logger.exception("Internal Server Error: %s", error)
    return {"error": "Internal server error"}, 500
