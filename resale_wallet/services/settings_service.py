# Overview: Per-user settings; currently the starting budget behind the wallet balance.

from __future__ import annotations

import logging
from typing import Any

from ..domain import UserSettings
from ..repositories.base import Repository
from ..validation import coerce_money

logger = logging.getLogger(__name__)


def get_settings(repo: Repository, user_id: str) -> UserSettings:
    return repo.load_user_settings(user_id)


def update_starting_budget(repo: Repository, user_id: str, amount: Any) -> UserSettings:
    """
    Set the capital available before any purchase.

    Raises:
        ValidationError: amount is negative or not a valid money value
    """
    settings = repo.load_user_settings(user_id)
    settings.starting_budget = coerce_money(amount, "starting_budget", allow_zero=True)
    saved = repo.persist_user_settings(settings)
    logger.info("starting budget for user %s set to %s", user_id, saved.starting_budget)
    return saved
