"""
Repository layer public API.

Usage:
    from resale_wallet.repositories import get_repository
    repo = get_repository()          # inside an app context

The backend is chosen once per app from WALLET_REPOSITORY ("sql" | "memory").
"""
from __future__ import annotations

import logging

from flask import Flask, current_app

from .base import Repository, check_available, check_variant_invariant
from .memory import InMemoryRepository
from .sql import SqlRepository

logger = logging.getLogger(__name__)

EXTENSION_KEY = "resale_wallet.repository"


def build_repository(backend: str) -> Repository:
    if backend == "sql":
        return SqlRepository()
    if backend == "memory":
        return InMemoryRepository()
    raise ValueError(f"Unknown WALLET_REPOSITORY {backend!r} (expected 'sql' or 'memory')")


def init_repository(app: Flask, repository: Repository | None = None) -> Repository:
    repo = repository or build_repository(app.config["WALLET_REPOSITORY"])
    app.extensions[EXTENSION_KEY] = repo
    logger.info("using %s", type(repo).__name__)
    return repo


def get_repository() -> Repository:
    return current_app.extensions[EXTENSION_KEY]


__all__ = [
    "Repository",
    "SqlRepository",
    "InMemoryRepository",
    "build_repository",
    "init_repository",
    "get_repository",
    "check_available",
    "check_variant_invariant",
]
