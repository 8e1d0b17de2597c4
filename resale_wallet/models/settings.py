from __future__ import annotations

from ..extensions import db
from ..domain import UserSettings as UserSettingsEntity
from .inventory import from_cents


class UserSettings(db.Model):
    """Per-user settings. Only the starting budget (capital before any purchase) today."""
    __tablename__ = "user_settings"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_user_settings_user"),
        db.CheckConstraint("starting_budget_cents >= 0", name="ck_user_settings_budget_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False)
    starting_budget_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_entity(self) -> UserSettingsEntity:
        return UserSettingsEntity(
            user_id=self.user_id,
            starting_budget=from_cents(self.starting_budget_cents),
        )
