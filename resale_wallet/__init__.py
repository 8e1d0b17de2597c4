# resale_wallet/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate
from .logging_config import configure_logging


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    configure_logging(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .repositories import init_repository
    repo = init_repository(app)

    if app.config["WALLET_REPOSITORY"] == "memory" and app.config["WALLET_SEED_DEMO"]:
        from .seed import seed_demo_data
        seed_demo_data(repo, app.config["WALLET_DEMO_USER_ID"])

    # Register blueprints
    from .routes.errors import errors_bp
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.sales import sales_bp
    from .routes.stats import stats_bp
    from .routes.settings import settings_bp

    app.register_blueprint(errors_bp)
    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(stats_bp)
    app.register_blueprint(settings_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
