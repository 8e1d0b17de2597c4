# Overview: Flask CLI commands for bootstrap, demo data and quick inspection.

# resale_wallet/cli.py
# Commands Legend:
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "resale_wallet:create_app".
# - Use: python -m flask wallet <command> [options]
#
# - python -m flask wallet init-db
#   Create all tables (idempotent). Prefer `flask db upgrade` once migrations are in use.
# - python -m flask wallet seed-demo --user-id demo-user
#   Load the demo products, sales and budget for a user.
# - python -m flask wallet stats --user-id demo-user
#   Print the overview stats and current period earnings for a user.

import click
from flask.cli import with_appcontext

from .extensions import db
from .repositories import get_repository
from .seed import seed_demo_data
from .services.period_service import PeriodNavigator
from .services.stats_service import get_overview_stats


@click.group('wallet')
def wallet_group():
    """Resale wallet bootstrap and inspection commands."""


@wallet_group.command('init-db')
@with_appcontext
def init_db():
    """Create all database tables."""
    db.create_all()
    click.echo("PASS Database tables created")


@wallet_group.command('seed-demo')
@click.option('--user-id', default=None, help='User to seed (defaults to WALLET_DEMO_USER_ID)')
@with_appcontext
def seed_demo(user_id):
    """Load demo products, sales and a starting budget."""
    from flask import current_app

    user_id = user_id or current_app.config["WALLET_DEMO_USER_ID"]
    count = seed_demo_data(get_repository(), user_id)
    click.echo(f"PASS Seeded {count} demo products for user '{user_id}'")


@wallet_group.command('stats')
@click.option('--user-id', required=True, help='User to report on')
@with_appcontext
def show_stats(user_id):
    """Print overview stats and this week/month/year's earnings."""
    stats = get_overview_stats(get_repository(), user_id).to_dict()

    click.echo(f"\nStats for user '{user_id}':")
    click.echo("-" * 40)
    for key, value in stats.items():
        click.echo(f"{key:<24}{value if value is not None else '-'}")

    click.echo("\nPeriods:")
    click.echo("-" * 40)
    for period_type, earnings in PeriodNavigator(get_repository(), user_id).all().items():
        if not earnings.available:
            click.echo(f"{period_type.value:<8}no data")
            continue
        click.echo(
            f"{period_type.value:<8}{earnings.start_date} .. {earnings.end_date}  "
            f"earned {earnings.earned}  profit {earnings.profit}  units {earnings.sales_count}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(wallet_group)
