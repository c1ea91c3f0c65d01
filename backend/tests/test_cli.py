"""
Flask CLI command tests.
"""

from retailpos.extensions import db
from retailpos.models import Product, Setting, User
from retailpos.cli import SAMPLE_PRODUCTS


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "init", "--with-samples"])
    assert result.exit_code == 0, result.output
    assert "Created users: admin, manager1, cashier1" in result.output
    assert db.session.query(User).count() == 3
    assert db.session.query(Product).count() == len(SAMPLE_PRODUCTS)
    assert db.session.query(Setting).count() == 7

    again = runner.invoke(args=["system", "init", "--with-samples"])
    assert again.exit_code == 0, again.output
    assert "already exist" in again.output
    assert db.session.query(Product).count() == len(SAMPLE_PRODUCTS)


def test_users_create_and_list(app, seed):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "create", "--username", "night1", "--password", "shift2024", "--role", "cashier",
    ])
    assert result.exit_code == 0, result.output

    weak = runner.invoke(args=[
        "users", "create", "--username", "night2", "--password", "short", "--role", "cashier",
    ])
    assert weak.exit_code == 1
    assert "Password validation failed" in weak.output

    listing = runner.invoke(args=["users", "list"])
    assert "night1" in listing.output
    assert "night2" not in listing.output


def test_inventory_verify(app, product):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["inventory", "verify"])
    assert result.exit_code == 0
    assert "PASS" in result.output


def test_sync_clear_synced(app, seed):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["sync", "clear-synced", "--older-than-days", "3"])
    assert result.exit_code == 0
    assert "Deleted 0 synced operations" in result.output
