# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/retailpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--with-samples]
#   Idempotent bootstrap: creates tables, default settings and default users;
#   --with-samples also loads the 20-item demo catalog.
#
# Users:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --username alice --password "secret123" --role cashier
#   Create a user (prompts if options are omitted).
#
# Inventory:
# - python -m flask inventory verify
#   Reconcile every product's stock against its ledger; exits 1 on mismatch.
#
# Sync queue:
# - python -m flask sync clear-synced --older-than-days 7
#   Delete synced queue entries older than the window.

import click
from decimal import Decimal
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Product
from .services.auth_service import create_user, PasswordValidationError
from .services.products_service import create_product
from .services import inventory_service, settings_service, sync_service
from .validation import ValidationError, ConflictError


DEFAULT_USERS = [
    # username, password, role, full name, email
    ("admin", "admin123", "admin", "System Administrator", "admin@retailstore.com"),
    ("manager1", "manager123", "manager", "Jane Smith", "jane@retailstore.com"),
    ("cashier1", "cashier123", "cashier", "John Doe", "john@retailstore.com"),
]

SAMPLE_PRODUCTS = [
    # barcode, name, description, price, cost, category, stock, min stock
    ("8901234567890", "Coca Cola 500ml", "Refreshing cola drink", "1.99", "1.20", "Beverages", 100, 20),
    ("8901234567891", "Lays Chips Classic", "Crispy potato chips", "2.49", "1.50", "Snacks", 80, 15),
    ("8901234567892", "Milk 1L", "Fresh whole milk", "3.99", "2.50", "Dairy", 50, 10),
    ("8901234567893", "White Bread", "Soft white bread loaf", "2.99", "1.80", "Bakery", 40, 10),
    ("8901234567894", "Eggs 12 pack", "Farm fresh eggs", "4.99", "3.00", "Dairy", 60, 15),
    ("8901234567895", "Orange Juice 1L", "Pure orange juice", "5.49", "3.50", "Beverages", 45, 10),
    ("8901234567896", "Chocolate Bar", "Milk chocolate bar", "1.49", "0.80", "Snacks", 120, 25),
    ("8901234567897", "Bananas 1kg", "Fresh bananas", "2.99", "1.50", "Produce", 70, 15),
    ("8901234567898", "Apples 1kg", "Red delicious apples", "3.99", "2.20", "Produce", 55, 12),
    ("8901234567899", "Butter 250g", "Salted butter", "4.49", "2.80", "Dairy", 35, 8),
    ("8901234567900", "Coffee 200g", "Ground coffee beans", "8.99", "5.50", "Beverages", 30, 8),
    ("8901234567901", "Tea Bags 100pk", "Black tea bags", "6.99", "4.00", "Beverages", 40, 10),
    ("8901234567902", "Sugar 1kg", "White sugar", "2.49", "1.30", "Groceries", 90, 20),
    ("8901234567903", "Rice 2kg", "Long grain white rice", "7.99", "5.00", "Groceries", 65, 15),
    ("8901234567904", "Pasta 500g", "Spaghetti pasta", "2.99", "1.70", "Groceries", 75, 18),
    ("8901234567905", "Tomato Sauce", "Pasta tomato sauce", "3.49", "2.00", "Groceries", 55, 12),
    ("8901234567906", "Olive Oil 500ml", "Extra virgin olive oil", "9.99", "6.50", "Groceries", 25, 8),
    ("8901234567907", "Cereal 400g", "Corn flakes cereal", "4.99", "3.00", "Breakfast", 48, 12),
    ("8901234567908", "Yogurt 500g", "Plain yogurt", "3.99", "2.30", "Dairy", 42, 10),
    ("8901234567909", "Cheese 200g", "Cheddar cheese block", "5.99", "3.80", "Dairy", 38, 10),
]


def seed_default_users() -> list[str]:
    """Create the default staff accounts that don't exist yet."""
    created = []
    for username, password, role, full_name, email in DEFAULT_USERS:
        if db.session.query(User).filter_by(username=username).first():
            continue
        create_user(username=username, password=password, role=role, full_name=full_name, email=email)
        created.append(username)
    return created


def seed_sample_products() -> int:
    created = 0
    for barcode, name, description, price, cost, category, stock, min_stock in SAMPLE_PRODUCTS:
        if db.session.query(Product).filter_by(barcode=barcode).first():
            continue
        create_product(patch={
            "barcode": barcode,
            "name": name,
            "description": description,
            "price": Decimal(price),
            "cost": Decimal(cost),
            "category": category,
            "stock_quantity": stock,
            "min_stock_level": min_stock,
        })
        created += 1
    return created


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--with-samples', is_flag=True, default=False, help='Load the demo product catalog')
@with_appcontext
def init_system(with_samples):
    """
    Initialize the POS database: tables, default settings, default users.

    Default credentials:
    - admin / admin123
    - manager1 / manager123
    - cashier1 / cashier123

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing POS system...")

    db.create_all()
    click.echo("PASS Tables ready")

    added = settings_service.ensure_defaults()
    click.echo(f"PASS Default settings ({added} added)")

    try:
        created = seed_default_users()
    except (PasswordValidationError, ValidationError, ConflictError) as e:
        click.echo(f"FAIL Failed to create default users: {str(e)}")
        raise SystemExit(1)
    if created:
        click.echo(f"PASS Created users: {', '.join(created)}")
    else:
        click.echo("WARN  Default users already exist, skipping...")

    if with_samples:
        count = seed_sample_products()
        click.echo(f"PASS Sample products created: {count}")

    click.echo("\n" + "="*60)
    click.echo("DONE POS System Initialized Successfully!")
    click.echo("="*60)
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo("   admin    -> admin123")
    click.echo("   manager1 -> manager123")
    click.echo("   cashier1 -> cashier123")
    click.echo("")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(['admin', 'manager', 'cashier']), prompt=True, help='Role')
@click.option('--full-name', default=None, help='Full name')
@click.option('--email', default=None, help='Email address')
@with_appcontext
def create_user_cli(username, password, role, full_name, email):
    """
    Create a new user.

    Password must be 8+ characters with at least one letter and one digit.
    """
    try:
        user = create_user(
            username=username,
            password=password,
            role=role,
            full_name=full_name,
            email=email,
        )
        click.echo(f"PASS Created user: {user.username} with role '{user.role}'")
        click.echo("SECURITY Password securely hashed with bcrypt")

    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, at least one letter and one digit")
        raise SystemExit(1)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")
        raise SystemExit(1)


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Role':<10} {'Email':<30} {'Active'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.role:<10} {user.email or '':<30} {active_str}")

    click.echo("="*80 + "\n")


@click.group('inventory')
def inventory_group():
    """Inventory integrity commands."""


@inventory_group.command('verify')
@with_appcontext
def verify_inventory():
    """Reconcile every product's stock against its ledger."""
    failures = inventory_service.verify_all()
    if not failures:
        click.echo("PASS Every product reconciles with its ledger")
        return

    for report in failures:
        click.echo(f"FAIL Product {report['product_id']} ({report['product_name']}):")
        for problem in report["problems"]:
            click.echo(f"     - {problem['problem']}")
    raise SystemExit(1)


@click.group('sync')
def sync_group():
    """Offline sync queue maintenance."""


@sync_group.command('clear-synced')
@click.option('--older-than-days', type=int, default=7, show_default=True)
@with_appcontext
def clear_synced(older_than_days):
    """Delete synced queue entries older than the window."""
    deleted = sync_service.clear_synced(older_than_days)
    click.echo(f"PASS Deleted {deleted} synced operations")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(sync_group)
