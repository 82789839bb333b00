# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/finmark/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (use `flask db upgrade` for migration-managed databases).
# - python -m flask system seed
#   Idempotent: default admin, manager and customer accounts plus sample products.
#
# User inspection/bootstrap:
# - python -m flask users list [--role manager] [--inactive]
#   List users with role and active status.
# - python -m flask users create --email admin@finmark.local --password "Password123" --role admin
#   Create a user (prompts if options are omitted).
# - python -m flask users deactivate --email someone@example.com
#   Soft-deactivate a user.
#
# Catalog inspection:
# - python -m flask products low-stock
#   Active products at or below their minimum stock level.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Product, User
from .roles import ROLES, ROLE_ADMIN, ROLE_MANAGER, ROLE_USER
from .services.auth_service import PasswordValidationError, create_user, find_user_by_email
from .services.products_service import low_stock_products
from .validation import ConflictError


DEFAULT_PASSWORD = "Password123"

DEFAULT_USERS = [
    ("admin@finmark.local", "System", "Admin", ROLE_ADMIN),
    ("manager@finmark.local", "Store", "Manager", ROLE_MANAGER),
    ("customer@finmark.local", "Sample", "Customer", ROLE_USER),
]

SAMPLE_PRODUCTS = [
    {
        "product_id": "LAP-001",
        "name": "ThinkPad X1 Carbon",
        "description": "Business-class ultrabook with a 14 inch display.",
        "category": "Laptops",
        "price_cents": 11999900,
        "stock_quantity": 12,
        "min_stock_level": 5,
        "specifications": {"cpu": "i7", "ram": "16GB", "storage": "512GB SSD"},
        "supplier": {"name": "Lenovo PH", "contact": "sales@lenovo.example"},
    },
    {
        "product_id": "PHN-001",
        "name": "Pixel 7A",
        "description": "Android phone with a dependable camera.",
        "category": "Mobiles",
        "price_cents": 3499900,
        "stock_quantity": 25,
        "min_stock_level": 10,
        "specifications": {"storage": "128GB", "ram": "8GB"},
        "supplier": {},
    },
    {
        "product_id": "ACC-001",
        "name": "Mechanical Keyboard",
        "description": "Hot-swappable keyboard with RGB backlight.",
        "category": "Accessories",
        "price_cents": 799900,
        "stock_quantity": 4,
        "min_stock_level": 10,
        "specifications": {"switches": "Gateron"},
        "supplier": {},
    },
]


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('seed')
@with_appcontext
def seed():
    """
    Seed default accounts and sample products.

    Creates (skipping any that already exist):
    - admin@finmark.local (admin)
    - manager@finmark.local (manager)
    - customer@finmark.local (user)
    - a handful of catalog products, one of them below its minimum stock

    All passwords default to: "Password123"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Seeding FinMark data...")

    for email, first_name, last_name, role in DEFAULT_USERS:
        if find_user_by_email(email):
            click.echo(f"WARN  User '{email}' already exists, skipping...")
            continue
        create_user(
            email=email,
            password=DEFAULT_PASSWORD,
            first_name=first_name,
            last_name=last_name,
            role=role,
        )
        click.echo(f"PASS Created user: {email} with role '{role}'")

    for data in SAMPLE_PRODUCTS:
        if db.session.query(Product).filter_by(product_id=data["product_id"]).first():
            click.echo(f"WARN  Product '{data['product_id']}' already exists, skipping...")
            continue
        db.session.add(Product(images=[], **data))
        click.echo(f"PASS Created product: {data['product_id']} ({data['name']})")
    db.session.commit()

    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    for email, _, _, role in DEFAULT_USERS:
        click.echo(f"   {role:<8} -> {email} / {DEFAULT_PASSWORD}")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--first-name', prompt=True, help='First name')
@click.option('--last-name', prompt=True, help='Last name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), default=ROLE_USER, help='Role')
@with_appcontext
def create_user_cli(email, first_name, last_name, password, role):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 6 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    """
    try:
        user = create_user(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            role=role,
        )
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed: {e}")
    except ConflictError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.email} (ID: {user.id}) with role '{role}'")


@users_group.command('list')
@click.option('--role', type=click.Choice(list(ROLES)), help='Filter by role')
@click.option('--inactive', is_flag=True, help='Only deactivated users')
@with_appcontext
def list_users(role, inactive):
    """List users with their roles."""
    query = db.session.query(User)
    if role:
        query = query.filter_by(role=role)
    if inactive:
        query = query.filter_by(is_active=False)

    users = query.order_by(User.id).all()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<5} {'Email':<35} {'Name':<25} {'Role':<9} {'Active'}")
    click.echo("=" * 90)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.email:<35} {user.full_name:<25} {user.role:<9} {active_str}")
    click.echo("=" * 90 + "\n")


@users_group.command('deactivate')
@click.option('--email', required=True, help='Email of the user to deactivate')
@with_appcontext
def deactivate_user_cli(email):
    """Soft-deactivate a user; outstanding tokens stop working immediately."""
    user = find_user_by_email(email)
    if not user:
        raise click.ClickException(f"User '{email}' not found")

    if not user.is_active:
        click.echo(f"WARN  User '{email}' is already inactive")
        return

    user.is_active = False
    db.session.commit()
    click.echo(f"PASS Deactivated user: {email}")


@click.group('products')
def products_group():
    """Catalog inspection commands."""


@products_group.command('low-stock')
@with_appcontext
def low_stock_cli():
    """List active products at or below their minimum stock level."""
    products = low_stock_products()
    if not products:
        click.echo("No low-stock products.")
        return

    click.echo(f"{'Product ID':<20} {'Name':<40} {'Stock':>6} {'Min':>6}")
    for p in products:
        click.echo(f"{p.product_id:<20} {p.name:<40} {p.stock_quantity:>6} {p.min_stock_level:>6}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(products_group)
