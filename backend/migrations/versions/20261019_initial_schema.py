"""Initial schema: users, products, orders, order items

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

Creates:
1. users (email login, role, profile address, saved shipping addresses)
2. products (business key product_id, stock counters guarded by CHECKs)
3. orders (idempotency key unique per user)
4. order_items (immutable line snapshots)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. USERS
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=50), nullable=False),
        sa.Column('last_name', sa.String(length=50), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='user'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('phone', sa.String(length=20), nullable=False, server_default=''),
        sa.Column('address', sa.JSON(), nullable=False),
        sa.Column('profile_picture', sa.Text(), nullable=False, server_default=''),
        sa.Column('shipping_addresses', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index('ix_users_role_active', ['role', 'is_active'], unique=False)

    # ==========================================================================
    # 2. PRODUCTS
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=False),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('stock_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('min_stock_level', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.Column('specifications', sa.JSON(), nullable=False),
        sa.Column('supplier', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('stock_quantity >= 0', name='ck_products_stock_non_negative'),
        sa.CheckConstraint('min_stock_level >= 0', name='ck_products_min_stock_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', name='uq_products_product_id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index('ix_products_category_active', ['category', 'is_active'], unique=False)
        batch_op.create_index('ix_products_active_created', ['is_active', 'created_at'], unique=False)

    # ==========================================================================
    # 3. ORDERS
    # ==========================================================================
    op.create_table('orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_number', sa.String(length=40), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('idempotency_key', sa.String(length=128), nullable=True),
        sa.Column('customer_info', sa.JSON(), nullable=False),
        sa.Column('order_total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('shipping_address', sa.JSON(), nullable=False),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('estimated_delivery_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('actual_delivery_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_number', name='uq_orders_order_number'),
        sa.UniqueConstraint('user_id', 'idempotency_key', name='uq_orders_user_idempotency_key'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('orders', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_orders_user_id'), ['user_id'], unique=False)
        batch_op.create_index('ix_orders_user_created', ['user_id', 'created_at'], unique=False)
        batch_op.create_index('ix_orders_status', ['status'], unique=False)

    # ==========================================================================
    # 4. ORDER ITEMS
    # ==========================================================================
    op.create_table('order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('product_ref_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.String(length=20), nullable=False),
        sa.Column('product_name', sa.String(length=100), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('line_total_cents', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity >= 1', name='ck_order_items_quantity_positive'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.ForeignKeyConstraint(['product_ref_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('order_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_order_items_order_id'), ['order_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_order_items_product_ref_id'), ['product_ref_id'], unique=False)


def downgrade():
    with op.batch_alter_table('order_items', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_order_items_product_ref_id'))
        batch_op.drop_index(batch_op.f('ix_order_items_order_id'))
    op.drop_table('order_items')

    with op.batch_alter_table('orders', schema=None) as batch_op:
        batch_op.drop_index('ix_orders_status')
        batch_op.drop_index('ix_orders_user_created')
        batch_op.drop_index(batch_op.f('ix_orders_user_id'))
    op.drop_table('orders')

    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.drop_index('ix_products_active_created')
        batch_op.drop_index('ix_products_category_active')
    op.drop_table('products')

    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.drop_index('ix_users_role_active')
    op.drop_table('users')
