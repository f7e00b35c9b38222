"""initial revenue schema

Revision ID: b7c1d2e3f4a5
Revises:
Create Date: 2026-10-19 00:00:00.000000

This migration creates the complete StoreOps revenue schema from scratch:
- users / session_tokens: console identity (WhoAmI)
- stores: store directory
- order_items: raw POS order lines, values kept as received
- daily_store_revenue: one summary row per (store_id, date)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b7c1d2e3f4a5'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """
    Create all tables from scratch.

    WHY: Entity tables use opaque string ids because the same records may
    live in the remote entity-storage service, which assigns its own ids.
    """

    # ============================================================================
    # users: Console users (created via `flask users create`)
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username', name='uq_users_username'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_username', 'users', ['username'])

    # ============================================================================
    # session_tokens: Hashed bearer tokens
    # ============================================================================
    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'])

    # ============================================================================
    # stores: Store directory
    # ============================================================================
    op.create_table(
        'stores',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )

    # ============================================================================
    # order_items: Raw POS order lines
    # ============================================================================
    # modified_date stays a string: it is the POS clock as sent, and rows
    # with unparseable values must still be storable.
    op.create_table(
        'order_items',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('modified_date', sa.String(length=64), nullable=True),
        sa.Column('store_id', sa.String(length=64), nullable=True),
        sa.Column('store_name', sa.String(length=120), nullable=True),
        sa.Column('printed_order_item_channel', sa.String(length=64), nullable=True),
        sa.Column('order_key', sa.String(length=128), nullable=True),
        sa.Column('order_item_name', sa.String(length=255), nullable=True),
        sa.Column('final_price', sa.Float(), nullable=True),
        sa.Column('final_price_with_discounts', sa.Float(), nullable=True),
        sa.Column('source_app', sa.String(length=64), nullable=True),
        sa.Column('source_type', sa.String(length=64), nullable=True),
        sa.Column('money_type_name', sa.String(length=64), nullable=True),
        sa.Column('sale_type_name', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_order_items_modified_date', 'order_items', ['modified_date'])
    op.create_index('ix_order_items_store_id', 'order_items', ['store_id'])

    # ============================================================================
    # daily_store_revenue: Job output, one row per (store_id, date)
    # ============================================================================
    op.create_table(
        'daily_store_revenue',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('store_id', sa.String(length=64), nullable=False),
        sa.Column('date', sa.String(length=10), nullable=False),
        sa.Column('store_name', sa.String(length=120), nullable=True),
        sa.Column('total_final_price_with_discounts', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_final_price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_orders', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_items', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('breakdown_by_source_app', sa.JSON(), nullable=True),
        sa.Column('breakdown_by_source_type', sa.JSON(), nullable=True),
        sa.Column('breakdown_by_money_type_name', sa.JSON(), nullable=True),
        sa.Column('breakdown_by_sale_type_name', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'date', name='uq_daily_store_revenue_store_date'),
    )
    op.create_index('ix_daily_store_revenue_store_id', 'daily_store_revenue', ['store_id'])
    op.create_index('ix_daily_store_revenue_date', 'daily_store_revenue', ['date'])


def downgrade():
    """Drop all tables in reverse dependency order."""
    op.drop_index('ix_daily_store_revenue_date', table_name='daily_store_revenue')
    op.drop_index('ix_daily_store_revenue_store_id', table_name='daily_store_revenue')
    op.drop_table('daily_store_revenue')

    op.drop_index('ix_order_items_store_id', table_name='order_items')
    op.drop_index('ix_order_items_modified_date', table_name='order_items')
    op.drop_table('order_items')

    op.drop_table('stores')

    op.drop_index('ix_session_tokens_user_active', table_name='session_tokens')
    op.drop_index('ix_session_tokens_is_revoked', table_name='session_tokens')
    op.drop_index('ix_session_tokens_expires_at', table_name='session_tokens')
    op.drop_index('ix_session_tokens_token_hash', table_name='session_tokens')
    op.drop_index('ix_session_tokens_user_id', table_name='session_tokens')
    op.drop_table('session_tokens')

    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')
