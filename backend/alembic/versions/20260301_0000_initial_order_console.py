"""initial_order_console_schema

Revision ID: initial_order_console
Revises:
Create Date: 2026-03-01 00:00:00.000000+00:00

"""
from alembic import op
import sqlalchemy as sa
from app.database_types import JSON, GUID


revision = 'initial_order_console'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'telegram_users',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('telegram_id', sa.String(), nullable=False),
        sa.Column('username', sa.String(), nullable=True),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=False, server_default='employee'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_telegram_users_telegram_id'), 'telegram_users', ['telegram_id'], unique=True)
    op.create_index(op.f('ix_telegram_users_role'), 'telegram_users', ['role'], unique=False)

    op.create_table(
        'orders',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('order_number', sa.String(), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('telegram_user_id', GUID(), nullable=False),
        sa.Column('original_content', sa.Text(), nullable=False),
        sa.Column('template_data', JSON(), nullable=True),
        sa.Column('modified_content', sa.Text(), nullable=True),
        sa.Column('is_modified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('modification_time', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('approved_by', GUID(), nullable=True),
        sa.Column('approval_method', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['telegram_user_id'], ['telegram_users.id']),
        sa.ForeignKeyConstraint(['approved_by'], ['telegram_users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_orders_order_number'), 'orders', ['order_number'], unique=True)
    op.create_index(op.f('ix_orders_telegram_user_id'), 'orders', ['telegram_user_id'], unique=False)
    op.create_index('idx_orders_status_created', 'orders', ['status', 'created_at'], unique=False)
    op.create_index('idx_orders_type_created', 'orders', ['type', 'created_at'], unique=False)

    # code is not unique: only one *valid* record may hold a digit string
    op.create_table(
        'activation_codes',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('type', sa.String(), nullable=False, server_default='employee'),
        sa.Column('is_used', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('used_by', sa.String(), nullable=True),
        sa.Column('used_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_activation_codes_code'), 'activation_codes', ['code'], unique=False)
    op.create_index('idx_activation_codes_validity', 'activation_codes', ['is_used', 'expires_at'], unique=False)

    op.create_table(
        'admin_groups',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('group_id', sa.String(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('activated_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_admin_groups_group_id'), 'admin_groups', ['group_id'], unique=True)

    op.create_table(
        'system_settings',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('key', sa.String(), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_system_settings_key'), 'system_settings', ['key'], unique=True)


def downgrade() -> None:
    op.drop_index(op.f('ix_system_settings_key'), table_name='system_settings')
    op.drop_table('system_settings')

    op.drop_index(op.f('ix_admin_groups_group_id'), table_name='admin_groups')
    op.drop_table('admin_groups')

    op.drop_index('idx_activation_codes_validity', table_name='activation_codes')
    op.drop_index(op.f('ix_activation_codes_code'), table_name='activation_codes')
    op.drop_table('activation_codes')

    op.drop_index('idx_orders_type_created', table_name='orders')
    op.drop_index('idx_orders_status_created', table_name='orders')
    op.drop_index(op.f('ix_orders_telegram_user_id'), table_name='orders')
    op.drop_index(op.f('ix_orders_order_number'), table_name='orders')
    op.drop_table('orders')

    op.drop_index(op.f('ix_telegram_users_role'), table_name='telegram_users')
    op.drop_index(op.f('ix_telegram_users_telegram_id'), table_name='telegram_users')
    op.drop_table('telegram_users')
