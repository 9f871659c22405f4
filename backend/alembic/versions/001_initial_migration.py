# backend/alembic/versions/001_initial_migration.py
"""Initial migration

Revision ID: 001
Revises: 
Create Date: 2026-10-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

RESOURCE_TABLES = ['invoices', 'customers', 'products', 'deals', 'quotes']


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Create subscription_plans table
    op.create_table(
        'subscription_plans',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(100), unique=True, nullable=False),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), server_default=sa.text("0"), nullable=False),
        sa.Column('currency', sa.String(3), server_default=sa.text("'USD'"), nullable=False),
        sa.Column('features', sa.JSON, server_default=sa.text("'{}'"), nullable=False),
        sa.Column('is_active', sa.Boolean, server_default=sa.true(), nullable=False),
        sa.Column('sort_order', sa.Integer, server_default=sa.text("0"), nullable=False),
        *_timestamps(),
    )

    # Create companies table
    op.create_table(
        'companies',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('plan_id', sa.String(36), sa.ForeignKey('subscription_plans.id'), index=True),
        sa.Column('subscription_status', sa.String(50)),
        sa.Column('is_trial', sa.Boolean, server_default=sa.false(), nullable=False),
        sa.Column('trial_ends_at', sa.DateTime(timezone=True)),
        sa.Column('subscription_started_at', sa.DateTime(timezone=True)),
        *_timestamps(),
    )

    # Create role_permissions table
    op.create_table(
        'role_permissions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('company_id', sa.String(36), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('role_name', sa.String(20), nullable=False),
        sa.Column('module_key', sa.String(50), nullable=False),
        sa.Column('can_view', sa.Boolean, server_default=sa.true(), nullable=False),
        sa.Column('can_edit', sa.Boolean, server_default=sa.false(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('company_id', 'role_name', 'module_key', name='role_permissions_company_role_module_key'),
        sa.CheckConstraint("role_name IN ('admin', 'user')", name='role_permissions_role_name_check'),
    )

    # Quota-counted records
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('company_id', sa.String(36), sa.ForeignKey('companies.id'), index=True),
        sa.Column('role', sa.String(20), server_default=sa.text("'user'"), nullable=False),
        *_timestamps(),
    )

    for table in RESOURCE_TABLES:
        op.create_table(
            table,
            sa.Column('id', sa.String(36), primary_key=True),
            sa.Column('company_id', sa.String(36), sa.ForeignKey('companies.id'), nullable=False, index=True),
            *_timestamps(),
        )


def downgrade() -> None:
    for table in reversed(RESOURCE_TABLES):
        op.drop_table(table)
    op.drop_table('profiles')
    op.drop_table('role_permissions')
    op.drop_table('companies')
    op.drop_table('subscription_plans')
