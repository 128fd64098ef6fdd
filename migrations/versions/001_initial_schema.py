"""
Alembic migration: Initial schema for users, companies and orders.

Creates the user profile table, companies with a case-insensitive unique
name index, orders with their status and amount constraints, and the
revenue_summary view the dashboard reads.

Revision ID: 001
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """
    Create users, companies, orders and the revenue_summary view.
    """
    # User profiles, keyed by the identity provider's user id
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('role', sa.String(16), nullable=False, server_default='employee'),
        sa.Column('salary', sa.Numeric(12, 2), nullable=True, comment='Monthly salary'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sa.CheckConstraint("role IN ('owner', 'employee')", name='ck_users_role'),
    )
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'companies',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('contact_person', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
    )
    op.create_index(
        'ux_companies_name_lower',
        'companies',
        [sa.text('lower(name)')],
        unique=True,
    )

    op.create_table(
        'orders',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price_per_unit', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(1024), nullable=True),
        sa.Column('status', sa.String(32), nullable=False, server_default='awaiting_approval'),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('approved_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sell_price', sa.Numeric(18, 2), nullable=True),
        sa.Column('material_cost', sa.Numeric(18, 2), nullable=True),
        sa.Column('labor_cost', sa.Numeric(18, 2), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['approved_by'], ['users.id'], ondelete='SET NULL'),
        sa.CheckConstraint(
            "status IN ('awaiting_approval', 'completed')",
            name='ck_orders_status',
        ),
        sa.CheckConstraint(
            'quantity >= 1 AND quantity <= 100000000',
            name='ck_orders_quantity_range',
        ),
        sa.CheckConstraint(
            'price_per_unit > 0 AND price_per_unit <= 10000000',
            name='ck_orders_price_per_unit_range',
        ),
        sa.CheckConstraint('total_amount >= 0', name='ck_orders_total_amount_non_negative'),
        sa.CheckConstraint(
            "status = 'completed' OR "
            "(approved_by IS NULL AND approved_at IS NULL AND completed_at IS NULL)",
            name='ck_orders_unapproved_fields_unset',
        ),
    )
    op.create_index('ix_orders_company_id', 'orders', ['company_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_status_created', 'orders', ['status', 'created_at'])
    op.create_index('ix_orders_status_approved', 'orders', ['status', 'approved_at'])

    # Per-status rollup read by the dashboard
    op.execute(
        """
        CREATE VIEW revenue_summary AS
        SELECT status,
               COUNT(*) AS order_count,
               COALESCE(SUM(total_amount), 0) AS total_revenue
        FROM orders
        GROUP BY status
        """
    )


def downgrade() -> None:
    """
    Drop the view and tables in reverse dependency order.
    """
    op.execute('DROP VIEW IF EXISTS revenue_summary')

    op.drop_index('ix_orders_status_approved', table_name='orders')
    op.drop_index('ix_orders_status_created', table_name='orders')
    op.drop_index('ix_orders_status', table_name='orders')
    op.drop_index('ix_orders_company_id', table_name='orders')
    op.drop_table('orders')

    op.drop_index('ux_companies_name_lower', table_name='companies')
    op.drop_table('companies')

    op.drop_index('ix_users_role', table_name='users')
    op.drop_table('users')
