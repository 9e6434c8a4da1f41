"""Add commission payment holds.

Revision ID: 20261019_000002
Revises: 20261019_000001
Create Date: 2026-10-19

Commissions earned while the affiliate's own subscription is overdue are
held out of maturation until released.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_000002'
down_revision = '20261019_000001'
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Add hold columns to commissions and subscription standing to affiliates."""
    op.add_column(
        'affiliates',
        sa.Column(
            'subscription_overdue_since',
            sa.DateTime(timezone=True),
            nullable=True,
            comment='Set while the affiliate owes its own subscription payment'
        )
    )

    op.add_column(
        'commissions',
        sa.Column(
            'payment_held',
            sa.Boolean(),
            nullable=False,
            server_default='false',
            comment='Held out of maturation until released'
        )
    )
    op.add_column(
        'commissions',
        sa.Column('held_reason', sa.String(255), nullable=True)
    )
    op.add_column(
        'commissions',
        sa.Column('held_at', sa.DateTime(timezone=True), nullable=True)
    )
    op.add_column(
        'commissions',
        sa.Column('released_at', sa.DateTime(timezone=True), nullable=True)
    )

    # Release lookups per affiliate
    op.create_index(
        'idx_commissions_affiliate_held',
        'commissions',
        ['affiliate_id', 'payment_held']
    )


def downgrade() -> None:
    """Remove commission hold columns."""
    op.drop_index('idx_commissions_affiliate_held', table_name='commissions')
    op.drop_column('commissions', 'released_at')
    op.drop_column('commissions', 'held_at')
    op.drop_column('commissions', 'held_reason')
    op.drop_column('commissions', 'payment_held')
    op.drop_column('affiliates', 'subscription_overdue_since')
