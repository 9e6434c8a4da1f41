"""Create affiliate ledger tables.

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, sa.DECIMAL(18, 8), **kwargs)


def _timestamp(name: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    """Create affiliates, attributions, commissions, withdrawals, ledger_events."""

    op.create_table(
        'affiliates',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('referral_code', sa.String(32), nullable=False),
        sa.Column('tier', sa.String(16), nullable=False),
        sa.Column('status', sa.String(16), nullable=False),
        _timestamp('terms_accepted_at'),
        sa.Column('terms_version', sa.String(32), nullable=True),
        _timestamp('suspended_at'),
        sa.Column('suspension_reason', sa.Text(), nullable=True),
        _money('total_earnings', nullable=False, server_default='0'),
        _money('withdrawn_balance', nullable=False, server_default='0'),
        _money(
            'available_balance',
            nullable=False,
            server_default='0',
            comment='Negative after a clawback of already withdrawn earnings',
        ),
        _timestamp('created_at', nullable=False),
        _timestamp('updated_at', nullable=False),
    )
    op.create_index('ix_affiliates_user_id', 'affiliates', ['user_id'], unique=True)
    op.create_index(
        'ix_affiliates_referral_code', 'affiliates', ['referral_code'], unique=True
    )
    op.create_index('idx_affiliates_status', 'affiliates', ['status'])

    op.create_table(
        'attributions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('visitor_token', sa.String(128), nullable=False),
        sa.Column('referral_code', sa.String(32), nullable=False),
        sa.Column(
            'affiliate_id',
            sa.Integer(),
            sa.ForeignKey('affiliates.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        _timestamp('captured_at', nullable=False),
        _timestamp('expires_at', nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=True),
        sa.Column('source', sa.String(64), nullable=True),
        sa.Column('ip_address', sa.String(64), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('referrer_url', sa.Text(), nullable=True),
    )
    op.create_index('ix_attributions_visitor_token', 'attributions', ['visitor_token'])
    op.create_index('ix_attributions_affiliate_id', 'attributions', ['affiliate_id'])
    op.create_index('ix_attributions_user_id', 'attributions', ['user_id'])
    op.create_index(
        'idx_attributions_visitor_expires',
        'attributions',
        ['visitor_token', 'expires_at'],
    )

    op.create_table(
        'commissions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            'affiliate_id',
            sa.Integer(),
            sa.ForeignKey('affiliates.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column('order_id', sa.String(128), nullable=False, unique=True),
        sa.Column('plan', sa.String(32), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        _money('sale_amount', nullable=False),
        sa.Column('commission_rate', sa.DECIMAL(5, 4), nullable=False),
        _money('commission_amount', nullable=False),
        sa.Column('status', sa.String(16), nullable=False),
        _timestamp('created_at', nullable=False),
        _timestamp('matures_at', nullable=False),
        _timestamp('confirmed_at'),
        _timestamp('paid_at'),
        _timestamp('cancelled_at'),
        sa.Column('cancel_reason', sa.String(16), nullable=True),
        sa.CheckConstraint('sale_amount > 0', name='check_commission_sale_positive'),
        sa.CheckConstraint(
            'commission_amount >= 0', name='check_commission_amount_non_negative'
        ),
    )
    op.create_index('ix_commissions_affiliate_id', 'commissions', ['affiliate_id'])
    op.create_index(
        'idx_commissions_status_matures', 'commissions', ['status', 'matures_at']
    )
    op.create_index(
        'idx_commissions_affiliate_status', 'commissions', ['affiliate_id', 'status']
    )

    op.create_table(
        'withdrawals',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            'affiliate_id',
            sa.Integer(),
            sa.ForeignKey('affiliates.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        _money('amount', nullable=False),
        sa.Column('payment_method', sa.String(32), nullable=False),
        sa.Column(
            'payment_details',
            sa.Text(),
            nullable=True,
            comment='Fernet-encrypted JSON',
        ),
        sa.Column('status', sa.String(16), nullable=False),
        _timestamp('created_at', nullable=False),
        _timestamp('processing_at'),
        _timestamp('resolved_at'),
        sa.Column('resolution_note', sa.Text(), nullable=True),
        sa.CheckConstraint('amount > 0', name='check_withdrawal_amount_positive'),
    )
    op.create_index('ix_withdrawals_affiliate_id', 'withdrawals', ['affiliate_id'])
    op.create_index('ix_withdrawals_status', 'withdrawals', ['status'])
    op.create_index(
        'idx_withdrawals_affiliate_status', 'withdrawals', ['affiliate_id', 'status']
    )

    op.create_table(
        'ledger_events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            'affiliate_id',
            sa.Integer(),
            sa.ForeignKey('affiliates.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column('event_type', sa.String(32), nullable=False),
        sa.Column(
            'commission_id',
            sa.Integer(),
            sa.ForeignKey('commissions.id', ondelete='RESTRICT'),
            nullable=True,
        ),
        sa.Column(
            'withdrawal_id',
            sa.Integer(),
            sa.ForeignKey('withdrawals.id', ondelete='RESTRICT'),
            nullable=True,
        ),
        _money('amount', nullable=False),
        _money('earnings_delta', nullable=False, server_default='0'),
        _money('withdrawn_delta', nullable=False, server_default='0'),
        _money('available_delta', nullable=False, server_default='0'),
        _money('total_earnings_after', nullable=False),
        _money('withdrawn_balance_after', nullable=False),
        _money('available_balance_after', nullable=False),
        _timestamp('created_at', nullable=False),
    )
    op.create_index(
        'idx_ledger_events_affiliate_id', 'ledger_events', ['affiliate_id', 'id']
    )
    op.create_index('idx_ledger_events_commission', 'ledger_events', ['commission_id'])
    op.create_index('idx_ledger_events_withdrawal', 'ledger_events', ['withdrawal_id'])


def downgrade() -> None:
    """Drop affiliate ledger tables."""
    op.drop_table('ledger_events')
    op.drop_table('withdrawals')
    op.drop_table('commissions')
    op.drop_table('attributions')
    op.drop_table('affiliates')
