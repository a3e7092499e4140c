"""Create partners and payouts tables

Revision ID: 20261019_000001
Revises: 
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'partners',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('referral_code', sa.String(64), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('payout_account_id', sa.String(255), nullable=True),
        sa.Column('telegram_id', sa.BigInteger(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('referral_code'),
    )

    op.create_table(
        'payouts',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('partner_id', sa.String(36), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('gross_amount', sa.BigInteger(), nullable=False),
        sa.Column('platform_fee', sa.BigInteger(), nullable=False),
        sa.Column('gateway_fee', sa.BigInteger(), nullable=False),
        sa.Column('net_amount', sa.BigInteger(), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False, server_default='usd'),
        sa.Column('payment_method', sa.String(20), nullable=False, server_default='gateway'),
        sa.Column('external_transaction_id', sa.String(255), nullable=True),
        sa.Column('gateway_transfer_id', sa.String(255), nullable=True),
        sa.Column('gateway_payout_id', sa.String(255), nullable=True),
        sa.Column('transfer_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('requested_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['partner_id'], ['partners.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_transaction_id'),
        sa.UniqueConstraint('gateway_transfer_id'),
        sa.UniqueConstraint('gateway_payout_id'),
        sa.CheckConstraint('gross_amount > 0', name='check_payout_gross_positive'),
        sa.CheckConstraint(
            'platform_fee >= 0 AND gateway_fee >= 0',
            name='check_payout_fees_non_negative',
        ),
        sa.CheckConstraint('net_amount >= 0', name='check_payout_net_non_negative'),
        sa.CheckConstraint(
            'net_amount = gross_amount - platform_fee - gateway_fee',
            name='check_payout_net_equals_gross_minus_fees',
        ),
        sa.CheckConstraint(
            "external_transaction_id IS NULL OR status IN ('PROCESSING', 'COMPLETED')",
            name='check_payout_external_id_status',
        ),
    )
    op.create_index('ix_payouts_partner_id', 'payouts', ['partner_id'])
    op.create_index('ix_payouts_status', 'payouts', ['status'])
    op.create_index('idx_payout_partner_status', 'payouts', ['partner_id', 'status'])
    op.create_index('idx_payout_partner_requested', 'payouts', ['partner_id', 'requested_at'])


def downgrade() -> None:
    op.drop_index('idx_payout_partner_requested', 'payouts')
    op.drop_index('idx_payout_partner_status', 'payouts')
    op.drop_index('ix_payouts_status', 'payouts')
    op.drop_index('ix_payouts_partner_id', 'payouts')
    op.drop_table('payouts')

    op.drop_table('partners')
