"""Create commission ledger tables

Revision ID: 20261001_000001
Revises:
Create Date: 2026-10-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261001_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Referral network nodes
    op.create_table(
        'affiliate_profiles',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('referred_by_id', sa.Integer(), nullable=True),
        sa.Column(
            'status', sa.String(length=20),
            nullable=False, server_default='PENDING'
        ),
        sa.Column(
            'total_earnings', sa.BigInteger(),
            nullable=False, server_default='0'
        ),
        sa.Column(
            'total_paid', sa.BigInteger(),
            nullable=False, server_default='0'
        ),
        sa.Column(
            'platform_affiliate_id', sa.String(length=64), nullable=True
        ),
        sa.Column('registered_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('activated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            'total_earnings >= 0',
            name='check_affiliate_total_earnings_non_negative'
        ),
        sa.CheckConstraint(
            'total_paid >= 0',
            name='check_affiliate_total_paid_non_negative'
        ),
        sa.CheckConstraint(
            'referred_by_id IS NULL OR referred_by_id <> id',
            name='check_affiliate_not_self_referred'
        ),
        sa.ForeignKeyConstraint(
            ['referred_by_id'], ['affiliate_profiles.id'],
            ondelete='RESTRICT'
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_affiliate_profiles_user_id', 'affiliate_profiles',
        ['user_id'], unique=True
    )
    op.create_index(
        'ix_affiliate_profiles_code', 'affiliate_profiles',
        ['code'], unique=True
    )
    op.create_index(
        'ix_affiliate_profiles_referred_by_id', 'affiliate_profiles',
        ['referred_by_id'], unique=False
    )
    op.create_index(
        'ix_affiliate_profiles_status', 'affiliate_profiles',
        ['status'], unique=False
    )

    # Activation fee mirror
    op.create_table(
        'activation_payments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('external_id', sa.String(length=128), nullable=True),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column(
            'status', sa.String(length=20),
            nullable=False, server_default='PENDING'
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_id')
    )
    op.create_index(
        'ix_activation_payments_user_id', 'activation_payments',
        ['user_id'], unique=True
    )

    # Commission ledger rows
    op.create_table(
        'affiliate_commissions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('affiliate_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.String(length=128), nullable=False),
        sa.Column('buyer_id', sa.Integer(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=10), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('original_amount', sa.BigInteger(), nullable=False),
        sa.Column(
            'status', sa.String(length=20),
            nullable=False, server_default='PENDING'
        ),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column(
            'platform_affiliate_id', sa.String(length=64), nullable=True
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            'amount >= 0', name='check_commission_amount_non_negative'
        ),
        sa.CheckConstraint(
            'level >= 1 AND level <= 10', name='check_commission_level_range'
        ),
        sa.ForeignKeyConstraint(
            ['affiliate_id'], ['affiliate_profiles.id'], ondelete='RESTRICT'
        ),
        sa.ForeignKeyConstraint(
            ['buyer_id'], ['affiliate_profiles.id'], ondelete='RESTRICT'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'affiliate_id', 'transaction_id', 'level', 'kind',
            name='uq_commission_affiliate_transaction_level_kind'
        )
    )
    op.create_index(
        'ix_affiliate_commissions_affiliate_id', 'affiliate_commissions',
        ['affiliate_id'], unique=False
    )
    op.create_index(
        'ix_affiliate_commissions_user_id', 'affiliate_commissions',
        ['user_id'], unique=False
    )
    op.create_index(
        'ix_affiliate_commissions_transaction_id', 'affiliate_commissions',
        ['transaction_id'], unique=False
    )
    op.create_index(
        'ix_affiliate_commissions_buyer_id', 'affiliate_commissions',
        ['buyer_id'], unique=False
    )
    op.create_index(
        'ix_affiliate_commissions_status', 'affiliate_commissions',
        ['status'], unique=False
    )
    op.create_index(
        'ix_commission_user_status_created', 'affiliate_commissions',
        ['user_id', 'status', 'created_at'], unique=False
    )

    # Withdrawal requests
    op.create_table(
        'commission_withdrawals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column(
            'status', sa.String(length=20),
            nullable=False, server_default='PENDING'
        ),
        sa.Column('bank_name', sa.String(length=100), nullable=False),
        sa.Column('account_number', sa.String(length=64), nullable=False),
        sa.Column('account_holder', sa.String(length=255), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('requested_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            'amount > 0', name='check_withdrawal_amount_positive'
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_commission_withdrawals_user_id', 'commission_withdrawals',
        ['user_id'], unique=False
    )
    op.create_index(
        'ix_commission_withdrawals_status', 'commission_withdrawals',
        ['status'], unique=False
    )
    op.create_index(
        'ix_withdrawal_user_status', 'commission_withdrawals',
        ['user_id', 'status'], unique=False
    )

    # FIFO debit audit trail
    op.create_table(
        'withdrawal_deductions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('withdrawal_id', sa.Integer(), nullable=False),
        sa.Column('commission_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('amount_before', sa.BigInteger(), nullable=False),
        sa.Column('amount_after', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            'amount > 0', name='check_deduction_amount_positive'
        ),
        sa.CheckConstraint(
            'amount_after = amount_before - amount',
            name='check_deduction_arithmetic'
        ),
        sa.ForeignKeyConstraint(
            ['withdrawal_id'], ['commission_withdrawals.id'],
            ondelete='RESTRICT'
        ),
        sa.ForeignKeyConstraint(
            ['commission_id'], ['affiliate_commissions.id'],
            ondelete='RESTRICT'
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_withdrawal_deductions_withdrawal_id', 'withdrawal_deductions',
        ['withdrawal_id'], unique=False
    )
    op.create_index(
        'ix_withdrawal_deductions_commission_id', 'withdrawal_deductions',
        ['commission_id'], unique=False
    )


def downgrade() -> None:
    op.drop_index(
        'ix_withdrawal_deductions_commission_id',
        table_name='withdrawal_deductions'
    )
    op.drop_index(
        'ix_withdrawal_deductions_withdrawal_id',
        table_name='withdrawal_deductions'
    )
    op.drop_table('withdrawal_deductions')

    op.drop_index(
        'ix_withdrawal_user_status', table_name='commission_withdrawals'
    )
    op.drop_index(
        'ix_commission_withdrawals_status',
        table_name='commission_withdrawals'
    )
    op.drop_index(
        'ix_commission_withdrawals_user_id',
        table_name='commission_withdrawals'
    )
    op.drop_table('commission_withdrawals')

    for index_name in (
        'ix_commission_user_status_created',
        'ix_affiliate_commissions_status',
        'ix_affiliate_commissions_buyer_id',
        'ix_affiliate_commissions_transaction_id',
        'ix_affiliate_commissions_user_id',
        'ix_affiliate_commissions_affiliate_id',
    ):
        op.drop_index(index_name, table_name='affiliate_commissions')
    op.drop_table('affiliate_commissions')

    op.drop_index(
        'ix_activation_payments_user_id', table_name='activation_payments'
    )
    op.drop_table('activation_payments')

    for index_name in (
        'ix_affiliate_profiles_status',
        'ix_affiliate_profiles_referred_by_id',
        'ix_affiliate_profiles_code',
        'ix_affiliate_profiles_user_id',
    ):
        op.drop_index(index_name, table_name='affiliate_profiles')
    op.drop_table('affiliate_profiles')
