"""Cashier reconciliation: days, shifts, drawer lines, vouchers, history

Revision ID: c4d1a7e2b9f0
Revises:
Create Date: 2026-10-18 09:12:44.118204

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c4d1a7e2b9f0'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('cashier_daily',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('date', sa.Date(), nullable=False),
    sa.Column('total_cash_cents', sa.BigInteger(), nullable=False),
    sa.Column('total_card_cents', sa.BigInteger(), nullable=False),
    sa.Column('total_bacs_cents', sa.BigInteger(), nullable=False),
    sa.Column('total_web_payment_cents', sa.BigInteger(), nullable=False),
    sa.Column('total_transfer_cents', sa.BigInteger(), nullable=False),
    sa.Column('total_other_cents', sa.BigInteger(), nullable=False),
    sa.Column('grand_total_cents', sa.BigInteger(), nullable=False),
    sa.Column('status', sa.String(length=16), nullable=False),
    sa.Column('opened_by', sa.String(length=64), nullable=True),
    sa.Column('closed_by', sa.String(length=64), nullable=True),
    sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    sa.Column('version_id', sa.Integer(), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sqlite_autoincrement=True
    )
    with op.batch_alter_table('cashier_daily', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_cashier_daily_date'), ['date'], unique=True)
        batch_op.create_index(batch_op.f('ix_cashier_daily_status'), ['status'], unique=False)

    op.create_table('cashier_shifts',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('daily_id', sa.Integer(), nullable=False),
    sa.Column('shift_date', sa.Date(), nullable=False),
    sa.Column('shift_type', sa.String(length=16), nullable=False),
    sa.Column('status', sa.String(length=16), nullable=False),
    sa.Column('initial_fund_cents', sa.BigInteger(), nullable=False),
    sa.Column('income_cents', sa.BigInteger(), nullable=False),
    sa.Column('income_breakdown', sa.JSON(), nullable=True),
    sa.Column('cash_counted_cents', sa.BigInteger(), nullable=False),
    sa.Column('cash_expected_cents', sa.BigInteger(), nullable=False),
    sa.Column('difference_cents', sa.BigInteger(), nullable=False),
    sa.Column('payments_total_cents', sa.BigInteger(), nullable=False),
    sa.Column('grand_total_cents', sa.BigInteger(), nullable=False),
    sa.Column('has_discrepancy', sa.Boolean(), nullable=False),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('opened_by', sa.String(length=64), nullable=True),
    sa.Column('closed_by', sa.String(length=64), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('version_id', sa.Integer(), nullable=False),
    sa.ForeignKeyConstraint(['daily_id'], ['cashier_daily.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('daily_id', 'shift_type', name='uq_cashier_shifts_daily_type'),
    sqlite_autoincrement=True
    )
    with op.batch_alter_table('cashier_shifts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_cashier_shifts_daily_id'), ['daily_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_cashier_shifts_shift_date'), ['shift_date'], unique=False)
        batch_op.create_index(batch_op.f('ix_cashier_shifts_status'), ['status'], unique=False)

    op.create_table('cashier_shift_users',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('shift_id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.String(length=64), nullable=False),
    sa.Column('is_primary', sa.Boolean(), nullable=False),
    sa.ForeignKeyConstraint(['shift_id'], ['cashier_shifts.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('shift_id', 'user_id', name='uq_cashier_shift_users_shift_user'),
    sqlite_autoincrement=True
    )
    with op.batch_alter_table('cashier_shift_users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_cashier_shift_users_shift_id'), ['shift_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_cashier_shift_users_user_id'), ['user_id'], unique=False)

    op.create_table('cashier_denominations',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('shift_id', sa.Integer(), nullable=False),
    sa.Column('denomination_cents', sa.Integer(), nullable=False),
    sa.Column('quantity', sa.Integer(), nullable=False),
    sa.Column('total_cents', sa.BigInteger(), nullable=False),
    sa.ForeignKeyConstraint(['shift_id'], ['cashier_shifts.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('shift_id', 'denomination_cents', name='uq_cashier_denominations_shift_value'),
    sqlite_autoincrement=True
    )
    with op.batch_alter_table('cashier_denominations', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_cashier_denominations_shift_id'), ['shift_id'], unique=False)

    op.create_table('cashier_payments',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('shift_id', sa.Integer(), nullable=False),
    sa.Column('payment_method_id', sa.Integer(), nullable=False),
    sa.Column('amount_cents', sa.BigInteger(), nullable=False),
    sa.ForeignKeyConstraint(['shift_id'], ['cashier_shifts.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('shift_id', 'payment_method_id', name='uq_cashier_payments_shift_method'),
    sqlite_autoincrement=True
    )
    with op.batch_alter_table('cashier_payments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_cashier_payments_shift_id'), ['shift_id'], unique=False)

    op.create_table('cashier_vouchers',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('shift_id', sa.Integer(), nullable=True),
    sa.Column('justified_shift_id', sa.Integer(), nullable=True),
    sa.Column('amount_cents', sa.BigInteger(), nullable=False),
    sa.Column('reason', sa.String(length=255), nullable=False),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('status', sa.String(length=16), nullable=False),
    sa.Column('created_by', sa.String(length=64), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    sa.Column('resolved_by', sa.String(length=64), nullable=True),
    sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('version_id', sa.Integer(), nullable=False),
    sa.ForeignKeyConstraint(['justified_shift_id'], ['cashier_shifts.id'], ),
    sa.ForeignKeyConstraint(['shift_id'], ['cashier_shifts.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sqlite_autoincrement=True
    )
    with op.batch_alter_table('cashier_vouchers', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_cashier_vouchers_created_at'), ['created_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_cashier_vouchers_justified_shift_id'), ['justified_shift_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_cashier_vouchers_shift_id'), ['shift_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_cashier_vouchers_status'), ['status'], unique=False)

    # shift_id is a weak reference on purpose: no foreign key
    op.create_table('cashier_history',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('shift_id', sa.Integer(), nullable=True),
    sa.Column('action', sa.String(length=32), nullable=False),
    sa.Column('table_affected', sa.String(length=64), nullable=True),
    sa.Column('record_id', sa.Integer(), nullable=True),
    sa.Column('field_changed', sa.String(length=64), nullable=True),
    sa.Column('old_value', sa.Text(), nullable=True),
    sa.Column('new_value', sa.Text(), nullable=True),
    sa.Column('changed_by', sa.String(length=64), nullable=True),
    sa.Column('changed_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.PrimaryKeyConstraint('id'),
    sqlite_autoincrement=True
    )
    with op.batch_alter_table('cashier_history', schema=None) as batch_op:
        batch_op.create_index('ix_cashier_history_shift_changed', ['shift_id', 'changed_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_cashier_history_action'), ['action'], unique=False)
        batch_op.create_index(batch_op.f('ix_cashier_history_changed_at'), ['changed_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_cashier_history_changed_by'), ['changed_by'], unique=False)
        batch_op.create_index(batch_op.f('ix_cashier_history_shift_id'), ['shift_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_cashier_history_table_affected'), ['table_affected'], unique=False)


def downgrade():
    with op.batch_alter_table('cashier_history', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_cashier_history_table_affected'))
        batch_op.drop_index(batch_op.f('ix_cashier_history_shift_id'))
        batch_op.drop_index(batch_op.f('ix_cashier_history_changed_by'))
        batch_op.drop_index(batch_op.f('ix_cashier_history_changed_at'))
        batch_op.drop_index(batch_op.f('ix_cashier_history_action'))
        batch_op.drop_index('ix_cashier_history_shift_changed')
    op.drop_table('cashier_history')

    with op.batch_alter_table('cashier_vouchers', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_cashier_vouchers_status'))
        batch_op.drop_index(batch_op.f('ix_cashier_vouchers_shift_id'))
        batch_op.drop_index(batch_op.f('ix_cashier_vouchers_justified_shift_id'))
        batch_op.drop_index(batch_op.f('ix_cashier_vouchers_created_at'))
    op.drop_table('cashier_vouchers')

    with op.batch_alter_table('cashier_payments', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_cashier_payments_shift_id'))
    op.drop_table('cashier_payments')

    with op.batch_alter_table('cashier_denominations', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_cashier_denominations_shift_id'))
    op.drop_table('cashier_denominations')

    with op.batch_alter_table('cashier_shift_users', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_cashier_shift_users_user_id'))
        batch_op.drop_index(batch_op.f('ix_cashier_shift_users_shift_id'))
    op.drop_table('cashier_shift_users')

    with op.batch_alter_table('cashier_shifts', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_cashier_shifts_status'))
        batch_op.drop_index(batch_op.f('ix_cashier_shifts_shift_date'))
        batch_op.drop_index(batch_op.f('ix_cashier_shifts_daily_id'))
    op.drop_table('cashier_shifts')

    with op.batch_alter_table('cashier_daily', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_cashier_daily_status'))
        batch_op.drop_index(batch_op.f('ix_cashier_daily_date'))
    op.drop_table('cashier_daily')
