# alembic/versions/001_initial.py

"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Latest quote per symbol
    op.create_table('stock_quote',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('symbol', sa.String(length=16), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('price', sa.Numeric(precision=14, scale=4), nullable=False),
        sa.Column('change', sa.Numeric(precision=14, scale=4), nullable=False),
        sa.Column('change_percent', sa.String(length=16), nullable=False),
        sa.Column('volume', sa.BigInteger(), nullable=False),
        sa.Column('previous_close', sa.Numeric(precision=14, scale=4), nullable=False),
        sa.Column('open', sa.Numeric(precision=14, scale=4), nullable=False),
        sa.Column('high', sa.Numeric(precision=14, scale=4), nullable=False),
        sa.Column('low', sa.Numeric(precision=14, scale=4), nullable=False),
        sa.Column('last_updated', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_stock_quote_symbol', 'stock_quote', ['symbol'], unique=True)

    # Holdings (one row per user and symbol)
    op.create_table('holding',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('symbol', sa.String(length=16), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('average_price', sa.Numeric(precision=18, scale=6), nullable=False),
        sa.Column('total_invested', sa.Numeric(precision=18, scale=6), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'symbol', name='uq_holding_user_symbol')
    )
    op.create_index('ix_holding_user_id', 'holding', ['user_id'])

    # Trade log (insert-only)
    op.create_table('executed_trade',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('symbol', sa.String(length=16), nullable=False),
        sa.Column('side', sa.Enum('BUY', 'SELL', name='tradesideenum'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(precision=14, scale=4), nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=18, scale=4), nullable=False),
        sa.Column('average_price_after', sa.Numeric(precision=18, scale=6), nullable=False),
        sa.Column('realized_pnl', sa.Numeric(precision=18, scale=4), nullable=True),
        sa.Column('executed_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_executed_trade_user', 'executed_trade', ['user_id', 'executed_at'])


def downgrade():
    op.drop_index('ix_executed_trade_user', table_name='executed_trade')
    op.drop_table('executed_trade')
    sa.Enum(name='tradesideenum').drop(op.get_bind(), checkfirst=True)
    op.drop_index('ix_holding_user_id', table_name='holding')
    op.drop_table('holding')
    op.drop_index('ix_stock_quote_symbol', table_name='stock_quote')
    op.drop_table('stock_quote')
