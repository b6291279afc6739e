"""Initial schema: Telegram users and their Aptos wallets.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users table
    op.create_table(
        'telegram_users',
        sa.Column('telegram_id', sa.String(32), nullable=False),
        sa.Column('username', sa.String(255), nullable=True),
        sa.Column('first_name', sa.String(255), nullable=True),
        sa.Column('last_name', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('telegram_id')
    )

    # Wallets table - key material columns hold ciphertext
    op.create_table(
        'aptos_wallets',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('telegram_id', sa.String(32), nullable=False),
        sa.Column('wallet_name', sa.String(20), nullable=False),
        sa.Column('private_key', sa.Text(), nullable=False),
        sa.Column('public_key', sa.Text(), nullable=False),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['telegram_id'], ['telegram_users.telegram_id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_aptos_wallets_telegram_id', 'aptos_wallets', ['telegram_id'])
    op.create_index(
        'uq_wallets_user_name',
        'aptos_wallets',
        ['telegram_id', 'wallet_name'],
        unique=True,
        sqlite_where=sa.text('deleted = 0'),
        postgresql_where=sa.text('deleted = false'),
    )


def downgrade() -> None:
    op.drop_index('uq_wallets_user_name', table_name='aptos_wallets')
    op.drop_index('ix_aptos_wallets_telegram_id', table_name='aptos_wallets')
    op.drop_table('aptos_wallets')
    op.drop_table('telegram_users')
