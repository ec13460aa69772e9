"""create user, game_history, film_quote and game_quote

Revision ID: 3c7a91d0b2e4
Revises:
Create Date: 2026-10-18 10:20:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c7a91d0b2e4'
down_revision = None
branch_labels = None
depends_on = None


QUOTE_TABLES = ('film_quote', 'game_quote')


def _quote_columns():
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quote', sa.Text(), nullable=False),
        sa.Column('character', sa.String(length=128), nullable=False),
        sa.Column('to', sa.String(length=128), nullable=True),
        sa.Column('title', sa.String(length=256), nullable=False),
        sa.Column('image', sa.String(length=512), nullable=True),
        sa.Column('voice_record', sa.String(length=512), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    ]


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa.inspect(bind).get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)

    if 'game_history' not in existing_tables:
        op.create_table(
            'game_history',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('score', sa.Integer(), nullable=False),
            sa.Column('mode', sa.String(length=64), nullable=True),
            sa.Column('played_at', sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['user.id']),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_game_history_user_id', 'game_history', ['user_id'], unique=False)

    for table in QUOTE_TABLES:
        if table not in existing_tables:
            op.create_table(table, *_quote_columns())


def downgrade():
    existing_tables = set(sa.inspect(op.get_bind()).get_table_names())

    for table in QUOTE_TABLES:
        if table in existing_tables:
            op.drop_table(table)
    if 'game_history' in existing_tables:
        op.drop_index('ix_game_history_user_id', table_name='game_history')
        op.drop_table('game_history')
    if 'user' in existing_tables:
        op.drop_index('ix_user_username', table_name='user')
        op.drop_table('user')
