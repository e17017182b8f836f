"""create user, topic, match_result and match_message tables

Revision ID: 5c2a9e7d1b40
Revises:
Create Date: 2026-10-17 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2a9e7d1b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
            sa.Column('mmr', sa.Integer(), nullable=False, server_default='1000'),
            sa.Column('wins', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('losses', sa.Integer(), nullable=False, server_default='0'),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)
    else:
        # Users carried over from an older schema get rating columns
        user_cols = {c['name'] for c in insp.get_columns('user')}
        with op.batch_alter_table('user') as batch_op:
            if 'mmr' not in user_cols:
                batch_op.add_column(sa.Column('mmr', sa.Integer(), nullable=False, server_default='1000'))
            if 'wins' not in user_cols:
                batch_op.add_column(sa.Column('wins', sa.Integer(), nullable=False, server_default='0'))
            if 'losses' not in user_cols:
                batch_op.add_column(sa.Column('losses', sa.Integer(), nullable=False, server_default='0'))

    if 'topic' not in existing_tables:
        op.create_table(
            'topic',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('title', sa.String(length=128), nullable=False),
            sa.Column('description', sa.Text(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        )

    if 'match_result' not in existing_tables:
        op.create_table(
            'match_result',
            sa.Column('id', sa.String(length=64), primary_key=True),
            sa.Column('final_momentum', sa.Integer(), nullable=False),
            sa.Column('winner', sa.String(length=8), nullable=False),
            sa.Column('transcript_count', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('transcript', sa.Text(), nullable=True),
            sa.Column('mode', sa.String(length=16), nullable=False, server_default='casual'),
            sa.Column('difficulty', sa.String(length=16), nullable=True),
            sa.Column('left_player_id', sa.String(length=64), nullable=True),
            sa.Column('right_player_id', sa.String(length=64), nullable=True),
            sa.Column('input_mode', sa.String(length=16), nullable=False, server_default='voice'),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        )

    if 'match_message' not in existing_tables:
        op.create_table(
            'match_message',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('match_id', sa.String(length=64), nullable=False),
            sa.Column('user_id', sa.String(length=64), nullable=True),
            sa.Column('text', sa.Text(), nullable=False),
            sa.Column('phase', sa.String(length=32), nullable=False),
            sa.Column('delta', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index('ix_match_message_match_id', 'match_message', ['match_id'])


def downgrade():
    op.drop_index('ix_match_message_match_id', table_name='match_message')
    op.drop_table('match_message')
    op.drop_table('match_result')
    op.drop_table('topic')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
