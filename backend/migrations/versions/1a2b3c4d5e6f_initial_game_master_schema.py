"""initial game master schema

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-19 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1a2b3c4d5e6f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'game_masters',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
    )
    op.create_index('ix_game_masters_username', 'game_masters', ['username'], unique=True)

    op.create_table(
        'games',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('code', sa.String(length=16), nullable=True),
        sa.Column('config', sa.Text(), nullable=True),
        sa.Column('branding', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_games_code', 'games', ['code'], unique=True)

    for table in ('team_quizzes', 'individual_quizzes'):
        op.create_table(
            table,
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('game_id', sa.Integer(), sa.ForeignKey('games.id'), nullable=False, unique=True),
            sa.Column('questions', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        )

    op.create_table(
        'game_state',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('game_id', sa.Integer(), sa.ForeignKey('games.id'), nullable=False, unique=True),
        sa.Column('is_running', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('current_round', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('time_remaining', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_paused', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('team_quiz_unlocked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('individual_quiz_unlocked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('scores_revealed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('game_ended', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('pause_video_url', sa.String(length=512), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'team_submissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('game_id', sa.Integer(), sa.ForeignKey('games.id'), nullable=False),
        sa.Column('team_id', sa.String(length=64), nullable=False),
        sa.Column('answers', sa.Text(), nullable=True),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('submitted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('game_id', 'team_id', name='uq_team_submission'),
    )
    op.create_index('ix_team_submissions_game_id', 'team_submissions', ['game_id'])

    op.create_table(
        'individual_submissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('game_id', sa.Integer(), sa.ForeignKey('games.id'), nullable=False),
        sa.Column('team_id', sa.String(length=64), nullable=False),
        sa.Column('player_name', sa.String(length=128), nullable=False),
        sa.Column('answers', sa.Text(), nullable=True),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('submitted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('game_id', 'team_id', 'player_name', name='uq_individual_submission'),
    )
    op.create_index('ix_individual_submissions_game_id', 'individual_submissions', ['game_id'])


def downgrade():
    op.drop_index('ix_individual_submissions_game_id', table_name='individual_submissions')
    op.drop_table('individual_submissions')
    op.drop_index('ix_team_submissions_game_id', table_name='team_submissions')
    op.drop_table('team_submissions')
    op.drop_table('game_state')
    op.drop_table('individual_quizzes')
    op.drop_table('team_quizzes')
    op.drop_index('ix_games_code', table_name='games')
    op.drop_table('games')
    op.drop_index('ix_game_masters_username', table_name='game_masters')
    op.drop_table('game_masters')
