"""initial game schema: games, players, rounds, guesses, timers, events, leaderboard

Revision ID: 5c2a9e7d1b30
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2a9e7d1b30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'game',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('community', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('current_round_number', sa.Integer(), nullable=False),
        sa.Column('max_rounds', sa.Integer(), nullable=False),
        sa.Column('moderator_id', sa.String(length=96), nullable=True),
        sa.Column('current_round_id', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
        sa.Column('expires_at', sa.BigInteger(), nullable=False),
    )
    op.create_index('ix_game_community', 'game', ['community'])
    op.create_index('ix_game_expires_at', 'game', ['expires_at'])

    op.create_table(
        'player',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('game_id', sa.String(length=64), sa.ForeignKey('game.id'), nullable=False),
        sa.Column('player_id', sa.String(length=96), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_moderator', sa.Boolean(), nullable=False),
        sa.Column('joined_at', sa.BigInteger(), nullable=False),
        sa.Column('last_seen', sa.BigInteger(), nullable=True),
        sa.UniqueConstraint('game_id', 'player_id', name='uq_player_game_player'),
    )
    op.create_index('ix_player_game_id', 'player', ['game_id'])

    op.create_table(
        'round',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('game_id', sa.String(length=64), sa.ForeignKey('game.id'), nullable=False),
        sa.Column('round_number', sa.Integer(), nullable=False),
        sa.Column('presenter_id', sa.String(length=96), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('phrase_id', sa.String(length=64), nullable=True),
        sa.Column('phrase_text', sa.String(length=200), nullable=False),
        sa.Column('phrase_category', sa.String(length=32), nullable=False),
        sa.Column('phrase_difficulty', sa.String(length=16), nullable=False),
        sa.Column('phrase_hints', sa.JSON(), nullable=True),
        sa.Column('emoji_sequence', sa.JSON(), nullable=True),
        sa.Column('start_time', sa.BigInteger(), nullable=False),
        sa.Column('end_time', sa.BigInteger(), nullable=True),
        sa.Column('winner_id', sa.String(length=96), nullable=True),
        sa.Column('end_reason', sa.String(length=16), nullable=True),
        sa.Column('expires_at', sa.BigInteger(), nullable=False),
        sa.UniqueConstraint('game_id', 'round_number', name='uq_round_game_number'),
    )
    op.create_index('ix_round_game_id', 'round', ['game_id'])
    op.create_index('ix_round_expires_at', 'round', ['expires_at'])

    op.create_table(
        'guess',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('round_id', sa.String(length=64), sa.ForeignKey('round.id'), nullable=False),
        sa.Column('player_id', sa.String(length=96), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('text', sa.String(length=200), nullable=False),
        sa.Column('normalized_text', sa.String(length=200), nullable=False),
        sa.Column('similarity', sa.Float(), nullable=False),
        sa.Column('is_correct', sa.Boolean(), nullable=False),
        sa.Column('timestamp', sa.BigInteger(), nullable=False),
        sa.Column('expires_at', sa.BigInteger(), nullable=False),
        sa.UniqueConstraint('round_id', 'player_id', 'normalized_text', name='uq_guess_round_player_text'),
    )
    op.create_index('ix_guess_round_id', 'guess', ['round_id'])
    op.create_index('ix_guess_expires_at', 'guess', ['expires_at'])

    op.create_table(
        'round_timer',
        sa.Column('round_id', sa.String(length=64), primary_key=True),
        sa.Column('game_id', sa.String(length=64), nullable=False),
        sa.Column('start_time', sa.BigInteger(), nullable=False),
        sa.Column('end_time', sa.BigInteger(), nullable=False),
        sa.Column('duration_ms', sa.Integer(), nullable=False),
        sa.Column('expires_at', sa.BigInteger(), nullable=False),
    )
    op.create_index('ix_round_timer_game_id', 'round_timer', ['game_id'])
    op.create_index('ix_round_timer_expires_at', 'round_timer', ['expires_at'])

    op.create_table(
        'lobby_timer',
        sa.Column('game_id', sa.String(length=64), primary_key=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('start_time', sa.BigInteger(), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('remaining_time', sa.Integer(), nullable=False),
        sa.Column('last_sync_time', sa.BigInteger(), nullable=False),
        sa.Column('player_count', sa.Integer(), nullable=False),
        sa.Column('expires_at', sa.BigInteger(), nullable=False),
    )
    op.create_index('ix_lobby_timer_expires_at', 'lobby_timer', ['expires_at'])

    op.create_table(
        'game_event',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('game_id', sa.String(length=64), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('timestamp', sa.BigInteger(), nullable=False),
        sa.Column('expires_at', sa.BigInteger(), nullable=False),
    )
    op.create_index('ix_game_event_game_id', 'game_event', ['game_id'])
    op.create_index('ix_game_event_expires_at', 'game_event', ['expires_at'])

    op.create_table(
        'phrase_tracker',
        sa.Column('game_id', sa.String(length=64), primary_key=True),
        sa.Column('used_phrase_ids', sa.JSON(), nullable=False),
        sa.Column('category_usage', sa.JSON(), nullable=False),
        sa.Column('difficulty_usage', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('last_used', sa.BigInteger(), nullable=False),
        sa.Column('expires_at', sa.BigInteger(), nullable=False),
    )
    op.create_index('ix_phrase_tracker_expires_at', 'phrase_tracker', ['expires_at'])

    op.create_table(
        'leaderboard_entry',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('community', sa.String(length=64), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('games_played', sa.Integer(), nullable=False),
        sa.Column('games_won', sa.Integer(), nullable=False),
        sa.Column('last_played', sa.BigInteger(), nullable=True),
        sa.UniqueConstraint('community', 'username', name='uq_leaderboard_community_username'),
    )
    op.create_index('ix_leaderboard_entry_community', 'leaderboard_entry', ['community'])


def downgrade():
    for table in (
        'leaderboard_entry', 'phrase_tracker', 'game_event', 'lobby_timer',
        'round_timer', 'guess', 'round', 'player', 'game',
    ):
        op.drop_table(table)
