# Plantilla de archivos de versión (migraciones)

"""game_sessions: persist question set, play clock, one active per client/game

Revision ID: 8b2e4d61c5a7
Revises: 3f1c9a7d2b10
Create Date: 2026-10-05 11:42:37.915502

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '8b2e4d61c5a7'
down_revision = '3f1c9a7d2b10'
branch_labels = None
depends_on = None

ACTIVE = sa.text("status = 'in_progress'")

def upgrade():
    op.add_column('game_sessions', sa.Column('question_ids', sa.JSON(), nullable=True))
    op.add_column('game_sessions', sa.Column('play_started_at', sa.DateTime(timezone=True), nullable=True))
    op.add_column('games', sa.Column('tier_quotas', sa.JSON(), nullable=True))

    # Si quedaron duplicados activos de antes, se dejan como abandonados salvo el más reciente
    op.execute("""
        UPDATE game_sessions SET status = 'abandoned'
        WHERE status = 'in_progress'
          AND id NOT IN (
            SELECT max_id FROM (
              SELECT MAX(id) AS max_id FROM game_sessions
              WHERE status = 'in_progress'
              GROUP BY client_id, game_id
            ) AS keep
          )
    """)
    op.create_index(
        'uq_game_sessions_active', 'game_sessions', ['client_id', 'game_id'],
        unique=True, postgresql_where=ACTIVE, sqlite_where=ACTIVE,
    )

def downgrade():
    op.drop_index('uq_game_sessions_active', table_name='game_sessions')
    op.drop_column('games', 'tier_quotas')
    op.drop_column('game_sessions', 'play_started_at')
    op.drop_column('game_sessions', 'question_ids')
