# Plantilla de archivos de versión (migraciones)

"""create games questions clients game_sessions

Revision ID: 3f1c9a7d2b10
Revises: 
Create Date: 2026-09-28 18:04:11.208114

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '3f1c9a7d2b10'
down_revision = None
branch_labels = None
depends_on = None

difficulty = ('easy', 'medium', 'hard')

def upgrade():
    op.create_table(
        'games',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=120), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('long_description', sa.Text(), nullable=False),
        sa.Column('image_path', sa.String(length=255), nullable=True),
        sa.Column('difficulty', sa.Enum(*difficulty, name='game_difficulty'), nullable=False, server_default='medium'),
        sa.Column('time_limit', sa.Integer(), nullable=False),
        sa.Column('question_count', sa.Integer(), nullable=False),
        sa.Column('points_per_question', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('skip_limit', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('topics', sa.JSON(), nullable=True),
        sa.Column('rules', sa.JSON(), nullable=True),
        sa.Column('stats', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_games')),
    )
    op.create_index(op.f('ix_games_id'), 'games', ['id'])
    op.create_index(op.f('ix_games_slug'), 'games', ['slug'], unique=True)

    op.create_table(
        'questions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('choices', sa.JSON(), nullable=False),
        sa.Column('correct_choice', sa.Integer(), nullable=False, comment='1-based index of the correct choice'),
        sa.Column('explanation', sa.Text(), nullable=True),
        sa.Column('difficulty_level', sa.Enum(*difficulty, name='question_difficulty'), nullable=False),
        sa.Column('category', sa.String(length=120), nullable=True),
        sa.Column('status', sa.Enum('pending', 'approved', 'rejected', name='question_status'),
                  nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_questions')),
    )
    op.create_index(op.f('ix_questions_id'), 'questions', ['id'])
    op.create_index(op.f('ix_questions_difficulty_level'), 'questions', ['difficulty_level'])
    op.create_index(op.f('ix_questions_status'), 'questions', ['status'])

    op.create_table(
        'clients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_clients')),
    )
    op.create_index(op.f('ix_clients_id'), 'clients', ['id'])
    op.create_index(op.f('ix_clients_email'), 'clients', ['email'], unique=True)

    op.create_table(
        'game_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum('in_progress', 'completed', 'abandoned', name='game_session_status'),
                  nullable=False, server_default='in_progress'),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('correct_answers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('incorrect_answers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('questions_answered', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('time_remaining', sa.Integer(), nullable=True),
        sa.Column('total_time_taken', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_reason', sa.Enum('timer', 'lives_exhausted', 'completed', 'user_exit',
                                        name='game_session_end_reason'), nullable=True),
        sa.Column('exam_data', sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE',
                                name=op.f('fk_game_sessions_client_id_clients')),
        sa.ForeignKeyConstraint(['game_id'], ['games.id'], ondelete='CASCADE',
                                name=op.f('fk_game_sessions_game_id_games')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_game_sessions')),
    )
    op.create_index(op.f('ix_game_sessions_client_id'), 'game_sessions', ['client_id'])
    op.create_index(op.f('ix_game_sessions_game_id'), 'game_sessions', ['game_id'])

def downgrade():
    op.drop_index(op.f('ix_game_sessions_game_id'), table_name='game_sessions')
    op.drop_index(op.f('ix_game_sessions_client_id'), table_name='game_sessions')
    op.drop_table('game_sessions')
    op.drop_index(op.f('ix_clients_email'), table_name='clients')
    op.drop_index(op.f('ix_clients_id'), table_name='clients')
    op.drop_table('clients')
    op.drop_index(op.f('ix_questions_status'), table_name='questions')
    op.drop_index(op.f('ix_questions_difficulty_level'), table_name='questions')
    op.drop_index(op.f('ix_questions_id'), table_name='questions')
    op.drop_table('questions')
    op.drop_index(op.f('ix_games_slug'), table_name='games')
    op.drop_index(op.f('ix_games_id'), table_name='games')
    op.drop_table('games')
    for enum_name in ('game_session_end_reason', 'game_session_status', 'question_status',
                      'question_difficulty', 'game_difficulty'):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
