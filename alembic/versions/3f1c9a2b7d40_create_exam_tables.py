"""create_exam_tables

Revision ID: 3f1c9a2b7d40
Revises:
Create Date: 2026-10-19 10:12:04.518233

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a2b7d40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('tests',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('visibility', sa.String(20), nullable=False, server_default='all'),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_tests_id', 'tests', ['id'])

    op.create_table('chapters',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('test_id', sa.String(64), nullable=False),
        sa.Column('idx', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('duration_seconds', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['test_id'], ['tests.id'], ondelete='CASCADE')
    )
    op.create_index('ix_chapters_test_id', 'chapters', ['test_id'])

    op.create_table('pieces',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('chapter_id', sa.Integer(), nullable=False),
        sa.Column('idx', sa.Integer(), nullable=False),
        sa.Column('audio_url', sa.String(1024), nullable=True),
        sa.Column('transcript', sa.Text(), nullable=True),
        sa.Column('passage_title', sa.String(255), nullable=True),
        sa.Column('passage', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['chapter_id'], ['chapters.id'], ondelete='CASCADE')
    )
    op.create_index('ix_pieces_chapter_id', 'pieces', ['chapter_id'])

    op.create_table('questions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('chapter_id', sa.Integer(), nullable=False),
        sa.Column('piece_id', sa.Integer(), nullable=True),
        sa.Column('question_type', sa.String(20), nullable=False),
        sa.Column('idx', sa.Integer(), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('options_json', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('answer', sa.Text(), nullable=False),
        sa.Column('hint', sa.Text(), nullable=True),
        sa.Column('explanation', sa.Text(), nullable=True),
        sa.Column('explanation_en', sa.Text(), nullable=True),
        sa.Column('points', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['chapter_id'], ['chapters.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['piece_id'], ['pieces.id'], ondelete='CASCADE')
    )
    op.create_index('ix_questions_chapter_id', 'questions', ['chapter_id'])
    op.create_index('ix_questions_piece_id', 'questions', ['piece_id'])

    op.create_table('attempts',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('test_id', sa.String(64), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['test_id'], ['tests.id'], ondelete='CASCADE')
    )
    op.create_index('ix_attempts_test_id', 'attempts', ['test_id'])
    op.create_index('ix_attempts_user_id', 'attempts', ['user_id'])

    op.create_table('answer_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('attempt_id', sa.String(64), nullable=False),
        sa.Column('question_id', sa.Integer(), nullable=False),
        sa.Column('question_type', sa.String(20), nullable=False),
        sa.Column('selected_choice', sa.Text(), nullable=True),
        sa.Column('is_correct', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('points_awarded', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('answered_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['attempt_id'], ['attempts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['question_id'], ['questions.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('attempt_id', 'question_id', name='uq_attempt_question')
    )
    op.create_index('ix_answer_records_attempt_id', 'answer_records', ['attempt_id'])

    op.create_table('results',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('attempt_id', sa.String(64), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('correct_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_questions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_possible', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('percentage', sa.Float(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['attempt_id'], ['attempts.id'], ondelete='CASCADE')
    )
    op.create_index('ix_results_attempt_id', 'results', ['attempt_id'], unique=True)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_results_attempt_id', table_name='results')
    op.drop_table('results')
    op.drop_index('ix_answer_records_attempt_id', table_name='answer_records')
    op.drop_table('answer_records')
    op.drop_index('ix_attempts_user_id', table_name='attempts')
    op.drop_index('ix_attempts_test_id', table_name='attempts')
    op.drop_table('attempts')
    op.drop_index('ix_questions_piece_id', table_name='questions')
    op.drop_index('ix_questions_chapter_id', table_name='questions')
    op.drop_table('questions')
    op.drop_index('ix_pieces_chapter_id', table_name='pieces')
    op.drop_table('pieces')
    op.drop_index('ix_chapters_test_id', table_name='chapters')
    op.drop_table('chapters')
    op.drop_index('ix_tests_id', table_name='tests')
    op.drop_table('tests')
