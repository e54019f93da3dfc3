"""add_question_underlines

Revision ID: 8c4e2f6a1d35
Revises: 3f1c9a2b7d40
Create Date: 2026-10-19 16:40:27.093115

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8c4e2f6a1d35'
down_revision: Union[str, Sequence[str], None] = '3f1c9a2b7d40'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.add_column('questions', sa.Column('base_text', sa.Text(), nullable=True))
    op.add_column('questions', sa.Column('underlined_words_json', sa.Text(), nullable=True))
    op.add_column('questions', sa.Column('underlined_positions_json', sa.Text(), nullable=True))


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_column('questions', 'underlined_positions_json')
    op.drop_column('questions', 'underlined_words_json')
    op.drop_column('questions', 'base_text')
