"""Add feedbacks table and book rate aggregates

Revision ID: 8c1d5e27b9a4
Revises: 3f2a9c41d7b0
Create Date: 2026-10-19 14:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8c1d5e27b9a4'
down_revision: Union[str, None] = '3f2a9c41d7b0'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column('books', sa.Column('rate', sa.Float(), server_default='0', nullable=False, comment='Average feedback note, one decimal'))
    op.add_column('books', sa.Column('feedback_count', sa.Integer(), server_default='0', nullable=False, comment='Number of feedbacks'))

    op.create_table('feedbacks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('book_id', sa.Integer(), nullable=False, comment='Book the feedback is about'),
        sa.Column('user_id', sa.Integer(), nullable=False, comment='Member who gave the feedback'),
        sa.Column('note', sa.Float(), nullable=False, comment='Rating from 0 to 5'),
        sa.Column('comment', sa.Text(), nullable=False, comment='Feedback text'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('note >= 0 AND note <= 5', name='ck_feedback_note_range'),
        sa.ForeignKeyConstraint(['book_id'], ['books.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_feedbacks_book_id'), 'feedbacks', ['book_id'], unique=False)
    op.create_index(op.f('ix_feedbacks_user_id'), 'feedbacks', ['user_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_feedbacks_user_id'), table_name='feedbacks')
    op.drop_index(op.f('ix_feedbacks_book_id'), table_name='feedbacks')
    op.drop_table('feedbacks')
    op.drop_column('books', 'feedback_count')
    op.drop_column('books', 'rate')
