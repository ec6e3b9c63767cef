"""Create users, books and lending_records tables

Revision ID: 3f2a9c41d7b0
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f2a9c41d7b0'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

OPEN_LOAN_CLAUSE = sa.text("state IN ('ACTIVE', 'RETURNED')")


def upgrade() -> None:
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False, comment="User's email address (used for login)"),
        sa.Column('hashed_password', sa.String(length=255), nullable=False, comment='Bcrypt hashed password'),
        sa.Column('username', sa.String(length=50), nullable=False, comment='Unique username shown to other members'),
        sa.Column('full_name', sa.String(length=255), nullable=True, comment="User's full display name"),
        sa.Column('is_active', sa.Boolean(), nullable=False, comment='Whether the account is active'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=True)

    op.create_table('books',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False, comment='User who published the book'),
        sa.Column('title', sa.String(length=500), nullable=False, comment='Book title'),
        sa.Column('author_name', sa.String(length=255), nullable=False, comment="Name of the book's author"),
        sa.Column('isbn', sa.String(length=20), nullable=False, comment='International Standard Book Number'),
        sa.Column('synopsis', sa.Text(), nullable=True, comment='Short summary of the book'),
        sa.Column('cover_path', sa.String(length=1024), nullable=True, comment='Storage path of the uploaded cover image'),
        sa.Column('shareable', sa.Boolean(), nullable=False, comment='Whether the owner offers the book for borrowing'),
        sa.Column('archived', sa.Boolean(), nullable=False, comment='Whether the owner withdrew the book'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_books_owner_id'), 'books', ['owner_id'], unique=False)
    op.create_index(op.f('ix_books_title'), 'books', ['title'], unique=False)
    op.create_index(op.f('ix_books_isbn'), 'books', ['isbn'], unique=True)

    op.create_table('lending_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('book_id', sa.Integer(), nullable=False, comment='Book being lent'),
        sa.Column('borrower_id', sa.Integer(), nullable=False, comment='User who borrowed the book'),
        sa.Column('state', sa.String(length=16), nullable=False, comment='ACTIVE, RETURNED or APPROVED'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='When the book was borrowed'),
        sa.Column('returned_at', sa.DateTime(timezone=True), nullable=True, comment='When the borrower returned the book'),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True, comment='When the owner approved the return'),
        sa.ForeignKeyConstraint(['book_id'], ['books.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['borrower_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_lending_records_book_id'), 'lending_records', ['book_id'], unique=False)
    op.create_index(op.f('ix_lending_records_borrower_id'), 'lending_records', ['borrower_id'], unique=False)
    op.create_index(
        'uq_lending_records_open_book',
        'lending_records',
        ['book_id'],
        unique=True,
        postgresql_where=OPEN_LOAN_CLAUSE,
        sqlite_where=OPEN_LOAN_CLAUSE,
    )


def downgrade() -> None:
    op.drop_index('uq_lending_records_open_book', table_name='lending_records')
    op.drop_index(op.f('ix_lending_records_borrower_id'), table_name='lending_records')
    op.drop_index(op.f('ix_lending_records_book_id'), table_name='lending_records')
    op.drop_table('lending_records')
    op.drop_index(op.f('ix_books_isbn'), table_name='books')
    op.drop_index(op.f('ix_books_title'), table_name='books')
    op.drop_index(op.f('ix_books_owner_id'), table_name='books')
    op.drop_table('books')
    op.drop_index(op.f('ix_users_username'), table_name='users')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
