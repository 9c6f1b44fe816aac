"""create_catalogue_tables

Revision ID: 3f9a1c2d7e10
Revises:
Create Date: 2026-10-16 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2d7e10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False,
                  comment='Normalized email address (used for login)'),
        sa.Column('hashed_password', sa.String(length=255), nullable=False,
                  comment='Bcrypt hashed password'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  comment='When the user registered'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'books',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False,
                  comment='Account that created the book'),
        sa.Column('title', sa.String(length=500), nullable=False, comment='Book title'),
        sa.Column('author', sa.String(length=255), nullable=False, comment='Author name'),
        sa.Column('genre', sa.String(length=100), nullable=False, comment='Literary genre'),
        sa.Column('year', sa.Integer(), nullable=False, comment='Publication year'),
        sa.Column('image_url', sa.Text(), nullable=False,
                  comment='Absolute URL of the normalized cover image'),
        sa.Column('average_rating', sa.Float(), nullable=False,
                  comment='Mean grade rounded to one decimal, 0 when unrated'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_books_owner_id'), 'books', ['owner_id'], unique=False)
    op.create_index(op.f('ix_books_title'), 'books', ['title'], unique=False)
    # Supports the best-rated query (average desc, created_at desc)
    op.create_index(
        'ix_books_average_rating_created_at',
        'books',
        ['average_rating', 'created_at'],
        unique=False
    )

    op.create_table(
        'ratings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('book_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('grade', sa.Integer(), nullable=False, comment='Grade from 1-5'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('grade >= 1 AND grade <= 5', name='ck_rating_grade_range'),
        sa.ForeignKeyConstraint(['book_id'], ['books.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('book_id', 'user_id', name='uq_rating_book_user'),
    )
    op.create_index(op.f('ix_ratings_id'), 'ratings', ['id'], unique=False)
    op.create_index(op.f('ix_ratings_book_id'), 'ratings', ['book_id'], unique=False)
    op.create_index(op.f('ix_ratings_user_id'), 'ratings', ['user_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_ratings_user_id'), table_name='ratings')
    op.drop_index(op.f('ix_ratings_book_id'), table_name='ratings')
    op.drop_index(op.f('ix_ratings_id'), table_name='ratings')
    op.drop_table('ratings')

    op.drop_index('ix_books_average_rating_created_at', table_name='books')
    op.drop_index(op.f('ix_books_title'), table_name='books')
    op.drop_index(op.f('ix_books_owner_id'), table_name='books')
    op.drop_table('books')

    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
