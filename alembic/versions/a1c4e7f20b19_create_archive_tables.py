"""Create archive tables.

Revision ID: a1c4e7f20b19
Revises:
Create Date: 2026-10-18

Creates works, volumes, the authoritative volume_items link table, and the
author/topic lookup tables with their association tables.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'a1c4e7f20b19'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create the archive schema."""
    op.create_table(
        'volumes',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(500), nullable=True,
                  comment='Explicit title; synthesized from category, number and years when empty'),
        sa.Column('category', sa.String(32), nullable=False),
        sa.Column('start_year', sa.Integer(), nullable=True),
        sa.Column('end_year', sa.Integer(), nullable=True),
        sa.Column('volume_number', sa.Integer(), nullable=True),

        # Only one of these is active, chosen by category
        sa.Column('issue_number', sa.Integer(), nullable=True),
        sa.Column('department', sa.String(255), nullable=True),

        sa.Column('foreword', sa.String(1024), nullable=True,
                  comment='Path to the prepared foreword file'),
        sa.Column('abstract_foreword', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True),
                  server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True),
                  server_default=sa.text('now()'), nullable=True),
        sa.Column('deleted_at', sa.TIMESTAMP(timezone=True), nullable=True),
    )
    op.create_index('ix_volumes_deleted_at', 'volumes', ['deleted_at'])

    op.create_table(
        'works',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('publication_date', sa.Date(), nullable=True),
        sa.Column('category', sa.String(32), nullable=False),
        sa.Column('volume', sa.String(64), nullable=True),
        sa.Column('issue_number', sa.String(64), nullable=True),
        sa.Column('compiled_parent_id', sa.Integer(),
                  sa.ForeignKey('volumes.id', ondelete='SET NULL'), nullable=True,
                  comment='Mirror of the volume_items link'),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True),
                  server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True),
                  server_default=sa.text('now()'), nullable=True),
        sa.Column('deleted_at', sa.TIMESTAMP(timezone=True), nullable=True),
    )
    op.create_index('ix_works_category', 'works', ['category'])
    op.create_index('ix_works_deleted_at', 'works', ['deleted_at'])
    op.create_index('ix_works_compiled_parent_id', 'works', ['compiled_parent_id'])

    op.create_table(
        'volume_items',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('volume_id', sa.Integer(),
                  sa.ForeignKey('volumes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('work_id', sa.Integer(),
                  sa.ForeignKey('works.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True),
                  server_default=sa.text('now()'), nullable=False),
        sa.UniqueConstraint('volume_id', 'work_id', name='uq_volume_item_pair'),
    )
    op.create_index('ix_volume_items_work_id', 'volume_items', ['work_id'])

    op.create_table(
        'authors',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('full_name', sa.String(255), nullable=False),
    )

    op.create_table(
        'topics',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False, unique=True),
    )

    op.create_table(
        'work_authors',
        sa.Column('work_id', sa.Integer(),
                  sa.ForeignKey('works.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('author_id', sa.Integer(),
                  sa.ForeignKey('authors.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'work_topics',
        sa.Column('work_id', sa.Integer(),
                  sa.ForeignKey('works.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('topic_id', sa.Integer(),
                  sa.ForeignKey('topics.id', ondelete='CASCADE'), primary_key=True),
    )


def downgrade() -> None:
    """Drop the archive schema."""
    op.drop_table('work_topics')
    op.drop_table('work_authors')
    op.drop_table('topics')
    op.drop_table('authors')
    op.drop_index('ix_volume_items_work_id', table_name='volume_items')
    op.drop_table('volume_items')
    op.drop_index('ix_works_compiled_parent_id', table_name='works')
    op.drop_index('ix_works_deleted_at', table_name='works')
    op.drop_index('ix_works_category', table_name='works')
    op.drop_table('works')
    op.drop_index('ix_volumes_deleted_at', table_name='volumes')
    op.drop_table('volumes')
