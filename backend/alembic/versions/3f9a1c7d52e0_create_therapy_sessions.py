"""create therapy_sessions table

Revision ID: 3f9a1c7d52e0
Revises:
Create Date: 2026-10-19 10:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from pgvector.sqlalchemy import Vector


revision: str = '3f9a1c7d52e0'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

EMBEDDING_DIMENSIONS = 1536


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS vector')
    op.create_table(
        'therapy_sessions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('original_filename', sa.String(), nullable=False),
        sa.Column('mimetype', sa.String(128), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=False),
        sa.Column('audio_path', sa.String(), nullable=False),
        sa.Column('raw_transcript', sa.Text(), nullable=False),
        sa.Column('transcript', sa.Text(), nullable=False),
        sa.Column('summary', sa.Text(), nullable=False),
        sa.Column('embedding', Vector(EMBEDDING_DIMENSIONS), nullable=False),
    )
    op.create_index('ix_therapy_sessions_timestamp', 'therapy_sessions', ['timestamp'])
    op.create_index(
        'ix_therapy_sessions_embedding',
        'therapy_sessions',
        ['embedding'],
        postgresql_using='hnsw',
        postgresql_ops={'embedding': 'vector_cosine_ops'},
    )


def downgrade() -> None:
    op.drop_index('ix_therapy_sessions_embedding', table_name='therapy_sessions')
    op.drop_index('ix_therapy_sessions_timestamp', table_name='therapy_sessions')
    op.drop_table('therapy_sessions')
