"""create match and base tables

Revision ID: 4b7c2e91d0a3
Revises:
Create Date: 2026-10-16 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4b7c2e91d0a3'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'match',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='idle'),
        sa.Column('end_time', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('remaining_time', sa.BigInteger(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'base',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('match_id', sa.Integer(), nullable=False),
        sa.Column('base_id', sa.String(length=32), nullable=False),
        sa.Column('owner', sa.String(length=16), nullable=False, server_default='neutral'),
        sa.Column('held_by', sa.String(length=16), nullable=True),
        sa.Column('last_interaction', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('scores', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['match_id'], ['match.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('match_id', 'base_id', name='uq_base_match_base_id'),
    )


def downgrade():
    op.drop_table('base')
    op.drop_table('match')
