"""create team_record and global_state

Revision ID: 5c2a9e71d0b4
Revises:
Create Date: 2026-10-18 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2a9e71d0b4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    tables = set(insp.get_table_names())
    if 'team_record' not in tables:
        op.create_table(
            'team_record',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('team_id', sa.String(length=32), nullable=False),
            sa.Column('password', sa.String(length=128), nullable=False),
            sa.Column('progress_json', sa.Text(), nullable=False, server_default='[]'),
            sa.Column('score_fields_json', sa.Text(), nullable=False, server_default='{}'),
        )
        op.create_index('ix_team_record_team_id', 'team_record', ['team_id'], unique=True)
    if 'global_state' not in tables:
        op.create_table(
            'global_state',
            sa.Column('id', sa.String(length=32), primary_key=True),
            sa.Column('start_time', sa.Float(), nullable=True),
            sa.Column('duration', sa.Float(), nullable=False),
            sa.Column('is_ended', sa.Boolean(), nullable=False, server_default=sa.false()),
        )


def downgrade():
    op.drop_table('global_state')
    op.drop_index('ix_team_record_team_id', table_name='team_record')
    op.drop_table('team_record')
