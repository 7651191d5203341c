"""employee_schedule_version

Revision ID: 7b2e4c9d0f31
Revises: 3f9c1d2e7a10
Create Date: 2026-10-19 16:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '7b2e4c9d0f31'
down_revision: Union[str, None] = '3f9c1d2e7a10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table('employees') as batch_op:
        batch_op.add_column(sa.Column('schedule_changed_at', sa.DateTime(timezone=True), nullable=True))
        batch_op.add_column(sa.Column('version', sa.Integer(), nullable=False, server_default='1'))


def downgrade() -> None:
    with op.batch_alter_table('employees') as batch_op:
        batch_op.drop_column('version')
        batch_op.drop_column('schedule_changed_at')
