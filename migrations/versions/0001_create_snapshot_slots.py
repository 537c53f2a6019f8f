"""create snapshot_slots table"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_create_snapshot_slots"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "snapshot_slots",
        sa.Column("key", sa.String(length=64), primary_key=True),
        sa.Column("payload", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("snapshot_slots")
