"""007: create system_config and seed epoch

Revision ID: 007
Revises: 006
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE system_config (
            key         VARCHAR(64)     PRIMARY KEY,
            value       TEXT            NOT NULL,
            updated_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("INSERT INTO system_config (key, value) VALUES ('current_epoch', '0');")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS system_config CASCADE;")
