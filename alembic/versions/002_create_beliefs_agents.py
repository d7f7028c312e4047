"""002: create beliefs and agents tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE beliefs (
            id                  VARCHAR(64)     PRIMARY KEY,
            previous_aggregate  NUMERIC(12, 10),
            status              VARCHAR(20)     NOT NULL DEFAULT 'active',
            created_epoch       INT             NOT NULL DEFAULT 0,
            expiration_epoch    INT,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_beliefs_aggregate_range CHECK (
                previous_aggregate IS NULL
                OR (previous_aggregate >= 0 AND previous_aggregate <= 1)
            ),
            CONSTRAINT ck_beliefs_status CHECK (status IN ('active', 'resolved'))
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_beliefs_updated_at
            BEFORE UPDATE ON beliefs
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)

    op.execute("""
        CREATE TABLE agents (
            id                   VARCHAR(64)     PRIMARY KEY,
            total_stake          BIGINT          NOT NULL DEFAULT 0,
            active_belief_count  INT             NOT NULL DEFAULT 0,
            created_at           TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at           TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_agents_stake_gte_0 CHECK (total_stake >= 0),
            CONSTRAINT ck_agents_belief_count_gte_0 CHECK (active_belief_count >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_agents_updated_at
            BEFORE UPDATE ON agents
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("COMMENT ON COLUMN agents.total_stake IS 'micro-USDC, shared across all markets';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS agents CASCADE;")
    op.execute("DROP TABLE IF EXISTS beliefs CASCADE;")
