"""004: create user_pool_balances table

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE user_pool_balances (
            id                  BIGSERIAL       PRIMARY KEY,
            agent_id            VARCHAR(64)     NOT NULL REFERENCES agents(id),
            pool_address        VARCHAR(64)     NOT NULL REFERENCES pool_deployments(pool_address),
            token_type          VARCHAR(5)      NOT NULL,
            token_balance       NUMERIC(30, 6)  NOT NULL DEFAULT 0,
            belief_lock         BIGINT          NOT NULL DEFAULT 0,
            total_bought        NUMERIC(30, 6)  NOT NULL DEFAULT 0,
            total_sold          NUMERIC(30, 6)  NOT NULL DEFAULT 0,
            last_buy_amount     BIGINT          NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uk_balances_agent_pool_side UNIQUE (agent_id, pool_address, token_type),
            CONSTRAINT ck_balances_token_type CHECK (token_type IN ('LONG', 'SHORT')),
            CONSTRAINT ck_balances_gte_0 CHECK (token_balance >= 0 AND belief_lock >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_balances_pool ON user_pool_balances (pool_address);")
    op.execute("""
        CREATE TRIGGER trg_balances_updated_at
            BEFORE UPDATE ON user_pool_balances
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_pool_balances CASCADE;")
