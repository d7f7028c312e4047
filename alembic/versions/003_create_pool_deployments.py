"""003: create pool_deployments table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE pool_deployments (
            pool_address            VARCHAR(64)     PRIMARY KEY,
            belief_id               VARCHAR(64)     NOT NULL UNIQUE REFERENCES beliefs(id),
            status                  VARCHAR(20)     NOT NULL DEFAULT 'pool_created',
            s_long                  NUMERIC(30, 6)  NOT NULL DEFAULT 0,
            s_short                 NUMERIC(30, 6)  NOT NULL DEFAULT 0,
            sqrt_price_long_x96     NUMERIC(78, 0)  NOT NULL DEFAULT 0,
            sqrt_price_short_x96    NUMERIC(78, 0)  NOT NULL DEFAULT 0,
            r_long                  BIGINT          NOT NULL DEFAULT 0,
            r_short                 BIGINT          NOT NULL DEFAULT 0,
            vault_balance           BIGINT          NOT NULL DEFAULT 0,
            current_epoch           INT             NOT NULL DEFAULT 0,
            min_settle_interval     INT,
            last_settle_ts          TIMESTAMPTZ,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_pools_supply_gte_0   CHECK (s_long >= 0 AND s_short >= 0),
            CONSTRAINT ck_pools_reserves_gte_0 CHECK (r_long >= 0 AND r_short >= 0),
            CONSTRAINT ck_pools_vault_gte_0    CHECK (vault_balance >= 0),
            CONSTRAINT ck_pools_interval_gte_0 CHECK (min_settle_interval IS NULL OR min_settle_interval >= 0),
            CONSTRAINT ck_pools_status CHECK (
                status IN ('pool_created', 'market_deployed', 'closed')
            )
        );
    """)
    op.execute("CREATE INDEX idx_pools_status ON pool_deployments (status);")
    op.execute("""
        CREATE TRIGGER trg_pools_updated_at
            BEFORE UPDATE ON pool_deployments
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute(
        "COMMENT ON TABLE pool_deployments IS "
        "'Two-sided bonding-curve market per belief; supplies in display units, money in micro-USDC';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS pool_deployments CASCADE;")
