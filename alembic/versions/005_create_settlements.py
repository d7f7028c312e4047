"""005: create settlements table

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE settlements (
            id                      BIGSERIAL       PRIMARY KEY,
            pool_address            VARCHAR(64)     NOT NULL REFERENCES pool_deployments(pool_address),
            belief_id               VARCHAR(64)     NOT NULL REFERENCES beliefs(id),
            epoch                   INT             NOT NULL,
            bd_relevance_score      NUMERIC(12, 10) NOT NULL,
            market_prediction_q     NUMERIC(12, 10) NOT NULL,
            f_long                  NUMERIC(20, 10) NOT NULL,
            f_short                 NUMERIC(20, 10) NOT NULL,
            reserve_long_before     BIGINT          NOT NULL,
            reserve_short_before    BIGINT          NOT NULL,
            reserve_long_after      BIGINT          NOT NULL,
            reserve_short_after     BIGINT          NOT NULL,
            tx_signature            VARCHAR(128)    UNIQUE,
            confirmed               BOOLEAN         NOT NULL DEFAULT FALSE,
            settled_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uk_settlements_pool_epoch UNIQUE (pool_address, epoch),
            CONSTRAINT ck_settlements_score_range CHECK (
                bd_relevance_score >= 0 AND bd_relevance_score <= 1
            ),
            CONSTRAINT ck_settlements_epoch_gte_0 CHECK (epoch >= 0)
        );
    """)
    op.execute(
        "CREATE INDEX idx_settlements_pool_confirmed ON settlements (pool_address, epoch DESC) "
        "WHERE confirmed = TRUE;"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS settlements CASCADE;")
