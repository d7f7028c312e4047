"""006: create stake_redistribution_events table

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE stake_redistribution_events (
            id                  BIGSERIAL       PRIMARY KEY,
            belief_id           VARCHAR(64)     NOT NULL REFERENCES beliefs(id),
            epoch               INT             NOT NULL,
            agent_id            VARCHAR(64)     NOT NULL REFERENCES agents(id),
            information_score   NUMERIC(12, 10) NOT NULL,
            belief_weight       DOUBLE PRECISION NOT NULL,
            normalized_weight   DOUBLE PRECISION NOT NULL,
            stake_before        BIGINT          NOT NULL,
            stake_delta         BIGINT          NOT NULL,
            stake_after         BIGINT          NOT NULL,
            processed_at        TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uk_redistribution_belief_epoch_agent UNIQUE (belief_id, epoch, agent_id),
            CONSTRAINT ck_redistribution_score_range CHECK (
                information_score >= -1 AND information_score <= 1
            ),
            CONSTRAINT ck_redistribution_stake_after_gte_0 CHECK (stake_after >= 0)
        );
    """)
    # Append-only audit trail
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_reject_event_mutation()
        RETURNS TRIGGER AS $$
        BEGIN
            RAISE EXCEPTION 'stake_redistribution_events is append-only';
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TRIGGER trg_redistribution_append_only
            BEFORE UPDATE OR DELETE ON stake_redistribution_events
            FOR EACH ROW EXECUTE FUNCTION fn_reject_event_mutation();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS stake_redistribution_events CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_reject_event_mutation();")
