"""Unit tests for SettlementRepository using MagicMock AsyncSession."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

from src.bm_settlement.domain.models import SettlementRecord
from src.bm_settlement.infrastructure.persistence import SettlementRepository


def _record(confirmed: bool = False) -> SettlementRecord:
    return SettlementRecord(
        pool_address="Pool1",
        belief_id="belief-1",
        epoch=3,
        bd_relevance_score=0.75,
        market_prediction_q=0.6,
        f_long=1.25,
        f_short=0.625,
        reserve_long_before=60,
        reserve_short_before=40,
        reserve_long_after=75,
        reserve_short_after=25,
        tx_signature="sig-1",
        confirmed=confirmed,
    )


def _db(result: MagicMock | None = None) -> MagicMock:
    db = MagicMock()
    db.execute = AsyncMock(return_value=result or MagicMock())
    return db


class TestSettlementRepository:
    async def test_get_record_maps_numeric_columns(self) -> None:
        row = MagicMock()
        row.pool_address = "Pool1"
        row.belief_id = "belief-1"
        row.epoch = 3
        row.bd_relevance_score = "0.7500000000"
        row.market_prediction_q = "0.6000000000"
        row.f_long = "1.25"
        row.f_short = "0.625"
        row.reserve_long_before = 60
        row.reserve_short_before = 40
        row.reserve_long_after = 75
        row.reserve_short_after = 25
        row.tx_signature = "sig-1"
        row.confirmed = True
        row.settled_at = datetime.now(UTC)
        result = MagicMock()
        result.fetchone.return_value = row

        record = await SettlementRepository().get_record(_db(result), "Pool1", 3)

        assert record is not None
        assert record.bd_relevance_score == 0.75
        assert record.confirmed is True

    async def test_get_record_missing(self) -> None:
        result = MagicMock()
        result.fetchone.return_value = None
        assert await SettlementRepository().get_record(_db(result), "Pool1", 3) is None

    async def test_last_confirmed_filters_earlier_epochs(self) -> None:
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        db = _db(result)

        assert await SettlementRepository().get_last_confirmed_at(db, "Pool1", 3) is None
        stmt, params = db.execute.await_args.args
        assert "epoch < :before_epoch" in str(stmt)
        assert params == {"pool_address": "Pool1", "before_epoch": 3}

    async def test_save_never_overwrites_confirmed(self) -> None:
        db = _db()

        await SettlementRepository().save_record(db, _record())

        stmt, params = db.execute.await_args.args
        assert "WHERE settlements.confirmed = FALSE" in str(stmt)
        assert "COALESCE(EXCLUDED.tx_signature, settlements.tx_signature)" in str(stmt)
        assert params["tx_signature"] == "sig-1"
        assert params["confirmed"] is False
