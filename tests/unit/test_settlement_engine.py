"""Tests for settlement preconditions and reserve math."""

from datetime import UTC, datetime, timedelta

import pytest

from src.bm_common.enums import ScoreFormat, SettlementState
from src.bm_common.errors import (
    CooldownActiveError,
    InputValidationError,
    NoGroundTruthScoreError,
)
from src.bm_settlement.domain.engine import (
    check_preconditions,
    convert_score,
    reserve_prediction,
    settlement_factors,
    split_reserves,
)
from src.bm_settlement.domain.models import SettlementRecord

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _make_record(confirmed: bool = True, epoch: int = 3) -> SettlementRecord:
    return SettlementRecord(
        pool_address="Pool1",
        belief_id="belief-1",
        epoch=epoch,
        bd_relevance_score=0.75,
        market_prediction_q=0.5,
        f_long=1.5,
        f_short=0.5,
        reserve_long_before=50_000_000,
        reserve_short_before=50_000_000,
        reserve_long_after=75_000_000,
        reserve_short_after=25_000_000,
        tx_signature="sig-1",
        confirmed=confirmed,
        settled_at=NOW,
    )


def _check(**overrides):
    kwargs = dict(
        belief_id="belief-1",
        pool_address="Pool1",
        score=0.75,
        min_settle_interval=300,
        last_confirmed_at=None,
        existing=None,
        now=NOW,
    )
    kwargs.update(overrides)
    return check_preconditions(**kwargs)


class TestPreconditions:
    def test_unsettled_when_clear(self) -> None:
        result = _check()
        assert result.state == SettlementState.UNSETTLED
        assert result.score == 0.75

    def test_missing_score(self) -> None:
        with pytest.raises(NoGroundTruthScoreError):
            _check(score=None)

    def test_score_out_of_range(self) -> None:
        with pytest.raises(InputValidationError):
            _check(score=1.2)

    def test_cooldown_active_reports_remaining(self) -> None:
        with pytest.raises(CooldownActiveError) as exc_info:
            _check(last_confirmed_at=NOW - timedelta(seconds=100))
        assert 199 <= exc_info.value.remaining_seconds <= 201
        assert exc_info.value.data["remaining_seconds"] == exc_info.value.remaining_seconds

    def test_cooldown_elapsed(self) -> None:
        result = _check(last_confirmed_at=NOW - timedelta(seconds=300))
        assert result.state == SettlementState.UNSETTLED

    def test_score_checked_before_cooldown(self) -> None:
        with pytest.raises(NoGroundTruthScoreError):
            _check(score=None, last_confirmed_at=NOW)

    def test_cooldown_checked_before_already_settled(self) -> None:
        with pytest.raises(CooldownActiveError):
            _check(last_confirmed_at=NOW, existing=_make_record())

    def test_already_settled(self) -> None:
        result = _check(existing=_make_record(confirmed=True))
        assert result.state == SettlementState.SETTLED
        assert result.existing is not None

    def test_pending(self) -> None:
        result = _check(existing=_make_record(confirmed=False))
        assert result.state == SettlementState.PENDING


class TestReserveSplit:
    def test_three_quarters(self) -> None:
        split = split_reserves(100_000_000, 0.75)
        assert split.reserve_long == 75_000_000
        assert split.reserve_short == 25_000_000

    @pytest.mark.parametrize("vault", [0, 1, 7, 99_999_999, 123_456_789_012])
    @pytest.mark.parametrize("score", [0.0, 0.333333, 0.57, 1.0])
    def test_split_conserves_vault(self, vault: int, score: float) -> None:
        split = split_reserves(vault, score)
        assert split.reserve_long + split.reserve_short == vault
        assert split.reserve_long >= 0 and split.reserve_short >= 0

    def test_negative_vault_rejected(self) -> None:
        with pytest.raises(InputValidationError):
            split_reserves(-1, 0.5)


class TestFactors:
    def test_reserve_prediction(self) -> None:
        assert reserve_prediction(75, 25) == 0.75
        assert reserve_prediction(0, 0) == 0.5

    def test_factors(self) -> None:
        f_long, f_short = settlement_factors(0.5, 0.75)
        assert f_long == pytest.approx(1.5)
        assert f_short == pytest.approx(0.5)

    def test_q_clamped(self) -> None:
        f_long, f_short = settlement_factors(0.0, 0.5)
        assert f_long == pytest.approx(500.0)
        assert f_short == pytest.approx(0.5 / 0.999)


class TestConvertScore:
    def test_millionths(self) -> None:
        assert convert_score(0.75, ScoreFormat.MILLIONTHS) == 750_000

    def test_q32(self) -> None:
        assert convert_score(0.5, ScoreFormat.Q32) == 1 << 31
