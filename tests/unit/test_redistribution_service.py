"""Unit tests for RedistributionService with mocked repositories."""

from unittest.mock import AsyncMock, patch

import pytest

from src.bm_common.errors import (
    AgentNotFoundError,
    BeliefNotFoundError,
    InputValidationError,
    PoolNotFoundForBeliefError,
    StakeVerificationError,
)
from src.bm_market.domain.models import AgentLock, Belief, Pool
from src.bm_redistribution.application.schemas import RedistributeRequest
from src.bm_redistribution.application.service import RedistributionService


def _make_pool() -> Pool:
    return Pool(
        pool_address="Pool1",
        belief_id="X",
        status="market_deployed",
        s_long=10.0,
        s_short=10.0,
        sqrt_price_long_x96=0,
        sqrt_price_short_x96=0,
        r_long=0,
        r_short=0,
        vault_balance=0,
        current_epoch=3,
        min_settle_interval=300,
        last_settle_ts=None,
    )


def _lock(agent_id: str, amount: int) -> AgentLock:
    return AgentLock(agent_id=agent_id, belief_lock=amount, token_balance=1.0)


class _FakeStakeStore:
    """In-memory agents.total_stake with the GREATEST(0, ...) semantics."""

    def __init__(self, stakes: dict[str, int]) -> None:
        self.stakes = dict(stakes)
        self.events: list = []

    async def has_events(self, db, belief_id: str, epoch: int) -> bool:
        return any(e.belief_id == belief_id and e.epoch == epoch for e in self.events)

    async def get_stake(self, db, agent_id: str) -> int | None:
        return self.stakes.get(agent_id)

    async def adjust_stake(self, db, agent_id: str, delta: int) -> int | None:
        if agent_id not in self.stakes:
            return None
        self.stakes[agent_id] = max(0, self.stakes[agent_id] + delta)
        return self.stakes[agent_id]

    async def insert_event(self, db, event) -> bool:
        self.events.append(event)
        return True

    async def list_epoch_deltas(self, db):
        return []


def _build(stakes: dict[str, int], locks: dict[str, AgentLock]):
    store = _FakeStakeStore(stakes)
    market_repo = AsyncMock()
    market_repo.get_belief.return_value = Belief(
        id="X", previous_aggregate=0.6, status="active", created_epoch=0, expiration_epoch=None
    )
    market_repo.get_pool_for_belief.return_value = _make_pool()
    market_repo.get_open_locks.return_value = locks
    return RedistributionService(repo=store, market_repo=market_repo), store, market_repo


def _request(scores: dict[str, float], epoch: int = 3) -> RedistributeRequest:
    return RedistributeRequest(belief_id="X", epoch=epoch, information_scores=scores)


@pytest.fixture(autouse=True)
def _no_advisory_lock():
    # Lock SQL is covered in test_redistribution_locking
    with patch("src.bm_redistribution.application.service.market_lock") as mock_lock:
        mock_lock.return_value.__aenter__ = AsyncMock(return_value=0)
        mock_lock.return_value.__aexit__ = AsyncMock(return_value=False)
        yield mock_lock


class TestRedistribute:
    async def test_symmetric_pair_moves_stake(self) -> None:
        svc, store, _ = _build(
            {"a": 100_000_000, "b": 100_000_000},
            {"a": _lock("a", 50_000_000), "b": _lock("b", 50_000_000)},
        )
        db = AsyncMock()

        result = await svc.redistribute(db, _request({"a": 0.5, "b": -0.5}))

        assert result.occurred is True
        assert result.lambda_scale == pytest.approx(1.0)
        assert result.total_redistributed == 25_000_000
        assert result.total_redistributed_display == "$25.000000"
        assert result.rewards == {"a": 25_000_000}
        assert result.slashes == {"b": 25_000_000}
        assert store.stakes == {"a": 125_000_000, "b": 75_000_000}
        assert sum(e.stake_delta for e in store.events) == 0
        db.commit.assert_awaited_once()

    async def test_events_carry_weights(self) -> None:
        svc, store, _ = _build(
            {"a": 100, "b": 100},
            {"a": _lock("a", 30), "b": _lock("b", 10)},
        )

        await svc.redistribute(AsyncMock(), _request({"a": 1.0, "b": -1.0}))

        by_agent = {e.agent_id: e for e in store.events}
        assert by_agent["a"].normalized_weight == pytest.approx(0.75)
        assert by_agent["b"].belief_weight == 10
        assert by_agent["b"].stake_before == 100
        assert by_agent["b"].stake_after == 90

    async def test_second_call_is_noop(self) -> None:
        svc, store, _ = _build(
            {"a": 100_000_000, "b": 100_000_000},
            {"a": _lock("a", 50_000_000), "b": _lock("b", 50_000_000)},
        )
        await svc.redistribute(AsyncMock(), _request({"a": 0.5, "b": -0.5}))
        stakes_after_first = dict(store.stakes)

        second = await svc.redistribute(AsyncMock(), _request({"a": 0.5, "b": -0.5}))

        assert second.occurred is False
        assert second.skipped is True
        assert store.stakes == stakes_after_first
        assert len(store.events) == 2

    async def test_one_sided_round(self) -> None:
        svc, store, _ = _build({"a": 100}, {"a": _lock("a", 100)})

        result = await svc.redistribute(AsyncMock(), _request({"a": 0.5}))

        assert result.occurred is False
        assert result.skipped is False
        assert store.events == []
        assert store.stakes == {"a": 100}

    async def test_one_sided_round_repeated_is_not_marked_skipped(self) -> None:
        svc, store, _ = _build({"a": 100}, {"a": _lock("a", 100)})

        await svc.redistribute(AsyncMock(), _request({"a": 0.5}))
        again = await svc.redistribute(AsyncMock(), _request({"a": 0.5}))

        assert again.occurred is False
        assert again.skipped is False
        assert store.events == []
        assert store.stakes == {"a": 100}

    async def test_unknown_agent_aborts(self) -> None:
        svc, _, _ = _build(
            {"a": 100},
            {"a": _lock("a", 100), "ghost": _lock("ghost", 100)},
        )
        db = AsyncMock()

        with pytest.raises(AgentNotFoundError):
            await svc.redistribute(db, _request({"a": 0.5, "ghost": -0.5}))
        db.rollback.assert_awaited()
        db.commit.assert_not_awaited()

    async def test_stake_verification_failure_rolls_back(self) -> None:
        svc, store, _ = _build(
            {"a": 100, "b": 100}, {"a": _lock("a", 100), "b": _lock("b", 100)}
        )
        store.adjust_stake = AsyncMock(return_value=12345)  # type: ignore[method-assign]
        db = AsyncMock()

        with pytest.raises(StakeVerificationError):
            await svc.redistribute(db, _request({"a": 0.5, "b": -0.5}))
        db.rollback.assert_awaited()

    async def test_slash_floored_at_zero_stake(self) -> None:
        svc, store, _ = _build(
            {"a": 100, "b": 10}, {"a": _lock("a", 100), "b": _lock("b", 100)}
        )

        await svc.redistribute(AsyncMock(), _request({"a": 0.5, "b": -0.5}))

        assert store.stakes["b"] == 0

    async def test_belief_missing(self) -> None:
        svc, _, market_repo = _build({}, {})
        market_repo.get_belief.return_value = None

        with pytest.raises(BeliefNotFoundError):
            await svc.redistribute(AsyncMock(), _request({"a": 0.5}))

    async def test_no_pool(self) -> None:
        svc, _, market_repo = _build({}, {})
        market_repo.get_pool_for_belief.return_value = None

        with pytest.raises(PoolNotFoundForBeliefError):
            await svc.redistribute(AsyncMock(), _request({"a": 0.5}))

    async def test_score_out_of_range_before_any_io(self) -> None:
        svc, _, market_repo = _build({}, {})
        req = RedistributeRequest.model_construct(
            belief_id="X", epoch=3, information_scores={"a": 2.0}
        )

        with pytest.raises(InputValidationError):
            await svc.redistribute(AsyncMock(), req)
        market_repo.get_belief.assert_not_awaited()

    async def test_acquires_market_lock(self, _no_advisory_lock) -> None:
        svc, _, _ = _build({"a": 1}, {"a": _lock("a", 1)})
        db = AsyncMock()

        await svc.redistribute(db, _request({"a": 0.5}))

        _no_advisory_lock.assert_called_once_with(db, "Pool1")
