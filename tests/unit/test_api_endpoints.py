"""HTTP-level tests: routing, envelopes and error mapping (services mocked)."""

from unittest.mock import AsyncMock, patch

from httpx import AsyncClient

from src.bm_common.enums import SettlementState, TokenSide
from src.bm_common.errors import (
    CooldownActiveError,
    MarketNotFoundError,
    SettlementUnconfirmedError,
)
from src.bm_curve.application.schemas import EstimateResponse, QuoteResponse
from src.bm_redistribution.application.schemas import RedistributeResponse
from src.bm_settlement.application.schemas import EpochAdvanceResponse, SettleResponse
from src.bm_weights.application.schemas import WeightsResponse


def _settle_response(skipped: bool = False) -> SettleResponse:
    return SettleResponse(
        pool_address="Pool1",
        belief_id="belief-1",
        epoch=3,
        state=SettlementState.SETTLED,
        settled=not skipped,
        skipped=skipped,
        tx_ref="sig-1",
        score=0.75,
        market_prediction_q=0.6,
        f_long=1.25,
        f_short=0.625,
        reserve_long=75_000_000,
        reserve_short=25_000_000,
    )


class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    async def test_request_id_header(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.headers["X-Request-ID"].startswith("req_")


class TestMarketEndpoints:
    async def test_quote(self, client: AsyncClient) -> None:
        mock = AsyncMock()
        mock.quote_price.return_value = QuoteResponse(
            pool_address="Pool1",
            supply_long=116,
            supply_short=24,
            price_long=0.979,
            price_short=0.203,
            market_prediction=0.959,
            ledger_price_long=0.98,
            ledger_price_short=0.2,
        )
        with patch("src.bm_curve.api.router._service", mock):
            resp = await client.get("/api/v1/markets/Pool1/quote")

        body = resp.json()
        assert resp.status_code == 200
        assert body["code"] == 0
        assert body["data"]["price_long"] > body["data"]["price_short"]
        assert body["request_id"] == resp.headers["X-Request-ID"]

    async def test_quote_unknown_market(self, client: AsyncClient) -> None:
        mock = AsyncMock()
        mock.quote_price.side_effect = MarketNotFoundError("PoolX")
        with patch("src.bm_curve.api.router._service", mock):
            resp = await client.get("/api/v1/markets/PoolX/quote")

        assert resp.status_code == 404
        assert resp.json()["code"] == 3001

    async def test_estimate(self, client: AsyncClient) -> None:
        mock = AsyncMock()
        mock.estimate_trade.return_value = EstimateResponse(
            pool_address="Pool1",
            side=TokenSide.LONG,
            direction="BUY",
            amount_in=10,
            amount_out=10.1,
            price_before=0.979,
            price_after=0.98,
        )
        with patch("src.bm_curve.api.router._service", mock):
            resp = await client.post(
                "/api/v1/markets/Pool1/estimate",
                json={"side": "LONG", "direction": "BUY", "amount": 10},
            )

        assert resp.status_code == 200
        assert resp.json()["data"]["amount_out"] == 10.1

    async def test_estimate_rejects_non_positive_amount(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/markets/Pool1/estimate",
            json={"side": "LONG", "direction": "BUY", "amount": 0},
        )
        assert resp.status_code == 422


class TestWeightsEndpoint:
    async def test_calculate(self, client: AsyncClient) -> None:
        mock = AsyncMock()
        mock.compute_weights.return_value = WeightsResponse(
            belief_id="belief-1",
            pool_address="Pool1",
            weights={"a": 0.75, "b": 0.25},
            belief_weights={"a": 30.0, "b": 10.0},
        )
        with patch("src.bm_weights.api.router._service", mock):
            resp = await client.post(
                "/api/v1/weights/calculate",
                json={"belief_id": "belief-1", "participant_agents": ["a", "b"]},
            )

        assert resp.status_code == 200
        assert resp.json()["data"]["weights"] == {"a": 0.75, "b": 0.25}

    async def test_empty_agents_rejected(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/weights/calculate",
            json={"belief_id": "belief-1", "participant_agents": []},
        )
        assert resp.status_code == 422


class TestSettlementEndpoints:
    async def test_settle(self, client: AsyncClient) -> None:
        mock = AsyncMock()
        mock.settle_epoch.return_value = _settle_response()
        with patch("src.bm_settlement.api.router._service", mock):
            resp = await client.post("/api/v1/settlements/Pool1")

        body = resp.json()
        assert resp.status_code == 200
        assert body["message"] == "settled"
        assert body["data"]["reserve_long"] == 75_000_000

    async def test_already_settled_is_success(self, client: AsyncClient) -> None:
        mock = AsyncMock()
        mock.settle_epoch.return_value = _settle_response(skipped=True)
        with patch("src.bm_settlement.api.router._service", mock):
            resp = await client.post("/api/v1/settlements/Pool1")

        assert resp.status_code == 200
        assert resp.json()["message"] == "already settled"
        assert resp.json()["data"]["skipped"] is True

    async def test_cooldown_returns_remaining(self, client: AsyncClient) -> None:
        mock = AsyncMock()
        mock.settle_epoch.side_effect = CooldownActiveError("Pool1", 120)
        with patch("src.bm_settlement.api.router._service", mock):
            resp = await client.post("/api/v1/settlements/Pool1")

        body = resp.json()
        assert resp.status_code == 429
        assert body["code"] == 6002
        assert body["data"]["remaining_seconds"] == 120

    async def test_unconfirmed_is_202(self, client: AsyncClient) -> None:
        mock = AsyncMock()
        mock.settle_epoch.side_effect = SettlementUnconfirmedError("Pool1", 3, "sig-1")
        with patch("src.bm_settlement.api.router._service", mock):
            resp = await client.post("/api/v1/settlements/Pool1")

        assert resp.status_code == 202
        assert resp.json()["data"]["tx_ref"] == "sig-1"

    async def test_confirm_with_epoch(self, client: AsyncClient) -> None:
        mock = AsyncMock()
        mock.confirm_settlement.return_value = _settle_response()
        with patch("src.bm_settlement.api.router._service", mock):
            resp = await client.post("/api/v1/settlements/Pool1/confirm", json={"epoch": 3})

        assert resp.status_code == 200
        assert mock.confirm_settlement.await_args.args[1:] == ("Pool1", 3)

    async def test_advance_epoch(self, client: AsyncClient) -> None:
        mock = AsyncMock()
        mock.advance_epoch.return_value = EpochAdvanceResponse(epoch=4)
        with patch("src.bm_settlement.api.router._service", mock):
            resp = await client.post("/api/v1/epochs/advance")

        assert resp.json()["data"] == {"epoch": 4}


class TestRedistributionEndpoint:
    async def test_redistribute(self, client: AsyncClient) -> None:
        mock = AsyncMock()
        mock.redistribute.return_value = RedistributeResponse(
            belief_id="X",
            epoch=3,
            pool_address="Pool1",
            occurred=True,
            lambda_scale=1.0,
            total_redistributed=25_000_000,
            rewards={"a": 25_000_000},
            slashes={"b": 25_000_000},
        )
        with patch("src.bm_redistribution.api.router._service", mock):
            resp = await client.post(
                "/api/v1/redistributions",
                json={"belief_id": "X", "epoch": 3, "information_scores": {"a": 0.5, "b": -0.5}},
            )

        assert resp.status_code == 200
        assert resp.json()["data"]["total_redistributed"] == 25_000_000

    async def test_skipped_message(self, client: AsyncClient) -> None:
        mock = AsyncMock()
        mock.redistribute.return_value = RedistributeResponse(
            belief_id="X", epoch=3, occurred=False, skipped=True
        )
        with patch("src.bm_redistribution.api.router._service", mock):
            resp = await client.post(
                "/api/v1/redistributions",
                json={"belief_id": "X", "epoch": 3, "information_scores": {"a": 0.5}},
            )

        assert resp.json()["message"] == "already redistributed"
        assert resp.json()["data"]["occurred"] is False

    async def test_negative_epoch_rejected(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/redistributions",
            json={"belief_id": "X", "epoch": -1, "information_scores": {"a": 0.5}},
        )
        assert resp.status_code == 422


class TestAdminEndpoint:
    async def test_invariants(self, client: AsyncClient) -> None:
        mock = AsyncMock()
        mock.verify_all_invariants.return_value = {"ok": True, "violations": []}
        with patch("src.bm_admin.api.router._service", mock):
            resp = await client.get("/api/v1/admin/invariants")

        assert resp.json()["data"] == {"ok": True, "violations": []}
