"""Tests for bm_common.errors and bm_common.response."""

from src.bm_common.errors import (
    AppError,
    AuthorityMismatchError,
    ConservationViolationError,
    CooldownActiveError,
    InputValidationError,
    MarketNotFoundError,
    NormalizationError,
    RateLimitError,
    SettlementUnconfirmedError,
    StakeVerificationError,
)
from src.bm_common.response import ApiResponse, error_response, success_response


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500
        assert err.data is None

    def test_is_exception(self) -> None:
        assert isinstance(AppError(code=1001, message="test"), Exception)


class TestSpecificErrors:
    def test_input_validation(self) -> None:
        err = InputValidationError("score outside [0, 1]")
        assert err.code == 1001
        assert err.http_status == 422
        assert "score outside" in err.message

    def test_market_not_found(self) -> None:
        err = MarketNotFoundError("Pool1")
        assert err.code == 3001
        assert err.http_status == 404
        assert "Pool1" in err.message

    def test_cooldown_carries_remaining(self) -> None:
        err = CooldownActiveError("Pool1", 42)
        assert err.code == 6002
        assert err.http_status == 429
        assert err.remaining_seconds == 42
        assert err.data == {"pool_address": "Pool1", "remaining_seconds": 42}

    def test_authority_mismatch_is_server_error(self) -> None:
        err = AuthorityMismatchError("A", "B")
        assert err.code == 6003
        assert err.http_status == 500

    def test_unconfirmed_is_accepted_not_failed(self) -> None:
        err = SettlementUnconfirmedError("Pool1", 3, "sig")
        assert err.code == 6004
        assert err.http_status == 202
        assert err.tx_ref == "sig"

    def test_conservation_violation_breakdown(self) -> None:
        err = ConservationViolationError(5, {"a": 10, "b": -5})
        assert err.code == 7002
        assert err.data == {"net_delta": 5, "deltas": {"a": 10, "b": -5}}

    def test_weights_and_stake_codes(self) -> None:
        assert NormalizationError(0.9).code == 7001
        assert StakeVerificationError("a", 10, 9).code == 7003

    def test_rate_limit(self) -> None:
        err = RateLimitError()
        assert err.code == 9001
        assert err.http_status == 429


class TestApiResponse:
    def test_success_response(self) -> None:
        resp = success_response({"epoch": 4})
        assert resp.code == 0
        assert resp.message == "success"
        assert resp.data == {"epoch": 4}
        assert resp.request_id.startswith("req_")

    def test_error_response_with_data(self) -> None:
        resp = error_response(6002, "cooldown", {"remaining_seconds": 3})
        assert resp.code == 6002
        assert resp.data == {"remaining_seconds": 3}

    def test_serialization(self) -> None:
        dumped = ApiResponse(data=[1, 2]).model_dump()
        assert set(dumped) == {"code", "message", "data", "timestamp", "request_id"}
