"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Input validation
  3xxx: Market / Belief
  6xxx: Settlement
  7xxx: Weights / Redistribution
  9xxx: System

Idempotent no-ops (already settled, already redistributed) are NOT errors;
services return them as successful results.
"""

from typing import Any


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
        data: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        self.data = data
        super().__init__(message)


# --- 1xxx: Input validation ---

class InputValidationError(AppError):
    """Malformed or out-of-range input. Raised before any mutation."""

    def __init__(self, detail: str) -> None:
        super().__init__(1001, f"Invalid input: {detail}", 422)


# --- 3xxx: Market / Belief ---

class MarketNotFoundError(AppError):
    def __init__(self, pool_address: str) -> None:
        super().__init__(3001, f"Market not found: {pool_address}", 404)


class MarketNotDeployedError(AppError):
    def __init__(self, pool_address: str, status: str) -> None:
        super().__init__(
            3002, f"Market {pool_address} status is {status}, must be market_deployed", 422
        )


class BeliefNotFoundError(AppError):
    def __init__(self, belief_id: str) -> None:
        super().__init__(3003, f"Belief not found: {belief_id}", 404)


class PoolNotFoundForBeliefError(AppError):
    def __init__(self, belief_id: str) -> None:
        super().__init__(3005, f"No pool deployed for belief {belief_id}", 404)


# --- 6xxx: Settlement ---

class NoGroundTruthScoreError(AppError):
    def __init__(self, belief_id: str) -> None:
        super().__init__(6001, f"No ground-truth score available for belief {belief_id}", 422)


class CooldownActiveError(AppError):
    """Recoverable: retry after ``remaining_seconds``."""

    def __init__(self, pool_address: str, remaining_seconds: int) -> None:
        self.remaining_seconds = remaining_seconds
        super().__init__(
            6002,
            f"Settlement cooldown active for {pool_address}: {remaining_seconds}s remaining",
            429,
            data={"pool_address": pool_address, "remaining_seconds": remaining_seconds},
        )


class AuthorityMismatchError(AppError):
    """Fatal configuration error. Stop processing, do not retry."""

    def __init__(self, configured: str, factory: str) -> None:
        super().__init__(
            6003,
            f"Protocol authority mismatch: configured={configured} factory={factory}",
            500,
        )


class SettlementUnconfirmedError(AppError):
    """Ledger did not confirm in time. The transaction may still land:
    poll confirmation instead of resubmitting."""

    def __init__(self, pool_address: str, epoch: int, tx_ref: str | None) -> None:
        self.tx_ref = tx_ref
        super().__init__(
            6004,
            f"Settlement for {pool_address} epoch {epoch} is unconfirmed",
            202,
            data={"pool_address": pool_address, "epoch": epoch, "tx_ref": tx_ref},
        )


class LedgerSubmissionError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(6005, f"Ledger rejected settlement: {detail}", 502)


class SettlementNotFoundError(AppError):
    def __init__(self, pool_address: str, epoch: int) -> None:
        super().__init__(6006, f"No settlement record for {pool_address} epoch {epoch}", 404)


# --- 7xxx: Weights / Redistribution ---

class NormalizationError(AppError):
    def __init__(self, weights_sum: float) -> None:
        super().__init__(7001, f"Normalization failure: weights sum to {weights_sum}", 500)


class ConservationViolationError(AppError):
    """Fatal: redistribution deltas do not sum to zero. Nothing is applied."""

    def __init__(self, net_delta: int, breakdown: dict[str, int]) -> None:
        self.net_delta = net_delta
        self.breakdown = breakdown
        super().__init__(
            7002,
            f"Zero-sum violation in redistribution: net delta {net_delta}",
            500,
            data={"net_delta": net_delta, "deltas": breakdown},
        )


class StakeVerificationError(AppError):
    def __init__(self, agent_id: str, expected: int, actual: int) -> None:
        super().__init__(
            7003,
            f"Stake verification failed for agent {agent_id}: expected {expected}, got {actual}",
            500,
        )


class AgentNotFoundError(AppError):
    def __init__(self, agent_id: str) -> None:
        super().__init__(7004, f"Agent not found: {agent_id}", 404)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)
