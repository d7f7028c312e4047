"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class TokenSide(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class PoolStatus(str, Enum):
    POOL_CREATED = "pool_created"
    MARKET_DEPLOYED = "market_deployed"
    CLOSED = "closed"


class SettlementState(str, Enum):
    """Per-(market, epoch) settlement state. UNSETTLED -> SETTLED fires once."""
    UNSETTLED = "UNSETTLED"
    PENDING = "PENDING"  # submitted, ledger has not confirmed yet
    SETTLED = "SETTLED"


class ScoreFormat(str, Enum):
    MILLIONTHS = "millionths"
    Q32 = "q32"
