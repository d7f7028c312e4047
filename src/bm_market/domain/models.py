"""Domain models for bm_market — pure dataclasses, no business logic."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Pool:
    """One content market. Supplies in display units, reserves in micro-USDC."""

    pool_address: str
    belief_id: str
    status: str
    s_long: float
    s_short: float
    sqrt_price_long_x96: int
    sqrt_price_short_x96: int
    r_long: int
    r_short: int
    vault_balance: int
    current_epoch: int
    min_settle_interval: int
    last_settle_ts: datetime | None


@dataclass
class Belief:
    id: str
    previous_aggregate: float | None
    status: str
    created_epoch: int
    expiration_epoch: int | None


@dataclass
class AgentLock:
    """Gross belief lock of one agent in one pool (open positions only)."""

    agent_id: str
    belief_lock: int
    token_balance: float
