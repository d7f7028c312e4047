"""Ledger collaborator contract.

The ledger owns transaction encoding and signing; this core only hands it a
pool address, a fixed-point score and an idempotency key, and reads back the
receipt. The relay deduplicates submissions by key, so a (pool, epoch) is
settled at most once however many times it is sent.
"""

from dataclasses import dataclass
from typing import Protocol


def settlement_key(pool_address: str, epoch: int) -> str:
    return f"{pool_address}:{epoch}"


@dataclass
class LedgerReceipt:
    tx_ref: str | None
    confirmed: bool
    slot: int | None = None


class LedgerTimeoutError(Exception):
    """Collaborator timed out. The transaction may still land."""

    def __init__(self, tx_ref: str | None = None) -> None:
        self.tx_ref = tx_ref
        super().__init__(f"ledger timeout (tx_ref={tx_ref})")


class LedgerProtocol(Protocol):
    async def settle(
        self, pool_address: str, score_fixed: int, idempotency_key: str
    ) -> LedgerReceipt:
        """Submit a settlement instruction. Raises LedgerTimeoutError on timeout."""
        ...

    async def get_status(self, tx_ref: str) -> LedgerReceipt: ...

    async def find_by_key(self, idempotency_key: str) -> LedgerReceipt | None:
        """Receipt for an earlier submission, or None if the relay never saw it."""
        ...

    async def get_factory_authority(self) -> str:
        """Authority pubkey recorded in the deployed market factory."""
        ...
