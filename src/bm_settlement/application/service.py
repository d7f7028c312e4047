"""SettlementService — settles one pool epoch against its ground-truth score.

Transactions are committed here; each public method is one unit of work.
A confirmed epoch is never settled twice, so callers may retry freely.
"""

import logging
from dataclasses import replace

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.bm_common.datetime_utils import utc_now
from src.bm_common.enums import PoolStatus, ScoreFormat, SettlementState
from src.bm_common.errors import (
    AuthorityMismatchError,
    BeliefNotFoundError,
    LedgerSubmissionError,
    MarketNotDeployedError,
    MarketNotFoundError,
    SettlementNotFoundError,
    SettlementUnconfirmedError,
)
from src.bm_market.domain.models import Pool
from src.bm_market.domain.repository import MarketRepositoryProtocol
from src.bm_market.infrastructure.persistence import MarketRepository
from src.bm_settlement.application.schemas import EpochAdvanceResponse, SettleResponse
from src.bm_settlement.domain.engine import (
    check_preconditions,
    convert_score,
    reserve_prediction,
    settlement_factors,
    split_reserves,
)
from src.bm_settlement.domain.ledger import (
    LedgerProtocol,
    LedgerReceipt,
    LedgerTimeoutError,
    settlement_key,
)
from src.bm_settlement.domain.models import SettlementRecord
from src.bm_settlement.domain.repository import SettlementRepositoryProtocol
from src.bm_settlement.infrastructure.ledger_client import HttpLedgerClient
from src.bm_settlement.infrastructure.persistence import SettlementRepository

logger = logging.getLogger(__name__)


class SettlementService:
    def __init__(
        self,
        ledger: LedgerProtocol | None = None,
        repo: SettlementRepositoryProtocol | None = None,
        market_repo: MarketRepositoryProtocol | None = None,
        authority: str | None = None,
        score_format: ScoreFormat | None = None,
    ) -> None:
        self._ledger: LedgerProtocol = ledger or HttpLedgerClient()
        self._repo: SettlementRepositoryProtocol = repo or SettlementRepository()
        self._market_repo: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._authority = authority if authority is not None else settings.PROTOCOL_AUTHORITY_PUBKEY
        self._score_format = score_format or ScoreFormat(settings.SETTLEMENT_SCORE_FORMAT)
        self._authority_verified = False

    async def validate_authority(self) -> None:
        """Check once that our signing authority is the factory's authority."""
        if self._authority_verified:
            return
        try:
            factory = await self._ledger.get_factory_authority()
        except LedgerTimeoutError as e:
            raise LedgerSubmissionError("timed out reading factory authority") from e
        if not self._authority or factory != self._authority:
            logger.critical(
                "Protocol authority mismatch: configured=%s factory=%s",
                self._authority, factory,
            )
            raise AuthorityMismatchError(self._authority, factory)
        self._authority_verified = True

    async def _load_pool(self, db: AsyncSession, pool_address: str) -> Pool:
        pool = await self._market_repo.get_pool_for_update(db, pool_address)
        if pool is None:
            raise MarketNotFoundError(pool_address)
        if pool.status != PoolStatus.MARKET_DEPLOYED.value:
            raise MarketNotDeployedError(pool_address, pool.status)
        return pool

    async def settle_epoch(self, db: AsyncSession, pool_address: str) -> SettleResponse:
        await self.validate_authority()
        try:
            result = await self._settle_inner(db, pool_address)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return result

    async def _settle_inner(self, db: AsyncSession, pool_address: str) -> SettleResponse:
        pool = await self._load_pool(db, pool_address)
        epoch = pool.current_epoch

        belief = await self._market_repo.get_belief(db, pool.belief_id)
        if belief is None:
            raise BeliefNotFoundError(pool.belief_id)

        check = check_preconditions(
            belief_id=belief.id,
            pool_address=pool_address,
            score=belief.previous_aggregate,
            min_settle_interval=pool.min_settle_interval,
            last_confirmed_at=await self._repo.get_last_confirmed_at(db, pool_address, epoch),
            existing=await self._repo.get_record(db, pool_address, epoch),
            now=utc_now(),
        )
        if check.state == SettlementState.SETTLED and check.existing is not None:
            logger.info(
                "Settlement idempotency hit: pool=%s epoch=%d tx=%s",
                pool_address, epoch, check.existing.tx_signature,
            )
            return SettleResponse.from_record(check.existing, settled=False, skipped=True)
        if check.state == SettlementState.PENDING and check.existing is not None:
            # Earlier submission may still land; poll via confirm instead.
            raise SettlementUnconfirmedError(pool_address, epoch, check.existing.tx_signature)

        score = check.score
        score_fixed = convert_score(score, self._score_format)
        q = reserve_prediction(pool.r_long, pool.r_short)
        f_long, f_short = settlement_factors(q, score)
        split = split_reserves(pool.vault_balance, score)

        record = SettlementRecord(
            pool_address=pool_address,
            belief_id=belief.id,
            epoch=epoch,
            bd_relevance_score=score,
            market_prediction_q=q,
            f_long=f_long,
            f_short=f_short,
            reserve_long_before=pool.r_long,
            reserve_short_before=pool.r_short,
            reserve_long_after=split.reserve_long,
            reserve_short_after=split.reserve_short,
            tx_signature=None,
            confirmed=False,
        )
        # Committed before submission; a retry after a lost response is PENDING.
        await self._repo.save_record(db, record)
        await db.commit()

        receipt = await self._submit(pool_address, epoch, score_fixed)
        record = replace(record, tx_signature=receipt.tx_ref)
        if not receipt.confirmed:
            await self._keep_pending(db, record)

        pool = await self._load_pool(db, pool_address)
        done = await self._finalize(db, pool, record)
        return SettleResponse.from_record(
            done,
            settled=True,
            skipped=False,
            score_fixed=score_fixed,
            score_format=self._score_format,
        )

    async def _submit(self, pool_address: str, epoch: int, score_fixed: int) -> LedgerReceipt:
        try:
            return await self._ledger.settle(
                pool_address, score_fixed, settlement_key(pool_address, epoch)
            )
        except LedgerTimeoutError as e:
            logger.warning(
                "Settlement unconfirmed (timeout): pool=%s epoch=%d", pool_address, epoch
            )
            raise SettlementUnconfirmedError(pool_address, epoch, e.tx_ref) from e

    async def _keep_pending(self, db: AsyncSession, record: SettlementRecord) -> None:
        """Store the tx ref on the pending row and report it as unconfirmed."""
        if record.tx_signature:
            await self._repo.save_record(db, record)
            await db.commit()
        logger.warning(
            "Settlement unconfirmed: pool=%s epoch=%d tx=%s",
            record.pool_address, record.epoch, record.tx_signature,
        )
        raise SettlementUnconfirmedError(record.pool_address, record.epoch, record.tx_signature)

    async def _finalize(
        self, db: AsyncSession, pool: Pool, record: SettlementRecord
    ) -> SettlementRecord:
        split = split_reserves(pool.vault_balance, record.bd_relevance_score)
        record = replace(
            record,
            confirmed=True,
            reserve_long_after=split.reserve_long,
            reserve_short_after=split.reserve_short,
        )
        await self._repo.save_record(db, record)
        await self._market_repo.apply_settlement_reserves(
            db, record.pool_address, split.reserve_long, split.reserve_short
        )
        logger.info(
            "Settled pool=%s epoch=%d score=%.6f q=%.6f reserves=%d/%d tx=%s",
            record.pool_address, record.epoch, record.bd_relevance_score,
            record.market_prediction_q, split.reserve_long, split.reserve_short,
            record.tx_signature,
        )
        return record

    async def confirm_settlement(
        self, db: AsyncSession, pool_address: str, epoch: int | None = None
    ) -> SettleResponse:
        """Poll the ledger for a pending settlement and finish it once confirmed.

        A pending row without a tx ref is looked up by its idempotency key. If
        the relay never received it, it is submitted again under the same key.
        """
        try:
            result = await self._confirm_inner(db, pool_address, epoch)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return result

    async def _confirm_inner(
        self, db: AsyncSession, pool_address: str, epoch: int | None
    ) -> SettleResponse:
        pool = await self._load_pool(db, pool_address)
        target_epoch = pool.current_epoch if epoch is None else epoch

        record = await self._repo.get_record(db, pool_address, target_epoch)
        if record is None:
            raise SettlementNotFoundError(pool_address, target_epoch)
        if record.confirmed:
            logger.info(
                "Confirm idempotency hit: pool=%s epoch=%d", pool_address, target_epoch
            )
            return SettleResponse.from_record(record, settled=False, skipped=True)

        receipt = await self._lookup(record)
        record = replace(record, tx_signature=receipt.tx_ref or record.tx_signature)
        if not receipt.confirmed:
            await self._keep_pending(db, record)

        done = await self._finalize(db, pool, record)
        return SettleResponse.from_record(done, settled=True, skipped=False)

    async def _lookup(self, record: SettlementRecord) -> LedgerReceipt:
        try:
            if record.tx_signature:
                return await self._ledger.get_status(record.tx_signature)
            receipt = await self._ledger.find_by_key(
                settlement_key(record.pool_address, record.epoch)
            )
        except LedgerTimeoutError as e:
            raise SettlementUnconfirmedError(
                record.pool_address, record.epoch, record.tx_signature
            ) from e
        if receipt is not None:
            return receipt
        logger.warning(
            "Relay has no submission for pool=%s epoch=%d, resubmitting",
            record.pool_address, record.epoch,
        )
        score_fixed = convert_score(record.bd_relevance_score, self._score_format)
        return await self._submit(record.pool_address, record.epoch, score_fixed)

    async def advance_epoch(self, db: AsyncSession) -> EpochAdvanceResponse:
        try:
            epoch = await self._market_repo.advance_epoch(db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Epoch advanced to %d", epoch)
        return EpochAdvanceResponse(epoch=epoch)
