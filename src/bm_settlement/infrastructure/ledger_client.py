"""HttpLedgerClient — LedgerProtocol over the settlement relay's HTTP API.

Relay endpoints:
  POST /settle              {"pool_address", "score", "idempotency_key"}
                            -> {"tx_ref", "confirmed", "slot"}
  GET  /settle/{key}        -> {"tx_ref", "confirmed", "slot"}, 404 if never received
  GET  /tx/{tx_ref}         -> {"tx_ref", "confirmed", "slot"}
  GET  /factory/authority   -> {"authority"}
"""

import logging
from typing import Any

import httpx

from config.settings import settings
from src.bm_common.errors import LedgerSubmissionError
from src.bm_settlement.domain.ledger import LedgerReceipt, LedgerTimeoutError

logger = logging.getLogger(__name__)


def _receipt(payload: dict[str, Any]) -> LedgerReceipt:
    return LedgerReceipt(
        tx_ref=payload.get("tx_ref"),
        confirmed=bool(payload.get("confirmed", False)),
        slot=payload.get("slot"),
    )


class HttpLedgerClient:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.LEDGER_RELAY_URL).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.LEDGER_TIMEOUT_SECONDS
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url, timeout=self._timeout, transport=self._transport
        )

    async def _request(
        self, method: str, path: str, allow_missing: bool = False, **kwargs: Any
    ) -> dict[str, Any] | None:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
                if allow_missing and response.status_code == 404:
                    return None
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException as e:
            logger.warning("Ledger relay timeout on %s %s: %s", method, path, e)
            raise LedgerTimeoutError() from e
        except httpx.HTTPStatusError as e:
            logger.error(
                "Ledger relay error on %s %s: %s", method, path, e.response.status_code
            )
            raise LedgerSubmissionError(f"HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error("Ledger relay unreachable on %s %s: %s", method, path, e)
            raise LedgerSubmissionError(str(e)) from e

    async def settle(
        self, pool_address: str, score_fixed: int, idempotency_key: str
    ) -> LedgerReceipt:
        payload = await self._request(
            "POST",
            "/settle",
            json={
                "pool_address": pool_address,
                "score": score_fixed,
                "idempotency_key": idempotency_key,
            },
            headers={"Idempotency-Key": idempotency_key},
        )
        return _receipt(payload or {})

    async def get_status(self, tx_ref: str) -> LedgerReceipt:
        try:
            return _receipt(await self._request("GET", f"/tx/{tx_ref}") or {})
        except LedgerTimeoutError as e:
            raise LedgerTimeoutError(tx_ref) from e

    async def find_by_key(self, idempotency_key: str) -> LedgerReceipt | None:
        payload = await self._request("GET", f"/settle/{idempotency_key}", allow_missing=True)
        return _receipt(payload) if payload is not None else None

    async def get_factory_authority(self) -> str:
        payload = await self._request("GET", "/factory/authority") or {}
        return str(payload.get("authority", ""))
