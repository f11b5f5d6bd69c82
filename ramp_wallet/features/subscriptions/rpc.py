"""Ledger services backed by a node's JSON-RPC pub/sub API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Callable

from ramp_wallet.shared.network import LedgerRpcClient, NetworkError, NetworkErrorType
from ramp_wallet.shared.protocols import (
    ExtrinsicSigner,
    QueryKind,
    StorageCodec,
    TxProgress,
    Unsubscribe,
)

logger = logging.getLogger(__name__)

FINAL_EXTRINSIC_STATUSES = frozenset(
    {"Finalized", "FinalityTimeout", "Usurped", "Dropped", "Invalid"}
)


def parse_extrinsic_status(result: Any) -> TxProgress:
    """Turn an ``author_extrinsicUpdate`` payload into a ``TxProgress``.

    Nodes send bare strings for hashless states (``"ready"``) and a
    single-key object for the rest (``{"inBlock": "0x..."}``).
    """
    if isinstance(result, str):
        return TxProgress(status=result[:1].upper() + result[1:])

    if isinstance(result, dict) and len(result) == 1:
        name, value = next(iter(result.items()))
        block_hash = value if isinstance(value, str) else None
        return TxProgress(status=name[:1].upper() + name[1:], block_hash=block_hash)

    logger.debug("Unrecognised extrinsic status payload: %r", result)
    return TxProgress(status="Unknown")


class RpcQueryService:
    def __init__(self, client: LedgerRpcClient, codec: StorageCodec):
        self._client = client
        self._codec = codec

    async def subscribe(
        self,
        query_kind: QueryKind,
        key: str,
        on_value: Callable[[Any], None],
    ) -> Unsubscribe:
        storage_key = self._codec.storage_key(query_kind, key).lower()

        def on_change_set(result: dict[str, Any]) -> None:
            for changed_key, value in result.get("changes", []):
                if changed_key.lower() != storage_key:
                    continue
                on_value(self._codec.decode(query_kind, value))

        return await self._client.subscribe(
            "state_subscribeStorage",
            [[storage_key]],
            "state_unsubscribeStorage",
            on_change_set,
        )


class RpcTransactionSubmitter:
    def __init__(self, client: LedgerRpcClient, signer: ExtrinsicSigner):
        self._client = client
        self._signer = signer

    async def _next_update(self, updates: asyncio.Queue[Any]) -> Any:
        timeout = self._client.timeout_config.operation_timeout
        try:
            update = await asyncio.wait_for(updates.get(), timeout)
        except asyncio.TimeoutError as e:
            raise NetworkError(
                error_type=NetworkErrorType.TIMEOUT,
                message=f"No extrinsic status update within {timeout}s",
                original_error=e,
            ) from e
        if isinstance(update, NetworkError):
            raise update
        return update

    async def submit(
        self,
        pallet: str,
        call: str,
        params: tuple[Any, ...],
        signer: str,
    ) -> AsyncIterator[TxProgress]:
        extrinsic = await self._signer.sign(pallet, call, params, signer)
        updates: asyncio.Queue[Any] = asyncio.Queue()
        # A dropped connection ends the watch; re-sending the extrinsic on
        # reconnect could submit it twice.
        unsubscribe = await self._client.subscribe(
            "author_submitAndWatchExtrinsic",
            [extrinsic],
            "author_unwatchExtrinsic",
            updates.put_nowait,
            resubscribe=False,
            on_closed=updates.put_nowait,
        )
        logger.info("Submitted %s.%s for %s", pallet, call, signer)
        try:
            while True:
                progress = parse_extrinsic_status(await self._next_update(updates))
                yield progress
                if progress.status in FINAL_EXTRINSIC_STATUSES:
                    break
        finally:
            unsubscribe()
