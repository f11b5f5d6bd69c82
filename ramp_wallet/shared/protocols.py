"""Interfaces of the services Ramp Wallet consumes but does not implement."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Callable, Protocol

Unsubscribe = Callable[[], None]


class QueryKind(Enum):
    SYSTEM_ACCOUNT = "system.account"
    FIAT_RAMP_ACCOUNT = "fiatRamps.accounts"


@dataclass(frozen=True)
class KeyringAccount:
    name: str
    address: str


@dataclass(frozen=True)
class TxProgress:
    """One progress notification from the signer/submitter.

    ``status`` is the extrinsic status type as the node reports it
    (``Ready``, ``Broadcast``, ``InBlock``, ``Finalized``, ``Invalid`` ...).
    ``error`` is set when the extrinsic was included but its dispatch failed.
    """

    status: str
    block_hash: str | None = None
    error: str | None = None


class LedgerQueryService(Protocol):
    async def subscribe(
        self,
        query_kind: QueryKind,
        key: str,
        on_value: Callable[[Any], None],
    ) -> Unsubscribe: ...


class TransactionSubmitter(Protocol):
    def submit(
        self,
        pallet: str,
        call: str,
        params: tuple[Any, ...],
        signer: str,
    ) -> AsyncIterator[TxProgress]: ...


class AccountProvider(Protocol):
    def accounts(self) -> list[KeyringAccount]: ...


class StorageCodec(Protocol):
    """Storage key derivation and value decoding for a runtime."""

    def storage_key(self, query_kind: QueryKind, key: str) -> str: ...

    def decode(self, query_kind: QueryKind, value_hex: str | None) -> Any: ...


class ExtrinsicSigner(Protocol):
    async def sign(
        self,
        pallet: str,
        call: str,
        params: tuple[Any, ...],
        signer: str,
    ) -> str: ...
