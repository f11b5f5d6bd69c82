"""In-process ledger for demos and tests (no node required).

Mimics the parts of a fiat-ramps runtime the wallet reads and writes:
``system.account`` balances, ``fiatRamps.accounts`` IBAN records and the
``createAccount`` / ``transfer`` calls. Values are pushed to subscribers the
same way a node would: once on subscribe, then on every change.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, AsyncIterator, Callable

from ramp_wallet.shared.protocols import KeyringAccount, QueryKind, TxProgress, Unsubscribe

logger = logging.getLogger(__name__)

DEV_ACCOUNTS: list[KeyringAccount] = [
    KeyringAccount("Alice", "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"),
    KeyringAccount("Bob", "5FHneW46xGXgs5mUiveU4sbTyGBzmstUspZC92UhjJM694ty"),
    KeyringAccount("Charlie", "5FLSigC9HGRKVhB9FiEo4Y3koPsNmBmLJbpXg2mp1hXcS59Y"),
    KeyringAccount("Dave", "5DAAnrj7VHTznn2AWBemMuyBwZWs6FNFjdyVXUeYum3PTXFy"),
]

# Genesis endowment of every dev account.
DEV_ENDOWMENT = 1 << 60


class DryRunLedger:
    def __init__(
        self,
        accounts: list[KeyringAccount] | None = None,
        balances: dict[str, int] | None = None,
        records: dict[str, str] | None = None,
        block_time: float = 0.0,
    ):
        self._accounts = list(accounts if accounts is not None else DEV_ACCOUNTS)
        self.balances: dict[str, int] = {
            account.address: DEV_ENDOWMENT for account in self._accounts
        }
        self.balances.update(balances or {})
        self.records: dict[str, str] = dict(records or {})
        self.block_time = block_time
        self._subscribers: dict[tuple[QueryKind, str], dict[int, Callable[[Any], None]]] = {}
        self._ids = itertools.count(1)
        self._block_number = 0

    def accounts(self) -> list[KeyringAccount]:
        return list(self._accounts)

    def _value(self, query_kind: QueryKind, key: str) -> Any:
        if query_kind is QueryKind.SYSTEM_ACCOUNT:
            return {"nonce": 0, "data": {"free": self.balances.get(key, 0), "reserved": 0}}
        iban = self.records.get(key)
        if iban is None:
            return None
        return {"iban": "0x" + iban.encode("utf-8").hex()}

    def subscriber_count(self, query_kind: QueryKind, key: str) -> int:
        return len(self._subscribers.get((query_kind, key), {}))

    async def subscribe(
        self,
        query_kind: QueryKind,
        key: str,
        on_value: Callable[[Any], None],
    ) -> Unsubscribe:
        subscription_id = next(self._ids)
        topic = (query_kind, key)
        self._subscribers.setdefault(topic, {})[subscription_id] = on_value
        asyncio.get_running_loop().call_soon(on_value, self._value(query_kind, key))

        def unsubscribe() -> None:
            self._subscribers.get(topic, {}).pop(subscription_id, None)

        return unsubscribe

    def _publish(self, query_kind: QueryKind, key: str) -> None:
        value = self._value(query_kind, key)
        for callback in list(self._subscribers.get((query_kind, key), {}).values()):
            try:
                callback(value)
            except Exception as e:
                logger.error("Error in dry-run subscriber for %s: %s", key, e)

    def set_balance(self, address: str, free: int) -> None:
        self.balances[address] = free
        self._publish(QueryKind.SYSTEM_ACCOUNT, address)

    def set_record(self, address: str, iban: str | None) -> None:
        if iban is None:
            self.records.pop(address, None)
        else:
            self.records[address] = iban
        self._publish(QueryKind.FIAT_RAMP_ACCOUNT, address)

    def _apply(self, call: str, params: tuple[Any, ...], signer: str) -> str | None:
        """Execute a call; returns a dispatch error name or None."""
        if call == "createAccount":
            (iban,) = params
            if signer in self.records:
                return "fiatRamps.AccountAlreadyExists"
            self.set_record(signer, str(iban))
            return None

        if call == "transfer":
            amount, destination = params
            if self.balances.get(signer, 0) < amount:
                return "balances.InsufficientBalance"
            if "Iban" in destination:
                target = next(
                    (addr for addr, iban in self.records.items() if iban == destination["Iban"]),
                    None,
                )
                if target is None:
                    return "fiatRamps.IbanNotMapped"
            elif "Address" in destination:
                target = destination["Address"]
            else:
                target = None
            self.set_balance(signer, self.balances.get(signer, 0) - amount)
            if target is not None:
                self.set_balance(target, self.balances.get(target, 0) + amount)
            return None

        return f"Unknown call {call}"

    async def submit(
        self,
        pallet: str,
        call: str,
        params: tuple[Any, ...],
        signer: str,
    ) -> AsyncIterator[TxProgress]:
        logger.info("[dry-run] %s.%s from %s", pallet, call, signer)
        yield TxProgress(status="Ready")
        await asyncio.sleep(self.block_time)

        self._block_number += 1
        block_hash = f"0x{self._block_number:064x}"
        error = self._apply(call, params, signer)
        yield TxProgress(status="InBlock", block_hash=block_hash, error=error)
        if error:
            return

        await asyncio.sleep(self.block_time)
        yield TxProgress(status="Finalized", block_hash=block_hash)
