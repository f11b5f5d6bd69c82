"""Derived account state for the recipient card and the transfer form."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Union

from ramp_wallet.features.subscriptions.service import (
    KeyedSubscription,
    SubscriptionManager,
    SubscriptionSetupError,
    SubscriptionUpdate,
)
from ramp_wallet.shared.protocols import QueryKind

logger = logging.getLogger(__name__)

UNIT_DECIMALS = 10
UNIT_LABEL = "pEURO"
DEFAULT_BASELINE = 1000 * 10**UNIT_DECIMALS


@dataclass(frozen=True)
class BalanceObservation:
    free: int


@dataclass(frozen=True)
class PresentRecord:
    iban_hex: str


@dataclass(frozen=True)
class AbsentRecord:
    pass


RawAccountRecord = Union[PresentRecord, AbsentRecord]


@dataclass(frozen=True)
class AccountRecordView:
    iban: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.iban is None


EMPTY_RECORD = AccountRecordView()


@dataclass(frozen=True)
class BalanceProjection:
    free: int
    delta: int
    display: str


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid balance value: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.lower().startswith("0x"):
            return int(text, 16)
        return int(text)
    raise ValueError(f"Invalid balance value: {value!r}")


def decode_balance(raw: Any) -> BalanceObservation:
    """Decode a ``system.account`` value (``{"data": {"free": ...}}``)."""
    if isinstance(raw, BalanceObservation):
        return raw
    if isinstance(raw, dict):
        data = raw.get("data", raw)
        if isinstance(data, dict) and "free" in data:
            return BalanceObservation(free=_to_int(data["free"]))
    raise ValueError(f"Unexpected account data: {raw!r}")


def decode_account_record(raw: Any) -> RawAccountRecord:
    """Decode an optional ``fiatRamps.accounts`` value at the subscription edge."""
    if isinstance(raw, (PresentRecord, AbsentRecord)):
        return raw
    if raw is None:
        return AbsentRecord()
    if isinstance(raw, dict) and "iban" in raw:
        iban = raw["iban"]
        if isinstance(iban, (bytes, bytearray)):
            return PresentRecord(iban_hex=bytes(iban).hex())
        return PresentRecord(iban_hex=str(iban))
    raise ValueError(f"Unexpected account record: {raw!r}")


def encode_iban(iban: str) -> str:
    return "0x" + iban.encode("utf-8").hex()


def decode_iban(iban_hex: str) -> str:
    text = iban_hex[2:] if iban_hex.lower().startswith("0x") else iban_hex
    return bytes.fromhex(text).decode("utf-8", errors="replace")


def balance_delta(free: int, baseline: int = DEFAULT_BASELINE) -> int:
    return free - baseline


def format_balance(
    value: int, decimals: int = UNIT_DECIMALS, unit: str = UNIT_LABEL
) -> str:
    amount = Decimal(value).scaleb(-decimals)
    text = format(amount.normalize(), "f") if amount else "0"
    return f"{text} {unit}"


def project_balance(
    observation: BalanceObservation,
    baseline: int = DEFAULT_BASELINE,
    decimals: int = UNIT_DECIMALS,
    unit: str = UNIT_LABEL,
) -> BalanceProjection:
    delta = balance_delta(observation.free, baseline)
    return BalanceProjection(
        free=observation.free,
        delta=delta,
        display=format_balance(delta, decimals, unit),
    )


def project_account_record(record: RawAccountRecord) -> AccountRecordView:
    if isinstance(record, AbsentRecord):
        return EMPTY_RECORD
    return AccountRecordView(iban=decode_iban(record.iban_hex))


class AccountStateProjector:
    """Mirror of the remote values the UI renders.

    Updates are tagged with the address they were requested for; anything
    that does not match the currently tracked recipient or account is
    dropped.
    """

    def __init__(
        self,
        recipient_address: str,
        baseline: int = DEFAULT_BASELINE,
        decimals: int = UNIT_DECIMALS,
        unit: str = UNIT_LABEL,
    ):
        self.recipient_address = recipient_address
        self.baseline = baseline
        self.decimals = decimals
        self.unit = unit
        self.current_address: str | None = None
        self.total_donations: BalanceProjection | None = None
        self.current_record: AccountRecordView = EMPTY_RECORD
        self._registered: dict[str, bool] = {}
        self._listeners: list[Callable[[AccountStateProjector], None]] = []

    def add_listener(self, listener: Callable[["AccountStateProjector"], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(
        self, listener: Callable[["AccountStateProjector"], None]
    ) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error("Error in account state listener: %s", e)

    def select_account(self, address: str | None) -> None:
        if address == self.current_address:
            return
        self.current_address = address
        self.current_record = EMPTY_RECORD
        self._notify()

    def is_registered(self, address: str | None) -> bool:
        if not address:
            return False
        return self._registered.get(address, False)

    @property
    def current_is_registered(self) -> bool:
        return self.is_registered(self.current_address)

    def apply_balance(self, update: SubscriptionUpdate) -> None:
        if update.key != self.recipient_address:
            logger.debug("Ignoring balance update for %s", update.key)
            return
        try:
            observation = decode_balance(update.value)
        except ValueError as e:
            logger.warning("Dropping undecodable balance update: %s", e)
            return
        self.total_donations = project_balance(
            observation, self.baseline, self.decimals, self.unit
        )
        self._notify()

    def apply_account_record(self, update: SubscriptionUpdate) -> None:
        if update.key != self.current_address:
            logger.debug("Ignoring account record update for %s", update.key)
            return
        try:
            record = decode_account_record(update.value)
            view = project_account_record(record)
        except ValueError as e:
            logger.warning("Dropping undecodable account record: %s", e)
            return
        self.current_record = view
        self._registered[update.key] = isinstance(record, PresentRecord)
        self._notify()


class AccountStateSync:
    """Owns the live queries that feed an ``AccountStateProjector``."""

    def __init__(
        self,
        manager: SubscriptionManager,
        projector: AccountStateProjector,
        on_error: Callable[[SubscriptionSetupError], None] | None = None,
    ):
        self.projector = projector
        self.balance = KeyedSubscription(
            manager, QueryKind.SYSTEM_ACCOUNT, projector.apply_balance, on_error
        )
        self.account_record = KeyedSubscription(
            manager, QueryKind.FIAT_RAMP_ACCOUNT, projector.apply_account_record, on_error
        )

    async def start(self, current_address: str | None = None) -> None:
        await self.balance.set_key(self.projector.recipient_address)
        await self.select_account(current_address)

    async def select_account(self, address: str | None) -> None:
        self.projector.select_account(address)
        await self.account_record.set_key(address)

    def close(self) -> None:
        self.balance.close()
        self.account_record.close()

    async def __aenter__(self) -> "AccountStateSync":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()
