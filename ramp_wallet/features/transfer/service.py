"""Transfer business logic service for Ramp Wallet."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Union

from ramp_wallet.features.account.service import AccountStateProjector
from ramp_wallet.features.transfer.destination import (
    DestinationMode,
    available_destination_modes,
    resolve_destination,
)
from ramp_wallet.features.transfer.validators import (
    IbanInputValidator,
    TransferAmountValidator,
)
from ramp_wallet.shared.config import RecipientDescriptor
from ramp_wallet.shared.protocols import TransactionSubmitter

logger = logging.getLogger(__name__)

STATUS_SENDING = "Sending..."
STATUS_IN_BLOCK = "InBlock"
STATUS_FINALIZED = "Finalized"
FAILED_EXTRINSIC_STATUSES = frozenset({"Invalid", "Dropped", "Usurped", "FinalityTimeout"})


class TransactionBuildError(ValueError):
    pass


class SubmissionState(Enum):
    IDLE = "idle"
    SENDING = "sending"
    IN_BLOCK = "in_block"
    FINALIZED = "finalized"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (SubmissionState.FINALIZED, SubmissionState.ERROR)


@dataclass(frozen=True)
class TxRequest:
    pallet_rpc: str
    callable: str
    input_params: tuple[Any, ...]
    param_fields: tuple[bool, ...]
    tx_type: str = "SIGNED-TX"

    def __post_init__(self) -> None:
        if len(self.input_params) != len(self.param_fields):
            raise ValueError(
                f"{self.pallet_rpc}.{self.callable}: {len(self.input_params)} params "
                f"but {len(self.param_fields)} param fields"
            )

    @property
    def params(self) -> tuple[Any, ...]:
        return tuple(
            value
            for value, included in zip(self.input_params, self.param_fields)
            if included
        )


@dataclass
class SubmissionResult:
    state: SubmissionState
    status: str
    block_hash: str | None = None
    error: str | None = None
    statuses: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state in (SubmissionState.IN_BLOCK, SubmissionState.FINALIZED)


class TransactionRequestBuilder:
    def __init__(self, pallet: str = "fiatRamps", decimals: int = 10):
        self.pallet = pallet
        self.decimals = decimals

    def register(self, iban: str) -> TxRequest:
        result = IbanInputValidator.validate(iban)
        if not result.is_valid:
            raise TransactionBuildError(result.error_message)
        return TxRequest(
            pallet_rpc=self.pallet,
            callable="createAccount",
            input_params=(iban,),
            param_fields=(True,),
        )

    def transfer(self, amount: Any, destination: dict[str, Any]) -> TxRequest:
        result = TransferAmountValidator.validate_full(amount, self.decimals)
        if not result.is_valid:
            raise TransactionBuildError(result.error_message)
        return TxRequest(
            pallet_rpc=self.pallet,
            callable="transfer",
            input_params=(result.normalized_value, dict(destination)),
            param_fields=(True, True),
        )


RequestSource = Union[TxRequest, Callable[[], TxRequest]]


class TransactionSender:
    """Hands requests to the external submitter and reports progress.

    The status sink sees ``"Sending..."`` first, then every progress status
    verbatim, and exactly one terminal outcome per send.
    """

    def __init__(
        self,
        submitter: TransactionSubmitter,
        set_status: Callable[[str], None],
        signer_address: Callable[[], str | None],
    ):
        self._submitter = submitter
        self._set_status = set_status
        self._signer_address = signer_address

    def _fail(self, result: SubmissionResult, reason: str) -> SubmissionResult:
        result.state = SubmissionState.ERROR
        result.error = reason
        result.status = f"Error: {reason}"
        result.statuses.append(result.status)
        self._set_status(result.status)
        return result

    def _report(self, result: SubmissionResult, status: str) -> None:
        result.status = status
        result.statuses.append(status)
        self._set_status(status)

    async def send(self, source: RequestSource) -> SubmissionResult:
        result = SubmissionResult(state=SubmissionState.SENDING, status=STATUS_SENDING)

        try:
            request = source() if callable(source) else source
        except ValueError as e:
            logger.info("Refusing to submit: %s", e)
            return self._fail(result, str(e))

        signer = self._signer_address()
        if not signer:
            return self._fail(result, "No account selected")

        self._report(result, STATUS_SENDING)
        logger.info(
            "Submitting %s.%s from %s", request.pallet_rpc, request.callable, signer
        )

        try:
            async for progress in self._submitter.submit(
                request.pallet_rpc, request.callable, request.params, signer
            ):
                if progress.error:
                    return self._fail(result, progress.error)
                if progress.status in FAILED_EXTRINSIC_STATUSES:
                    return self._fail(result, progress.status)

                self._report(result, progress.status)
                if progress.block_hash:
                    result.block_hash = progress.block_hash
                if progress.status == STATUS_IN_BLOCK:
                    result.state = SubmissionState.IN_BLOCK
                elif progress.status == STATUS_FINALIZED:
                    result.state = SubmissionState.FINALIZED
                    logger.info("Transaction finalized in block %s", result.block_hash)
                    return result
        except Exception as e:
            logger.error("Transaction submission failed: %s", e)
            return self._fail(result, str(e))

        if result.state is SubmissionState.IN_BLOCK:
            return result
        return self._fail(result, "Submission ended before the transaction was included")


class TxButton:
    """One form's submit control: disabled while a submission is outstanding."""

    def __init__(self, sender: TransactionSender, build: Callable[[], TxRequest]):
        self._sender = sender
        self._build = build
        self._in_flight = False
        self.last_result: SubmissionResult | None = None

    @property
    def disabled(self) -> bool:
        return self._in_flight

    async def press(self) -> SubmissionResult | None:
        if self._in_flight:
            logger.debug("Ignoring submit while a transaction is in flight")
            return None
        self._in_flight = True
        try:
            self.last_result = await self._sender.send(self._build)
        finally:
            self._in_flight = False
        return self.last_result


@dataclass
class TransferFormState:
    destination: str
    address_to: str
    iban_to: str
    amount: Any = 0


class TransferForm:
    """State behind the "Donate via on-chain transaction" panel."""

    def __init__(
        self,
        recipient: RecipientDescriptor,
        projector: AccountStateProjector,
        submitter: TransactionSubmitter,
        builder: TransactionRequestBuilder | None = None,
        on_status: Callable[[str], None] | None = None,
    ):
        self.recipient = recipient
        self.projector = projector
        self.builder = builder or TransactionRequestBuilder()
        self.status = ""
        self._on_status = on_status
        options = self.destination_options
        self.state = TransferFormState(
            destination=options[0],
            address_to=recipient.address,
            iban_to=recipient.iban,
        )
        sender = TransactionSender(
            submitter, self._set_status, lambda: self.projector.current_address
        )
        self.button = TxButton(sender, self.build_request)

    def _set_status(self, status: str) -> None:
        self.status = status
        if self._on_status is not None:
            self._on_status(status)

    @property
    def can_donate(self) -> bool:
        return self.projector.current_is_registered

    @property
    def destination_options(self) -> list[str]:
        return available_destination_modes(
            self.projector.current_address, self.recipient.address
        )

    @property
    def locked_fields(self) -> frozenset[str]:
        """Fields pre-filled from the recipient that the user may not edit."""
        if self.recipient.iban:
            return frozenset({"address_to", "iban_to"})
        return frozenset({"address_to"})

    @property
    def button_label(self) -> str:
        if self.state.destination == DestinationMode.WITHDRAW.value:
            return "Withdraw"
        return "Donate"

    def update(self, **changes: Any) -> None:
        for name, value in changes.items():
            if not hasattr(self.state, name):
                raise AttributeError(f"Unknown transfer form field: {name}")
            if name in self.locked_fields and value != getattr(self.state, name):
                raise ValueError(f"Transfer form field {name} is fixed to the recipient")
            setattr(self.state, name, value)

    def build_request(self) -> TxRequest:
        state = self.state
        if state.destination not in self.destination_options:
            raise TransactionBuildError(
                f"Destination {state.destination!r} is not available for this account"
            )
        destination = resolve_destination(
            state.destination, state.address_to, state.iban_to, strict=True
        )
        return self.builder.transfer(state.amount, destination)

    async def submit(self) -> SubmissionResult | None:
        if not self.can_donate:
            self._set_status("Error: Register an IBAN for this account first")
            return None
        return await self.button.press()
