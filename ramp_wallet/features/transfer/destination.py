"""Transfer destination selection."""

from __future__ import annotations

from enum import Enum
from typing import Any


class DestinationMode(str, Enum):
    IBAN = "IBAN"
    ADDRESS = "Address"
    WITHDRAW = "Withdraw"


class UnknownDestinationModeError(ValueError):
    def __init__(self, mode: Any):
        super().__init__(f"Unknown transfer destination type: {mode!r}")
        self.mode = mode


def resolve_destination(
    mode: Any, address_to: str, iban_to: str, strict: bool = False
) -> dict[str, Any]:
    """Build the tagged ``Destination`` argument of ``fiatRamps.transfer``.

    Any mode other than IBAN or Address resolves to ``{"Withdraw": None}``.
    With ``strict=True`` only an explicit Withdraw does; anything else raises
    ``UnknownDestinationModeError``.
    """
    if mode == DestinationMode.IBAN.value:
        return {"Iban": iban_to}
    if mode == DestinationMode.ADDRESS.value:
        return {"Address": address_to}
    if strict and mode != DestinationMode.WITHDRAW.value:
        raise UnknownDestinationModeError(mode)
    return {"Withdraw": None}


def available_destination_modes(
    current_address: str | None, recipient_address: str
) -> list[str]:
    modes = [DestinationMode.IBAN.value, DestinationMode.ADDRESS.value]
    # Only the recipient can burn its own balance back to its bank account.
    if current_address and current_address == recipient_address:
        modes.append(DestinationMode.WITHDRAW.value)
    return modes
