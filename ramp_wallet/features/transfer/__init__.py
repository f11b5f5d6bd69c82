"""Transfer feature module for Ramp Wallet."""

from ramp_wallet.features.transfer.destination import (
    DestinationMode,
    UnknownDestinationModeError,
    available_destination_modes,
    resolve_destination,
)
from ramp_wallet.features.transfer.service import (
    SubmissionResult,
    SubmissionState,
    TransactionBuildError,
    TransactionRequestBuilder,
    TransactionSender,
    TransferForm,
    TxButton,
    TxRequest,
)
from ramp_wallet.features.transfer.validators import (
    IbanInputValidator,
    TransferAmountValidator,
)

__all__ = [
    "DestinationMode",
    "UnknownDestinationModeError",
    "available_destination_modes",
    "resolve_destination",
    "SubmissionResult",
    "SubmissionState",
    "TransactionBuildError",
    "TransactionRequestBuilder",
    "TransactionSender",
    "TransferForm",
    "TxButton",
    "TxRequest",
    "IbanInputValidator",
    "TransferAmountValidator",
]
