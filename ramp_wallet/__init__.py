"""Ramp Wallet - a terminal client for a fiat-ramps ledger.

This package is organized into feature-based modules:
- features.subscriptions: Keyed live queries against the ledger
- features.account: Balance and IBAN record projection
- features.transfer: Destination resolution and transaction submission
- features.ramps: IBAN registration and the donation card
- shared: Shared utilities (config, logging, network, etc.)
"""

from ramp_wallet.shared import (
    AppConfig,
    ChainConfig,
    DryRunLedger,
    LedgerRpcClient,
    NetworkError,
    NetworkErrorType,
    RecipientDescriptor,
    TimeoutConfig,
)

__version__ = "0.1.0"
__all__ = [
    "AppConfig",
    "ChainConfig",
    "DryRunLedger",
    "LedgerRpcClient",
    "NetworkError",
    "NetworkErrorType",
    "RecipientDescriptor",
    "TimeoutConfig",
]
