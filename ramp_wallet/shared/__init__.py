"""Shared utilities for Ramp Wallet."""

from ramp_wallet.shared.config import (
    AppConfig,
    ChainConfig,
    RecipientDescriptor,
)
from ramp_wallet.shared.dry_run import DryRunLedger
from ramp_wallet.shared.logging import (
    ContextAdapter,
    LoggingConfig,
    LogLevel,
    format_error_for_user,
    get_logger,
    get_user_friendly_error,
    sanitize_dict,
    sanitize_message,
    setup_logging,
)
from ramp_wallet.shared.network import (
    LedgerRpcClient,
    NetworkError,
    NetworkErrorType,
    ReconnectConfig,
    TimeoutConfig,
)
from ramp_wallet.shared.protocols import (
    AccountProvider,
    KeyringAccount,
    LedgerQueryService,
    QueryKind,
    TransactionSubmitter,
    TxProgress,
)

__all__ = [
    "AppConfig",
    "ChainConfig",
    "RecipientDescriptor",
    "DryRunLedger",
    "LedgerRpcClient",
    "NetworkError",
    "NetworkErrorType",
    "ReconnectConfig",
    "TimeoutConfig",
    "AccountProvider",
    "KeyringAccount",
    "LedgerQueryService",
    "QueryKind",
    "TransactionSubmitter",
    "TxProgress",
    "ContextAdapter",
    "LoggingConfig",
    "LogLevel",
    "format_error_for_user",
    "get_logger",
    "get_user_friendly_error",
    "sanitize_dict",
    "sanitize_message",
    "setup_logging",
]
