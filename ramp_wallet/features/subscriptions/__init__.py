"""Live ledger subscriptions for Ramp Wallet."""

from ramp_wallet.features.subscriptions.rpc import (
    RpcQueryService,
    RpcTransactionSubmitter,
    parse_extrinsic_status,
)
from ramp_wallet.features.subscriptions.service import (
    KeyedSubscription,
    SubscriptionHandle,
    SubscriptionManager,
    SubscriptionSetupError,
    SubscriptionUpdate,
)
from ramp_wallet.shared.protocols import QueryKind

__all__ = [
    "QueryKind",
    "SubscriptionManager",
    "SubscriptionHandle",
    "SubscriptionUpdate",
    "SubscriptionSetupError",
    "KeyedSubscription",
    "RpcQueryService",
    "RpcTransactionSubmitter",
    "parse_extrinsic_status",
]
