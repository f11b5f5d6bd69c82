"""Feature modules for Ramp Wallet.

- subscriptions: Keyed ledger queries with stale-update protection
- account: Balance delta and IBAN record projection
- transfer: Destinations, request building and submission lifecycle
- ramps: IBAN registration and donation totals
"""

from ramp_wallet.features import subscriptions
from ramp_wallet.features import account
from ramp_wallet.features import transfer
from ramp_wallet.features import ramps

__all__ = ["subscriptions", "account", "transfer", "ramps"]
