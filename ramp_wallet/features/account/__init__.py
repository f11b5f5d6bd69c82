"""Account state projection feature for Ramp Wallet."""

from ramp_wallet.features.account.service import (
    DEFAULT_BASELINE,
    EMPTY_RECORD,
    AbsentRecord,
    AccountRecordView,
    AccountStateProjector,
    AccountStateSync,
    BalanceObservation,
    BalanceProjection,
    PresentRecord,
    balance_delta,
    decode_account_record,
    decode_balance,
    decode_iban,
    encode_iban,
    format_balance,
    project_account_record,
    project_balance,
)

__all__ = [
    "DEFAULT_BASELINE",
    "EMPTY_RECORD",
    "AbsentRecord",
    "AccountRecordView",
    "AccountStateProjector",
    "AccountStateSync",
    "BalanceObservation",
    "BalanceProjection",
    "PresentRecord",
    "balance_delta",
    "decode_account_record",
    "decode_balance",
    "decode_iban",
    "encode_iban",
    "format_balance",
    "project_account_record",
    "project_balance",
]
