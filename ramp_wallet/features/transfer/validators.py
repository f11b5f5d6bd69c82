"""Transfer-specific validators for Ramp Wallet."""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any


@dataclass
class TransferValidationResult:
    is_valid: bool
    error_message: str | None = None
    normalized_value: Any = None


class TransferAmountValidator:
    """Validator for whole-unit transfer amounts scaled to base units."""

    # Balances are u128 on chain.
    MAX_AMOUNT = 2**128 - 1
    MAX_DIGITS = len(str(MAX_AMOUNT))

    @staticmethod
    def parse_whole_units(value: Any) -> TransferValidationResult:
        if isinstance(value, bool):
            return TransferValidationResult(
                is_valid=False,
                error_message="Amount must be a valid number",
            )

        if isinstance(value, int):
            if value > TransferAmountValidator.MAX_AMOUNT:
                return TransferValidationResult(
                    is_valid=False,
                    error_message="Amount exceeds maximum allowed value",
                )
            raw_amount = str(value)
        elif isinstance(value, (float, Decimal)):
            raw_amount = str(value)
        elif isinstance(value, str):
            # No separator stripping: "1,5" is 1.5 in most euro locales.
            raw_amount = value.strip()
        else:
            return TransferValidationResult(
                is_valid=False,
                error_message="Amount must be a valid number",
            )

        if not raw_amount:
            return TransferValidationResult(
                is_valid=False,
                error_message="Amount is required",
            )

        if raw_amount.startswith("-"):
            return TransferValidationResult(
                is_valid=False,
                error_message="Amount cannot be negative",
            )

        try:
            amount_decimal = Decimal(raw_amount)
        except (InvalidOperation, ValueError):
            return TransferValidationResult(
                is_valid=False,
                error_message="Amount must be a valid number",
            )

        if not amount_decimal.is_finite():
            return TransferValidationResult(
                is_valid=False,
                error_message="Invalid numeric format (special value detected)",
            )

        if amount_decimal < 0:
            return TransferValidationResult(
                is_valid=False,
                error_message="Amount cannot be negative",
            )

        if amount_decimal.is_zero():
            return TransferValidationResult(is_valid=True, normalized_value=0)

        # Bound the exponent before int(); "1e500000" is a short string.
        if amount_decimal.adjusted() >= TransferAmountValidator.MAX_DIGITS:
            return TransferValidationResult(
                is_valid=False,
                error_message="Amount exceeds maximum allowed value",
            )

        if amount_decimal != amount_decimal.to_integral_value():
            return TransferValidationResult(
                is_valid=False,
                error_message="Amount must be a whole number of units",
            )

        return TransferValidationResult(
            is_valid=True,
            normalized_value=int(amount_decimal),
        )

    @staticmethod
    def convert_to_base_units(units: int, decimals: int) -> TransferValidationResult:
        limit = TransferAmountValidator.MAX_AMOUNT
        if units > limit:
            return TransferValidationResult(
                is_valid=False,
                error_message="Amount exceeds maximum allowed value",
            )

        base_units = units * 10**decimals
        if base_units > limit:
            return TransferValidationResult(
                is_valid=False,
                error_message="Amount exceeds maximum allowed value",
            )

        return TransferValidationResult(
            is_valid=True,
            normalized_value=base_units,
        )

    @classmethod
    def validate_full(cls, value: Any, decimals: int = 10) -> TransferValidationResult:
        parse_result = cls.parse_whole_units(value)
        if not parse_result.is_valid:
            return parse_result

        return cls.convert_to_base_units(parse_result.normalized_value, decimals)


class IbanInputValidator:
    """Presence check only; IBAN formatting is left to the bank side."""

    @staticmethod
    def validate(value: Any) -> TransferValidationResult:
        if not isinstance(value, str) or not value.strip():
            return TransferValidationResult(
                is_valid=False,
                error_message="IBAN is required",
            )
        return TransferValidationResult(is_valid=True, normalized_value=value)
