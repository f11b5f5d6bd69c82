"""Tests for transfer input validators."""

from decimal import Decimal

import pytest

from ramp_wallet.features.transfer.validators import (
    IbanInputValidator,
    TransferAmountValidator,
)


class TestTransferAmountValidator:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (0, 0),
            (3, 30000000000),
            ("3", 30000000000),
            (" 12 ", 120000000000),
            ("1e3", 10000000000000),
            ("0e500000", 0),
            (Decimal("2"), 20000000000),
            (4.0, 40000000000),
        ],
    )
    def test_accepts_whole_units(self, value, expected):
        result = TransferAmountValidator.validate_full(value)
        assert result.is_valid is True
        assert result.normalized_value == expected

    @pytest.mark.parametrize(
        "value,message",
        [
            (-1, "Amount cannot be negative"),
            ("-1", "Amount cannot be negative"),
            ("abc", "Amount must be a valid number"),
            (1.5, "Amount must be a whole number of units"),
            ("1.5", "Amount must be a whole number of units"),
            ("", "Amount is required"),
            ("   ", "Amount is required"),
            (None, "Amount must be a valid number"),
            (True, "Amount must be a valid number"),
            ([1], "Amount must be a valid number"),
            ("1,5", "Amount must be a valid number"),
            ("1 5", "Amount must be a valid number"),
            ("1,000", "Amount must be a valid number"),
            ("1e-500000", "Amount must be a whole number of units"),
        ],
    )
    def test_rejects_invalid_amounts(self, value, message):
        result = TransferAmountValidator.validate_full(value)
        assert result.is_valid is False
        assert result.error_message == message

    @pytest.mark.parametrize("value", ["NaN", "Infinity", float("inf")])
    def test_rejects_special_values(self, value):
        result = TransferAmountValidator.validate_full(value)
        assert result.is_valid is False
        assert "special value" in result.error_message

    def test_rejects_values_above_u128(self):
        result = TransferAmountValidator.validate_full(2**128)
        assert result.is_valid is False
        assert result.error_message == "Amount exceeds maximum allowed value"

    @pytest.mark.parametrize(
        "value",
        ["1e500000", "1E+5000000", "9" * 5000, 10**5000],
        ids=["exp-lower", "exp-upper", "nines-str", "int-10pow5000"],
    )
    def test_rejects_huge_magnitudes_without_expanding_them(self, value):
        result = TransferAmountValidator.validate_full(value)
        assert result.is_valid is False
        assert result.error_message == "Amount exceeds maximum allowed value"

    def test_rejects_amount_that_overflows_only_after_scaling(self):
        result = TransferAmountValidator.validate_full(str(2**128 // 10**10 + 1))
        assert result.is_valid is False
        assert result.error_message == "Amount exceeds maximum allowed value"

    def test_custom_decimals(self):
        result = TransferAmountValidator.validate_full("7", decimals=2)
        assert result.normalized_value == 700


class TestIbanInputValidator:
    def test_requires_value(self):
        for value in ("", "   ", None):
            result = IbanInputValidator.validate(value)
            assert result.is_valid is False
            assert result.error_message == "IBAN is required"

    def test_accepts_any_text(self):
        result = IbanInputValidator.validate("DE89370400440532013000")
        assert result.is_valid is True
        assert result.normalized_value == "DE89370400440532013000"
