"""
Tests for exact decimal amount conversion.
"""
import pytest

from erc20_relay.amounts import UINT256_MAX, AmountValue, from_human, to_human
from erc20_relay.exceptions import (
    ArithmeticOverflowError,
    InvalidDecimalsError,
    MalformedDecimalError,
    TooManyFractionalDigitsError,
)


class TestFromHuman:
    """Test parsing human decimals into base units."""

    def test_one_and_a_half_at_18_decimals(self):
        assert from_human("1.5", 18).base_units == 1_500_000_000_000_000_000

    def test_whole_number(self):
        assert from_human("100", 6).base_units == 100_000_000

    def test_smallest_unit(self):
        assert from_human("0.000001", 6).base_units == 1

    def test_zero_decimals(self):
        assert from_human("7", 0).base_units == 7
        with pytest.raises(TooManyFractionalDigitsError):
            from_human("7.0", 0)

    def test_too_many_fractional_digits(self):
        with pytest.raises(TooManyFractionalDigitsError) as exc_info:
            from_human("0.1234567", 6)
        assert exc_info.value.details["fractional_digits"] == 7
        assert exc_info.value.details["decimals"] == 6

    @pytest.mark.parametrize("text", [
        "",
        "-1",
        "+1",
        "1e5",
        " 1",
        "1 ",
        "1.",
        ".5",
        "1.2.3",
        "abc",
        "1,5",
        "1\n",
    ])
    def test_rejects_malformed(self, text):
        with pytest.raises(MalformedDecimalError):
            from_human(text, 18)

    def test_rejects_non_string(self):
        with pytest.raises(MalformedDecimalError):
            from_human(1.5, 18)

    def test_overflow(self):
        with pytest.raises(ArithmeticOverflowError):
            from_human(str(UINT256_MAX), 1)

    def test_very_long_whole_part_overflows(self):
        """Thousands of digits fail as overflow before integer conversion."""
        with pytest.raises(ArithmeticOverflowError):
            from_human("9" * 5000, 18)

    def test_leading_zeros_ignored(self):
        assert from_human("0" * 5000 + "1.5", 18).base_units == 1_500_000_000_000_000_000

    def test_max_fits(self):
        assert from_human(str(UINT256_MAX), 0).base_units == UINT256_MAX

    @pytest.mark.parametrize("decimals", [-1, 256, True])
    def test_invalid_decimals(self, decimals):
        with pytest.raises(InvalidDecimalsError):
            from_human("1", decimals)


class TestToHuman:
    """Test rendering base units as decimals."""

    def test_trims_trailing_zeros(self):
        assert to_human(1_500_000_000_000_000_000, 18) == "1.5"

    def test_whole_value_has_no_dot(self):
        assert to_human(2_000_000, 6) == "2"

    def test_zero(self):
        assert to_human(0, 18) == "0"

    def test_leading_fraction_zeros(self):
        assert to_human(1, 6) == "0.000001"

    def test_accepts_amount_value(self):
        assert to_human(AmountValue(base_units=25, decimals=1), 1) == "2.5"

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            to_human(-1, 6)

    @pytest.mark.parametrize("text,decimals,normalised", [
        ("1.5", 18, "1.5"),
        ("1.50", 18, "1.5"),
        ("0001", 6, "1"),
        ("0.000000000000000001", 18, "0.000000000000000001"),
        ("123456789.123456", 6, "123456789.123456"),
        ("0", 0, "0"),
    ])
    def test_round_trip(self, text, decimals, normalised):
        assert to_human(from_human(text, decimals), decimals) == normalised


class TestAmountValue:
    """Test the AmountValue invariants."""

    def test_rejects_negative(self):
        with pytest.raises(ValueError):
            AmountValue(base_units=-1, decimals=6)

    def test_rejects_overflow(self):
        with pytest.raises(ArithmeticOverflowError):
            AmountValue(base_units=UINT256_MAX + 1, decimals=6)

    def test_str_is_human(self):
        assert str(AmountValue(base_units=1_500_000, decimals=6)) == "1.5"
