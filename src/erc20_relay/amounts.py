"""
Exact conversion between human decimal amounts and base-unit integers.

Parsing is string based and uses integer arithmetic only; a float never
touches an amount.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Pattern

from .exceptions import (
    ArithmeticOverflowError,
    InvalidDecimalsError,
    MalformedDecimalError,
    TooManyFractionalDigitsError,
)

UINT256_MAX = 2**256 - 1
UINT256_DIGITS = len(str(UINT256_MAX))

DECIMAL_PATTERN: Pattern[str] = re.compile(r"^(?P<whole>[0-9]+)(?:\.(?P<frac>[0-9]+))?$")


def _check_decimals(decimals: int) -> None:
    if isinstance(decimals, bool) or not isinstance(decimals, int) or not 0 <= decimals <= 255:
        raise InvalidDecimalsError(
            f"Decimals must be an integer in 0..255, got {decimals!r}",
            field="decimals",
        )


@dataclass(frozen=True)
class AmountValue:
    """A non-negative base-unit amount paired with its token decimals."""
    base_units: int
    decimals: int

    def __post_init__(self) -> None:
        _check_decimals(self.decimals)
        if isinstance(self.base_units, bool) or not isinstance(self.base_units, int):
            raise TypeError(f"base_units must be int, got {type(self.base_units).__name__}")
        if self.base_units < 0:
            raise ValueError("Amount must be non-negative")
        if self.base_units > UINT256_MAX:
            raise ArithmeticOverflowError(
                "Amount exceeds uint256 range",
                details={"base_units": str(self.base_units)},
            )

    def to_human(self) -> str:
        return to_human(self.base_units, self.decimals)

    def __str__(self) -> str:
        return self.to_human()


def from_human(text: str, decimals: int) -> AmountValue:
    """
    Parse a decimal string into base units.

    Args:
        text: Plain decimal such as "1.5" or "100" (no sign, exponent or spaces)
        decimals: Token decimals, 0..255

    Returns:
        AmountValue with the exact base-unit integer

    Raises:
        MalformedDecimalError: Text is not a plain non-negative decimal
        TooManyFractionalDigitsError: More fractional digits than ``decimals``
        ArithmeticOverflowError: Result does not fit in uint256
    """
    _check_decimals(decimals)
    if not isinstance(text, str):
        raise MalformedDecimalError(f"Amount must be a string, got {type(text).__name__}", field="amount")

    match = DECIMAL_PATTERN.fullmatch(text)
    if match is None:
        raise MalformedDecimalError(f"Malformed decimal amount: {text!r}", field="amount")

    whole = match.group("whole")
    frac = match.group("frac") or ""
    if len(frac) > decimals:
        raise TooManyFractionalDigitsError(text, len(frac), decimals)

    whole = whole.lstrip("0") or "0"
    if len(whole) > UINT256_DIGITS:
        raise ArithmeticOverflowError(
            f"Amount has {len(whole)} integer digits, exceeds uint256",
            details={"decimals": decimals},
        )

    base_units = int(whole) * 10**decimals + int(frac.ljust(decimals, "0") or "0")
    if base_units > UINT256_MAX:
        raise ArithmeticOverflowError(
            f"Amount {text!r} exceeds uint256 at {decimals} decimals",
            details={"amount": text, "decimals": decimals},
        )
    return AmountValue(base_units=base_units, decimals=decimals)


def to_human(value: int, decimals: int) -> str:
    """Render base units as a decimal string, trailing zeros trimmed."""
    _check_decimals(decimals)
    if isinstance(value, AmountValue):
        value = value.base_units
    if value < 0:
        raise ValueError("Amount must be non-negative")

    whole, frac = divmod(value, 10**decimals)
    if decimals == 0 or frac == 0:
        return str(whole)
    return f"{whole}.{str(frac).rjust(decimals, '0').rstrip('0')}"


__all__ = ["UINT256_MAX", "AmountValue", "from_human", "to_human"]
