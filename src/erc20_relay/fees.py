"""
Fee estimation for ERC-20 transfers.

Two fee models are supported:
- priority_fee: max_fee = base_fee * multiplier + priority fee, read from the
  latest block's ``baseFeePerGas``
- legacy: a single ``eth_gasPrice`` per gas unit

``quote`` prefers the priority-fee model and falls back to legacy when the
chain exposes no base fee.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .amounts import UINT256_MAX, to_human
from .config import FeeConfig
from .exceptions import ArithmeticOverflowError, UnsupportedFeeModelError
from .provider import ChainProvider, parse_quantity

logger = logging.getLogger(__name__)

NATIVE_DECIMALS = 18


class FeeModel(str, Enum):
    """Transaction fee model."""
    LEGACY = "legacy"
    PRIORITY_FEE = "priority_fee"


@dataclass(frozen=True)
class FeeQuote:
    """Cost preview for one transaction, all values in native base units."""
    model: FeeModel
    gas_units: int
    gas_price: Optional[int] = None
    max_fee_per_unit: Optional[int] = None
    priority_fee_per_unit: Optional[int] = None

    @property
    def fee_per_unit(self) -> int:
        """Per-unit price that bounds the total cost."""
        if self.model == FeeModel.LEGACY:
            return self.require("gas_price")
        return self.require("max_fee_per_unit")

    def require(self, name: str) -> int:
        """Value of a fee field, which must be set."""
        value = getattr(self, name)
        if value is None:
            raise ValueError(f"{self.model.value} quote is missing {name}")
        return value

    @property
    def total_cost(self) -> int:
        return FeeEstimator.total_cost(self)

    def total_cost_human(self, decimals: int = NATIVE_DECIMALS) -> str:
        """Total cost rendered as a native-coin decimal string."""
        return to_human(self.total_cost, decimals)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model.value,
            "gas_units": self.gas_units,
            "gas_price": self.gas_price,
            "max_fee_per_unit": self.max_fee_per_unit,
            "priority_fee_per_unit": self.priority_fee_per_unit,
            "total_cost": str(self.total_cost),
        }


class FeeEstimator:
    """
    Estimates gas units and per-unit fees through a ChainProvider.

    Estimation never mutates chain state; every call can be repeated.
    """

    def __init__(self, config: Optional[FeeConfig] = None):
        self._config = config or FeeConfig()

    @property
    def config(self) -> FeeConfig:
        return self._config

    async def estimate_legacy(
        self,
        provider: ChainProvider,
        call: Dict[str, Any],
    ) -> Tuple[int, int]:
        """
        Simulate ``call`` and read the legacy gas price.

        Returns:
            (gas_units, gas_price)
        """
        gas_units = await provider.estimate_gas(call)
        gas_price = await provider.get_gas_price()
        return gas_units, gas_price

    async def estimate_priority_fee(self, provider: ChainProvider) -> Tuple[int, int]:
        """
        Derive per-unit fees from the latest block's base fee.

        Returns:
            (max_fee_per_unit, priority_fee_per_unit)

        Raises:
            UnsupportedFeeModelError: Latest block carries no base fee
        """
        block = await provider.get_block("latest")
        base_fee = (block or {}).get("baseFeePerGas")
        if base_fee is None:
            raise UnsupportedFeeModelError("Latest block has no baseFeePerGas")
        base_fee = parse_quantity(base_fee)

        priority_fee = self._config.priority_fee_wei
        max_fee = base_fee * self._config.base_fee_multiplier + priority_fee
        return max_fee, priority_fee

    async def quote(self, provider: ChainProvider, call: Dict[str, Any]) -> FeeQuote:
        """Build a FeeQuote for ``call``, preferring the priority-fee model."""
        try:
            max_fee, priority_fee = await self.estimate_priority_fee(provider)
        except UnsupportedFeeModelError:
            if not self._config.allow_legacy_fallback:
                raise
            logger.info("Chain has no base fee, using legacy gas price")
            gas_units, gas_price = await self.estimate_legacy(provider, call)
            return FeeQuote(model=FeeModel.LEGACY, gas_units=gas_units, gas_price=gas_price)

        gas_units = await provider.estimate_gas(call)
        return FeeQuote(
            model=FeeModel.PRIORITY_FEE,
            gas_units=gas_units,
            max_fee_per_unit=max_fee,
            priority_fee_per_unit=priority_fee,
        )

    @staticmethod
    def total_cost(quote: FeeQuote) -> int:
        """
        Upper bound on the transaction cost: gas units times the per-unit fee.

        Raises:
            ValueError: Negative gas units or fee, or the model's fee field unset
            ArithmeticOverflowError: Product exceeds uint256
        """
        per_unit = quote.fee_per_unit
        if quote.gas_units < 0 or per_unit < 0:
            raise ValueError("Gas units and fees must be non-negative")
        cost = quote.gas_units * per_unit
        if cost > UINT256_MAX:
            raise ArithmeticOverflowError(
                "Fee total exceeds uint256 range",
                details={"gas_units": quote.gas_units, "fee_per_unit": str(per_unit)},
            )
        return cost


__all__ = ["NATIVE_DECIMALS", "FeeModel", "FeeQuote", "FeeEstimator"]
