"""Swap pricing for MMM pools.

This package provides the pricing oracle contract used by pools and its
default implementation:
- PricingOracle: protocol (spot price, out-given-in, in-given-out)
- MMMPricingOracle: weighted product formulas with coverage spread and oracle guard
- Weighted math and coverage fee helpers
"""

from .base import (
    GBMParameters,
    HistoricalPriceParameters,
    PricingOracle,
    SwapParameters,
    SwapQuote,
    TokenGlobal,
    TokenInfo,
)
from .coverage import (
    GBMEstimate,
    collect_price_history,
    coverage_spread,
    estimate_gbm,
    merge_relative_series,
)
from .mmm import MMMPricingOracle
from .weighted_math import calc_in_given_out, calc_out_given_in, calc_spot_price

__all__ = [
    # Contract
    "PricingOracle",
    "TokenInfo",
    "TokenGlobal",
    "SwapParameters",
    "GBMParameters",
    "HistoricalPriceParameters",
    "SwapQuote",
    # Default implementation
    "MMMPricingOracle",
    # Weighted math
    "calc_spot_price",
    "calc_out_given_in",
    "calc_in_given_out",
    # Coverage fee
    "GBMEstimate",
    "collect_price_history",
    "merge_relative_series",
    "estimate_gbm",
    "coverage_spread",
]
