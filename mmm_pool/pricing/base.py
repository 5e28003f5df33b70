"""Pricing oracle contract.

The pool delegates every price and amount computation to a PricingOracle.
Implementations must be deterministic and must not mutate pool state; the
pool only relies on them being monotonic in the balance ratio, which its
post-trade checks verify.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from mmm_pool.math.fixed_point import Bfp
from mmm_pool.oracle.aggregator import Round


@dataclass(frozen=True)
class TokenInfo:
    """Balance and effective weight of a token, as fixed point."""

    balance: Bfp
    weight: Bfp


@dataclass(frozen=True)
class TokenGlobal:
    """Token info together with the latest round of its feed."""

    info: TokenInfo
    latest_round: Round


@dataclass(frozen=True)
class SwapParameters:
    """Raw swap amount (input for exact-in, output for exact-out) and swap fee."""

    amount: Bfp
    fee: Bfp


@dataclass(frozen=True)
class GBMParameters:
    """Risk aversion z and horizon (seconds), both fixed point."""

    z: Bfp
    horizon: Bfp


@dataclass(frozen=True)
class HistoricalPriceParameters:
    """Lookback window for price statistics.

    Attributes:
        lookback_rounds: Maximum number of past rounds per feed
        lookback_seconds: Maximum age of a round, relative to ``timestamp``
        timestamp: Evaluation time in seconds
    """

    lookback_rounds: int
    lookback_seconds: int
    timestamp: int


@dataclass(frozen=True)
class SwapQuote:
    """Result of an amount computation.

    Attributes:
        amount: Output amount (exact-in) or input amount (exact-out)
        spread: Coverage spread charged on top of the swap fee
    """

    amount: Bfp
    spread: Bfp


class PricingOracle(Protocol):
    """Protocol for swap pricing.

    Different implementations can be substituted for testing or for
    alternative risk models.
    """

    def spot_price(self, token_in: TokenInfo, token_out: TokenInfo, swap_fee: Bfp) -> Bfp:
        """Marginal price of token_out in units of token_in, including the swap fee."""
        ...

    def out_given_in(
        self,
        token_in: TokenGlobal,
        token_out: TokenGlobal,
        relative_price: Bfp,
        swap: SwapParameters,
        gbm: GBMParameters,
        history: HistoricalPriceParameters,
    ) -> SwapQuote:
        """Compute the output amount for an exact input."""
        ...

    def in_given_out(
        self,
        token_in: TokenGlobal,
        token_out: TokenGlobal,
        relative_price: Bfp,
        swap: SwapParameters,
        gbm: GBMParameters,
        history: HistoricalPriceParameters,
    ) -> SwapQuote:
        """Compute the input amount required for an exact output."""
        ...
