"""Default pricing oracle for MMM pools.

Combines three ingredients:

1. Weighted product formulas on the pool's accounted balances and effective
   (performance-adjusted) weights
2. A dynamic coverage spread added to the swap fee (see coverage.py)
3. An oracle guard: the pool never quotes a better rate than the feeds'
   relative price. The guard uses whichever of the current and previous
   relative price favours the pool, so lagging feeds cannot be arbitraged.
   An unavailable relative price (0) disables the guard.
"""

from __future__ import annotations

import structlog

from mmm_pool.errors import BoundError, Reason
from mmm_pool.math.fixed_point import ONE, Bfp
from mmm_pool.oracle.aggregator import previous_relative_price

from .base import (
    GBMParameters,
    HistoricalPriceParameters,
    SwapParameters,
    SwapQuote,
    TokenGlobal,
    TokenInfo,
)
from .coverage import coverage_spread
from .weighted_math import calc_in_given_out, calc_out_given_in, calc_spot_price

logger = structlog.get_logger()


class MMMPricingOracle:
    """Weighted-product pricing with coverage spread and oracle guard."""

    def spot_price(self, token_in: TokenInfo, token_out: TokenInfo, swap_fee: Bfp) -> Bfp:
        return calc_spot_price(
            token_in.balance, token_in.weight, token_out.balance, token_out.weight, swap_fee
        )

    def out_given_in(
        self,
        token_in: TokenGlobal,
        token_out: TokenGlobal,
        relative_price: Bfp,
        swap: SwapParameters,
        gbm: GBMParameters,
        history: HistoricalPriceParameters,
    ) -> SwapQuote:
        spread, fee = self._total_fee(token_in, token_out, swap, gbm, history)

        amount_out = calc_out_given_in(
            token_in.info.balance,
            token_in.info.weight,
            token_out.info.balance,
            token_out.info.weight,
            swap.amount,
            fee,
        )

        reference = self._reference_price(token_in, token_out, relative_price)
        if reference.value > 0:
            oracle_out = swap.amount.mul(ONE.sub(fee)).div(reference)
            if oracle_out < amount_out:
                logger.debug(
                    "oracle_guard_applied",
                    side="out_given_in",
                    weighted=amount_out.value,
                    oracle=oracle_out.value,
                )
                amount_out = oracle_out

        return SwapQuote(amount=amount_out, spread=spread)

    def in_given_out(
        self,
        token_in: TokenGlobal,
        token_out: TokenGlobal,
        relative_price: Bfp,
        swap: SwapParameters,
        gbm: GBMParameters,
        history: HistoricalPriceParameters,
    ) -> SwapQuote:
        spread, fee = self._total_fee(token_in, token_out, swap, gbm, history)

        amount_in = calc_in_given_out(
            token_in.info.balance,
            token_in.info.weight,
            token_out.info.balance,
            token_out.info.weight,
            swap.amount,
            fee,
        )

        reference = self._reference_price(token_in, token_out, relative_price)
        if reference.value > 0:
            oracle_in = swap.amount.mul(reference).div(ONE.sub(fee))
            if oracle_in > amount_in:
                logger.debug(
                    "oracle_guard_applied",
                    side="in_given_out",
                    weighted=amount_in.value,
                    oracle=oracle_in.value,
                )
                amount_in = oracle_in

        return SwapQuote(amount=amount_in, spread=spread)

    def _total_fee(
        self,
        token_in: TokenGlobal,
        token_out: TokenGlobal,
        swap: SwapParameters,
        gbm: GBMParameters,
        history: HistoricalPriceParameters,
    ) -> tuple[Bfp, Bfp]:
        spread = coverage_spread(token_in.latest_round, token_out.latest_round, gbm, history)
        fee = swap.fee.add(spread)
        if fee >= ONE:
            raise BoundError(Reason.MAX_FEE, f"total fee {fee} must stay below 1")
        return spread, fee

    @staticmethod
    def _reference_price(token_in: TokenGlobal, token_out: TokenGlobal, current: Bfp) -> Bfp:
        if current.value == 0:
            return current
        previous = previous_relative_price(token_in.latest_round, token_out.latest_round)
        return Bfp(max(current.value, previous))
