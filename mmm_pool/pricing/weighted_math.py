"""Weighted product pool math.

Core formulas for weighted pools. Fees are applied inside the formulas:
the input is discounted by ``1 - fee`` for exact-in swaps and grossed up by
``1 / (1 - fee)`` for exact-out swaps.
"""

from mmm_pool.errors import BoundError, Reason
from mmm_pool.math.fixed_point import ONE, Bfp


def _validate(balance_in: Bfp, weight_in: Bfp, balance_out: Bfp, weight_out: Bfp) -> None:
    if weight_in.value <= 0:
        raise BoundError(Reason.ZERO_WEIGHT, "weight_in must be positive")
    if weight_out.value <= 0:
        raise BoundError(Reason.ZERO_WEIGHT, "weight_out must be positive")
    if balance_in.value <= 0:
        raise BoundError(Reason.ZERO_BALANCE, "balance_in must be positive")
    if balance_out.value <= 0:
        raise BoundError(Reason.ZERO_BALANCE, "balance_out must be positive")


def calc_spot_price(
    balance_in: Bfp,
    weight_in: Bfp,
    balance_out: Bfp,
    weight_out: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """Spot price of token_out in units of token_in.

    Formula:
        spot = (balance_in / weight_in) / (balance_out / weight_out) / (1 - fee)
    """
    _validate(balance_in, weight_in, balance_out, weight_out)
    numer = balance_in.div(weight_in)
    denom = balance_out.div(weight_out)
    ratio = numer.div(denom)
    scale = ONE.div(ONE.sub(swap_fee))
    return ratio.mul(scale)


def calc_out_given_in(
    balance_in: Bfp,
    weight_in: Bfp,
    balance_out: Bfp,
    weight_out: Bfp,
    amount_in: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """Calculate output amount for a given input.

    Formula:
        amount_out = balance_out * (1 - (balance_in / (balance_in + amount_in * (1 - fee)))^(weight_in / weight_out))

    Raises:
        BoundError: If a weight or balance is zero
        ArithmeticFailure: If the power base leaves its supported range
    """
    _validate(balance_in, weight_in, balance_out, weight_out)
    weight_ratio = weight_in.div(weight_out)
    adjusted_in = amount_in.mul(ONE.sub(swap_fee))
    y = balance_in.div(balance_in.add(adjusted_in))
    foo = y.pow(weight_ratio)
    bar = ONE.sub(foo)
    return balance_out.mul(bar)


def calc_in_given_out(
    balance_in: Bfp,
    weight_in: Bfp,
    balance_out: Bfp,
    weight_out: Bfp,
    amount_out: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """Calculate input amount required for a given output.

    Formula:
        amount_in = balance_in * ((balance_out / (balance_out - amount_out))^(weight_out / weight_in) - 1) / (1 - fee)

    Raises:
        BoundError: If a weight or balance is zero, or amount_out >= balance_out
        ArithmeticFailure: If the power base leaves its supported range
    """
    _validate(balance_in, weight_in, balance_out, weight_out)
    if amount_out.value >= balance_out.value:
        raise BoundError(Reason.ZERO_BALANCE, "amount_out must be less than balance_out")
    weight_ratio = weight_out.div(weight_in)
    diff = balance_out.sub(amount_out)
    y = balance_out.div(diff)
    foo = y.pow(weight_ratio).sub(ONE)
    return balance_in.mul(foo).div(ONE.sub(swap_fee))
