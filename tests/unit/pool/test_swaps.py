"""Tests for the swap engine: exact-in and exact-out swaps."""

import pytest

from mmm_pool.constants import BONE, MIN_FEE
from mmm_pool.errors import ApproximationError, BoundError, LimitError, Reason, StateError
from mmm_pool.events import SwapEvent
from mmm_pool.factory import Factory
from mmm_pool.math.fixed_point import ONE, Bfp
from mmm_pool.pricing import calc_in_given_out, calc_out_given_in, calc_spot_price
from tests.helpers import (
    DAI_BALANCE,
    LABS,
    NO_LIMIT,
    TRADER,
    WEIGHT,
    WETH_BALANCE,
    PoolSetup,
    make_token,
    make_weth_dai_pool,
)

FEE = Bfp(MIN_FEE)


def expected_out(
    amount_in: int, balance_in: int = WETH_BALANCE, balance_out: int = DAI_BALANCE
) -> int:
    return calc_out_given_in(
        Bfp(balance_in), Bfp(WEIGHT), Bfp(balance_out), Bfp(WEIGHT), Bfp(amount_in), FEE
    ).value


def expected_in(amount_out: int) -> int:
    return calc_in_given_out(
        Bfp(DAI_BALANCE), Bfp(WEIGHT), Bfp(WETH_BALANCE), Bfp(WEIGHT), Bfp(amount_out), FEE
    ).value


class TestSwapExactAmountIn:
    """Tests for Pool.swap_exact_amount_in."""

    def test_sell_weth_for_dai(self, setup: PoolSetup) -> None:
        pool, weth, dai = setup.pool, setup.weth, setup.dai
        dai_before = dai.balance_of(TRADER)

        amount_out, spot_after = pool.swap_exact_amount_in(
            weth, BONE, dai, 0, NO_LIMIT, sender=TRADER
        )

        assert amount_out == expected_out(BONE)
        assert pool.get_balance(weth) == WETH_BALANCE + BONE
        assert pool.get_balance(dai) == DAI_BALANCE - amount_out
        assert dai.balance_of(TRADER) == dai_before + amount_out
        assert spot_after == pool.get_spot_price(weth, dai)

    def test_swap_event_recorded(self, setup: PoolSetup) -> None:
        amount_out, _ = setup.pool.swap_exact_amount_in(
            setup.weth, BONE, setup.dai, 0, NO_LIMIT, sender=TRADER
        )
        (event,) = setup.pool.audit_log.of_type(SwapEvent)
        assert event.caller == TRADER
        assert (event.amount_in, event.amount_out, event.spread) == (BONE, amount_out, 0)

    def test_spot_price_moves_against_trader(self, setup: PoolSetup) -> None:
        before = setup.pool.get_spot_price(setup.weth, setup.dai)
        _, after = setup.pool.swap_exact_amount_in(
            setup.weth, BONE, setup.dai, 0, NO_LIMIT, sender=TRADER
        )
        assert after > before

    def test_min_amount_out(self, setup: PoolSetup) -> None:
        with pytest.raises(LimitError) as exc_info:
            setup.pool.swap_exact_amount_in(
                setup.weth, BONE, setup.dai, expected_out(BONE) + 1, NO_LIMIT, sender=TRADER
            )
        assert exc_info.value.reason is Reason.LIMIT_OUT
        assert setup.pool.get_balance(setup.weth) == WETH_BALANCE

    def test_limit_price_below_spot(self, setup: PoolSetup) -> None:
        spot = setup.pool.get_spot_price(setup.weth, setup.dai)
        with pytest.raises(LimitError) as exc_info:
            setup.pool.swap_exact_amount_in(
                setup.weth, BONE, setup.dai, 0, spot - 1, sender=TRADER
            )
        assert exc_info.value.reason is Reason.BAD_LIMIT_PRICE

    def test_limit_price_after_swap(self, setup: PoolSetup) -> None:
        spot = setup.pool.get_spot_price(setup.weth, setup.dai)
        with pytest.raises(LimitError) as exc_info:
            setup.pool.swap_exact_amount_in(setup.weth, BONE, setup.dai, 0, spot, sender=TRADER)
        assert exc_info.value.reason is Reason.LIMIT_PRICE

    def test_max_in_ratio(self, setup: PoolSetup) -> None:
        with pytest.raises(BoundError) as exc_info:
            setup.pool.swap_exact_amount_in(
                setup.weth, WETH_BALANCE // 2 + 1, setup.dai, 0, NO_LIMIT, sender=TRADER
            )
        assert exc_info.value.reason is Reason.MAX_IN_RATIO

    def test_max_in_ratio_boundary_allowed(self, setup: PoolSetup) -> None:
        amount_out, _ = setup.pool.swap_exact_amount_in(
            setup.weth, WETH_BALANCE // 2, setup.dai, 0, NO_LIMIT, sender=TRADER
        )
        assert amount_out == expected_out(WETH_BALANCE // 2)

    def test_dust_input_rejected(self, setup: PoolSetup) -> None:
        with pytest.raises(ApproximationError) as exc_info:
            setup.pool.swap_exact_amount_in(setup.weth, 1, setup.dai, 0, NO_LIMIT, sender=TRADER)
        assert exc_info.value.reason is Reason.MATH_APPROX

    def test_unbound_token(self, setup: PoolSetup) -> None:
        other = make_token("XYZ")
        with pytest.raises(StateError) as exc_info:
            setup.pool.swap_exact_amount_in(other, BONE, setup.dai, 0, NO_LIMIT, sender=TRADER)
        assert exc_info.value.reason is Reason.NOT_BOUND

    def test_same_token(self, setup: PoolSetup) -> None:
        with pytest.raises(BoundError) as exc_info:
            setup.pool.swap_exact_amount_in(
                setup.weth, BONE, setup.weth, 0, NO_LIMIT, sender=TRADER
            )
        assert exc_info.value.reason is Reason.SAME_TOKEN

    def test_not_public(self, configuring_setup: PoolSetup) -> None:
        s = configuring_setup
        with pytest.raises(StateError) as exc_info:
            s.pool.swap_exact_amount_in(s.weth, BONE, s.dai, 0, NO_LIMIT, sender=TRADER)
        assert exc_info.value.reason is Reason.SWAP_NOT_PUBLIC

    def test_public_swap_before_finalize(self, configuring_setup: PoolSetup) -> None:
        s = configuring_setup
        s.pool.set_public_swap(True, sender=s.pool.controller)
        amount_out, _ = s.pool.swap_exact_amount_in(
            s.weth, BONE, s.dai, 0, NO_LIMIT, sender=TRADER
        )
        assert amount_out == expected_out(BONE)

    def test_paused_by_factory(self, factory: Factory, factory_setup: PoolSetup) -> None:
        s = factory_setup
        factory.set_paused(True, sender=LABS)
        with pytest.raises(StateError) as exc_info:
            s.pool.swap_exact_amount_in(s.weth, BONE, s.dai, 0, NO_LIMIT, sender=TRADER)
        assert exc_info.value.reason is Reason.PAUSED

        factory.set_paused(False, sender=LABS)
        s.pool.swap_exact_amount_in(s.weth, BONE, s.dai, 0, NO_LIMIT, sender=TRADER)


class TestSwapExactAmountOut:
    """Tests for Pool.swap_exact_amount_out."""

    def test_buy_weth_with_dai(self, setup: PoolSetup) -> None:
        pool, weth, dai = setup.pool, setup.weth, setup.dai
        weth_before = weth.balance_of(TRADER)

        amount_in, spot_after = pool.swap_exact_amount_out(
            dai, NO_LIMIT, weth, BONE // 10, NO_LIMIT, sender=TRADER
        )

        assert amount_in == expected_in(BONE // 10)
        assert pool.get_balance(dai) == DAI_BALANCE + amount_in
        assert pool.get_balance(weth) == WETH_BALANCE - BONE // 10
        assert weth.balance_of(TRADER) == weth_before + BONE // 10
        assert spot_after == pool.get_spot_price(dai, weth)

    def test_max_amount_in(self, setup: PoolSetup) -> None:
        limit = expected_in(BONE // 10) - 1
        with pytest.raises(LimitError) as exc_info:
            setup.pool.swap_exact_amount_out(
                setup.dai, limit, setup.weth, BONE // 10, NO_LIMIT, sender=TRADER
            )
        assert exc_info.value.reason is Reason.LIMIT_IN

    def test_max_out_ratio(self, setup: PoolSetup) -> None:
        with pytest.raises(BoundError) as exc_info:
            setup.pool.swap_exact_amount_out(
                setup.dai, NO_LIMIT, setup.weth, 2 * BONE, NO_LIMIT, sender=TRADER
            )
        assert exc_info.value.reason is Reason.MAX_OUT_RATIO

    def test_limit_price_below_spot(self, setup: PoolSetup) -> None:
        spot = setup.pool.get_spot_price(setup.dai, setup.weth)
        with pytest.raises(LimitError) as exc_info:
            setup.pool.swap_exact_amount_out(
                setup.dai, NO_LIMIT, setup.weth, BONE // 10, spot - 1, sender=TRADER
            )
        assert exc_info.value.reason is Reason.BAD_LIMIT_PRICE


class TestOracleAdjustedPricing:
    """Effective weights follow the feeds; the oracle guard caps favourable rates."""

    def test_effective_weight_tracks_price(self, setup: PoolSetup) -> None:
        setup.weth_feed.price *= 2
        assert setup.pool.get_denormalized_weight_mmm(setup.weth) == 2 * WEIGHT
        assert setup.pool.get_denormalized_weight(setup.weth) == WEIGHT

    def test_spot_price_uses_declared_weights(self, setup: PoolSetup) -> None:
        setup.weth_feed.price *= 2
        assert setup.pool.get_spot_price_sans_fee(setup.weth, setup.dai) == 5 * 10**14

    def test_limit_price_checked_on_declared_weights(self, setup: PoolSetup) -> None:
        """A max price above the effective-weight spot but below the declared one is rejected."""
        setup.weth_feed.price *= 2
        declared = calc_spot_price(
            Bfp(WETH_BALANCE), Bfp(WEIGHT), Bfp(DAI_BALANCE), Bfp(WEIGHT), FEE
        ).value
        effective = calc_spot_price(
            Bfp(WETH_BALANCE), Bfp(2 * WEIGHT), Bfp(DAI_BALANCE), Bfp(WEIGHT), FEE
        ).value
        assert effective < declared

        with pytest.raises(LimitError) as exc_info:
            setup.pool.swap_exact_amount_in(
                setup.weth,
                BONE // 100,
                setup.dai,
                0,
                (declared + effective) // 2,
                sender=TRADER,
            )
        assert exc_info.value.reason is Reason.BAD_LIMIT_PRICE
        assert setup.pool.get_balance(setup.weth) == WETH_BALANCE

    def test_selling_appreciated_token_below_declared_spot(self, setup: PoolSetup) -> None:
        setup.weth_feed.price *= 2
        with pytest.raises(ApproximationError) as exc_info:
            setup.pool.swap_exact_amount_in(
                setup.weth, BONE // 100, setup.dai, 0, NO_LIMIT, sender=TRADER
            )
        assert exc_info.value.reason is Reason.MATH_APPROX

    def test_buying_appreciated_token_pays_oracle_price(self, setup: PoolSetup) -> None:
        setup.weth_feed.price *= 2
        amount_in, spot_after = setup.pool.swap_exact_amount_out(
            setup.dai, NO_LIMIT, setup.weth, BONE // 100, NO_LIMIT, sender=TRADER
        )
        assert amount_in > 40 * BONE
        assert spot_after == setup.pool.get_spot_price(setup.dai, setup.weth)

    def test_zero_price_means_zero_weight(self, setup: PoolSetup) -> None:
        setup.weth_feed.price = 0
        assert setup.pool.get_denormalized_weight_mmm(setup.weth) == 0
        with pytest.raises(BoundError) as exc_info:
            setup.pool.swap_exact_amount_in(
                setup.weth, BONE, setup.dai, 0, NO_LIMIT, sender=TRADER
            )
        assert exc_info.value.reason is Reason.ZERO_WEIGHT

    def test_guard_caps_mispriced_pool(self) -> None:
        """Pool holds twice the DAI the feeds justify: output is capped at the oracle rate."""
        setup = make_weth_dai_pool(dai_balance=2 * DAI_BALANCE)
        amount_in = BONE // 10
        weighted = expected_out(amount_in, balance_out=2 * DAI_BALANCE)

        amount_out, _ = setup.pool.swap_exact_amount_in(
            setup.weth, amount_in, setup.dai, 0, NO_LIMIT, sender=TRADER
        )

        oracle_out = Bfp(amount_in).mul(ONE.sub(FEE)).div(Bfp(5 * 10**14)).value
        assert weighted > oracle_out
        assert amount_out == oracle_out


class TestQuoteViews:
    """Quotes match execution and leave the pool untouched."""

    def test_out_given_in_quote(self, setup: PoolSetup) -> None:
        quote = setup.pool.get_amount_out_given_in_mmm(setup.weth, BONE, setup.dai)
        assert quote == (expected_out(BONE), 0)
        assert setup.pool.get_balance(setup.weth) == WETH_BALANCE

        amount_out, _ = setup.pool.swap_exact_amount_in(
            setup.weth, BONE, setup.dai, 0, NO_LIMIT, sender=TRADER
        )
        assert amount_out == quote[0]

    def test_in_given_out_quote(self, setup: PoolSetup) -> None:
        quote = setup.pool.get_amount_in_given_out_mmm(setup.dai, setup.weth, BONE // 10)
        assert quote == (expected_in(BONE // 10), 0)

    def test_quote_respects_ratio_limit(self, setup: PoolSetup) -> None:
        with pytest.raises(BoundError):
            setup.pool.get_amount_out_given_in_mmm(setup.weth, WETH_BALANCE, setup.dai)
