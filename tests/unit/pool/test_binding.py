"""Tests for the token binding lifecycle: bind, rebind, unbind, gulp, finalize."""

import pytest

from mmm_pool.config import PoolConfig
from mmm_pool.constants import BONE, INIT_POOL_SUPPLY, MIN_BALANCE
from mmm_pool.errors import AuthorizationError, BoundError, Reason, StateError, TransferError
from mmm_pool.events import CallEvent, OracleStateEvent
from mmm_pool.factory import Factory
from mmm_pool.oracle.feeds import HistoricalPriceFeed
from mmm_pool.pool import Pool
from mmm_pool.tokens import Token
from tests.helpers import (
    CONTROLLER,
    DAI_BALANCE,
    LABS,
    NOW,
    STRANGER,
    WEIGHT,
    WETH_BALANCE,
    WETH_PRICE,
    PoolSetup,
    approve_all,
    make_feed,
    make_token,
)


@pytest.fixture
def pool() -> Pool:
    return Pool(controller=CONTROLLER, clock=lambda: NOW)


def bind_new(pool: Pool, symbol: str, balance: int = 10 * BONE, denorm: int = WEIGHT) -> Token:
    token = make_token(symbol)
    approve_all(pool.address, [token], [CONTROLLER])
    pool.bind(token, balance, denorm, make_feed(WETH_PRICE), sender=CONTROLLER)
    return token


class TestBind:
    """Tests for Pool.bind."""

    def test_bind_records_token(self, pool: Pool) -> None:
        token = bind_new(pool, "AAA", balance=7 * BONE, denorm=3 * BONE)
        assert pool.is_bound(token)
        assert pool.get_current_tokens() == [token.address]
        assert pool.get_balance(token) == 7 * BONE
        assert pool.get_denormalized_weight(token) == 3 * BONE
        assert pool.get_total_denormalized_weight() == 3 * BONE
        assert pool.get_token_oracle_initial_price(token) == WETH_PRICE
        assert pool.get_token_price_decimals(token) == 8
        assert token.balance_of(pool.address) == 7 * BONE

    def test_bind_emits_events(self, pool: Pool) -> None:
        token = bind_new(pool, "AAA")
        calls = pool.audit_log.of_type(CallEvent)
        assert [c.signature for c in calls] == ["bind"]
        assert calls[0].args["token"] == token.address
        oracle_events = pool.audit_log.of_type(OracleStateEvent)
        assert oracle_events[0].initial_price == WETH_PRICE

    def test_only_controller(self, pool: Pool) -> None:
        token = make_token("AAA", holders=[STRANGER])
        approve_all(pool.address, [token], [STRANGER])
        with pytest.raises(AuthorizationError) as exc_info:
            pool.bind(token, BONE, WEIGHT, make_feed(WETH_PRICE), sender=STRANGER)
        assert exc_info.value.reason is Reason.NOT_CONTROLLER
        assert pool.get_num_tokens() == 0

    def test_bind_twice(self, pool: Pool) -> None:
        token = bind_new(pool, "AAA")
        with pytest.raises(StateError) as exc_info:
            pool.bind(token, BONE, WEIGHT, make_feed(WETH_PRICE), sender=CONTROLLER)
        assert exc_info.value.reason is Reason.IS_BOUND

    def test_max_tokens(self) -> None:
        pool = Pool(controller=CONTROLLER, config=PoolConfig(max_bound_tokens=2))
        bind_new(pool, "AAA")
        bind_new(pool, "BBB")
        with pytest.raises(BoundError) as exc_info:
            bind_new(pool, "CCC")
        assert exc_info.value.reason is Reason.MAX_TOKENS

    @pytest.mark.parametrize(
        "balance,denorm,reason",
        [
            (BONE, BONE - 1, Reason.MIN_WEIGHT),
            (BONE, 51 * BONE, Reason.MAX_WEIGHT),
            (MIN_BALANCE - 1, WEIGHT, Reason.MIN_BALANCE),
        ],
    )
    def test_bounds(self, pool: Pool, balance: int, denorm: int, reason: Reason) -> None:
        with pytest.raises(BoundError) as exc_info:
            bind_new(pool, "AAA", balance=balance, denorm=denorm)
        assert exc_info.value.reason is reason

    def test_failed_bind_leaves_no_trace(self, pool: Pool) -> None:
        """Exceeding the total weight rolls back the whole bind."""
        bind_new(pool, "AAA", denorm=30 * BONE)
        token = make_token("BBB")
        approve_all(pool.address, [token], [CONTROLLER])
        log_size = len(pool.audit_log)

        with pytest.raises(BoundError) as exc_info:
            pool.bind(token, BONE, 30 * BONE, make_feed(WETH_PRICE), sender=CONTROLLER)

        assert exc_info.value.reason is Reason.MAX_TOTAL_WEIGHT
        assert not pool.is_bound(token)
        assert pool.get_num_tokens() == 1
        assert pool.get_total_denormalized_weight() == 30 * BONE
        assert token.balance_of(pool.address) == 0
        assert len(pool.audit_log) == log_size

    def test_missing_allowance_rolls_back(self, pool: Pool) -> None:
        token = make_token("AAA")
        with pytest.raises(TransferError) as exc_info:
            pool.bind(token, BONE, WEIGHT, make_feed(WETH_PRICE), sender=CONTROLLER)
        assert exc_info.value.reason is Reason.ERC20_FALSE
        assert not pool.is_bound(token)
        assert pool.get_total_denormalized_weight() == 0

    def test_feed_without_rounds_rejected(self, pool: Pool) -> None:
        token = make_token("AAA")
        approve_all(pool.address, [token], [CONTROLLER])

        with pytest.raises(StateError) as exc_info:
            pool.bind(token, BONE, WEIGHT, HistoricalPriceFeed(), sender=CONTROLLER)

        assert exc_info.value.reason is Reason.NO_PRICE
        assert not pool.is_bound(token)
        assert pool.get_total_denormalized_weight() == 0
        assert token.balance_of(pool.address) == 0
        assert len(pool.audit_log) == 0


class TestRebind:
    """Tests for Pool.rebind."""

    def test_increase_balance_pulls_difference(self, configuring_setup: PoolSetup) -> None:
        pool, weth = configuring_setup.pool, configuring_setup.weth
        before = weth.balance_of(CONTROLLER)
        pool.rebind(weth, 8 * BONE, WEIGHT, configuring_setup.weth_feed, sender=CONTROLLER)
        assert pool.get_balance(weth) == 8 * BONE
        assert weth.balance_of(CONTROLLER) == before - 3 * BONE

    def test_decrease_balance_pushes_difference(self, configuring_setup: PoolSetup) -> None:
        pool, weth = configuring_setup.pool, configuring_setup.weth
        before = weth.balance_of(CONTROLLER)
        pool.rebind(weth, 2 * BONE, WEIGHT, configuring_setup.weth_feed, sender=CONTROLLER)
        assert pool.get_balance(weth) == 2 * BONE
        assert weth.balance_of(CONTROLLER) == before + 3 * BONE

    def test_weight_change_updates_total(self, configuring_setup: PoolSetup) -> None:
        pool, weth = configuring_setup.pool, configuring_setup.weth
        pool.rebind(weth, WETH_BALANCE, 2 * BONE, configuring_setup.weth_feed, sender=CONTROLLER)
        assert pool.get_total_denormalized_weight() == 7 * BONE
        pool.rebind(weth, WETH_BALANCE, 9 * BONE, configuring_setup.weth_feed, sender=CONTROLLER)
        assert pool.get_total_denormalized_weight() == 14 * BONE

    def test_rebind_resets_price_baseline(self, configuring_setup: PoolSetup) -> None:
        pool, weth = configuring_setup.pool, configuring_setup.weth
        new_feed = make_feed(3_000 * 10**8)
        pool.rebind(weth, WETH_BALANCE, WEIGHT, new_feed, sender=CONTROLLER)
        assert pool.get_token_oracle(weth) is new_feed
        assert pool.get_token_oracle_initial_price(weth) == 3_000 * 10**8

    def test_exit_fee_goes_to_controller_without_registry(self) -> None:
        pool = Pool(controller=CONTROLLER, config=PoolConfig(exit_fee=BONE // 100))
        token = bind_new(pool, "AAA", balance=10 * BONE)
        fee_sink_before = token.balance_of(CONTROLLER)
        pool.rebind(token, 5 * BONE, WEIGHT, make_feed(WETH_PRICE), sender=CONTROLLER)
        # Controller is also the fee sink: receives the full 5 tokens in two transfers
        assert token.balance_of(CONTROLLER) == fee_sink_before + 5 * BONE
        assert pool.fee_sink == CONTROLLER

    def test_rebind_unbound(self, configuring_setup: PoolSetup) -> None:
        other = make_token("XYZ")
        with pytest.raises(StateError) as exc_info:
            configuring_setup.pool.rebind(
                other, BONE, WEIGHT, make_feed(WETH_PRICE), sender=CONTROLLER
            )
        assert exc_info.value.reason is Reason.NOT_BOUND


class TestUnbind:
    """Tests for Pool.unbind."""

    def test_unbind_returns_balance(self, configuring_setup: PoolSetup) -> None:
        pool, weth = configuring_setup.pool, configuring_setup.weth
        before = weth.balance_of(CONTROLLER)
        pool.unbind(weth, sender=CONTROLLER)
        assert not pool.is_bound(weth)
        assert weth.balance_of(CONTROLLER) == before + WETH_BALANCE
        assert pool.get_total_denormalized_weight() == WEIGHT

    def test_bind_unbind_round_trip_minus_exit_fee(self) -> None:
        factory = Factory(labs=LABS, config=PoolConfig(exit_fee=BONE // 100), clock=lambda: NOW)
        pool = factory.new_pool(sender=CONTROLLER)
        keep = bind_new(pool, "KEEP")
        token = bind_new(pool, "AAA", balance=10 * BONE)
        before = token.balance_of(CONTROLLER) + 10 * BONE

        pool.unbind(token, sender=CONTROLLER)

        fee = 10 * BONE // 100
        assert token.balance_of(CONTROLLER) == before - fee
        assert token.balance_of(factory.address) == fee
        assert token.balance_of(pool.address) == 0
        assert pool.get_current_tokens() == [keep.address]
        assert token.address not in pool.records

    def test_last_token_fills_gap(self, pool: Pool) -> None:
        a = bind_new(pool, "AAA")
        b = bind_new(pool, "BBB")
        c = bind_new(pool, "CCC")
        pool.unbind(a, sender=CONTROLLER)
        assert pool.get_current_tokens() == [c.address, b.address]
        assert pool.records[c.address].index == 0
        assert pool.records[b.address].index == 1

    def test_unbind_after_finalize(self, setup: PoolSetup) -> None:
        with pytest.raises(StateError) as exc_info:
            setup.pool.unbind(setup.weth, sender=CONTROLLER)
        assert exc_info.value.reason is Reason.IS_FINALIZED


class TestTotalWeight:
    """The total weight always equals the sum of declared weights."""

    @staticmethod
    def assert_weight_sum(pool: Pool) -> None:
        declared = sum(pool.get_denormalized_weight(t) for t in pool.get_current_tokens())
        assert pool.get_total_denormalized_weight() == declared

    def test_mixed_sequence(self, pool: Pool) -> None:
        a = bind_new(pool, "AAA", denorm=5 * BONE)
        b = bind_new(pool, "BBB", denorm=10 * BONE)
        c = bind_new(pool, "CCC", denorm=20 * BONE)
        self.assert_weight_sum(pool)
        assert pool.get_total_denormalized_weight() == 35 * BONE

        with pytest.raises(BoundError) as exc_info:
            pool.rebind(b, 10 * BONE, 30 * BONE, make_feed(WETH_PRICE), sender=CONTROLLER)
        assert exc_info.value.reason is Reason.MAX_TOTAL_WEIGHT
        assert pool.get_denormalized_weight(b) == 10 * BONE
        self.assert_weight_sum(pool)

        pool.rebind(c, 10 * BONE, BONE, make_feed(WETH_PRICE), sender=CONTROLLER)
        self.assert_weight_sum(pool)
        pool.unbind(a, sender=CONTROLLER)
        self.assert_weight_sum(pool)
        assert pool.get_total_denormalized_weight() == 11 * BONE

        pool.rebind(b, 10 * BONE, 49 * BONE, make_feed(WETH_PRICE), sender=CONTROLLER)
        self.assert_weight_sum(pool)
        assert pool.get_total_denormalized_weight() == 50 * BONE


class TestGulpAndFinalize:
    def test_gulp_absorbs_donation(self, setup: PoolSetup) -> None:
        setup.dai.transfer(CONTROLLER, setup.pool.address, 50 * BONE)
        setup.pool.gulp(setup.dai, sender=STRANGER)
        assert setup.pool.get_balance(setup.dai) == DAI_BALANCE + 50 * BONE

    def test_gulp_twice_is_idempotent(self, setup: PoolSetup) -> None:
        setup.dai.transfer(CONTROLLER, setup.pool.address, 50 * BONE)
        setup.pool.gulp(setup.dai, sender=STRANGER)
        setup.pool.gulp(setup.dai, sender=STRANGER)
        assert setup.pool.get_balance(setup.dai) == DAI_BALANCE + 50 * BONE
        assert setup.pool.get_balance(setup.dai) == setup.dai.balance_of(setup.pool.address)

    def test_gulp_unbound(self, setup: PoolSetup) -> None:
        with pytest.raises(StateError):
            setup.pool.gulp(make_token("XYZ"), sender=CONTROLLER)

    def test_finalize_mints_initial_supply(self, setup: PoolSetup) -> None:
        pool = setup.pool
        assert pool.is_finalized()
        assert pool.is_public_swap()
        assert pool.shares.balance_of(CONTROLLER) == INIT_POOL_SUPPLY
        assert pool.shares.total_supply() == INIT_POOL_SUPPLY
        assert pool.get_final_tokens() == [setup.weth.address, setup.dai.address]

    def test_finalize_needs_two_tokens(self, pool: Pool) -> None:
        bind_new(pool, "AAA")
        with pytest.raises(BoundError) as exc_info:
            pool.finalize(sender=CONTROLLER)
        assert exc_info.value.reason is Reason.MIN_TOKENS

    def test_finalize_twice(self, setup: PoolSetup) -> None:
        with pytest.raises(StateError) as exc_info:
            setup.pool.finalize(sender=CONTROLLER)
        assert exc_info.value.reason is Reason.IS_FINALIZED

    def test_bind_after_finalize(self, setup: PoolSetup) -> None:
        token = make_token("XYZ")
        with pytest.raises(StateError) as exc_info:
            setup.pool.bind(token, BONE, WEIGHT, make_feed(WETH_PRICE), sender=CONTROLLER)
        assert exc_info.value.reason is Reason.IS_FINALIZED

    def test_final_tokens_before_finalize(self, configuring_setup: PoolSetup) -> None:
        with pytest.raises(StateError) as exc_info:
            configuring_setup.pool.get_final_tokens()
        assert exc_info.value.reason is Reason.NOT_FINALIZED
