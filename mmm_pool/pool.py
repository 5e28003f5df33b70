"""MMM liquidity pool.

A Pool owns all of its mutable state: the dense ``tokens`` list, the
per-token ``records``, the oracle ``price_bindings``, configuration scalars
and the pool-share ledger. Every mutating entry point:

1. acquires the reentrancy guard (nested calls fail with ERR_REENTRY)
2. opens a Transaction over the pool and the tokens it may touch
3. checks authorization and lifecycle state
4. mutates pool state, then performs external token transfers
5. publishes its audit events only if everything above succeeded

Amounts, weights, prices and fees are 18-decimal fixed-point integers.
Swap limit and post-trade checks use declared weights; only the oracle
quote sees the performance-adjusted weights.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from mmm_pool.config import DEFAULT_POOL_CONFIG, PoolConfig
from mmm_pool.errors import (
    ApproximationError,
    BoundError,
    LimitError,
    Reason,
    StateError,
    TransferError,
)
from mmm_pool.events import (
    AuditLog,
    ExitEvent,
    JoinEvent,
    MemoryAuditLog,
    OracleStateEvent,
    PoolEvent,
    SwapEvent,
    call_event,
    feed_label,
    publish,
)
from mmm_pool.gate import (
    ReentrancyGuard,
    require_configuring,
    require_controller,
    require_finalized,
    require_not_paused,
    require_public_swap,
)
from mmm_pool.ledger import ShareLedger
from mmm_pool.math.fixed_point import Bfp
from mmm_pool.models.records import PoolState, PriceBinding, Record
from mmm_pool.models.types import derive_address, normalize_address
from mmm_pool.oracle.aggregator import (
    get_latest_price,
    get_latest_round,
    performance_ratio,
    relative_price,
)
from mmm_pool.pricing.base import (
    GBMParameters,
    HistoricalPriceParameters,
    PricingOracle,
    SwapParameters,
    SwapQuote,
    TokenGlobal,
    TokenInfo,
)
from mmm_pool.pricing.mmm import MMMPricingOracle
from mmm_pool.tokens import Token
from mmm_pool.transaction import Transaction

if TYPE_CHECKING:
    from mmm_pool.oracle.feeds import PriceFeed

logger = structlog.get_logger()

TokenRef = Token | str


class Registry(Protocol):
    """Registry that created the pool: fee sink, relay authority and pause switch."""

    address: str

    def is_paused(self) -> bool: ...


def _rescale(price: int, from_decimals: int, to_decimals: int) -> int:
    if from_decimals > to_decimals:
        return price // 10 ** (from_decimals - to_decimals)
    return price * 10 ** (to_decimals - from_decimals)


class Pool:
    """Multi-token pool with oracle-adjusted weights and coverage fees.

    Usage:
        pool = Pool(controller=admin, registry=factory)
        pool.bind(weth, 5 * BONE, 5 * BONE, weth_feed, sender=admin)
        pool.bind(dai, 200 * BONE, 5 * BONE, dai_feed, sender=admin)
        pool.finalize(sender=admin)
        pool.swap_exact_amount_in(weth, BONE, dai, 0, MAX, sender=trader)
    """

    def __init__(
        self,
        controller: str,
        *,
        registry: Registry | None = None,
        pricing: PricingOracle | None = None,
        config: PoolConfig = DEFAULT_POOL_CONFIG,
        clock: Callable[[], int] | None = None,
        audit_log: AuditLog | None = None,
        address: str | None = None,
    ) -> None:
        if address is None:
            address = derive_address("pool", id(self))
        self.address = normalize_address(address)
        self.controller = normalize_address(controller)
        self.registry = registry
        self.pricing: PricingOracle = pricing or MMMPricingOracle()
        self.config = config
        self.audit_log: AuditLog = audit_log if audit_log is not None else MemoryAuditLog()
        self._clock = clock or (lambda: int(time.time()))

        self.state = PoolState.CONFIGURING
        self.public_swap = False
        self.swap_fee = config.default_swap_fee
        self.coverage_fee_z = config.default_z
        self.coverage_fee_horizon = config.default_horizon
        self.lookback_rounds = config.default_lookback_rounds
        self.lookback_seconds = config.default_lookback_seconds

        self._tokens: list[str] = []
        self._records: dict[str, Record] = {}
        self._price_bindings: dict[str, PriceBinding] = {}
        self._contracts: dict[str, Token] = {}
        self._total_weight = 0

        self.shares = ShareLedger()
        self._guard = ReentrancyGuard()

    def __repr__(self) -> str:
        return f"Pool({self.address}, tokens={len(self._tokens)}, state={self.state.value})"

    # =========================================================================
    # Operation boundary
    # =========================================================================

    @contextmanager
    def _mutation(
        self,
        signature: str,
        sender: str,
        extra: Iterable[Token] = (),
        **args: Any,
    ) -> Iterator[list[PoolEvent]]:
        with self._guard.acquire():
            events: list[PoolEvent] = [
                call_event(self.address, signature, normalize_address(sender), **args)
            ]
            participants = [self, *self._contracts.values(), *extra]
            with Transaction(participants, name=signature) as tx:
                tx.on_commit(lambda: publish(self.audit_log, events))
                yield events

    def snapshot(self) -> dict[str, Any]:
        return {
            "tokens": list(self._tokens),
            "records": {addr: replace(record) for addr, record in self._records.items()},
            "price_bindings": dict(self._price_bindings),
            "contracts": dict(self._contracts),
            "total_weight": self._total_weight,
            "state": self.state,
            "public_swap": self.public_swap,
            "swap_fee": self.swap_fee,
            "controller": self.controller,
            "coverage_fee_z": self.coverage_fee_z,
            "coverage_fee_horizon": self.coverage_fee_horizon,
            "lookback_rounds": self.lookback_rounds,
            "lookback_seconds": self.lookback_seconds,
            "shares": self.shares.snapshot(),
        }

    def restore(self, state: dict[str, Any]) -> None:
        self._tokens = state["tokens"]
        self._records = state["records"]
        self._price_bindings = state["price_bindings"]
        self._contracts = state["contracts"]
        self._total_weight = state["total_weight"]
        self.state = state["state"]
        self.public_swap = state["public_swap"]
        self.swap_fee = state["swap_fee"]
        self.controller = state["controller"]
        self.coverage_fee_z = state["coverage_fee_z"]
        self.coverage_fee_horizon = state["coverage_fee_horizon"]
        self.lookback_rounds = state["lookback_rounds"]
        self.lookback_seconds = state["lookback_seconds"]
        self.shares.restore(state["shares"])

    # =========================================================================
    # Helpers
    # =========================================================================

    @property
    def fee_sink(self) -> str:
        """Account receiving exit fees."""
        return self.registry.address if self.registry is not None else self.controller

    def _is_paused(self) -> bool:
        return self.registry is not None and self.registry.is_paused()

    def _is_registry(self, sender: str) -> bool:
        return self.registry is not None and normalize_address(sender) == normalize_address(
            self.registry.address
        )

    def _require_admin(self, sender: str) -> None:
        """Controller while configuring, or the registry relay at any time."""
        if self._is_registry(sender):
            return
        require_controller(sender, self.controller)
        require_configuring(self.state)

    @staticmethod
    def _address_of(token: TokenRef) -> str:
        return normalize_address(token.address if isinstance(token, Token) else token)

    def _require_bound(self, token: TokenRef) -> str:
        addr = self._address_of(token)
        if addr not in self._records:
            raise StateError(Reason.NOT_BOUND, addr)
        return addr

    def _pull_underlying(self, addr: str, src: str, amount: int) -> None:
        if not self._contracts[addr].transfer_from(self.address, src, self.address, amount):
            raise TransferError(Reason.ERC20_FALSE, f"pull {amount} of {addr} from {src}")

    def _push_underlying(self, contract: Token, dst: str, amount: int) -> None:
        if not contract.transfer(self.address, dst, amount):
            raise TransferError(Reason.ERC20_FALSE, f"push {amount} of {contract.address} to {dst}")

    def _mint_pool_share(self, amount: int) -> None:
        self.shares.mint(self.address, amount)

    def _burn_pool_share(self, amount: int) -> None:
        self.shares.burn(self.address, amount)

    def _push_pool_share(self, dst: str, amount: int) -> None:
        self.shares.move(self.address, dst, amount)

    def _pull_pool_share(self, src: str, amount: int) -> None:
        self.shares.move(src, self.address, amount)

    def _exit_fee_on(self, amount: int) -> int:
        return Bfp(amount).mul(Bfp(self.config.exit_fee)).value

    # =========================================================================
    # Configuration
    # =========================================================================

    def set_swap_fee(self, swap_fee: int, *, sender: str) -> None:
        with self._mutation("set_swap_fee", sender, swap_fee=swap_fee):
            self._require_admin(sender)
            if swap_fee < self.config.min_fee:
                raise BoundError(Reason.MIN_FEE, str(swap_fee))
            if swap_fee > self.config.max_fee:
                raise BoundError(Reason.MAX_FEE, str(swap_fee))
            self.swap_fee = swap_fee

    def set_coverage_fee_z(self, z: int, *, sender: str) -> None:
        with self._mutation("set_coverage_fee_z", sender, z=z):
            self._require_admin(sender)
            if z < self.config.min_z:
                raise BoundError(Reason.MIN_Z, str(z))
            if z > self.config.max_z:
                raise BoundError(Reason.MAX_Z, str(z))
            self.coverage_fee_z = z

    def set_coverage_fee_horizon(self, horizon: int, *, sender: str) -> None:
        with self._mutation("set_coverage_fee_horizon", sender, horizon=horizon):
            self._require_admin(sender)
            if horizon < self.config.min_horizon:
                raise BoundError(Reason.MIN_HORIZON, str(horizon))
            if horizon > self.config.max_horizon:
                raise BoundError(Reason.MAX_HORIZON, str(horizon))
            self.coverage_fee_horizon = horizon

    def set_lookback_rounds(self, rounds: int, *, sender: str) -> None:
        with self._mutation("set_lookback_rounds", sender, rounds=rounds):
            self._require_admin(sender)
            if rounds < self.config.min_lookback_rounds:
                raise BoundError(Reason.MIN_LB_ROUNDS, str(rounds))
            if rounds > self.config.max_lookback_rounds:
                raise BoundError(Reason.MAX_LB_ROUNDS, str(rounds))
            self.lookback_rounds = rounds

    def set_lookback_seconds(self, seconds: int, *, sender: str) -> None:
        with self._mutation("set_lookback_seconds", sender, seconds=seconds):
            self._require_admin(sender)
            if seconds < self.config.min_lookback_seconds:
                raise BoundError(Reason.MIN_LB_SECS, str(seconds))
            if seconds > self.config.max_lookback_seconds:
                raise BoundError(Reason.MAX_LB_SECS, str(seconds))
            self.lookback_seconds = seconds

    def set_public_swap(self, public: bool, *, sender: str) -> None:
        with self._mutation("set_public_swap", sender, public=public):
            require_controller(sender, self.controller)
            require_configuring(self.state)
            self.public_swap = public

    def set_controller(self, manager: str, *, sender: str) -> None:
        # Allowed after finalization so that control can be handed over or renounced
        with self._mutation("set_controller", sender, manager=manager):
            require_controller(sender, self.controller)
            self.controller = normalize_address(manager)

    def finalize(self, *, sender: str) -> None:
        with self._mutation("finalize", sender):
            require_controller(sender, self.controller)
            require_configuring(self.state)
            if len(self._tokens) < self.config.min_bound_tokens:
                raise BoundError(Reason.MIN_TOKENS, f"{len(self._tokens)} bound")

            self.state = PoolState.FINALIZED
            self.public_swap = True

            self._mint_pool_share(self.config.init_pool_supply)
            self._push_pool_share(sender, self.config.init_pool_supply)

            logger.info("pool_finalized", pool=self.address, tokens=len(self._tokens))

    # =========================================================================
    # Binding lifecycle
    # =========================================================================

    def bind(
        self,
        token: Token,
        balance: int,
        denorm: int,
        oracle: PriceFeed,
        *,
        sender: str,
    ) -> None:
        """Bind a token with its initial balance, weight and price feed.

        The balance is pulled from the sender and the feed's current price
        becomes the token's performance baseline.
        """
        with self._mutation(
            "bind",
            sender,
            extra=[token],
            token=token.address,
            balance=balance,
            denorm=denorm,
            oracle=feed_label(oracle),
        ) as events:
            require_controller(sender, self.controller)
            require_configuring(self.state)
            addr = self._address_of(token)
            if addr in self._records:
                raise StateError(Reason.IS_BOUND, addr)
            if len(self._tokens) >= self.config.max_bound_tokens:
                raise BoundError(Reason.MAX_TOKENS, f"{len(self._tokens)} bound")

            self._records[addr] = Record(index=len(self._tokens), denorm=0, balance=0)
            self._tokens.append(addr)
            self._contracts[addr] = token
            self._rebind(addr, balance, denorm, oracle, sender, events)

            logger.info("token_bound", pool=self.address, token=addr, index=len(self._tokens) - 1)

    def rebind(
        self,
        token: TokenRef,
        balance: int,
        denorm: int,
        oracle: PriceFeed,
        *,
        sender: str,
    ) -> None:
        """Replace weight, balance and price feed of a bound token.

        Rebasing the feed resets the performance baseline to the feed's
        current price.
        """
        addr = self._address_of(token)
        with self._mutation(
            "rebind",
            sender,
            token=addr,
            balance=balance,
            denorm=denorm,
            oracle=feed_label(oracle),
        ) as events:
            require_controller(sender, self.controller)
            require_configuring(self.state)
            self._require_bound(addr)
            self._rebind(addr, balance, denorm, oracle, sender, events)

    def _rebind(
        self,
        addr: str,
        balance: int,
        denorm: int,
        oracle: PriceFeed,
        sender: str,
        events: list[PoolEvent],
    ) -> None:
        cfg = self.config
        if denorm < cfg.min_weight:
            raise BoundError(Reason.MIN_WEIGHT, str(denorm))
        if denorm > cfg.max_weight:
            raise BoundError(Reason.MAX_WEIGHT, str(denorm))
        if balance < cfg.min_balance:
            raise BoundError(Reason.MIN_BALANCE, str(balance))

        record = self._records[addr]

        # Adjust the total weight by the signed delta
        old_weight = record.denorm
        if denorm > old_weight:
            self._total_weight = Bfp(self._total_weight).add(Bfp(denorm - old_weight)).value
            if self._total_weight > cfg.max_total_weight:
                raise BoundError(Reason.MAX_TOTAL_WEIGHT, str(self._total_weight))
        elif denorm < old_weight:
            self._total_weight = Bfp(self._total_weight).sub(Bfp(old_weight - denorm)).value
        record.denorm = denorm

        old_balance = record.balance
        record.balance = balance

        initial_price = get_latest_price(oracle)
        self._price_bindings[addr] = PriceBinding(
            oracle=oracle, initial_price=initial_price, decimals=oracle.decimals()
        )
        events.append(
            OracleStateEvent(
                pool=self.address,
                token=addr,
                oracle=feed_label(oracle),
                initial_price=initial_price,
            )
        )

        if balance > old_balance:
            self._pull_underlying(addr, sender, balance - old_balance)
        elif balance < old_balance:
            withdrawn = old_balance - balance
            exit_fee = self._exit_fee_on(withdrawn)
            contract = self._contracts[addr]
            self._push_underlying(contract, sender, withdrawn - exit_fee)
            self._push_underlying(contract, self.fee_sink, exit_fee)

    def unbind(self, token: TokenRef, *, sender: str) -> None:
        """Remove a token, returning its balance (minus exit fee) to the sender.

        The last token takes the removed token's slot, so ``tokens`` stays
        dense but its order changes.
        """
        addr = self._address_of(token)
        with self._mutation("unbind", sender, token=addr):
            require_controller(sender, self.controller)
            require_configuring(self.state)
            self._require_bound(addr)

            record = self._records[addr]
            token_balance = record.balance
            exit_fee = self._exit_fee_on(token_balance)

            self._total_weight = Bfp(self._total_weight).sub(Bfp(record.denorm)).value

            # Swap with the last token and truncate
            index = record.index
            last = self._tokens[-1]
            self._tokens[index] = last
            self._records[last].index = index
            self._tokens.pop()
            del self._records[addr]
            del self._price_bindings[addr]
            contract = self._contracts.pop(addr)

            self._push_underlying(contract, sender, token_balance - exit_fee)
            self._push_underlying(contract, self.fee_sink, exit_fee)

            logger.info("token_unbound", pool=self.address, token=addr)

    def gulp(self, token: TokenRef, *, sender: str) -> None:
        """Absorb the token's real balance into the accounted balance."""
        addr = self._address_of(token)
        with self._mutation("gulp", sender, token=addr):
            self._require_bound(addr)
            self._records[addr].balance = self._contracts[addr].balance_of(self.address)

    # =========================================================================
    # Liquidity
    # =========================================================================

    def join_pool(self, shares_out: int, max_amounts_in: Sequence[int], *, sender: str) -> None:
        """Buy ``shares_out`` pool shares with a proportional amount of every token."""
        with self._mutation(
            "join_pool", sender, shares_out=shares_out, max_amounts_in=tuple(max_amounts_in)
        ) as events:
            require_finalized(self.state)
            require_not_paused(self._is_paused())
            if len(max_amounts_in) != len(self._tokens):
                raise BoundError(Reason.ARRAY_LENGTH, f"{len(max_amounts_in)} limits")

            ratio = Bfp(shares_out).div(Bfp(self.shares.total_supply()))
            if ratio.value == 0:
                raise ApproximationError(Reason.MATH_APPROX, "share ratio rounds to zero")

            amounts: list[tuple[str, int]] = []
            for addr, limit in zip(self._tokens, max_amounts_in):
                amount = ratio.mul(Bfp(self._records[addr].balance)).value
                if amount == 0:
                    raise ApproximationError(Reason.MATH_APPROX, f"zero amount of {addr}")
                if amount > limit:
                    raise LimitError(Reason.LIMIT_IN, f"{amount} of {addr} > {limit}")
                amounts.append((addr, amount))

            for addr, amount in amounts:
                record = self._records[addr]
                record.balance = Bfp(record.balance).add(Bfp(amount)).value
                events.append(
                    JoinEvent(
                        pool=self.address,
                        caller=normalize_address(sender),
                        token_in=addr,
                        amount_in=amount,
                    )
                )

            for addr, amount in amounts:
                self._pull_underlying(addr, sender, amount)

            self._mint_pool_share(shares_out)
            self._push_pool_share(sender, shares_out)

    def exit_pool(self, shares_in: int, min_amounts_out: Sequence[int], *, sender: str) -> None:
        """Redeem ``shares_in`` pool shares for a proportional amount of every token."""
        with self._mutation(
            "exit_pool", sender, shares_in=shares_in, min_amounts_out=tuple(min_amounts_out)
        ) as events:
            require_finalized(self.state)
            if len(min_amounts_out) != len(self._tokens):
                raise BoundError(Reason.ARRAY_LENGTH, f"{len(min_amounts_out)} limits")

            exit_fee = self._exit_fee_on(shares_in)
            shares_after_fee = shares_in - exit_fee
            ratio = Bfp(shares_after_fee).div(Bfp(self.shares.total_supply()))
            if ratio.value == 0:
                raise ApproximationError(Reason.MATH_APPROX, "share ratio rounds to zero")

            amounts: list[tuple[str, int]] = []
            for addr, limit in zip(self._tokens, min_amounts_out):
                amount = ratio.mul(Bfp(self._records[addr].balance)).value
                if amount == 0:
                    raise ApproximationError(Reason.MATH_APPROX, f"zero amount of {addr}")
                if amount < limit:
                    raise LimitError(Reason.LIMIT_OUT, f"{amount} of {addr} < {limit}")
                amounts.append((addr, amount))

            self._pull_pool_share(sender, shares_in)
            self._push_pool_share(self.fee_sink, exit_fee)
            self._burn_pool_share(shares_after_fee)

            for addr, amount in amounts:
                record = self._records[addr]
                record.balance = Bfp(record.balance).sub(Bfp(amount)).value
                events.append(
                    ExitEvent(
                        pool=self.address,
                        caller=normalize_address(sender),
                        token_out=addr,
                        amount_out=amount,
                    )
                )

            for addr, amount in amounts:
                self._push_underlying(self._contracts[addr], sender, amount)

    # =========================================================================
    # Swap engine
    # =========================================================================

    def _token_global(self, addr: str) -> TokenGlobal:
        """Accounted balance, effective weight and latest round of a bound token.

        Effective weight = denorm * latest_price / initial_price. A zero or
        negative feed price yields a zero weight.
        """
        record = self._records[addr]
        binding = self._price_bindings[addr]
        latest = get_latest_round(binding.oracle)
        current = _rescale(max(latest.price, 0), latest.decimals, binding.decimals)
        weight = Bfp(record.denorm).mul(performance_ratio(current, binding.initial_price))
        info = TokenInfo(balance=Bfp(record.balance), weight=weight)
        return TokenGlobal(info=info, latest_round=latest)

    def _gbm_parameters(self) -> GBMParameters:
        return GBMParameters(z=Bfp(self.coverage_fee_z), horizon=Bfp(self.coverage_fee_horizon))

    def _history_parameters(self) -> HistoricalPriceParameters:
        return HistoricalPriceParameters(
            lookback_rounds=self.lookback_rounds,
            lookback_seconds=self.lookback_seconds,
            timestamp=self._clock(),
        )

    def _pair(self, token_in: TokenRef, token_out: TokenRef) -> tuple[str, str]:
        addr_in = self._require_bound(token_in)
        addr_out = self._require_bound(token_out)
        if addr_in == addr_out:
            raise BoundError(Reason.SAME_TOKEN, addr_in)
        return addr_in, addr_out

    def _declared_info(self, addr: str) -> TokenInfo:
        record = self._records[addr]
        return TokenInfo(balance=Bfp(record.balance), weight=Bfp(record.denorm))

    def _declared_spot_price(self, addr_in: str, addr_out: str, fee: Bfp) -> Bfp:
        """Spot price from accounted balances and declared weights."""
        return self.pricing.spot_price(
            self._declared_info(addr_in), self._declared_info(addr_out), fee
        )

    def _check_in_ratio(self, addr_in: str, amount_in: int) -> None:
        balance_in = self._records[addr_in].balance
        if amount_in > Bfp(balance_in).mul(Bfp(self.config.max_in_ratio)).value:
            raise BoundError(Reason.MAX_IN_RATIO, f"{amount_in} > ratio of {balance_in}")

    def _check_out_ratio(self, addr_out: str, amount_out: int) -> None:
        balance_out = self._records[addr_out].balance
        if amount_out > Bfp(balance_out).mul(Bfp(self.config.max_out_ratio)).value:
            raise BoundError(Reason.MAX_OUT_RATIO, f"{amount_out} > ratio of {balance_out}")

    def _quote_out_given_in(self, addr_in: str, addr_out: str, amount_in: int) -> SwapQuote:
        """Pricing oracle quote on effective weights."""
        g_in = self._token_global(addr_in)
        g_out = self._token_global(addr_out)
        fee = Bfp(self.swap_fee)
        return self.pricing.out_given_in(
            g_in,
            g_out,
            Bfp(relative_price(g_in.latest_round, g_out.latest_round)),
            SwapParameters(amount=Bfp(amount_in), fee=fee),
            self._gbm_parameters(),
            self._history_parameters(),
        )

    def _quote_in_given_out(self, addr_in: str, addr_out: str, amount_out: int) -> SwapQuote:
        g_in = self._token_global(addr_in)
        g_out = self._token_global(addr_out)
        fee = Bfp(self.swap_fee)
        return self.pricing.in_given_out(
            g_in,
            g_out,
            Bfp(relative_price(g_in.latest_round, g_out.latest_round)),
            SwapParameters(amount=Bfp(amount_out), fee=fee),
            self._gbm_parameters(),
            self._history_parameters(),
        )

    def _apply_and_verify(
        self,
        addr_in: str,
        addr_out: str,
        amount_in: int,
        amount_out: int,
        spot_before: Bfp,
        max_price: int,
    ) -> Bfp:
        if amount_out == 0:
            raise ApproximationError(Reason.MATH_APPROX, "swap output rounds to zero")

        record_in = self._records[addr_in]
        record_out = self._records[addr_out]
        record_in.balance = Bfp(record_in.balance).add(Bfp(amount_in)).value
        record_out.balance = Bfp(record_out.balance).sub(Bfp(amount_out)).value

        spot_after = self._declared_spot_price(addr_in, addr_out, Bfp(self.swap_fee))
        if spot_after < spot_before:
            raise ApproximationError(Reason.MATH_APPROX, "spot price decreased")
        if spot_after.value > max_price:
            raise LimitError(Reason.LIMIT_PRICE, f"{spot_after.value} > {max_price}")
        if spot_before > Bfp(amount_in).div(Bfp(amount_out)):
            raise ApproximationError(Reason.MATH_APPROX, "effective price below spot price")
        return spot_after

    def swap_exact_amount_in(
        self,
        token_in: TokenRef,
        amount_in: int,
        token_out: TokenRef,
        min_amount_out: int,
        max_price: int,
        *,
        sender: str,
    ) -> tuple[int, int]:
        """Sell exactly ``amount_in`` of token_in.

        Returns:
            Tuple of (amount_out, spot_price_after)

        Raises:
            LimitError: If the output is below ``min_amount_out`` or the spot
                price before/after exceeds ``max_price``
            ApproximationError: If a post-trade consistency check fails
        """
        with self._mutation(
            "swap_exact_amount_in",
            sender,
            token_in=self._address_of(token_in),
            amount_in=amount_in,
            token_out=self._address_of(token_out),
            min_amount_out=min_amount_out,
            max_price=max_price,
        ) as events:
            addr_in, addr_out = self._pair(token_in, token_out)
            require_public_swap(self.public_swap)
            require_not_paused(self._is_paused())

            self._check_in_ratio(addr_in, amount_in)

            spot_before = self._declared_spot_price(addr_in, addr_out, Bfp(self.swap_fee))
            if spot_before.value > max_price:
                raise LimitError(Reason.BAD_LIMIT_PRICE, f"{spot_before.value} > {max_price}")
            quote = self._quote_out_given_in(addr_in, addr_out, amount_in)

            amount_out = quote.amount.value
            if amount_out < min_amount_out:
                raise LimitError(Reason.LIMIT_OUT, f"{amount_out} < {min_amount_out}")

            spot_after = self._apply_and_verify(
                addr_in, addr_out, amount_in, amount_out, spot_before, max_price
            )

            events.append(
                SwapEvent(
                    pool=self.address,
                    caller=normalize_address(sender),
                    token_in=addr_in,
                    token_out=addr_out,
                    amount_in=amount_in,
                    amount_out=amount_out,
                    spread=quote.spread.value,
                )
            )

            self._pull_underlying(addr_in, sender, amount_in)
            self._push_underlying(self._contracts[addr_out], sender, amount_out)

        return amount_out, spot_after.value

    def swap_exact_amount_out(
        self,
        token_in: TokenRef,
        max_amount_in: int,
        token_out: TokenRef,
        amount_out: int,
        max_price: int,
        *,
        sender: str,
    ) -> tuple[int, int]:
        """Buy exactly ``amount_out`` of token_out.

        Returns:
            Tuple of (amount_in, spot_price_after)
        """
        with self._mutation(
            "swap_exact_amount_out",
            sender,
            token_in=self._address_of(token_in),
            max_amount_in=max_amount_in,
            token_out=self._address_of(token_out),
            amount_out=amount_out,
            max_price=max_price,
        ) as events:
            addr_in, addr_out = self._pair(token_in, token_out)
            require_public_swap(self.public_swap)
            require_not_paused(self._is_paused())

            self._check_out_ratio(addr_out, amount_out)

            spot_before = self._declared_spot_price(addr_in, addr_out, Bfp(self.swap_fee))
            if spot_before.value > max_price:
                raise LimitError(Reason.BAD_LIMIT_PRICE, f"{spot_before.value} > {max_price}")
            quote = self._quote_in_given_out(addr_in, addr_out, amount_out)

            amount_in = quote.amount.value
            if amount_in > max_amount_in:
                raise LimitError(Reason.LIMIT_IN, f"{amount_in} > {max_amount_in}")

            spot_after = self._apply_and_verify(
                addr_in, addr_out, amount_in, amount_out, spot_before, max_price
            )

            events.append(
                SwapEvent(
                    pool=self.address,
                    caller=normalize_address(sender),
                    token_in=addr_in,
                    token_out=addr_out,
                    amount_in=amount_in,
                    amount_out=amount_out,
                    spread=quote.spread.value,
                )
            )

            self._pull_underlying(addr_in, sender, amount_in)
            self._push_underlying(self._contracts[addr_out], sender, amount_out)

        return amount_in, spot_after.value

    # =========================================================================
    # Views
    # =========================================================================

    @property
    def tokens(self) -> tuple[str, ...]:
        self._guard.check()
        return tuple(self._tokens)

    @property
    def records(self) -> MappingProxyType[str, Record]:
        self._guard.check()
        return MappingProxyType({addr: replace(r) for addr, r in self._records.items()})

    @property
    def price_bindings(self) -> MappingProxyType[str, PriceBinding]:
        self._guard.check()
        return MappingProxyType(dict(self._price_bindings))

    @property
    def total_weight(self) -> int:
        self._guard.check()
        return self._total_weight

    @property
    def finalized(self) -> bool:
        self._guard.check()
        return self.state is PoolState.FINALIZED

    def is_public_swap(self) -> bool:
        self._guard.check()
        return self.public_swap

    def is_finalized(self) -> bool:
        return self.finalized

    def is_bound(self, token: TokenRef) -> bool:
        self._guard.check()
        return self._address_of(token) in self._records

    def get_num_tokens(self) -> int:
        self._guard.check()
        return len(self._tokens)

    def get_current_tokens(self) -> list[str]:
        self._guard.check()
        return list(self._tokens)

    def get_final_tokens(self) -> list[str]:
        self._guard.check()
        require_finalized(self.state)
        return list(self._tokens)

    def get_denormalized_weight(self, token: TokenRef) -> int:
        self._guard.check()
        return self._records[self._require_bound(token)].denorm

    def get_denormalized_weight_mmm(self, token: TokenRef) -> int:
        """Effective weight: declared weight scaled by price performance since binding."""
        self._guard.check()
        return self._token_global(self._require_bound(token)).info.weight.value

    def get_total_denormalized_weight(self) -> int:
        self._guard.check()
        return self._total_weight

    def get_normalized_weight(self, token: TokenRef) -> int:
        self._guard.check()
        denorm = self._records[self._require_bound(token)].denorm
        return Bfp(denorm).div(Bfp(self._total_weight)).value

    def get_balance(self, token: TokenRef) -> int:
        self._guard.check()
        return self._records[self._require_bound(token)].balance

    def get_swap_fee(self) -> int:
        self._guard.check()
        return self.swap_fee

    def get_controller(self) -> str:
        self._guard.check()
        return self.controller

    def get_token_oracle(self, token: TokenRef) -> PriceFeed:
        self._guard.check()
        return self._price_bindings[self._require_bound(token)].oracle

    def get_token_oracle_initial_price(self, token: TokenRef) -> int:
        self._guard.check()
        return self._price_bindings[self._require_bound(token)].initial_price

    def get_token_price_decimals(self, token: TokenRef) -> int:
        self._guard.check()
        return self._price_bindings[self._require_bound(token)].decimals

    def get_coverage_parameters(self) -> dict[str, int]:
        self._guard.check()
        return {
            "z": self.coverage_fee_z,
            "horizon": self.coverage_fee_horizon,
            "lookback_rounds": self.lookback_rounds,
            "lookback_seconds": self.lookback_seconds,
        }

    def get_spot_price(self, token_in: TokenRef, token_out: TokenRef) -> int:
        """Spot price on declared weights, as checked against a swap's ``max_price``."""
        self._guard.check()
        addr_in, addr_out = self._pair(token_in, token_out)
        return self._declared_spot_price(addr_in, addr_out, Bfp(self.swap_fee)).value

    def get_spot_price_sans_fee(self, token_in: TokenRef, token_out: TokenRef) -> int:
        self._guard.check()
        addr_in, addr_out = self._pair(token_in, token_out)
        return self._declared_spot_price(addr_in, addr_out, Bfp(0)).value

    def get_amount_out_given_in_mmm(
        self, token_in: TokenRef, amount_in: int, token_out: TokenRef
    ) -> tuple[int, int]:
        """Quote an exact-in swap without executing it.

        Returns:
            Tuple of (amount_out, spread)
        """
        self._guard.check()
        addr_in, addr_out = self._pair(token_in, token_out)
        self._check_in_ratio(addr_in, amount_in)
        quote = self._quote_out_given_in(addr_in, addr_out, amount_in)
        return quote.amount.value, quote.spread.value

    def get_amount_in_given_out_mmm(
        self, token_in: TokenRef, token_out: TokenRef, amount_out: int
    ) -> tuple[int, int]:
        """Quote an exact-out swap without executing it.

        Returns:
            Tuple of (amount_in, spread)
        """
        self._guard.check()
        addr_in, addr_out = self._pair(token_in, token_out)
        self._check_out_ratio(addr_out, amount_out)
        quote = self._quote_in_given_out(addr_in, addr_out, amount_out)
        return quote.amount.value, quote.spread.value
