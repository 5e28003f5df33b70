"""Pool registry.

The factory creates pools, remembers which addresses it created, receives
their exit fees, and lets its ``labs`` account relay fee and coverage
parameter changes to any registered pool. It can also pause swaps and
joins across every pool it created.
"""

from __future__ import annotations

import os
from collections.abc import Callable

import structlog

from mmm_pool.config import DEFAULT_POOL_CONFIG, PoolConfig
from mmm_pool.constants import NULL_ADDRESS
from mmm_pool.errors import AuthorizationError, Reason, StateError
from mmm_pool.events import AuditLog
from mmm_pool.models.types import derive_address, normalize_address
from mmm_pool.pool import Pool
from mmm_pool.pricing.base import PricingOracle

logger = structlog.get_logger()


class Factory:
    """Creates and administers MMM pools.

    Usage:
        factory = Factory(labs=admin)
        pool = factory.new_pool(sender=controller)
        factory.set_pool_swap_fee(pool.address, 3 * 10**15, sender=admin)
    """

    def __init__(
        self,
        labs: str,
        *,
        config: PoolConfig = DEFAULT_POOL_CONFIG,
        pricing_factory: Callable[[], PricingOracle] | None = None,
        clock: Callable[[], int] | None = None,
        audit_log: AuditLog | None = None,
        address: str | None = None,
    ) -> None:
        if address is None:
            address = derive_address("factory", id(self))
        self.address = normalize_address(address)
        self._labs = normalize_address(labs)
        self.config = config
        self._pricing_factory = pricing_factory
        self._clock = clock
        self._audit_log = audit_log
        self._pools: dict[str, Pool] = {}
        self._paused = False

    def __repr__(self) -> str:
        return f"Factory({self.address}, pools={len(self._pools)})"

    # --- Registry ---

    def new_pool(self, *, sender: str) -> Pool:
        """Create a pool controlled by ``sender`` and register it."""
        pool = Pool(
            controller=sender,
            registry=self,
            pricing=self._pricing_factory() if self._pricing_factory else None,
            config=self.config,
            clock=self._clock,
            audit_log=self._audit_log,
        )
        self._pools[pool.address] = pool
        logger.info("pool_created", factory=self.address, pool=pool.address, caller=sender)
        return pool

    def is_pool(self, address: str) -> bool:
        return normalize_address(address) in self._pools

    def get_pool(self, address: str) -> Pool:
        """Look up a registered pool.

        Raises:
            StateError: If the address was not created by this factory
        """
        pool = self._pools.get(normalize_address(address))
        if pool is None:
            raise StateError(Reason.NOT_POOL, address)
        return pool

    @property
    def pools(self) -> tuple[Pool, ...]:
        return tuple(self._pools.values())

    # --- Labs administration ---

    def _require_labs(self, sender: str) -> None:
        if normalize_address(sender) != self._labs:
            raise AuthorizationError(Reason.NOT_LABS, f"{sender} is not labs")

    def get_labs(self) -> str:
        return self._labs

    def set_labs(self, labs: str, *, sender: str) -> None:
        self._require_labs(sender)
        self._labs = normalize_address(labs)
        logger.info("labs_changed", factory=self.address, labs=self._labs)

    def is_paused(self) -> bool:
        return self._paused

    def set_paused(self, paused: bool, *, sender: str) -> None:
        """Pause or resume swaps and joins on every registered pool."""
        self._require_labs(sender)
        self._paused = paused
        logger.info("factory_paused" if paused else "factory_resumed", factory=self.address)

    def collect(self, pool_address: str, *, sender: str) -> int:
        """Move the exit-fee shares held by the factory to labs.

        Returns:
            Amount of pool shares collected
        """
        self._require_labs(sender)
        pool = self.get_pool(pool_address)
        collected = pool.shares.balance_of(self.address)
        pool.shares.transfer(self.address, self._labs, collected)
        logger.info("fees_collected", pool=pool.address, amount=collected, labs=self._labs)
        return collected

    # --- Relayed pool configuration ---

    def set_pool_swap_fee(self, pool_address: str, swap_fee: int, *, sender: str) -> None:
        self._require_labs(sender)
        self.get_pool(pool_address).set_swap_fee(swap_fee, sender=self.address)

    def set_pool_coverage_fee_z(self, pool_address: str, z: int, *, sender: str) -> None:
        self._require_labs(sender)
        self.get_pool(pool_address).set_coverage_fee_z(z, sender=self.address)

    def set_pool_coverage_fee_horizon(
        self, pool_address: str, horizon: int, *, sender: str
    ) -> None:
        self._require_labs(sender)
        self.get_pool(pool_address).set_coverage_fee_horizon(horizon, sender=self.address)

    def set_pool_lookback_rounds(self, pool_address: str, rounds: int, *, sender: str) -> None:
        self._require_labs(sender)
        self.get_pool(pool_address).set_lookback_rounds(rounds, sender=self.address)

    def set_pool_lookback_seconds(self, pool_address: str, seconds: int, *, sender: str) -> None:
        self._require_labs(sender)
        self.get_pool(pool_address).set_lookback_seconds(seconds, sender=self.address)


_default_factory: Factory | None = None


def get_default_factory() -> Factory:
    """Process-wide factory served by the HTTP API.

    Labs is taken from ``MMM_POOL_LABS`` (default: the null address, so no
    caller can administer pools until it is set).
    """
    global _default_factory
    if _default_factory is None:
        _default_factory = Factory(labs=os.environ.get("MMM_POOL_LABS", NULL_ADDRESS))
    return _default_factory
