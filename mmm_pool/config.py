"""Pool configuration."""

from dataclasses import dataclass

from mmm_pool.constants import (
    BASE_HORIZON,
    BASE_LOOKBACK_IN_ROUND,
    BASE_LOOKBACK_IN_SEC,
    BASE_Z,
    EXIT_FEE,
    INIT_POOL_SUPPLY,
    MAX_BOUND_TOKENS,
    MAX_FEE,
    MAX_HORIZON,
    MAX_IN_RATIO,
    MAX_LOOKBACK_IN_ROUND,
    MAX_LOOKBACK_IN_SEC,
    MAX_OUT_RATIO,
    MAX_TOTAL_WEIGHT,
    MAX_WEIGHT,
    MAX_Z,
    MIN_BALANCE,
    MIN_BOUND_TOKENS,
    MIN_FEE,
    MIN_HORIZON,
    MIN_LOOKBACK_IN_ROUND,
    MIN_LOOKBACK_IN_SEC,
    MIN_WEIGHT,
    MIN_Z,
)


@dataclass(frozen=True)
class PoolConfig:
    """Centralized bounds and defaults for a pool.

    A pool reads every limit from its config, so tests can exercise
    different bounds without patching module constants. Fixed-point values
    use 18 decimals.

    Attributes:
        min_bound_tokens: Tokens required before finalize()
        max_bound_tokens: Capacity of the pool
        min_weight / max_weight: Per-token denormalized weight bounds
        max_total_weight: Upper bound for the sum of denormalized weights
        min_balance: Smallest balance a token may be bound with
        min_fee / max_fee: Swap fee bounds
        exit_fee: Fee charged on withdrawals, routed to the factory
        init_pool_supply: Shares minted to the finalizer
        max_in_ratio / max_out_ratio: Single-swap caps relative to balances
        default_swap_fee: Swap fee of a new pool
        default_z / default_horizon: Coverage fee parameters of a new pool
        default_lookback_rounds / default_lookback_seconds: Lookback window
            of a new pool
    """

    min_bound_tokens: int = MIN_BOUND_TOKENS
    max_bound_tokens: int = MAX_BOUND_TOKENS
    min_weight: int = MIN_WEIGHT
    max_weight: int = MAX_WEIGHT
    max_total_weight: int = MAX_TOTAL_WEIGHT
    min_balance: int = MIN_BALANCE
    min_fee: int = MIN_FEE
    max_fee: int = MAX_FEE
    exit_fee: int = EXIT_FEE
    init_pool_supply: int = INIT_POOL_SUPPLY
    max_in_ratio: int = MAX_IN_RATIO
    max_out_ratio: int = MAX_OUT_RATIO

    min_z: int = MIN_Z
    max_z: int = MAX_Z
    min_horizon: int = MIN_HORIZON
    max_horizon: int = MAX_HORIZON
    min_lookback_rounds: int = MIN_LOOKBACK_IN_ROUND
    max_lookback_rounds: int = MAX_LOOKBACK_IN_ROUND
    min_lookback_seconds: int = MIN_LOOKBACK_IN_SEC
    max_lookback_seconds: int = MAX_LOOKBACK_IN_SEC

    default_swap_fee: int = MIN_FEE
    default_z: int = BASE_Z
    default_horizon: int = BASE_HORIZON
    default_lookback_rounds: int = BASE_LOOKBACK_IN_ROUND
    default_lookback_seconds: int = BASE_LOOKBACK_IN_SEC


# Default configuration instance
DEFAULT_POOL_CONFIG = PoolConfig()
