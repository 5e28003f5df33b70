"""Pool error classes.

Every failure carries a reason code. Codes follow the on-chain convention
(``ERR_*``) so that callers and log readers can match on them directly.
"""

from __future__ import annotations

from enum import Enum


class Reason(str, Enum):
    """Distinguishing reason codes for pool failures."""

    # Authorization
    NOT_CONTROLLER = "ERR_NOT_CONTROLLER"
    NOT_LABS = "ERR_NOT_LABS"
    BAD_CALLER = "ERR_BAD_CALLER"

    # Lifecycle / state gate
    IS_FINALIZED = "ERR_IS_FINALIZED"
    NOT_FINALIZED = "ERR_NOT_FINALIZED"
    IS_BOUND = "ERR_IS_BOUND"
    NOT_BOUND = "ERR_NOT_BOUND"
    REENTRY = "ERR_REENTRY"
    SWAP_NOT_PUBLIC = "ERR_SWAP_NOT_PUBLIC"
    PAUSED = "ERR_PAUSED"
    NOT_POOL = "ERR_NOT_POOL"
    NO_PRICE = "ERR_NO_PRICE"

    # Numeric bounds
    MIN_TOKENS = "ERR_MIN_TOKENS"
    MAX_TOKENS = "ERR_MAX_TOKENS"
    MIN_WEIGHT = "ERR_MIN_WEIGHT"
    MAX_WEIGHT = "ERR_MAX_WEIGHT"
    MAX_TOTAL_WEIGHT = "ERR_MAX_TOTAL_WEIGHT"
    MIN_BALANCE = "ERR_MIN_BALANCE"
    MIN_FEE = "ERR_MIN_FEE"
    MAX_FEE = "ERR_MAX_FEE"
    MIN_Z = "ERR_MIN_Z"
    MAX_Z = "ERR_MAX_Z"
    MIN_HORIZON = "ERR_MIN_HORIZON"
    MAX_HORIZON = "ERR_MAX_HORIZON"
    MIN_LB_ROUNDS = "ERR_MIN_LB_ROUNDS"
    MAX_LB_ROUNDS = "ERR_MAX_LB_ROUNDS"
    MIN_LB_SECS = "ERR_MIN_LB_SECS"
    MAX_LB_SECS = "ERR_MAX_LB_SECS"
    MAX_IN_RATIO = "ERR_MAX_IN_RATIO"
    MAX_OUT_RATIO = "ERR_MAX_OUT_RATIO"
    ARRAY_LENGTH = "ERR_ARRAY_LENGTH"
    ZERO_WEIGHT = "ERR_ZERO_WEIGHT"
    ZERO_BALANCE = "ERR_ZERO_BALANCE"
    SAME_TOKEN = "ERR_SAME_TOKEN"

    # Slippage / limits
    BAD_LIMIT_PRICE = "ERR_BAD_LIMIT_PRICE"
    LIMIT_IN = "ERR_LIMIT_IN"
    LIMIT_OUT = "ERR_LIMIT_OUT"
    LIMIT_PRICE = "ERR_LIMIT_PRICE"

    # Approximation
    MATH_APPROX = "ERR_MATH_APPROX"

    # Transfers
    ERC20_FALSE = "ERR_ERC20_FALSE"
    INSUFFICIENT_BAL = "ERR_INSUFFICIENT_BAL"
    NULL_ADDRESS = "ERR_NULL_ADDRESS"

    # Fixed-point arithmetic
    ADD_OVERFLOW = "ERR_ADD_OVERFLOW"
    SUB_UNDERFLOW = "ERR_SUB_UNDERFLOW"
    MUL_OVERFLOW = "ERR_MUL_OVERFLOW"
    DIV_ZERO = "ERR_DIV_ZERO"
    BPOW_BASE_TOO_LOW = "ERR_BPOW_BASE_TOO_LOW"
    BPOW_BASE_TOO_HIGH = "ERR_BPOW_BASE_TOO_HIGH"


class PoolError(Exception):
    """Base error for pool operations.

    Attributes:
        reason: Reason code identifying the failed check
    """

    def __init__(self, reason: Reason, detail: str | None = None) -> None:
        self.reason = reason
        self.detail = detail
        message = reason.value if detail is None else f"{reason.value}: {detail}"
        super().__init__(message)


class AuthorizationError(PoolError):
    """Caller is not the controller or the registry authority."""

    pass


class StateError(PoolError):
    """Operation is invalid in the current lifecycle or guard state."""

    pass


class BoundError(PoolError):
    """Numeric input outside its configured min/max."""

    pass


class LimitError(PoolError):
    """Computed amount or price is worse than the caller's limit."""

    pass


class ApproximationError(PoolError):
    """A ratio or amount rounds to zero, or a post-trade check failed."""

    pass


class TransferError(PoolError):
    """An external token or share transfer reported failure."""

    pass


class ArithmeticFailure(PoolError):
    """Fixed-point overflow, underflow or division by zero."""

    pass
