"""Pool ledger records.

Data structures for the per-token accounting kept by a pool.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mmm_pool.oracle.feeds import PriceFeed


class PoolState(str, Enum):
    """Pool lifecycle. FINALIZED is a one-way latch."""

    CONFIGURING = "configuring"
    FINALIZED = "finalized"


@dataclass
class Record:
    """Accounting record for a bound token.

    Attributes:
        index: Position of the token in the pool's token list
        denorm: Declared (denormalized) weight, 18-decimal fixed point
        balance: Accounted balance, 18-decimal fixed point. Tracks the real
            token balance; reconciled with gulp().
    """

    index: int
    denorm: int
    balance: int


@dataclass(frozen=True)
class PriceBinding:
    """Oracle binding for a token.

    Attributes:
        oracle: Price feed for the token
        initial_price: Feed price captured at bind/rebind time, the
            performance baseline for the effective weight
        decimals: Feed decimals captured at bind/rebind time
    """

    oracle: PriceFeed
    initial_price: int
    decimals: int
