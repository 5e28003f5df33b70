"""Price feeds and oracle aggregation.

This package provides:
- PriceFeed: protocol for external price feeds, plus in-memory feeds
- Round and the aggregation helpers used by pools to read and compare prices
"""

from mmm_pool.oracle.aggregator import (
    Round,
    get_historical_round,
    get_latest_price,
    get_latest_round,
    get_previous_round,
    performance_ratio,
    previous_relative_price,
    relative_price,
)
from mmm_pool.oracle.feeds import (
    ConstantPriceFeed,
    HistoricalPriceFeed,
    PriceFeed,
    RoundNotFound,
)

__all__ = [
    # Feeds
    "PriceFeed",
    "ConstantPriceFeed",
    "HistoricalPriceFeed",
    "RoundNotFound",
    # Aggregation
    "Round",
    "get_latest_round",
    "get_latest_price",
    "get_historical_round",
    "get_previous_round",
    "relative_price",
    "previous_relative_price",
    "performance_ratio",
]
