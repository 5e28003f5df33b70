"""Oracle price aggregation.

Translates raw feed readings into pool-usable prices:

1. Latest and historical rounds, with historical lookups that never fail
   (a missing round becomes the "unavailable" sentinel: price 0, timestamp 0)
2. Relative price of one token in units of another, normalising feed decimals
3. The previous relative price, aligning rounds of feeds that update at
   different cadences
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from mmm_pool.errors import Reason, StateError
from mmm_pool.math.fixed_point import Bfp
from mmm_pool.oracle.feeds import PriceFeed, RoundNotFound

logger = structlog.get_logger()


@dataclass(frozen=True)
class Round:
    """A single feed round.

    Attributes:
        oracle: Feed the round was read from
        round_id: Round number within the feed
        price: Signed feed answer (``decimals`` decimals)
        timestamp: Update time in seconds; 0 when unavailable
        decimals: Feed decimals
    """

    oracle: PriceFeed
    round_id: int
    price: int
    timestamp: int
    decimals: int

    @property
    def is_available(self) -> bool:
        return self.price != 0

    def with_data(self, round_id: int, price: int, timestamp: int) -> Round:
        return Round(self.oracle, round_id, price, timestamp, self.decimals)


def _read_latest(oracle: PriceFeed) -> tuple[int, int, int]:
    try:
        return oracle.latest_round()
    except RoundNotFound as exc:
        raise StateError(Reason.NO_PRICE, str(exc)) from exc


def get_latest_round(oracle: PriceFeed) -> Round:
    """Read the latest round of a feed.

    Raises:
        StateError: ERR_NO_PRICE if the feed has published no round
    """
    round_id, price, timestamp = _read_latest(oracle)
    return Round(oracle, round_id, price, timestamp, oracle.decimals())


def get_latest_price(oracle: PriceFeed) -> int:
    """Latest feed answer, with negative answers treated as zero."""
    _, price, _ = _read_latest(oracle)
    return max(price, 0)


def get_historical_round(oracle: PriceFeed, round_id: int) -> tuple[int, int]:
    """Fetch (price, timestamp) of a historical round.

    Any failure (including an unknown round) returns (0, 0) so that callers
    can treat a zero price as unavailable.
    """
    if round_id <= 0:
        return 0, 0
    try:
        return oracle.get_round(round_id)
    except Exception as exc:  # any feed failure means "no data"
        logger.debug(
            "historical_round_unavailable",
            round_id=round_id,
            error=type(exc).__name__,
        )
        return 0, 0


def get_previous_round(latest: Round) -> Round:
    """The round before ``latest`` (sentinel data when unavailable)."""
    price, timestamp = get_historical_round(latest.oracle, latest.round_id - 1)
    return latest.with_data(latest.round_id - 1, price, timestamp)


def _relative_price(price_1: int, decimals_1: int, price_2: int, decimals_2: int) -> int:
    p1 = abs(price_1)
    p2 = abs(price_2)
    if decimals_1 > decimals_2:
        p2 *= 10 ** (decimals_1 - decimals_2)
    elif decimals_2 > decimals_1:
        p1 *= 10 ** (decimals_2 - decimals_1)
    if p1 == 0:
        return 0
    # Raw feed integers are compared as fixed-point values of the same scale
    return Bfp(p2).div(Bfp(p1)).value


def relative_price(round_1: Round, round_2: Round) -> int:
    """Price of token 2 expressed in units of token 1, 18-decimal fixed point.

    Returns 0 (unavailable) when token 1's price is zero.
    """
    return _relative_price(round_1.price, round_1.decimals, round_2.price, round_2.decimals)


def previous_relative_price(round_1: Round, round_2: Round) -> int:
    """Relative price at the most recently settled round common to both feeds.

    Looks up ``round_id - 1`` for each token. If either is unavailable the
    result is 0. Otherwise the previous round that is strictly newer is paired
    with the other token's latest round; equal timestamps pair both previous
    rounds.
    """
    previous_1 = get_previous_round(round_1)
    previous_2 = get_previous_round(round_2)

    if not previous_1.is_available or not previous_2.is_available:
        return 0

    if previous_1.timestamp > previous_2.timestamp:
        return relative_price(previous_1, round_2)
    if previous_1.timestamp < previous_2.timestamp:
        return relative_price(round_1, previous_2)
    return relative_price(previous_1, previous_2)


def performance_ratio(current_price: int, initial_price: int) -> Bfp:
    """current / initial as fixed point; zero when either side is not positive."""
    if current_price <= 0 or initial_price <= 0:
        return Bfp(0)
    return Bfp(current_price).div(Bfp(initial_price))
