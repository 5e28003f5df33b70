"""Price feed collaborators.

A price feed publishes numbered rounds of ``(price, timestamp)``. Prices are
signed integers with ``decimals()`` decimals, mirroring aggregator-style feeds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


class RoundNotFound(LookupError):
    """Requested round does not exist (or is no longer served) by the feed."""

    pass


@runtime_checkable
class PriceFeed(Protocol):
    """Protocol for external price feeds."""

    def latest_round(self) -> tuple[int, int, int]:
        """Return (round_id, price, timestamp) of the most recent round."""
        ...

    def get_round(self, round_id: int) -> tuple[int, int]:
        """Return (price, timestamp) for a historical round.

        Raises:
            RoundNotFound: If the round is unknown
        """
        ...

    def decimals(self) -> int:
        """Number of decimals in reported prices."""
        ...


class ConstantPriceFeed:
    """Feed that only ever reports a single round with a fixed price."""

    ROUND_ID = 1

    def __init__(self, price: int, timestamp: int, decimals: int = 8) -> None:
        self.price = price
        self.timestamp = timestamp
        self._decimals = decimals

    def latest_round(self) -> tuple[int, int, int]:
        return self.ROUND_ID, self.price, self.timestamp

    def get_round(self, round_id: int) -> tuple[int, int]:
        if round_id != self.ROUND_ID:
            raise RoundNotFound(f"round {round_id} not available")
        return self.price, self.timestamp

    def decimals(self) -> int:
        return self._decimals


@dataclass
class HistoricalPriceFeed:
    """Feed backed by an append-only list of rounds.

    Round ids start at ``first_round_id`` and increase by one per pushed
    round. Rounds older than ``retention`` (if set) are no longer served.

    Usage:
        feed = HistoricalPriceFeed(feed_decimals=8)
        feed.push(2000_00000000, timestamp=1_700_000_000)
        feed.push(2010_00000000, timestamp=1_700_000_060)
        feed.latest_round()  # (2, 201000000000, 1700000060)
    """

    feed_decimals: int = 8
    first_round_id: int = 1
    retention: int | None = None
    rounds: list[tuple[int, int]] = field(default_factory=list)

    def push(self, price: int, timestamp: int) -> int:
        """Publish a new round and return its id."""
        if self.rounds and timestamp < self.rounds[-1][1]:
            raise ValueError("round timestamps must be non-decreasing")
        self.rounds.append((price, timestamp))
        return self.first_round_id + len(self.rounds) - 1

    def latest_round(self) -> tuple[int, int, int]:
        if not self.rounds:
            raise RoundNotFound("feed has no rounds")
        price, timestamp = self.rounds[-1]
        return self.first_round_id + len(self.rounds) - 1, price, timestamp

    def get_round(self, round_id: int) -> tuple[int, int]:
        offset = round_id - self.first_round_id
        if offset < 0 or offset >= len(self.rounds):
            raise RoundNotFound(f"round {round_id} not available")
        if self.retention is not None and offset < len(self.rounds) - self.retention:
            raise RoundNotFound(f"round {round_id} no longer retained")
        return self.rounds[offset]

    def decimals(self) -> int:
        return self.feed_decimals
