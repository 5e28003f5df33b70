"""Dynamic coverage fee estimation.

Fits a geometric Brownian motion to the recent history of the relative price
of the output token in units of the input token and sizes a spread that
covers adverse moves over the configured horizon:

    spread = clamp(mu * h + z * sigma * sqrt(h), 0, MAX_COVERAGE_SPREAD)

where mu and sigma^2 are the per-second drift and variance of the log
relative price, and h is the horizon extended by the age of the latest
round (stale feeds widen the spread).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, localcontext

import structlog

from mmm_pool.constants import BONE, MAX_COVERAGE_SPREAD
from mmm_pool.math.fixed_point import Bfp
from mmm_pool.oracle.aggregator import Round, get_historical_round

from .base import GBMParameters, HistoricalPriceParameters

logger = structlog.get_logger()

_PRECISION = 40


@dataclass(frozen=True)
class GBMEstimate:
    """Per-second drift and variance of the log relative price.

    Attributes:
        mean: Drift per second
        variance: Variance per second
        samples: Number of log-return increments used
    """

    mean: Decimal
    variance: Decimal
    samples: int


def collect_price_history(
    latest: Round, history: HistoricalPriceParameters
) -> list[tuple[int, int]]:
    """Walk back from ``latest`` and collect (timestamp, price) points.

    At most ``lookback_rounds`` past rounds are read. The walk stops at the
    first unavailable round or the first round older than the lookback
    window. The latest round is always included when its price is positive.
    Points are returned oldest first.
    """
    if latest.price <= 0:
        return []

    points = [(latest.timestamp, latest.price)]
    cutoff = history.timestamp - history.lookback_seconds
    round_id = latest.round_id
    for _ in range(history.lookback_rounds):
        round_id -= 1
        price, timestamp = get_historical_round(latest.oracle, round_id)
        if price <= 0 or timestamp < cutoff:
            break
        points.append((timestamp, price))

    points.reverse()
    return points


def merge_relative_series(
    points_in: list[tuple[int, int]],
    points_out: list[tuple[int, int]],
) -> list[tuple[int, Decimal]]:
    """Relative price series (out in units of in) on the union of update times.

    At each timestamp, each feed contributes its most recent price at or
    before that time. Timestamps before both feeds have a price are skipped.
    Feed decimals cancel in log returns and are ignored.
    """
    timestamps = sorted({t for t, _ in points_in} | {t for t, _ in points_out})
    series: list[tuple[int, Decimal]] = []
    i = j = 0
    price_in: int | None = None
    price_out: int | None = None
    for t in timestamps:
        while i < len(points_in) and points_in[i][0] <= t:
            price_in = points_in[i][1]
            i += 1
        while j < len(points_out) and points_out[j][0] <= t:
            price_out = points_out[j][1]
            j += 1
        if price_in is None or price_out is None:
            continue
        series.append((t, Decimal(price_out) / Decimal(price_in)))
    return series


def estimate_gbm(series: list[tuple[int, Decimal]]) -> GBMEstimate:
    """Estimate drift and variance per second from a timestamped price series."""
    if len(series) < 2:
        return GBMEstimate(Decimal(0), Decimal(0), 0)

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        increments: list[tuple[Decimal, Decimal]] = []
        for (t0, p0), (t1, p1) in zip(series, series[1:]):
            dt = Decimal(t1 - t0)
            if dt <= 0:
                continue
            increments.append(((p1 / p0).ln(), dt))

        if not increments:
            return GBMEstimate(Decimal(0), Decimal(0), 0)

        elapsed = sum((dt for _, dt in increments), Decimal(0))
        mean = sum((r for r, _ in increments), Decimal(0)) / elapsed
        variance = sum(((r - mean * dt) ** 2 for r, dt in increments), Decimal(0)) / elapsed

    return GBMEstimate(mean, variance, len(increments))


def coverage_spread(
    round_in: Round,
    round_out: Round,
    gbm: GBMParameters,
    history: HistoricalPriceParameters,
) -> Bfp:
    """Coverage spread for selling token_out against token_in, as fixed point."""
    series = merge_relative_series(
        collect_price_history(round_in, history),
        collect_price_history(round_out, history),
    )
    estimate = estimate_gbm(series)
    if estimate.samples == 0:
        return Bfp(0)

    staleness = max(0, history.timestamp - min(round_in.timestamp, round_out.timestamp))
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        horizon = gbm.horizon.to_decimal() + Decimal(staleness)
        z = gbm.z.to_decimal()
        spread = estimate.mean * horizon + z * (estimate.variance * horizon).sqrt()

    cap = Decimal(MAX_COVERAGE_SPREAD) / Decimal(BONE)
    clamped = min(max(spread, Decimal(0)), cap)

    logger.debug(
        "coverage_spread",
        samples=estimate.samples,
        mean=str(estimate.mean),
        variance=str(estimate.variance),
        horizon=str(horizon),
        spread=str(clamped),
    )
    return Bfp.from_decimal(clamped)
