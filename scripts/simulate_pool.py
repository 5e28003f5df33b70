#!/usr/bin/env python3
"""Simulate a WETH/DAI MMM pool against a moving ETH price.

Creates a factory and a two-token pool, then walks the WETH feed through a
price path. At each step a trader sells a fixed amount of WETH and the
script reports the swap outcome (or the reason it was rejected), the
coverage spread and the pool's effective weights.

Usage:
    python -m scripts.simulate_pool --steps 10 --volatility 0.01
    python -m scripts.simulate_pool --seed 7 --amount 0.5 --verbose
"""

import argparse
import logging
import random

import structlog

from mmm_pool.constants import BONE, UINT256_MAX
from mmm_pool.errors import PoolError
from mmm_pool.factory import Factory
from mmm_pool.logging_config import configure_logging
from mmm_pool.oracle.feeds import ConstantPriceFeed, HistoricalPriceFeed
from mmm_pool.tokens import Token

logger = structlog.get_logger()

LABS = "0x" + "1" * 40
CONTROLLER = "0x" + "2" * 40
TRADER = "0x" + "3" * 40

START_TIME = 1_700_000_000
ROUND_INTERVAL = 60
FEED_DECIMALS = 8


def _fmt(value: int) -> str:
    return f"{value / BONE:.6f}"


def simulate(steps: int, volatility: float, amount: float, eth_price: float, seed: int) -> None:
    """Run the scenario and print one line per step."""
    rng = random.Random(seed)
    now = START_TIME

    weth_feed = HistoricalPriceFeed(feed_decimals=FEED_DECIMALS)
    weth_feed.push(int(eth_price * 10**FEED_DECIMALS), now)
    dai_feed = ConstantPriceFeed(10**FEED_DECIMALS, now, decimals=FEED_DECIMALS)

    factory = Factory(labs=LABS, clock=lambda: now)
    pool = factory.new_pool(sender=CONTROLLER)

    weth = Token("Wrapped Ether", "WETH")
    dai = Token("Dai Stablecoin", "DAI")
    weth_balance = 50 * BONE
    dai_balance = int(50 * eth_price) * BONE
    for token, balance in ((weth, weth_balance), (dai, dai_balance)):
        token.mint(CONTROLLER, balance)
        token.approve(CONTROLLER, pool.address, UINT256_MAX)
    weth.mint(TRADER, 1_000 * BONE)
    weth.approve(TRADER, pool.address, UINT256_MAX)

    pool.bind(weth, weth_balance, 5 * BONE, weth_feed, sender=CONTROLLER)
    pool.bind(dai, dai_balance, 5 * BONE, dai_feed, sender=CONTROLLER)
    pool.finalize(sender=CONTROLLER)

    amount_in = int(amount * BONE)
    print(f"{'step':>4} {'eth':>10} {'dai_out':>14} {'spread':>10} {'w_weth':>10} {'w_dai':>10}")
    for step in range(1, steps + 1):
        now += ROUND_INTERVAL
        eth_price *= 1 + rng.gauss(0, volatility)
        weth_feed.push(int(eth_price * 10**FEED_DECIMALS), now)

        _, spread = pool.get_amount_out_given_in_mmm(weth, amount_in, dai)
        try:
            amount_out, _ = pool.swap_exact_amount_in(
                weth, amount_in, dai, 0, UINT256_MAX, sender=TRADER
            )
            outcome = _fmt(amount_out)
        except PoolError as exc:
            logger.debug("swap_rejected", step=step, reason=exc.reason.value)
            outcome = exc.reason.value
        print(
            f"{step:>4} {eth_price:>10.2f} {outcome:>14} {_fmt(spread):>10} "
            f"{_fmt(pool.get_denormalized_weight_mmm(weth)):>10} "
            f"{_fmt(pool.get_denormalized_weight_mmm(dai)):>10}"
        )

    logger.info(
        "simulation_complete",
        steps=steps,
        weth_balance=pool.get_balance(weth),
        dai_balance=pool.get_balance(dai),
        trader_dai=dai.balance_of(TRADER),
    )


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Simulate swaps against a WETH/DAI MMM pool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--steps", type=int, default=10, help="Number of price updates")
    parser.add_argument(
        "--volatility",
        type=float,
        default=0.01,
        help="Standard deviation of the per-round ETH return",
    )
    parser.add_argument("--amount", type=float, default=1.0, help="WETH sold per step")
    parser.add_argument("--eth-price", type=float, default=2000.0, help="Starting ETH price")
    parser.add_argument("--seed", type=int, default=0, help="Random seed for the price path")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    simulate(args.steps, args.volatility, args.amount, args.eth_price, args.seed)


if __name__ == "__main__":
    main()
