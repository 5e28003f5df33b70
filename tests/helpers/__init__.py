"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Accounts, feed prices and pool parameters
- factories: Token, feed and pool factory functions
"""

from tests.helpers.constants import (
    CONTROLLER,
    DAI_BALANCE,
    DAI_PRICE,
    FEED_DECIMALS,
    LABS,
    LP,
    NO_LIMIT,
    NOW,
    STRANGER,
    TRADER,
    WEIGHT,
    WETH_BALANCE,
    WETH_PRICE,
)
from tests.helpers.factories import (
    PoolSetup,
    approve_all,
    make_feed,
    make_token,
    make_weth_dai_pool,
)

__all__ = [
    # Accounts
    "CONTROLLER",
    "LABS",
    "TRADER",
    "LP",
    "STRANGER",
    # Time and feeds
    "NOW",
    "FEED_DECIMALS",
    "WETH_PRICE",
    "DAI_PRICE",
    # Pool parameters
    "WETH_BALANCE",
    "DAI_BALANCE",
    "WEIGHT",
    "NO_LIMIT",
    # Factories
    "PoolSetup",
    "make_token",
    "make_feed",
    "approve_all",
    "make_weth_dai_pool",
]
