"""Pytest configuration and fixtures."""

import pytest

from mmm_pool.factory import Factory
from tests.helpers import LABS, NOW, PoolSetup, make_weth_dai_pool


@pytest.fixture
def setup() -> PoolSetup:
    """Finalized WETH/DAI pool without a factory."""
    return make_weth_dai_pool()


@pytest.fixture
def configuring_setup() -> PoolSetup:
    """WETH/DAI pool with both tokens bound, not yet finalized."""
    return make_weth_dai_pool(finalize=False)


@pytest.fixture
def factory() -> Factory:
    """Factory administered by LABS with a frozen clock."""
    return Factory(labs=LABS, clock=lambda: NOW)


@pytest.fixture
def factory_setup(factory: Factory) -> PoolSetup:
    """Finalized WETH/DAI pool created through the factory."""
    return make_weth_dai_pool(factory=factory)
