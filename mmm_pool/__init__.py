"""MMM Pool - oracle-driven weighted liquidity pools with coverage fees."""

from mmm_pool.factory import Factory, get_default_factory
from mmm_pool.pool import Pool

__version__ = "0.1.0"
__all__ = ["Pool", "Factory", "get_default_factory", "__version__"]
