"""Mathematical utilities for MMM pools.

This package provides the fixed-point primitive used by the pool ledger
and the pricing formulas:
- Bfp: 18-decimal fixed-point arithmetic (round half up, uint256 bounded)
"""

from mmm_pool.math.fixed_point import ONE, ZERO, Bfp

__all__ = ["Bfp", "ONE", "ZERO"]
