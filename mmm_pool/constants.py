"""Protocol constants for MMM pools.

All amounts, weights and fees are 18-decimal fixed-point integers.
"""

BONE = 10**18

# uint256 ceiling for fixed-point intermediates
UINT256_MAX = 2**256 - 1

# Null account: shares cannot be moved there
NULL_ADDRESS = "0x" + "0" * 40

# Token count bounds
MIN_BOUND_TOKENS = 2
MAX_BOUND_TOKENS = 8

# Swap fee bounds (0.0001% .. 10%)
MIN_FEE = BONE // 10**6
MAX_FEE = BONE // 10

# Fee charged on withdrawals (rebind down, unbind, exit_pool)
EXIT_FEE = 0

# Denormalized weight bounds
MIN_WEIGHT = BONE
MAX_WEIGHT = BONE * 50
MAX_TOTAL_WEIGHT = BONE * 50

MIN_BALANCE = BONE // 10**12

# Shares minted to the finalizer
INIT_POOL_SUPPLY = BONE * 100

# Single-swap impact caps, as a fraction of the pool balance
MAX_IN_RATIO = BONE // 2
MAX_OUT_RATIO = (BONE // 3) + 1

# Fixed-point power bounds
MIN_BPOW_BASE = 1
MAX_BPOW_BASE = (2 * BONE) - 1
BPOW_PRECISION = BONE // 10**10

# Coverage fee parameters: risk aversion z (fixed point) and horizon (seconds, fixed point)
BASE_Z = 6 * BONE // 10
MIN_Z = 0
MAX_Z = 6 * BONE

BASE_HORIZON = 300 * BONE
MIN_HORIZON = 1 * BONE
MAX_HORIZON = 86_400 * BONE

# Price statistics lookback window
BASE_LOOKBACK_IN_ROUND = 4
MIN_LOOKBACK_IN_ROUND = 1
MAX_LOOKBACK_IN_ROUND = 100

BASE_LOOKBACK_IN_SEC = 3_600
MIN_LOOKBACK_IN_SEC = 60
MAX_LOOKBACK_IN_SEC = 7 * 86_400

# Upper bound for the dynamic coverage spread added on top of the swap fee
MAX_COVERAGE_SPREAD = BONE // 10
