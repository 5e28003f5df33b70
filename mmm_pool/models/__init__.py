"""Pool data models."""

from mmm_pool.models.records import PoolState, PriceBinding, Record
from mmm_pool.models.types import (
    Address,
    Uint256,
    derive_address,
    normalize_address,
)

__all__ = [
    "PoolState",
    "Record",
    "PriceBinding",
    "Address",
    "Uint256",
    "normalize_address",
    "derive_address",
]
