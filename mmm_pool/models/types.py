"""Shared type definitions for pool models.

Addresses identify accounts, tokens, feeds and pools. Amounts crossing the
HTTP surface are uint256 decimal strings.
"""

from __future__ import annotations

import hashlib
from typing import Annotated, Any

from pydantic import BeforeValidator, Field

from mmm_pool.constants import UINT256_MAX


def validate_uint256(value: Any) -> str:
    """Validate that a value is a valid uint256 decimal string.

    Args:
        value: Value to validate (string or int)

    Returns:
        Valid uint256 as decimal string

    Raises:
        ValueError: If value is not a valid non-negative integer within uint256 range
    """
    if isinstance(value, int):
        int_value = value
    elif isinstance(value, str):
        try:
            int_value = int(value)
        except ValueError as err:
            raise ValueError(f"Uint256 must be a decimal integer string: '{value}'") from err
    else:
        raise ValueError(f"Uint256 must be string or int, got {type(value).__name__}")

    if int_value < 0:
        raise ValueError(f"Uint256 cannot be negative: {value}")
    if int_value > UINT256_MAX:
        raise ValueError(f"Uint256 overflow: {value} > 2^256-1")

    return str(int_value)


# Ethereum-style address (40 hex chars after 0x prefix)
Address = Annotated[str, Field(pattern=r"^0x[a-fA-F0-9]{40}$")]

# 256-bit unsigned integer as decimal string (validated)
Uint256 = Annotated[
    str,
    BeforeValidator(validate_uint256),
    Field(description="256-bit unsigned integer as decimal string"),
]


def normalize_address(address: str) -> str:
    """Normalize an address to lowercase with a 0x prefix."""
    addr = address.lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr
    return addr


def derive_address(*parts: object) -> str:
    """Derive a deterministic address from arbitrary seed parts."""
    digest = hashlib.sha3_256(":".join(str(p) for p in parts).encode()).digest()
    return "0x" + digest[-20:].hex()
