"""Pool fixed-point (Bfp) math library.

18-decimal unsigned fixed-point arithmetic with the rounding and overflow
policy of the on-chain pool:

- ``mul`` and ``div`` round half up
- results are bounded by uint256; overflow, underflow and division by zero
  raise ``ArithmeticFailure`` with the matching reason code
- ``pow`` splits the exponent into a whole part (repeated squaring) and a
  fractional part (binomial series truncated at ``BPOW_PRECISION``)

All values are stored as integers scaled by 10^18.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import ClassVar

from mmm_pool.constants import (
    BONE,
    BPOW_PRECISION,
    MAX_BPOW_BASE,
    MIN_BPOW_BASE,
    UINT256_MAX,
)
from mmm_pool.errors import ArithmeticFailure, Reason

__all__ = [
    "Bfp",
    "ONE",
    "ZERO",
]


def _checked(value: int, reason: Reason) -> int:
    if value > UINT256_MAX:
        raise ArithmeticFailure(reason, f"{value} exceeds uint256")
    return value


class Bfp:
    """18-decimal fixed-point number stored as int.

    Example: 1.5 is stored as 1_500_000_000_000_000_000
    """

    ONE: ClassVar[int] = BONE

    __slots__ = ("value",)
    __hash__ = None  # type: ignore[assignment]  # Unhashable since we define __eq__

    def __init__(self, value: int) -> None:
        """Create Bfp from raw scaled value."""
        if value < 0:
            raise ArithmeticFailure(Reason.SUB_UNDERFLOW, f"negative fixed-point value {value}")
        self.value = _checked(value, Reason.ADD_OVERFLOW)

    @classmethod
    def from_decimal(cls, d: Decimal | str) -> Bfp:
        """Create from decimal (will be scaled by 10^18, ROUND_HALF_UP)."""
        d = Decimal(d)
        if d < 0:
            raise ValueError(f"Bfp.from_decimal requires non-negative input, got {d}")
        scaled = (d * cls.ONE).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return cls(int(scaled))

    def to_decimal(self) -> Decimal:
        """Convert to Decimal for display."""
        return Decimal(self.value) / Decimal(self.ONE)

    def to_int(self) -> int:
        """Whole part, truncated."""
        return self.value // self.ONE

    def floor(self) -> Bfp:
        """Whole part as fixed point."""
        return Bfp(self.to_int() * self.ONE)

    # --- Arithmetic ---

    def add(self, other: Bfp) -> Bfp:
        """Add, raising on uint256 overflow."""
        return Bfp(_checked(self.value + other.value, Reason.ADD_OVERFLOW))

    def sub(self, other: Bfp) -> Bfp:
        """Subtract, raising if the result would be negative."""
        result = self.value - other.value
        if result < 0:
            raise ArithmeticFailure(
                Reason.SUB_UNDERFLOW, f"{self.value} - {other.value} = {result}"
            )
        return Bfp(result)

    def sub_sign(self, other: Bfp) -> tuple[Bfp, bool]:
        """Absolute difference and whether self < other."""
        if self.value >= other.value:
            return Bfp(self.value - other.value), False
        return Bfp(other.value - self.value), True

    def mul(self, other: Bfp) -> Bfp:
        """Multiply with half-up rounding."""
        product = _checked(self.value * other.value, Reason.MUL_OVERFLOW)
        rounded = _checked(product + self.ONE // 2, Reason.MUL_OVERFLOW)
        return Bfp(rounded // self.ONE)

    def div(self, other: Bfp) -> Bfp:
        """Divide with half-up rounding."""
        if other.value == 0:
            raise ArithmeticFailure(Reason.DIV_ZERO, f"{self.value} / 0")
        scaled = _checked(self.value * self.ONE, Reason.MUL_OVERFLOW)
        rounded = _checked(scaled + other.value // 2, Reason.MUL_OVERFLOW)
        return Bfp(rounded // other.value)

    def powi(self, n: int) -> Bfp:
        """Raise to a whole (non-fixed-point) power by repeated squaring."""
        a = self
        z = a if n % 2 != 0 else ONE
        n //= 2
        while n != 0:
            a = a.mul(a)
            if n % 2 != 0:
                z = z.mul(a)
            n //= 2
        return z

    def pow(self, exp: Bfp) -> Bfp:
        """Compute self^exp for a base in [MIN_BPOW_BASE, MAX_BPOW_BASE]."""
        if self.value < MIN_BPOW_BASE:
            raise ArithmeticFailure(Reason.BPOW_BASE_TOO_LOW, f"base {self.value}")
        if self.value > MAX_BPOW_BASE:
            raise ArithmeticFailure(Reason.BPOW_BASE_TOO_HIGH, f"base {self.value}")

        whole = exp.floor()
        remain = exp.sub(whole)
        whole_pow = self.powi(whole.to_int())
        if remain.value == 0:
            return whole_pow

        partial = self._pow_approx(remain, BPOW_PRECISION)
        return whole_pow.mul(partial)

    def _pow_approx(self, exp: Bfp, precision: int) -> Bfp:
        # (1 + x)^a = sum_k binom(a, k) * x^k, with x = base - 1
        x, x_neg = self.sub_sign(ONE)
        term = ONE
        total = ONE
        negative = False
        i = 1
        while term.value >= precision:
            big_k = Bfp(i * self.ONE)
            c, c_neg = exp.sub_sign(big_k.sub(ONE))
            term = term.mul(c.mul(x))
            term = term.div(big_k)
            if term.value == 0:
                break
            if x_neg:
                negative = not negative
            if c_neg:
                negative = not negative
            total = total.sub(term) if negative else total.add(term)
            i += 1
        return total

    # --- Comparisons ---

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bfp):
            return NotImplemented
        return self.value == other.value

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Bfp):
            return NotImplemented
        return self.value < other.value

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Bfp):
            return NotImplemented
        return self.value <= other.value

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Bfp):
            return NotImplemented
        return self.value > other.value

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Bfp):
            return NotImplemented
        return self.value >= other.value

    def __repr__(self) -> str:
        return f"Bfp({self.value})"

    def __str__(self) -> str:
        return str(self.to_decimal())


ONE = Bfp(BONE)
ZERO = Bfp(0)
