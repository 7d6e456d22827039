"""Safe integer wrapper for arithmetic on reserves and shares.

This module provides SafeInt, a lightweight wrapper that makes arithmetic
operations safe by default:
- Division by zero raises DivisionByZero
- Subtraction underflow raises Underflow
- Intermediates wider than 128 bits raise U128Overflow
- Results that do not fit back into 64 bits raise U64Overflow on to_u64()

Usage pattern:
    from exchange.safe_int import SafeInt, S

    def calculate(a: int, b: int, c: int) -> int:
        # Wrap at entry
        sa, sb, sc = S(a), S(b), S(c)

        # Natural arithmetic - automatically checked
        result = (sa * sb) // sc  # Raises if sc == 0
        remainder = sa - sb       # Raises if sb > sa

        # Narrow at exit
        return result.to_u64()
"""

from __future__ import annotations

import math

from exchange.constants import U64_MAX, U128_MAX
from exchange.errors import ErrorKind, ExchangeError


class SafeIntError(ExchangeError, ArithmeticError):
    """Base class for SafeInt arithmetic errors."""

    kind = ErrorKind.ARITHMETIC_ERROR


class DivisionByZero(SafeIntError):
    """Division or modulo by zero."""

    pass


class Underflow(SafeIntError):
    """Subtraction would produce negative result."""

    pass


class U128Overflow(SafeIntError):
    """Intermediate value exceeds the 128-bit working width."""

    pass


class U64Overflow(SafeIntError):
    """Value does not fit in an unsigned 64-bit integer."""

    pass


class SafeInt:
    """Integer with checked arithmetic operations.

    Wraps a non-negative integer and provides arithmetic operators that raise
    descriptive errors instead of producing invalid results:
    - Division by zero raises DivisionByZero
    - Negative results from subtraction raise Underflow
    - Sums and products above 2^128-1 raise U128Overflow
    - Values exceeding u64 raise U64Overflow on to_u64()

    Every reserve, share and fee computation in the engine is routed through
    SafeInt, so u64 operands are implicitly promoted to the 128-bit
    intermediate and narrowed back explicitly.

    Attributes:
        value: The underlying integer value (read-only)
    """

    __slots__ = ("_value",)
    _value: int

    def __init__(self, value: int | SafeInt) -> None:
        """Create a SafeInt from an integer or another SafeInt.

        Args:
            value: Integer value to wrap, or SafeInt to copy

        Raises:
            TypeError: If value is not an int or SafeInt
            Underflow: If value is negative
            U128Overflow: If value exceeds 2^128-1
        """
        if isinstance(value, SafeInt):
            self._value = value._value
            return
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"SafeInt requires int, got {type(value).__name__}")
        self._value = _check_width(value)

    @property
    def value(self) -> int:
        """The underlying integer value."""
        return self._value

    def __repr__(self) -> str:
        return f"SafeInt({self._value})"

    def __str__(self) -> str:
        return str(self._value)

    def __hash__(self) -> int:
        return hash(self._value)

    # --- Arithmetic operations ---

    def __add__(self, other: SafeInt | int) -> SafeInt:
        """Add two values.

        Raises:
            U128Overflow: If the sum exceeds the intermediate width
        """
        return SafeInt(self._value + _extract_value(other))

    def __radd__(self, other: int) -> SafeInt:
        return SafeInt(other + self._value)

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        """Subtract other from self.

        Raises:
            Underflow: If result would be negative
        """
        other_val = _extract_value(other)
        result = self._value - other_val
        if result < 0:
            raise Underflow(f"Underflow: {self._value} - {other_val} = {result}")
        return SafeInt(result)

    def __rsub__(self, other: int) -> SafeInt:
        """Subtract self from other (other - self).

        Raises:
            Underflow: If result would be negative
        """
        result = other - self._value
        if result < 0:
            raise Underflow(f"Underflow: {other} - {self._value} = {result}")
        return SafeInt(result)

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        """Multiply two values.

        Raises:
            U128Overflow: If the product exceeds the intermediate width
        """
        return SafeInt(self._value * _extract_value(other))

    def __rmul__(self, other: int) -> SafeInt:
        return SafeInt(other * self._value)

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        """Integer division.

        Raises:
            DivisionByZero: If other is zero
        """
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(f"Division by zero: {self._value} // 0")
        return SafeInt(self._value // other_val)

    def __rfloordiv__(self, other: int) -> SafeInt:
        """Integer division (other // self).

        Raises:
            DivisionByZero: If self is zero
        """
        if self._value == 0:
            raise DivisionByZero(f"Division by zero: {other} // 0")
        return SafeInt(other // self._value)

    def __mod__(self, other: SafeInt | int) -> SafeInt:
        """Modulo operation.

        Raises:
            DivisionByZero: If other is zero
        """
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(f"Modulo by zero: {self._value} % 0")
        return SafeInt(self._value % other_val)

    # --- Comparison operations ---

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SafeInt):
            return self._value == other._value
        if isinstance(other, int):
            return self._value == other
        return NotImplemented

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return NotImplemented
        return not result

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._value < _extract_value(other)

    def __le__(self, other: SafeInt | int) -> bool:
        return self._value <= _extract_value(other)

    def __gt__(self, other: SafeInt | int) -> bool:
        return self._value > _extract_value(other)

    def __ge__(self, other: SafeInt | int) -> bool:
        return self._value >= _extract_value(other)

    # --- Conversion ---

    def __int__(self) -> int:
        """Convert to int."""
        return self._value

    def __bool__(self) -> bool:
        """True if non-zero."""
        return self._value != 0

    def __index__(self) -> int:
        return self._value

    # --- Named operations ---

    def ceiling_div(self, other: SafeInt | int) -> SafeInt:
        """Ceiling division (rounds up).

        Equivalent to: (self + other - 1) // other

        Raises:
            DivisionByZero: If other is zero
        """
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(f"Ceiling division by zero: {self._value}")
        return SafeInt((self._value + other_val - 1) // other_val)

    def min(self, other: SafeInt | int) -> SafeInt:
        """Return minimum of self and other."""
        return SafeInt(min(self._value, _extract_value(other)))

    def isqrt(self) -> SafeInt:
        """Integer square root, floored."""
        return SafeInt(math.isqrt(self._value))

    def to_u64(self) -> int:
        """Convert to int, validating u64 bounds.

        Raises:
            U64Overflow: If value exceeds 2^64-1
        """
        if self._value > U64_MAX:
            raise U64Overflow(f"Value exceeds u64 max: {self._value}")
        return self._value

    def is_u64(self) -> bool:
        """Check if value fits in u64 without raising."""
        return self._value <= U64_MAX

    @classmethod
    def zero(cls) -> SafeInt:
        """Create a SafeInt with value 0."""
        return cls(0)


def _check_width(value: int) -> int:
    if value < 0:
        raise Underflow(f"Negative value cannot be unsigned: {value}")
    if value > U128_MAX:
        raise U128Overflow(f"Value exceeds u128 max: {value}")
    return value


def _extract_value(x: SafeInt | int) -> int:
    """Extract integer value from SafeInt or int."""
    if isinstance(x, SafeInt):
        return x._value
    return x


def mul_div(a: int, b: int, denominator: int) -> int:
    """Compute floor(a * b / denominator) through the 128-bit intermediate.

    Raises:
        DivisionByZero: If denominator is zero
        U128Overflow: If a * b exceeds 128 bits
        U64Overflow: If the quotient does not fit in u64
    """
    return ((S(a) * S(b)) // S(denominator)).to_u64()


def mul_div_ceil(a: int, b: int, denominator: int) -> int:
    """Compute ceil(a * b / denominator) through the 128-bit intermediate."""
    return (S(a) * S(b)).ceiling_div(denominator).to_u64()


# Convenience alias for concise code
S = SafeInt
