"""Shared type definitions for instruction models."""

from typing import Annotated, Any

from pydantic import BeforeValidator, Field

from exchange.constants import U64_MAX


def validate_u64(value: Any) -> int:
    """Validate that a value is a valid u64 integer or decimal string.

    Args:
        value: Value to validate (int or string)

    Returns:
        The value as an int

    Raises:
        ValueError: If value is not a non-negative integer within u64 range
    """
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        raise ValueError("U64 cannot be a boolean")

    if isinstance(value, int):
        int_value = value
    elif isinstance(value, str):
        try:
            int_value = int(value)
        except ValueError as err:
            raise ValueError(f"U64 must be a decimal integer string: '{value}'") from err
    else:
        raise ValueError(f"U64 must be string or int, got {type(value).__name__}")

    if int_value < 0:
        raise ValueError(f"U64 cannot be negative: {value}")
    if int_value > U64_MAX:
        raise ValueError(f"U64 overflow: {value} > 2^64-1")
    return int_value


# 64-bit unsigned integer (int or decimal string on input)
U64 = Annotated[
    int,
    BeforeValidator(validate_u64),
    Field(description="64-bit unsigned integer"),
]
