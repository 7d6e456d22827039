"""Pydantic models for pool instructions."""

from exchange.models.instructions import (
    AddLiquidity,
    InitializePool,
    Instruction,
    RemoveLiquidity,
    Swap,
    parse_instruction,
)
from exchange.models.types import U64, validate_u64

__all__ = [
    "U64",
    "validate_u64",
    "InitializePool",
    "Swap",
    "AddLiquidity",
    "RemoveLiquidity",
    "Instruction",
    "parse_instruction",
]
