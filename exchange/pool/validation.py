"""Parameter, lifecycle and invariant checks wrapping every pool operation.

Checks raise typed ExchangeErrors and never touch state; the state machine
runs them before computing a transition (parameters, lifecycle) and before
committing one (invariants).
"""

from __future__ import annotations

from typing import Any

from exchange.amm.base import SwapDirection
from exchange.config import ExchangeConfig
from exchange.constants import BPS_DENOMINATOR, U64_MAX
from exchange.errors import (
    AlreadyInitialized,
    InvalidAmount,
    InvalidFeeRate,
    InvalidInstruction,
    InvariantViolation,
    NotInitialized,
    SlippageExceeded,
)
from exchange.pool.state import PoolState


def require_amount(name: str, value: Any, *, allow_zero: bool = False) -> int:
    """Validate a caller-supplied quantity as a u64.

    Args:
        name: Parameter name (for error messages)
        value: The value to validate
        allow_zero: Whether zero is acceptable (slippage minimums)

    Returns:
        The validated amount

    Raises:
        InvalidAmount: If value is not an integer, is negative, exceeds u64,
            or is zero when zero is not allowed
    """
    # bool is an int subclass but never a meaningful quantity
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmount(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise InvalidAmount(f"{name} cannot be negative: {value}")
    if value > U64_MAX:
        raise InvalidAmount(f"{name} overflows u64: {value}")
    if value == 0 and not allow_zero:
        raise InvalidAmount(f"{name} must be positive")
    return value


def require_fee_rate(fee_rate_bps: Any, config: ExchangeConfig) -> int:
    """Validate a pool fee rate against the configured ceiling.

    Raises:
        InvalidFeeRate: If not an integer in [0, config.max_fee_rate_bps]
    """
    if isinstance(fee_rate_bps, bool) or not isinstance(fee_rate_bps, int):
        raise InvalidFeeRate(f"Fee rate must be an integer, got {type(fee_rate_bps).__name__}")
    if not 0 <= fee_rate_bps <= config.max_fee_rate_bps:
        raise InvalidFeeRate(
            f"Fee rate {fee_rate_bps} bps outside [0, {config.max_fee_rate_bps}]"
        )
    return fee_rate_bps


def require_direction(value: Any) -> SwapDirection:
    """Coerce a swap direction from the enum or its string value.

    Raises:
        InvalidInstruction: If value names no direction
    """
    if isinstance(value, SwapDirection):
        return value
    try:
        return SwapDirection(value)
    except ValueError as err:
        raise InvalidInstruction(f"Unknown swap direction: {value!r}") from err


def require_initialized(state: PoolState) -> None:
    """Raises NotInitialized unless the pool has been created."""
    if not state.is_initialized:
        raise NotInitialized("Pool not initialized")


def require_uninitialized(state: PoolState) -> None:
    """Raises AlreadyInitialized if the pool has been created."""
    if state.is_initialized:
        raise AlreadyInitialized("Pool already initialized")


def require_minimum(actual: int, minimum: int, label: str) -> None:
    """Enforce a caller-supplied slippage floor.

    Raises:
        SlippageExceeded: If actual < minimum
    """
    if actual < minimum:
        raise SlippageExceeded(f"{label} {actual} below minimum {minimum}")


def check_invariants(state: PoolState) -> None:
    """Verify the structural invariants of a pool state.

    Raises:
        InvariantViolation: If any invariant does not hold
    """
    for field_name in ("base_reserve", "quote_reserve", "share_supply", "fee_rate_bps"):
        value = getattr(state, field_name)
        if not 0 <= value <= U64_MAX:
            raise InvariantViolation(f"{field_name} out of u64 range: {value}")
    if state.fee_rate_bps >= BPS_DENOMINATOR:
        raise InvariantViolation(f"fee_rate_bps {state.fee_rate_bps} consumes the whole input")
    if state.share_supply > 0 and (state.base_reserve == 0 or state.quote_reserve == 0):
        raise InvariantViolation(
            f"{state.share_supply} shares outstanding against reserves "
            f"({state.base_reserve}, {state.quote_reserve})"
        )
    if state.share_supply == 0 and (state.base_reserve or state.quote_reserve):
        # a full withdrawal always drains both reserves to zero
        raise InvariantViolation(
            f"Reserves ({state.base_reserve}, {state.quote_reserve}) held with no shares outstanding"
        )
    if not state.is_initialized and (state.base_reserve or state.quote_reserve or state.share_supply):
        raise InvariantViolation("Uninitialized pool holds reserves or shares")


def check_swap_product(before: PoolState, after: PoolState) -> None:
    """Verify a swap kept k non-decreasing and left shares untouched.

    Raises:
        InvariantViolation: If k decreased or share_supply changed
    """
    if after.product < before.product:
        raise InvariantViolation(f"Constant product decreased: {before.product} -> {after.product}")
    if after.share_supply != before.share_supply:
        raise InvariantViolation("Swap changed share supply")
