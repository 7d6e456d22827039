"""Constant product pricing engine.

Pools price swaps with the constant product formula: x * y = k.
The fee is taken from the input before it reaches the curve, so every
trade leaves k equal (zero fee) or strictly larger.

All math is integer math on SafeInt; no floating point is involved, which
keeps results bit-exact across implementations.
"""

from __future__ import annotations

from dataclasses import dataclass

from exchange.constants import BPS_DENOMINATOR, DEFAULT_FEE_RATE_BPS, MAX_FEE_RATE_BPS
from exchange.errors import InsufficientLiquidity, InvalidAmount, InvalidFeeRate
from exchange.safe_int import S


def _check_fee_rate(fee_rate_bps: int) -> None:
    if isinstance(fee_rate_bps, bool) or not isinstance(fee_rate_bps, int):
        raise InvalidFeeRate(f"Fee rate must be an integer, got {type(fee_rate_bps).__name__}")
    if not 0 <= fee_rate_bps <= MAX_FEE_RATE_BPS:
        raise InvalidFeeRate(f"Fee rate {fee_rate_bps} bps outside [0, {MAX_FEE_RATE_BPS}]")


def effective_input(amount_in: int, fee_rate_bps: int) -> int:
    """Input remaining after the fee, floored in the pool's favour.

    For 30 bps: effective_input(100_000, 30) == 99_700.
    """
    _check_fee_rate(fee_rate_bps)
    return ((S(amount_in) * (BPS_DENOMINATOR - fee_rate_bps)) // BPS_DENOMINATOR).to_u64()


def compute_swap_output(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    fee_rate_bps: int,
) -> tuple[int, int]:
    """Calculate output and fee amounts for an exact-input swap.

    Formula:
        effective = amount_in * (10000 - fee_bps) // 10000
        amount_out = reserve_out * effective // (reserve_in + effective)
        fee_amount = amount_in - effective

    Args:
        amount_in: Input token amount
        reserve_in: Reserve of input token in pool
        reserve_out: Reserve of output token in pool
        fee_rate_bps: Pool fee in basis points

    Returns:
        Tuple of (amount_out, fee_amount)

    Raises:
        InvalidAmount: If amount_in is zero
        InvalidFeeRate: If fee_rate_bps is outside [0, 10000)
        InsufficientLiquidity: If either reserve is zero, or the output
            would not be strictly less than reserve_out
        SafeIntError: On overflow of the 128-bit intermediate
    """
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity(f"Empty reserves: in={reserve_in}, out={reserve_out}")
    if amount_in <= 0:
        raise InvalidAmount("Swap input must be positive")

    effective = effective_input(amount_in, fee_rate_bps)
    numerator = S(reserve_out) * S(effective)
    denominator = S(reserve_in) + S(effective)
    amount_out = (numerator // denominator).to_u64()

    if amount_out >= reserve_out:
        raise InsufficientLiquidity(
            f"Swap output {amount_out} would drain reserve {reserve_out}"
        )

    fee_amount = (S(amount_in) - S(effective)).to_u64()
    return amount_out, fee_amount


def compute_swap_input(
    amount_out: int,
    reserve_in: int,
    reserve_out: int,
    fee_rate_bps: int,
) -> int:
    """Calculate the minimal input whose swap yields at least amount_out.

    Inverts compute_swap_output exactly, including both floor steps:
        min_effective = ceil(reserve_in * amount_out / (reserve_out - amount_out))
        amount_in = ceil(min_effective * 10000 / (10000 - fee_bps))

    Args:
        amount_out: Desired output token amount
        reserve_in: Reserve of input token in pool
        reserve_out: Reserve of output token in pool
        fee_rate_bps: Pool fee in basis points

    Returns:
        Required input token amount

    Raises:
        InvalidAmount: If amount_out is zero
        InsufficientLiquidity: If reserves are empty or amount_out >= reserve_out
        SafeIntError: If the required input does not fit in u64
    """
    _check_fee_rate(fee_rate_bps)
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity(f"Empty reserves: in={reserve_in}, out={reserve_out}")
    if amount_out <= 0:
        raise InvalidAmount("Swap output must be positive")
    if amount_out >= reserve_out:
        # Can't extract the whole reserve
        raise InsufficientLiquidity(f"Requested {amount_out} of reserve {reserve_out}")

    min_effective = (S(reserve_in) * S(amount_out)).ceiling_div(S(reserve_out) - S(amount_out))
    amount_in = (min_effective * BPS_DENOMINATOR).ceiling_div(BPS_DENOMINATOR - fee_rate_bps)
    return amount_in.to_u64()


def spot_price(reserve_in: int, reserve_out: int) -> tuple[int, int]:
    """Marginal price of the input asset in output units, as (numerator, denominator).

    Raises:
        InsufficientLiquidity: If either reserve is zero
    """
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity(f"Empty reserves: in={reserve_in}, out={reserve_out}")
    return reserve_out, reserve_in


@dataclass(frozen=True)
class ConstantProduct:
    """Constant product pricing bound to one fee rate.

    Attributes:
        fee_rate_bps: Fee in basis points (30 = 0.3%)
    """

    fee_rate_bps: int = DEFAULT_FEE_RATE_BPS

    def __post_init__(self) -> None:
        _check_fee_rate(self.fee_rate_bps)

    @property
    def fee_multiplier(self) -> int:
        """Fee multiplier for AMM math (10000 - fee_rate_bps).

        For 30 bps (0.3%), this returns 9970.
        """
        return BPS_DENOMINATOR - self.fee_rate_bps

    def get_amount_out(self, amount_in: int, reserve_in: int, reserve_out: int) -> tuple[int, int]:
        """Output and fee for an exact-input swap; see compute_swap_output."""
        return compute_swap_output(amount_in, reserve_in, reserve_out, self.fee_rate_bps)

    def get_amount_in(self, amount_out: int, reserve_in: int, reserve_out: int) -> int:
        """Required input for an exact-output swap; see compute_swap_input."""
        return compute_swap_input(amount_out, reserve_in, reserve_out, self.fee_rate_bps)


# Default instance at the standard 0.3% fee
constant_product = ConstantProduct()
