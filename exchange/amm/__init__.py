"""AMM math: constant product pricing and liquidity share accounting."""

from exchange.amm.base import Asset, SwapDirection
from exchange.amm.constant_product import (
    ConstantProduct,
    compute_swap_input,
    compute_swap_output,
    constant_product,
    effective_input,
    spot_price,
)
from exchange.amm.liquidity import (
    compute_deposit_shares,
    compute_initial_shares,
    compute_withdrawal,
)

__all__ = [
    # Shared types
    "Asset",
    "SwapDirection",
    # Pricing
    "ConstantProduct",
    "constant_product",
    "compute_swap_output",
    "compute_swap_input",
    "effective_input",
    "spot_price",
    # Liquidity
    "compute_initial_shares",
    "compute_deposit_shares",
    "compute_withdrawal",
]
