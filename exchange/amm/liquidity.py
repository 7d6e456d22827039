"""Liquidity share accounting.

Shares represent proportional ownership of both reserves. Minting and burning
round in the pool's favour: depositors pay the rounded-up cost of the shares
they receive, withdrawers receive the rounded-down value of the shares they
burn. Remaining holders can therefore never be diluted by rounding.
"""

from __future__ import annotations

from exchange.errors import InvalidAmount, InvalidRatio
from exchange.safe_int import S, mul_div, mul_div_ceil


def compute_initial_shares(base_amount: int, quote_amount: int) -> int:
    """Shares minted for the first deposit into an empty pool.

    Uses the geometric mean isqrt(base_amount * quote_amount), so the share
    count is independent of the scale either asset is denominated in.

    Raises:
        InvalidAmount: If either amount is zero
    """
    if base_amount <= 0 or quote_amount <= 0:
        raise InvalidAmount(
            f"Initial deposit needs both assets: base={base_amount}, quote={quote_amount}"
        )
    return (S(base_amount) * S(quote_amount)).isqrt().to_u64()


def compute_deposit_shares(
    base_amount: int,
    quote_amount: int,
    base_reserve: int,
    quote_reserve: int,
    share_supply: int,
) -> tuple[int, int, int]:
    """Shares minted and assets consumed for a deposit into an active pool.

    The limiting asset determines the share count:
        shares = min(base_amount * supply // base_reserve,
                     quote_amount * supply // quote_reserve)

    Each asset is then charged the exact proportional cost of those shares,
    rounded up: used = ceil(shares * reserve / supply). This never exceeds the
    offered amount; the excess of the non-limiting asset stays with the
    depositor.

    Args:
        base_amount: Base asset offered
        quote_amount: Quote asset offered
        base_reserve: Current base reserve
        quote_reserve: Current quote reserve
        share_supply: Current outstanding shares (must be non-zero)

    Returns:
        Tuple of (shares_minted, base_used, quote_used)

    Raises:
        InvalidAmount: If either offered amount is zero
        InvalidRatio: If the deposit is too small to mint a single share
        SafeIntError: If reserves are zero or a result overflows
    """
    if base_amount <= 0 or quote_amount <= 0:
        raise InvalidAmount(
            f"Deposit needs both assets: base={base_amount}, quote={quote_amount}"
        )

    supply = S(share_supply)
    shares_by_base = (S(base_amount) * supply) // S(base_reserve)
    shares_by_quote = (S(quote_amount) * supply) // S(quote_reserve)
    shares = shares_by_base.min(shares_by_quote)

    if not shares:
        raise InvalidRatio(
            f"Deposit base={base_amount}, quote={quote_amount} mints no shares "
            f"against reserves ({base_reserve}, {quote_reserve})"
        )

    shares_minted = shares.to_u64()
    base_used = mul_div_ceil(shares_minted, base_reserve, share_supply)
    quote_used = mul_div_ceil(shares_minted, quote_reserve, share_supply)
    return shares_minted, base_used, quote_used


def compute_withdrawal(
    shares_burned: int,
    base_reserve: int,
    quote_reserve: int,
    share_supply: int,
) -> tuple[int, int]:
    """Assets returned for burning shares.

    Formula: out = reserve * shares_burned // share_supply, for each asset.

    Raises:
        InvalidAmount: If shares_burned is zero or exceeds share_supply
    """
    if shares_burned <= 0:
        raise InvalidAmount("Must burn a positive number of shares")
    if shares_burned > share_supply:
        raise InvalidAmount(f"Cannot burn {shares_burned} of {share_supply} outstanding shares")

    base_out = mul_div(base_reserve, shares_burned, share_supply)
    quote_out = mul_div(quote_reserve, shares_burned, share_supply)
    return base_out, quote_out
