"""Pool state records.

PoolState is immutable: every transition produces a new record, so a pool
either swaps in the complete new state or keeps the old one untouched.
"""

from __future__ import annotations

from dataclasses import dataclass

from exchange.amm.base import Asset, SwapDirection

# Authenticated caller identity, verified by an external collaborator
Identity = str


@dataclass(frozen=True)
class PoolState:
    """Canonical state of a two-asset constant product pool.

    Attributes:
        base_reserve: Units of the base asset held by the pool
        quote_reserve: Units of the quote asset held by the pool
        share_supply: Total outstanding liquidity shares
        fee_rate_bps: Swap fee in basis points, fixed at creation
        authority: Identity that created the pool (provenance only)
        is_initialized: Lifecycle guard
    """

    base_reserve: int = 0
    quote_reserve: int = 0
    share_supply: int = 0
    fee_rate_bps: int = 0
    authority: Identity = ""
    is_initialized: bool = False

    @classmethod
    def uninitialized(cls) -> PoolState:
        """State of a freshly allocated pool."""
        return cls()

    @property
    def is_empty(self) -> bool:
        """True when initialized but holding no outstanding shares."""
        return self.is_initialized and self.share_supply == 0

    @property
    def product(self) -> int:
        """Constant product k = base_reserve * quote_reserve."""
        return self.base_reserve * self.quote_reserve

    def reserve_of(self, asset: Asset) -> int:
        """Reserve held for one asset."""
        return self.base_reserve if asset is Asset.BASE else self.quote_reserve

    def get_reserves(self, direction: SwapDirection) -> tuple[int, int]:
        """Get reserves ordered as (reserve_in, reserve_out)."""
        return self.reserve_of(direction.asset_in), self.reserve_of(direction.asset_out)


@dataclass(frozen=True)
class LiquidityPosition:
    """A provider's claim on the pool.

    Attributes:
        owner: Identity of the liquidity provider
        shares: Shares held, always <= the pool's share_supply
    """

    owner: Identity
    shares: int = 0
