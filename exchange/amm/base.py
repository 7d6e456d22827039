"""Shared types for the pricing engine and liquidity accountant."""

from enum import Enum


class Asset(str, Enum):
    """One of the two assets held by a pool."""

    BASE = "base"
    QUOTE = "quote"

    @property
    def other(self) -> "Asset":
        """The counterpart asset of the pair."""
        return Asset.QUOTE if self is Asset.BASE else Asset.BASE


class SwapDirection(str, Enum):
    """Which reserve a swap draws its input into."""

    BASE_TO_QUOTE = "base_to_quote"
    QUOTE_TO_BASE = "quote_to_base"

    @property
    def asset_in(self) -> Asset:
        """Asset the trader pays into the pool."""
        return Asset.BASE if self is SwapDirection.BASE_TO_QUOTE else Asset.QUOTE

    @property
    def asset_out(self) -> Asset:
        """Asset the pool pays out to the trader."""
        return self.asset_in.other
