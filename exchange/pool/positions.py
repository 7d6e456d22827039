"""Ledger of per-provider liquidity positions."""

from __future__ import annotations

from collections.abc import Iterator

import structlog

from exchange.errors import InvalidAmount, InvalidPosition
from exchange.pool.state import Identity, LiquidityPosition
from exchange.safe_int import S

logger = structlog.get_logger()


class PositionLedger:
    """Tracks how many shares each provider owns.

    Positions are created on first credit and dropped when their shares reach
    zero, so iteration only yields live positions. The ledger itself does not
    know the pool's share supply; keeping total_shares equal to it is the
    processor's job.
    """

    def __init__(self, positions: dict[Identity, int] | None = None) -> None:
        self._shares: dict[Identity, int] = {}
        for owner, shares in (positions or {}).items():
            self.credit(owner, shares)

    def get(self, owner: Identity) -> LiquidityPosition:
        """Position for owner; zero shares if the owner holds none."""
        return LiquidityPosition(owner=owner, shares=self._shares.get(owner, 0))

    def shares_of(self, owner: Identity) -> int:
        return self._shares.get(owner, 0)

    @property
    def total_shares(self) -> int:
        """Sum of shares across all positions."""
        return sum(self._shares.values())

    def __len__(self) -> int:
        return len(self._shares)

    def __contains__(self, owner: object) -> bool:
        return owner in self._shares

    def __iter__(self) -> Iterator[LiquidityPosition]:
        for owner, shares in self._shares.items():
            yield LiquidityPosition(owner=owner, shares=shares)

    def require_shares(self, owner: Identity, shares: int) -> None:
        """Raises InvalidPosition unless owner holds at least `shares`."""
        held = self._shares.get(owner, 0)
        if held < shares:
            raise InvalidPosition(f"{owner} holds {held} shares, cannot burn {shares}")

    def credit(self, owner: Identity, shares: int) -> LiquidityPosition:
        """Add minted shares to owner's position.

        Raises:
            InvalidAmount: If shares is not positive
            SafeIntError: If the position would overflow u64
        """
        if shares <= 0:
            raise InvalidAmount(f"Cannot credit {shares} shares")
        new_shares = (S(self._shares.get(owner, 0)) + S(shares)).to_u64()
        self._shares[owner] = new_shares
        logger.debug("position_credited", owner=owner, shares=shares, total=new_shares)
        return LiquidityPosition(owner=owner, shares=new_shares)

    def debit(self, owner: Identity, shares: int) -> LiquidityPosition:
        """Remove burned shares from owner's position.

        Raises:
            InvalidAmount: If shares is not positive
            InvalidPosition: If owner holds fewer than `shares`
        """
        if shares <= 0:
            raise InvalidAmount(f"Cannot debit {shares} shares")
        self.require_shares(owner, shares)
        remaining = self._shares[owner] - shares
        if remaining:
            self._shares[owner] = remaining
        else:
            del self._shares[owner]
        logger.debug("position_debited", owner=owner, shares=shares, remaining=remaining)
        return LiquidityPosition(owner=owner, shares=remaining)
