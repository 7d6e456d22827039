"""Transition results returned by the pool state machine.

A result describes one planned or committed transition: the state it was
computed against, the state it produces, the amounts involved, and the
transfers the custody collaborator must execute for it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from exchange.amm.base import Asset, SwapDirection
from exchange.pool.state import PoolState


class TransferDirection(str, Enum):
    """Whether funds move into or out of the pool's custody."""

    INTO_POOL = "into_pool"
    OUT_OF_POOL = "out_of_pool"


@dataclass(frozen=True)
class Transfer:
    """Instruction to move an exact amount of one asset.

    The core only authorizes amounts and directions; moving balances is left
    to the custody collaborator.
    """

    asset: Asset
    amount: int
    direction: TransferDirection


@dataclass(frozen=True)
class Transition(ABC):
    """Base class for pool transitions."""

    state_before: PoolState
    state_after: PoolState

    @property
    @abstractmethod
    def transfers(self) -> tuple[Transfer, ...]:
        """Transfers the custody collaborator must execute."""
        ...


@dataclass(frozen=True)
class InitializeResult(Transition):
    """Pool creation with its first deposit."""

    shares_minted: int

    @property
    def transfers(self) -> tuple[Transfer, ...]:
        return (
            Transfer(Asset.BASE, self.state_after.base_reserve, TransferDirection.INTO_POOL),
            Transfer(Asset.QUOTE, self.state_after.quote_reserve, TransferDirection.INTO_POOL),
        )


@dataclass(frozen=True)
class SwapResult(Transition):
    """Exact-input swap through the pool."""

    direction: SwapDirection
    amount_in: int
    amount_out: int
    fee_amount: int

    @property
    def transfers(self) -> tuple[Transfer, ...]:
        return (
            Transfer(self.direction.asset_in, self.amount_in, TransferDirection.INTO_POOL),
            Transfer(self.direction.asset_out, self.amount_out, TransferDirection.OUT_OF_POOL),
        )


@dataclass(frozen=True)
class DepositResult(Transition):
    """Liquidity added to the pool.

    base_used/quote_used are the amounts actually consumed, which may be less
    than what the provider offered.
    """

    shares_minted: int
    base_used: int
    quote_used: int

    @property
    def transfers(self) -> tuple[Transfer, ...]:
        return (
            Transfer(Asset.BASE, self.base_used, TransferDirection.INTO_POOL),
            Transfer(Asset.QUOTE, self.quote_used, TransferDirection.INTO_POOL),
        )


@dataclass(frozen=True)
class WithdrawalResult(Transition):
    """Liquidity redeemed from the pool."""

    shares_burned: int
    base_out: int
    quote_out: int

    @property
    def transfers(self) -> tuple[Transfer, ...]:
        return (
            Transfer(Asset.BASE, self.base_out, TransferDirection.OUT_OF_POOL),
            Transfer(Asset.QUOTE, self.quote_out, TransferDirection.OUT_OF_POOL),
        )
