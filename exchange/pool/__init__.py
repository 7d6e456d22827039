"""Pool state, state machine, validation and liquidity positions."""

from exchange.pool.machine import Pool
from exchange.pool.positions import PositionLedger
from exchange.pool.results import (
    DepositResult,
    InitializeResult,
    SwapResult,
    Transfer,
    TransferDirection,
    Transition,
    WithdrawalResult,
)
from exchange.pool.state import Identity, LiquidityPosition, PoolState

__all__ = [
    # State
    "Identity",
    "PoolState",
    "LiquidityPosition",
    # State machine
    "Pool",
    # Results
    "Transition",
    "InitializeResult",
    "SwapResult",
    "DepositResult",
    "WithdrawalResult",
    "Transfer",
    "TransferDirection",
    # Positions
    "PositionLedger",
]
