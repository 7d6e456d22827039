"""Constant product exchange engine - single two-asset liquidity pool."""

from exchange.amm.base import Asset, SwapDirection
from exchange.config import ExchangeConfig
from exchange.errors import ErrorKind, ExchangeError
from exchange.pool import Pool, PoolState, PositionLedger
from exchange.processor import Processor, TransferAgent

__version__ = "0.1.0"
__all__ = [
    "Asset",
    "SwapDirection",
    "ExchangeConfig",
    "ErrorKind",
    "ExchangeError",
    "Pool",
    "PoolState",
    "PositionLedger",
    "Processor",
    "TransferAgent",
    "__version__",
]
