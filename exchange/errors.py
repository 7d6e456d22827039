"""Exchange error classes.

Every failure the engine can produce maps to exactly one ErrorKind, so calling
code and tests can assert on the cause of a rejection rather than on the mere
fact that something failed. No error leaves pool state modified.
"""

from enum import Enum
from typing import ClassVar


class ErrorKind(str, Enum):
    """Types of exchange failures."""

    ALREADY_INITIALIZED = "already_initialized"
    NOT_INITIALIZED = "not_initialized"
    INVALID_AMOUNT = "invalid_amount"
    INVALID_FEE_RATE = "invalid_fee_rate"
    INVALID_RATIO = "invalid_ratio"
    INSUFFICIENT_LIQUIDITY = "insufficient_liquidity"
    SLIPPAGE_EXCEEDED = "slippage_exceeded"
    ARITHMETIC_ERROR = "arithmetic_error"
    INVALID_INSTRUCTION = "invalid_instruction"
    INVALID_POSITION = "invalid_position"
    STALE_STATE = "stale_state"
    POOL_BUSY = "pool_busy"
    INVARIANT_VIOLATION = "invariant_violation"


class ExchangeError(Exception):
    """Base error for exchange operations.

    Attributes:
        kind: The ErrorKind identifying the failure
        message: Human-readable detail about the failure
    """

    kind: ClassVar[ErrorKind]

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.kind.value.replace("_", " ")
        super().__init__(self.message)


class AlreadyInitialized(ExchangeError):
    """Initialize was called on a pool that is already initialized."""

    kind = ErrorKind.ALREADY_INITIALIZED


class NotInitialized(ExchangeError):
    """An operation was attempted on a pool that has not been initialized."""

    kind = ErrorKind.NOT_INITIALIZED


class InvalidAmount(ExchangeError):
    """A quantity is zero, out of u64 range, or otherwise nonsensical."""

    kind = ErrorKind.INVALID_AMOUNT


class InvalidFeeRate(ExchangeError):
    """Fee rate must be in range [0, 10000) basis points."""

    kind = ErrorKind.INVALID_FEE_RATE


class InvalidRatio(ExchangeError):
    """A deposit is too small relative to reserves to mint any shares."""

    kind = ErrorKind.INVALID_RATIO


class InsufficientLiquidity(ExchangeError):
    """Reserves are empty or a swap would drain the output reserve."""

    kind = ErrorKind.INSUFFICIENT_LIQUIDITY


class SlippageExceeded(ExchangeError):
    """The computed result is below a caller-supplied minimum."""

    kind = ErrorKind.SLIPPAGE_EXCEEDED


class InvalidInstruction(ExchangeError):
    """The request is malformed: unknown kind, bad direction, missing caller."""

    kind = ErrorKind.INVALID_INSTRUCTION


class InvalidPosition(ExchangeError):
    """The caller's liquidity position does not cover the requested shares."""

    kind = ErrorKind.INVALID_POSITION


class StaleState(ExchangeError):
    """A planned transition was computed against a superseded pool state."""

    kind = ErrorKind.STALE_STATE


class PoolBusy(ExchangeError):
    """The pool is held by an instruction whose transfers are still in flight."""

    kind = ErrorKind.POOL_BUSY


class InvariantViolation(ExchangeError):
    """A planned state breaks a pool invariant and must not be committed."""

    kind = ErrorKind.INVARIANT_VIOLATION
