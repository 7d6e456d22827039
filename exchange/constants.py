"""Numeric bounds and protocol parameters for the exchange engine.

Centralizes integer widths and fee units used across the arithmetic kernel,
pricing engine and pool state machine.
"""

# Reserves, share supply and every caller-supplied amount are 64-bit unsigned
U64_MAX = 2**64 - 1

# Widest intermediate used for multiply-then-divide sequences
U128_MAX = 2**128 - 1

# Fee rates are expressed in basis points (1 bp = 0.01%)
BPS_DENOMINATOR = 10_000

# A fee must leave some of the input in play: 10000 bps would consume all of it
MAX_FEE_RATE_BPS = BPS_DENOMINATOR - 1

# Standard constant-product fee (0.3%)
DEFAULT_FEE_RATE_BPS = 30
