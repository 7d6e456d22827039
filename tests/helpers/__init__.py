"""Test helpers module for shared test utilities.

- constants: Caller identities and reference pool sizes
- factories: Pool and state factory functions
"""

from tests.helpers.constants import (
    ALICE,
    BASE_RESERVE,
    BOB,
    CAROL,
    FEE_RATE_BPS,
    QUOTE_RESERVE,
)
from tests.helpers.factories import make_pool, make_state

__all__ = [
    # Constants
    "ALICE",
    "BOB",
    "CAROL",
    "BASE_RESERVE",
    "QUOTE_RESERVE",
    "FEE_RATE_BPS",
    # Factories
    "make_pool",
    "make_state",
]
