"""Pydantic models for the four pool instructions.

Models only check shape and u64 ranges. Semantic checks (non-zero amounts,
fee limits, lifecycle) belong to the pool, so a zero amount parses here and is
rejected with InvalidAmount when executed.
"""

from collections.abc import Mapping
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from exchange.amm.base import SwapDirection
from exchange.errors import InvalidInstruction
from exchange.models.types import U64


class InitializePool(BaseModel):
    """Create the pool with its first deposit."""

    kind: Literal["initialize_pool"] = "initialize_pool"
    base_amount: U64
    quote_amount: U64
    fee_rate_bps: U64 | None = Field(
        default=None,
        description="Swap fee in basis points; the configured default if omitted.",
    )

    model_config = {"frozen": True, "extra": "forbid"}


class Swap(BaseModel):
    """Exact-input swap with a slippage floor."""

    kind: Literal["swap"] = "swap"
    amount_in: U64
    minimum_amount_out: U64 = 0
    direction: SwapDirection

    model_config = {"frozen": True, "extra": "forbid"}


class AddLiquidity(BaseModel):
    """Deposit both assets in exchange for shares."""

    kind: Literal["add_liquidity"] = "add_liquidity"
    base_amount: U64
    quote_amount: U64
    minimum_shares: U64 = 0

    model_config = {"frozen": True, "extra": "forbid"}


class RemoveLiquidity(BaseModel):
    """Burn shares for a proportional share of both reserves."""

    kind: Literal["remove_liquidity"] = "remove_liquidity"
    shares_burned: U64
    minimum_base: U64 = 0
    minimum_quote: U64 = 0

    model_config = {"frozen": True, "extra": "forbid"}


Instruction = Annotated[
    InitializePool | Swap | AddLiquidity | RemoveLiquidity,
    Field(discriminator="kind"),
]

_instruction_adapter: TypeAdapter[Any] = TypeAdapter(Instruction)


def parse_instruction(data: Mapping[str, Any]) -> InitializePool | Swap | AddLiquidity | RemoveLiquidity:
    """Parse a mapping into the matching instruction model.

    Raises:
        InvalidInstruction: If the kind is unknown or any field is invalid
    """
    try:
        return _instruction_adapter.validate_python(data)
    except ValidationError as err:
        raise InvalidInstruction(f"Invalid instruction: {err.error_count()} error(s): {err}") from err
