"""Pool state machine.

A Pool owns one PoolState and exposes the four operations: Initialize, Swap,
AddLiquidity and RemoveLiquidity. Each operation comes in two forms:

- plan_*: validates the request and computes the full transition against the
  current state without mutating anything (also usable as a quote)
- the committing form (initialize, swap, ...): plans, then commits

commit() swaps in the planned state only if the plan was computed against the
state the pool still holds, so a transition is applied completely or not at
all, and never on top of a state it did not see.
hold() wraps a commit around external work (custody transfers) and keeps
the pool closed to every other plan and commit until that work finishes.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import fields, replace
from typing import Any, TypeVar

import structlog

from exchange.amm.base import SwapDirection
from exchange.amm.constant_product import ConstantProduct, compute_swap_output, spot_price
from exchange.amm.liquidity import (
    compute_deposit_shares,
    compute_initial_shares,
    compute_withdrawal,
)
from exchange.config import DEFAULT_EXCHANGE_CONFIG, ExchangeConfig
from exchange.errors import ExchangeError, InvalidAmount, PoolBusy, StaleState
from exchange.pool.results import (
    DepositResult,
    InitializeResult,
    SwapResult,
    Transition,
    WithdrawalResult,
)
from exchange.pool.state import Identity, PoolState
from exchange.pool.validation import (
    check_invariants,
    check_swap_product,
    require_amount,
    require_direction,
    require_fee_rate,
    require_initialized,
    require_minimum,
    require_uninitialized,
)
from exchange.safe_int import S

logger = structlog.get_logger()

T = TypeVar("T", bound=Transition)


class Pool:
    """A single two-asset constant product liquidity pool.

    The pool performs no locking: callers must serialize operations against
    one instance. Plans computed concurrently against the same state can be
    committed at most once; the rest fail with StaleState. While a transition
    is held (see hold), every other plan or commit fails with PoolBusy.
    """

    def __init__(
        self,
        config: ExchangeConfig | None = None,
        state: PoolState | None = None,
    ) -> None:
        """Create a pool, optionally restoring a previously persisted state.

        Args:
            config: Fee defaults and limits. If None, uses DEFAULT_EXCHANGE_CONFIG.
            state: Existing state to load. If None, starts uninitialized.

        Raises:
            InvariantViolation: If the supplied state is inconsistent
        """
        self.config = config or DEFAULT_EXCHANGE_CONFIG
        self._state = state if state is not None else PoolState.uninitialized()
        self._held = False
        check_invariants(self._state)

    @property
    def state(self) -> PoolState:
        """Current committed state."""
        return self._state

    @property
    def pricing(self) -> ConstantProduct:
        """Pricing engine bound to this pool's fee rate."""
        return ConstantProduct(self._state.fee_rate_bps)

    # --- Planning (pure) ---

    def plan_initialize(
        self,
        base_amount: int,
        quote_amount: int,
        fee_rate_bps: int | None = None,
        authority: Identity = "",
    ) -> InitializeResult:
        """Plan pool creation with its first deposit.

        Args:
            base_amount: Initial base reserve
            quote_amount: Initial quote reserve
            fee_rate_bps: Swap fee; defaults to config.default_fee_rate_bps
            authority: Identity recorded as the pool's creator

        Raises:
            PoolBusy: If another transition is held
            AlreadyInitialized: If the pool was already created
            InvalidAmount: If either amount is zero or not a u64
            InvalidFeeRate: If the fee is outside the configured range
        """
        self._require_idle()
        state = self._state
        require_uninitialized(state)
        base_amount = require_amount("base_amount", base_amount)
        quote_amount = require_amount("quote_amount", quote_amount)
        if fee_rate_bps is None:
            fee_rate_bps = self.config.default_fee_rate_bps
        fee_rate_bps = require_fee_rate(fee_rate_bps, self.config)

        shares = compute_initial_shares(base_amount, quote_amount)
        after = PoolState(
            base_reserve=base_amount,
            quote_reserve=quote_amount,
            share_supply=shares,
            fee_rate_bps=fee_rate_bps,
            authority=authority,
            is_initialized=True,
        )
        check_invariants(after)
        return InitializeResult(state_before=state, state_after=after, shares_minted=shares)

    def plan_swap(
        self,
        amount_in: int,
        minimum_amount_out: int,
        direction: SwapDirection | str,
    ) -> SwapResult:
        """Plan an exact-input swap.

        Raises:
            PoolBusy: If another transition is held
            NotInitialized: If the pool was never created
            InvalidAmount: If amount_in is zero or an amount is not a u64
            InvalidInstruction: If direction is unknown
            InsufficientLiquidity: If reserves are empty
            SlippageExceeded: If the output is below minimum_amount_out
            SafeIntError: If the input reserve would overflow u64
        """
        self._require_idle()
        state = self._state
        require_initialized(state)
        amount_in = require_amount("amount_in", amount_in)
        minimum_amount_out = require_amount("minimum_amount_out", minimum_amount_out, allow_zero=True)
        direction = require_direction(direction)

        reserve_in, reserve_out = state.get_reserves(direction)
        amount_out, fee_amount = compute_swap_output(
            amount_in, reserve_in, reserve_out, state.fee_rate_bps
        )
        require_minimum(amount_out, minimum_amount_out, "amount_out")

        new_reserve_in = (S(reserve_in) + S(amount_in)).to_u64()
        new_reserve_out = (S(reserve_out) - S(amount_out)).to_u64()
        if direction is SwapDirection.BASE_TO_QUOTE:
            after = replace(state, base_reserve=new_reserve_in, quote_reserve=new_reserve_out)
        else:
            after = replace(state, base_reserve=new_reserve_out, quote_reserve=new_reserve_in)

        check_invariants(after)
        check_swap_product(state, after)
        return SwapResult(
            state_before=state,
            state_after=after,
            direction=direction,
            amount_in=amount_in,
            amount_out=amount_out,
            fee_amount=fee_amount,
        )

    def plan_add_liquidity(
        self,
        base_amount: int,
        quote_amount: int,
        minimum_shares: int = 0,
    ) -> DepositResult:
        """Plan a deposit of both assets.

        An empty pool (all shares previously withdrawn) mints with the initial
        geometric-mean formula and consumes both amounts in full. An active
        pool mints proportionally and may leave part of the offer unconsumed.

        Raises:
            PoolBusy: If another transition is held
            NotInitialized: If the pool was never created
            InvalidAmount: If either amount is zero or not a u64
            InvalidRatio: If the deposit mints no shares
            SlippageExceeded: If fewer than minimum_shares would be minted
            SafeIntError: If reserves or supply would overflow u64
        """
        self._require_idle()
        state = self._state
        require_initialized(state)
        base_amount = require_amount("base_amount", base_amount)
        quote_amount = require_amount("quote_amount", quote_amount)
        minimum_shares = require_amount("minimum_shares", minimum_shares, allow_zero=True)

        if state.share_supply == 0:
            shares = compute_initial_shares(base_amount, quote_amount)
            base_used, quote_used = base_amount, quote_amount
        else:
            shares, base_used, quote_used = compute_deposit_shares(
                base_amount,
                quote_amount,
                state.base_reserve,
                state.quote_reserve,
                state.share_supply,
            )
        require_minimum(shares, minimum_shares, "shares_minted")

        after = replace(
            state,
            base_reserve=(S(state.base_reserve) + S(base_used)).to_u64(),
            quote_reserve=(S(state.quote_reserve) + S(quote_used)).to_u64(),
            share_supply=(S(state.share_supply) + S(shares)).to_u64(),
        )
        check_invariants(after)
        return DepositResult(
            state_before=state,
            state_after=after,
            shares_minted=shares,
            base_used=base_used,
            quote_used=quote_used,
        )

    def plan_remove_liquidity(
        self,
        shares_burned: int,
        minimum_base: int = 0,
        minimum_quote: int = 0,
    ) -> WithdrawalResult:
        """Plan a proportional redemption of shares.

        Raises:
            PoolBusy: If another transition is held
            NotInitialized: If the pool was never created
            InvalidAmount: If shares_burned is zero, exceeds the supply, or
                is too small to redeem anything
            SlippageExceeded: If either output is below its minimum
        """
        self._require_idle()
        state = self._state
        require_initialized(state)
        shares_burned = require_amount("shares_burned", shares_burned)
        minimum_base = require_amount("minimum_base", minimum_base, allow_zero=True)
        minimum_quote = require_amount("minimum_quote", minimum_quote, allow_zero=True)

        base_out, quote_out = compute_withdrawal(
            shares_burned, state.base_reserve, state.quote_reserve, state.share_supply
        )
        if base_out == 0 and quote_out == 0:
            raise InvalidAmount(f"Burning {shares_burned} shares redeems nothing")
        require_minimum(base_out, minimum_base, "base_out")
        require_minimum(quote_out, minimum_quote, "quote_out")

        after = replace(
            state,
            base_reserve=(S(state.base_reserve) - S(base_out)).to_u64(),
            quote_reserve=(S(state.quote_reserve) - S(quote_out)).to_u64(),
            share_supply=(S(state.share_supply) - S(shares_burned)).to_u64(),
        )
        check_invariants(after)
        return WithdrawalResult(
            state_before=state,
            state_after=after,
            shares_burned=shares_burned,
            base_out=base_out,
            quote_out=quote_out,
        )

    # --- Quotes ---

    def quote_amount_in(self, amount_out: int, direction: SwapDirection | str) -> int:
        """Minimal input for a swap that yields at least amount_out."""
        require_initialized(self._state)
        amount_out = require_amount("amount_out", amount_out)
        reserve_in, reserve_out = self._state.get_reserves(require_direction(direction))
        return self.pricing.get_amount_in(amount_out, reserve_in, reserve_out)

    def spot_price(self, direction: SwapDirection | str) -> tuple[int, int]:
        """Marginal price of the input asset as (numerator, denominator)."""
        require_initialized(self._state)
        return spot_price(*self._state.get_reserves(require_direction(direction)))

    # --- Committing ---

    def commit(self, transition: T) -> T:
        """Apply a planned transition.

        Raises:
            PoolBusy: If another transition is held
            StaleState: If the pool state changed since the plan was computed
            InvariantViolation: If the planned state is inconsistent
        """
        self._require_idle()
        self._require_current(transition)
        self._state = transition.state_after
        return transition

    @contextmanager
    def hold(self, transition: T) -> Iterator[T]:
        """Reserve the pool for one planned transition while external work runs.

        Inside the block every plan_* and commit call fails with PoolBusy, so
        nothing can move the state the transition was planned against. The
        transition is committed when the block exits normally; if the block
        raises, the pool is released unchanged.

        Usage:
            with pool.hold(plan):
                move_funds(plan.transfers)

        Raises:
            PoolBusy: If another transition is already held
            StaleState: If the pool state changed since the plan was computed
            InvariantViolation: If the planned state is inconsistent
        """
        self._require_idle()
        self._require_current(transition)
        self._held = True
        try:
            yield transition
        finally:
            self._held = False
        self._state = transition.state_after

    @property
    def is_held(self) -> bool:
        """True while a transition is held by hold()."""
        return self._held

    def _require_idle(self) -> None:
        if self._held:
            raise PoolBusy("Pool is held by an instruction with transfers in flight")

    def _require_current(self, transition: Transition) -> None:
        if transition.state_before != self._state:
            raise StaleState(f"{type(transition).__name__} planned against a superseded state")
        check_invariants(transition.state_after)

    def initialize(
        self,
        base_amount: int,
        quote_amount: int,
        fee_rate_bps: int | None = None,
        authority: Identity = "",
    ) -> InitializeResult:
        """Create the pool; see plan_initialize."""
        return self._execute(
            "pool_initialize",
            lambda: self.plan_initialize(base_amount, quote_amount, fee_rate_bps, authority),
        )

    def swap(
        self,
        amount_in: int,
        minimum_amount_out: int,
        direction: SwapDirection | str,
    ) -> SwapResult:
        """Execute an exact-input swap; see plan_swap."""
        return self._execute(
            "swap",
            lambda: self.plan_swap(amount_in, minimum_amount_out, direction),
        )

    def add_liquidity(
        self,
        base_amount: int,
        quote_amount: int,
        minimum_shares: int = 0,
    ) -> DepositResult:
        """Deposit both assets for shares; see plan_add_liquidity."""
        return self._execute(
            "add_liquidity",
            lambda: self.plan_add_liquidity(base_amount, quote_amount, minimum_shares),
        )

    def remove_liquidity(
        self,
        shares_burned: int,
        minimum_base: int = 0,
        minimum_quote: int = 0,
    ) -> WithdrawalResult:
        """Redeem shares for both assets; see plan_remove_liquidity."""
        return self._execute(
            "remove_liquidity",
            lambda: self.plan_remove_liquidity(shares_burned, minimum_base, minimum_quote),
        )

    def _execute(self, operation: str, plan: Callable[[], T]) -> T:
        try:
            transition = self.commit(plan())
        except ExchangeError as err:
            logger.info(
                f"{operation}_rejected",
                error_kind=err.kind.value,
                reason=err.message,
            )
            raise
        logger.info(f"{operation}_committed", **describe_transition(transition))
        return transition


def describe_transition(transition: Transition) -> dict[str, Any]:
    """Flatten a transition into log fields: its amounts plus resulting reserves."""
    summary: dict[str, Any] = {
        f.name: getattr(transition, f.name)
        for f in fields(transition)
        if f.name not in ("state_before", "state_after")
    }
    after = transition.state_after
    summary.update(
        base_reserve=after.base_reserve,
        quote_reserve=after.quote_reserve,
        share_supply=after.share_supply,
    )
    return summary
