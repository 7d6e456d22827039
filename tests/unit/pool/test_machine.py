"""Tests for the pool state machine."""

import pytest
from structlog.testing import capture_logs

from exchange.amm.base import Asset, SwapDirection
from exchange.config import ExchangeConfig
from exchange.constants import U64_MAX
from exchange.errors import (
    AlreadyInitialized,
    ErrorKind,
    InsufficientLiquidity,
    InvalidAmount,
    InvalidFeeRate,
    InvalidInstruction,
    InvalidRatio,
    InvariantViolation,
    NotInitialized,
    PoolBusy,
    SlippageExceeded,
    StaleState,
)
from exchange.pool import Pool, PoolState, Transfer, TransferDirection, Transition
from exchange.pool.machine import describe_transition
from exchange.safe_int import SafeIntError
from tests.helpers import ALICE, make_pool, make_state


class TestInitialize:
    """Tests for pool creation."""

    def test_initialize_sets_state(self, empty_pool: Pool):
        """Initialize records reserves, shares, fee and authority."""
        result = empty_pool.initialize(1_000_000, 1_000_000, 30, authority=ALICE)

        assert result.shares_minted == 1_000_000
        assert empty_pool.state == PoolState(
            base_reserve=1_000_000,
            quote_reserve=1_000_000,
            share_supply=1_000_000,
            fee_rate_bps=30,
            authority=ALICE,
            is_initialized=True,
        )
        assert result.state_before == PoolState.uninitialized()
        assert result.state_after == empty_pool.state

    def test_initialize_transfers(self, empty_pool: Pool):
        """Both initial amounts move into the pool."""
        result = empty_pool.initialize(400, 900, 30)
        assert result.shares_minted == 600
        assert result.transfers == (
            Transfer(Asset.BASE, 400, TransferDirection.INTO_POOL),
            Transfer(Asset.QUOTE, 900, TransferDirection.INTO_POOL),
        )

    def test_default_fee_from_config(self):
        """Omitting the fee uses the configured default."""
        pool = Pool(ExchangeConfig(default_fee_rate_bps=25))
        pool.initialize(1_000, 1_000)
        assert pool.state.fee_rate_bps == 25

    def test_zero_fee_allowed(self, empty_pool: Pool):
        """A pool may charge no fee."""
        empty_pool.initialize(1_000, 1_000, 0)
        assert empty_pool.state.fee_rate_bps == 0

    def test_twice_rejected(self, pool: Pool):
        """A pool is created only once."""
        before = pool.state
        with pytest.raises(AlreadyInitialized):
            pool.initialize(5, 5, 30)
        assert pool.state == before

    @pytest.mark.parametrize("base,quote", [(0, 1_000), (1_000, 0)])
    def test_zero_amount_rejected(self, empty_pool: Pool, base, quote):
        """Initialize with a zero amount fails with InvalidAmount."""
        with pytest.raises(InvalidAmount):
            empty_pool.initialize(base, quote, 30)
        assert empty_pool.state == PoolState.uninitialized()

    def test_fee_10000_rejected(self, empty_pool: Pool):
        """A 100% fee is rejected."""
        with pytest.raises(InvalidFeeRate):
            empty_pool.initialize(1_000, 1_000, 10_000)
        assert not empty_pool.state.is_initialized

    def test_fee_above_configured_max_rejected(self):
        """The configured ceiling is enforced."""
        pool = Pool(ExchangeConfig(max_fee_rate_bps=100))
        with pytest.raises(InvalidFeeRate):
            pool.initialize(1_000, 1_000, 101)
        pool.initialize(1_000, 1_000, 100)
        assert pool.state.fee_rate_bps == 100

    @pytest.mark.parametrize("amount", [-1, U64_MAX + 1, 1.5, "1000", True, None])
    def test_malformed_amounts_rejected(self, empty_pool: Pool, amount):
        """Amounts must be u64 integers."""
        with pytest.raises(InvalidAmount):
            empty_pool.initialize(amount, 1_000, 30)

    def test_u64_max_amounts_accepted(self, empty_pool: Pool):
        """The largest u64 deposit is valid."""
        empty_pool.initialize(U64_MAX, U64_MAX, 30)
        assert empty_pool.state.share_supply == U64_MAX


class TestUninitialized:
    """Every operation other than Initialize requires an initialized pool."""

    def test_swap(self, empty_pool: Pool):
        with pytest.raises(NotInitialized):
            empty_pool.swap(100, 0, SwapDirection.BASE_TO_QUOTE)

    def test_add_liquidity(self, empty_pool: Pool):
        with pytest.raises(NotInitialized):
            empty_pool.add_liquidity(100, 100, 0)

    def test_remove_liquidity(self, empty_pool: Pool):
        with pytest.raises(NotInitialized):
            empty_pool.remove_liquidity(1, 0, 0)

    def test_not_initialized_checked_before_amounts(self, empty_pool: Pool):
        """Lifecycle is checked first, even for malformed amounts."""
        with pytest.raises(NotInitialized):
            empty_pool.swap(0, 0, SwapDirection.BASE_TO_QUOTE)


class TestSwap:
    """Tests for swaps."""

    def test_reference_swap(self, pool: Pool):
        """Initialize(1M, 1M, 30) then Swap(100k, 0, BaseToQuote)."""
        result = pool.swap(100_000, 0, SwapDirection.BASE_TO_QUOTE)

        assert result.amount_out == 90_661
        assert result.fee_amount == 300
        assert (pool.state.base_reserve, pool.state.quote_reserve) == (1_100_000, 909_339)
        assert pool.state.share_supply == 1_000_000

    def test_reverse_direction(self, pool: Pool):
        """QuoteToBase draws from the base reserve."""
        result = pool.swap(100_000, 0, SwapDirection.QUOTE_TO_BASE)

        assert result.amount_out == 90_661
        assert (pool.state.base_reserve, pool.state.quote_reserve) == (909_339, 1_100_000)

    def test_direction_by_value(self, pool: Pool):
        """Directions may be given as their string value."""
        result = pool.swap(100_000, 0, "base_to_quote")
        assert result.direction is SwapDirection.BASE_TO_QUOTE

    def test_unknown_direction(self, pool: Pool):
        """An unknown direction is an invalid instruction."""
        before = pool.state
        with pytest.raises(InvalidInstruction):
            pool.swap(100_000, 0, "sideways")
        assert pool.state == before

    def test_swap_transfers(self, pool: Pool):
        """Input moves in, output moves out."""
        result = pool.swap(100_000, 0, SwapDirection.QUOTE_TO_BASE)
        assert result.transfers == (
            Transfer(Asset.QUOTE, 100_000, TransferDirection.INTO_POOL),
            Transfer(Asset.BASE, 90_661, TransferDirection.OUT_OF_POOL),
        )

    def test_slippage_exceeded(self, pool: Pool):
        """A minimum one unit above the computed output fails without mutation."""
        before = pool.state
        with pytest.raises(SlippageExceeded) as exc_info:
            pool.swap(100_000, 90_662, SwapDirection.BASE_TO_QUOTE)
        assert exc_info.value.kind is ErrorKind.SLIPPAGE_EXCEEDED
        assert pool.state == before

    def test_slippage_exact_minimum(self, pool: Pool):
        """The computed output itself satisfies the minimum."""
        result = pool.swap(100_000, 90_661, SwapDirection.BASE_TO_QUOTE)
        assert result.amount_out == 90_661

    def test_zero_input_rejected(self, pool: Pool):
        with pytest.raises(InvalidAmount):
            pool.swap(0, 0, SwapDirection.BASE_TO_QUOTE)

    def test_negative_minimum_rejected(self, pool: Pool):
        with pytest.raises(InvalidAmount):
            pool.swap(100, -1, SwapDirection.BASE_TO_QUOTE)

    def test_tiny_swap_pays_fee_for_nothing(self, pool: Pool):
        """An input smaller than the fee granularity yields zero output."""
        result = pool.swap(1, 0, SwapDirection.BASE_TO_QUOTE)
        assert result.amount_out == 0
        assert result.fee_amount == 1
        assert pool.state.base_reserve == 1_000_001

    def test_product_never_decreases(self, pool: Pool):
        """k grows across a sequence of swaps in both directions."""
        for amount, direction in [
            (100_000, SwapDirection.BASE_TO_QUOTE),
            (37, SwapDirection.QUOTE_TO_BASE),
            (500_000, SwapDirection.QUOTE_TO_BASE),
            (1, SwapDirection.BASE_TO_QUOTE),
        ]:
            before = pool.state.product
            pool.swap(amount, 0, direction)
            assert pool.state.product > before

    def test_empty_pool_has_no_liquidity(self, pool: Pool):
        """After draining all shares a swap finds no liquidity."""
        pool.remove_liquidity(pool.state.share_supply, 0, 0)
        with pytest.raises(InsufficientLiquidity):
            pool.swap(100, 0, SwapDirection.BASE_TO_QUOTE)

    def test_input_reserve_overflow(self):
        """Growing a reserve past u64 is an arithmetic failure."""
        pool = Pool(state=make_state(U64_MAX - 10, 1_000, 1_000))
        before = pool.state
        with pytest.raises(SafeIntError) as exc_info:
            pool.swap(100, 0, SwapDirection.BASE_TO_QUOTE)
        assert exc_info.value.kind is ErrorKind.ARITHMETIC_ERROR
        assert pool.state == before


class TestAddLiquidity:
    """Tests for deposits."""

    def test_balanced(self, pool: Pool):
        result = pool.add_liquidity(1_000, 1_000, 0)

        assert (result.shares_minted, result.base_used, result.quote_used) == (1_000, 1_000, 1_000)
        assert (pool.state.base_reserve, pool.state.quote_reserve) == (1_001_000, 1_001_000)
        assert pool.state.share_supply == 1_001_000

    def test_unbalanced_consumes_only_ratio(self, pool: Pool):
        """Reserves grow by consumed amounts, not offered amounts."""
        result = pool.add_liquidity(1_000, 5_000, 0)

        assert (result.base_used, result.quote_used) == (1_000, 1_000)
        assert pool.state.quote_reserve == 1_001_000
        assert result.transfers == (
            Transfer(Asset.BASE, 1_000, TransferDirection.INTO_POOL),
            Transfer(Asset.QUOTE, 1_000, TransferDirection.INTO_POOL),
        )

    def test_minimum_shares_exceeded(self, pool: Pool):
        before = pool.state
        with pytest.raises(SlippageExceeded):
            pool.add_liquidity(1_000, 1_000, 1_001)
        assert pool.state == before

    def test_invalid_ratio(self):
        """A deposit too small for a single share is rejected."""
        pool = make_pool(base=1_000_000, quote=1)  # 1,000 shares
        before = pool.state
        with pytest.raises(InvalidRatio):
            pool.add_liquidity(999, 1, 0)
        assert pool.state == before

    def test_zero_amount_rejected(self, pool: Pool):
        with pytest.raises(InvalidAmount):
            pool.add_liquidity(1_000, 0, 0)

    def test_reserve_overflow(self):
        """Deposits that would overflow a reserve fail atomically."""
        pool = Pool(state=make_state(U64_MAX - 5, U64_MAX - 5, U64_MAX - 5))
        before = pool.state
        with pytest.raises(SafeIntError):
            pool.add_liquidity(100, 100, 0)
        assert pool.state == before

    def test_after_swap_keeps_share_price(self, pool: Pool):
        """Depositing after a swap never dilutes existing holders."""
        pool.swap(100_000, 0, SwapDirection.BASE_TO_QUOTE)
        before = pool.state
        result = pool.add_liquidity(11_000, 20_000, 0)

        assert (result.shares_minted, result.base_used, result.quote_used) == (
            10_000,
            11_000,
            9_094,
        )
        after = pool.state
        # reserve per share does not fall for either asset
        assert after.base_reserve * before.share_supply >= before.base_reserve * after.share_supply
        assert (
            after.quote_reserve * before.share_supply >= before.quote_reserve * after.share_supply
        )


class TestRemoveLiquidity:
    """Tests for withdrawals."""

    def test_half(self, pool: Pool):
        result = pool.remove_liquidity(500_000, 0, 0)

        assert (result.base_out, result.quote_out) == (500_000, 500_000)
        assert pool.state.share_supply == 500_000
        assert result.transfers == (
            Transfer(Asset.BASE, 500_000, TransferDirection.OUT_OF_POOL),
            Transfer(Asset.QUOTE, 500_000, TransferDirection.OUT_OF_POOL),
        )

    def test_drain_then_reinitialize_shares(self, pool: Pool):
        """Removing every share empties the pool; the next deposit uses isqrt."""
        pool.swap(100_000, 0, SwapDirection.BASE_TO_QUOTE)
        result = pool.remove_liquidity(1_000_000, 0, 0)

        assert (result.base_out, result.quote_out) == (1_100_000, 909_339)
        state = pool.state
        assert (state.base_reserve, state.quote_reserve, state.share_supply) == (0, 0, 0)
        assert pool.state.is_empty
        assert pool.state.is_initialized

        deposit = pool.add_liquidity(400, 900, 0)
        assert (deposit.shares_minted, deposit.base_used, deposit.quote_used) == (600, 400, 900)
        state = pool.state
        assert (state.base_reserve, state.quote_reserve, state.share_supply) == (400, 900, 600)

    def test_more_than_supply(self, pool: Pool):
        before = pool.state
        with pytest.raises(InvalidAmount):
            pool.remove_liquidity(1_000_001, 0, 0)
        assert pool.state == before

    def test_zero_shares(self, pool: Pool):
        with pytest.raises(InvalidAmount):
            pool.remove_liquidity(0, 0, 0)

    @pytest.mark.parametrize("minimum_base,minimum_quote", [(500_001, 0), (0, 500_001)])
    def test_slippage(self, pool: Pool, minimum_base, minimum_quote):
        """Either minimum being violated fails the withdrawal."""
        before = pool.state
        with pytest.raises(SlippageExceeded):
            pool.remove_liquidity(500_000, minimum_base, minimum_quote)
        assert pool.state == before

    def test_burn_redeeming_nothing(self):
        """Burning shares worth less than one unit of either asset is rejected."""
        pool = Pool(state=make_state(5, 5, 100))
        with pytest.raises(InvalidAmount):
            pool.remove_liquidity(1, 0, 0)

    def test_partial_withdrawal_keeps_reserves_positive(self):
        """Outstanding shares always keep both reserves non-zero."""
        pool = make_pool(base=3, quote=1_000_000)
        pool.remove_liquidity(pool.state.share_supply - 1, 0, 0)
        assert pool.state.share_supply == 1
        assert pool.state.base_reserve > 0
        assert pool.state.quote_reserve > 0


class TestPlanAndCommit:
    """Tests for planning, quoting and atomic commit."""

    def test_plan_does_not_mutate(self, pool: Pool):
        before = pool.state
        plan = pool.plan_swap(100_000, 0, SwapDirection.BASE_TO_QUOTE)
        assert pool.state == before
        assert plan.state_before == before

    def test_commit_applies_plan(self, pool: Pool):
        plan = pool.plan_add_liquidity(1_000, 1_000)
        pool.commit(plan)
        assert pool.state == plan.state_after

    def test_stale_plan_rejected(self, pool: Pool):
        """A plan computed against a superseded state cannot be applied."""
        stale = pool.plan_swap(100_000, 0, SwapDirection.BASE_TO_QUOTE)
        pool.swap(50_000, 0, SwapDirection.BASE_TO_QUOTE)
        current = pool.state

        with pytest.raises(StaleState):
            pool.commit(stale)
        assert pool.state == current

    def test_plan_commits_once(self, pool: Pool):
        plan = pool.plan_remove_liquidity(10)
        pool.commit(plan)
        with pytest.raises(StaleState):
            pool.commit(plan)

    def test_quote_amount_in(self, pool: Pool):
        assert pool.quote_amount_in(90_661, SwapDirection.BASE_TO_QUOTE) == 100_000

    def test_spot_price(self, pool: Pool):
        pool.swap(100_000, 0, SwapDirection.BASE_TO_QUOTE)
        assert pool.spot_price(SwapDirection.BASE_TO_QUOTE) == (909_339, 1_100_000)
        assert pool.spot_price("quote_to_base") == (1_100_000, 909_339)

    def test_pricing_uses_pool_fee(self):
        assert make_pool(fee_rate_bps=25).pricing.fee_multiplier == 9_975

    def test_describe_transition(self, pool: Pool):
        result = pool.plan_swap(100_000, 0, SwapDirection.BASE_TO_QUOTE)
        summary = describe_transition(result)
        assert summary["amount_out"] == 90_661
        assert summary["base_reserve"] == 1_100_000
        assert "state_before" not in summary

    def test_transition_is_abstract(self):
        """Only concrete results know which transfers they authorize."""
        with pytest.raises(TypeError):
            Transition(state_before=PoolState(), state_after=PoolState())


class TestHold:
    """Tests for holding the pool while a plan's transfers run."""

    def test_commits_on_clean_exit(self, pool: Pool):
        plan = pool.plan_swap(100_000, 0, SwapDirection.BASE_TO_QUOTE)
        with pool.hold(plan) as held:
            assert held is plan
            assert pool.is_held
            assert pool.state == plan.state_before

        assert pool.state == plan.state_after
        assert not pool.is_held

    def test_other_calls_refused_while_held(self, pool: Pool):
        plan = pool.plan_swap(100_000, 0, SwapDirection.BASE_TO_QUOTE)
        other = pool.plan_add_liquidity(1_000, 1_000)

        with pool.hold(plan):
            with pytest.raises(PoolBusy):
                pool.plan_swap(1_000, 0, SwapDirection.QUOTE_TO_BASE)
            with pytest.raises(PoolBusy):
                pool.swap(1_000, 0, SwapDirection.QUOTE_TO_BASE)
            with pytest.raises(PoolBusy):
                pool.commit(other)
            with pytest.raises(PoolBusy):
                with pool.hold(other):
                    pass

        assert pool.state == plan.state_after

    def test_failure_inside_leaves_state(self, pool: Pool):
        """An exception raised while held discards the plan and releases the pool."""
        before = pool.state
        plan = pool.plan_remove_liquidity(10)

        with pytest.raises(RuntimeError):
            with pool.hold(plan):
                raise RuntimeError("custody backend unavailable")

        assert pool.state == before
        assert not pool.is_held
        pool.commit(plan)
        assert pool.state == plan.state_after

    def test_stale_plan_not_held(self, pool: Pool):
        stale = pool.plan_swap(100_000, 0, SwapDirection.BASE_TO_QUOTE)
        pool.swap(50_000, 0, SwapDirection.BASE_TO_QUOTE)

        with pytest.raises(StaleState):
            with pool.hold(stale):
                pass
        assert not pool.is_held

    def test_busy_rejection_logged(self, pool: Pool):
        plan = pool.plan_swap(100_000, 0, SwapDirection.BASE_TO_QUOTE)
        with pool.hold(plan), capture_logs() as logs, pytest.raises(PoolBusy):
            pool.swap(1_000, 0, SwapDirection.QUOTE_TO_BASE)

        assert logs[-1]["event"] == "swap_rejected"
        assert logs[-1]["error_kind"] == ErrorKind.POOL_BUSY.value


class TestRestoredState:
    """Tests for loading persisted state."""

    def test_valid_state_loads(self):
        state = make_state(1_000, 2_000, 1_414)
        assert Pool(state=state).state == state

    def test_shares_without_reserves_rejected(self):
        with pytest.raises(InvariantViolation):
            Pool(state=make_state(0, 2_000, 1_414))

    def test_reserves_without_shares_rejected(self):
        """Nobody could ever withdraw these reserves."""
        with pytest.raises(InvariantViolation):
            Pool(state=make_state(1_000_000, 1_000_000, 0))

    def test_uninitialized_with_reserves_rejected(self):
        with pytest.raises(InvariantViolation):
            Pool(state=PoolState(base_reserve=10))

    def test_full_fee_rejected(self):
        with pytest.raises(InvariantViolation):
            Pool(state=make_state(1_000, 1_000, 1_000, fee_rate_bps=10_000))


class TestLogging:
    """Committed and rejected operations are logged."""

    def test_committed_event(self, pool: Pool):
        with capture_logs() as logs:
            pool.swap(100_000, 0, SwapDirection.BASE_TO_QUOTE)

        assert len(logs) == 1
        assert logs[0]["event"] == "swap_committed"
        assert logs[0]["log_level"] == "info"
        assert logs[0]["amount_out"] == 90_661
        assert logs[0]["quote_reserve"] == 909_339

    def test_rejected_event(self, pool: Pool):
        with capture_logs() as logs, pytest.raises(SlippageExceeded):
            pool.swap(100_000, 90_662, SwapDirection.BASE_TO_QUOTE)

        assert [entry["event"] for entry in logs] == ["swap_rejected"]
        assert logs[0]["error_kind"] == "slippage_exceeded"

    def test_plans_are_silent(self, pool: Pool):
        with capture_logs() as logs:
            pool.plan_add_liquidity(1_000, 1_000)
        assert logs == []
