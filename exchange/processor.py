"""Instruction processor: the seam between callers, custody and the pool.

The processor receives an already-authenticated caller identity and one
instruction, plans the transition on the pool, has the custody collaborator
move the authorized amounts, and only then commits the pool state and
updates the caller's liquidity position.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

import structlog

from exchange.errors import ExchangeError, InvalidInstruction
from exchange.models.instructions import (
    AddLiquidity,
    InitializePool,
    RemoveLiquidity,
    Swap,
    parse_instruction,
)
from exchange.pool.machine import Pool
from exchange.pool.positions import PositionLedger
from exchange.pool.results import (
    DepositResult,
    InitializeResult,
    Transfer,
    Transition,
    WithdrawalResult,
)
from exchange.pool.state import Identity

logger = structlog.get_logger()

AnyInstruction = InitializePool | Swap | AddLiquidity | RemoveLiquidity


class TransferAgent(Protocol):
    """Protocol for the asset custody collaborator.

    Implementations move exactly `transfer.amount` of `transfer.asset`
    between `owner` and the pool's custody, in `transfer.direction`. An
    implementation that fails part-way must undo its own partial moves before
    raising; the processor then leaves pool state untouched. The pool is held
    while transfers run, so calls back into it fail with PoolBusy.
    """

    def transfer(self, owner: Identity, transfer: Transfer) -> None:
        """Execute one transfer or raise."""
        ...


class Processor:
    """Executes instructions against one pool on behalf of authenticated callers.

    Usage:
        processor = Processor(Pool(), transfer_agent=custody)
        processor.process("alice", {"kind": "initialize_pool", "base_amount": 1000,
                                    "quote_amount": 1000, "fee_rate_bps": 30})
        processor.process("bob", Swap(amount_in=10, direction="base_to_quote"))
    """

    def __init__(
        self,
        pool: Pool,
        ledger: PositionLedger | None = None,
        transfer_agent: TransferAgent | None = None,
    ) -> None:
        """Initialize the processor.

        Args:
            pool: The pool to operate on
            ledger: Liquidity positions for this pool. If None, starts empty.
            transfer_agent: Custody collaborator. If None, transfers are only
                reported on the returned result and executing them is left
                to the caller.
        """
        self.pool = pool
        self.ledger = ledger if ledger is not None else PositionLedger()
        self.transfer_agent = transfer_agent

    def process(self, caller: Identity, instruction: AnyInstruction | Mapping[str, Any]) -> Transition:
        """Execute one instruction for `caller`.

        Args:
            caller: Identity already verified by the signature collaborator
            instruction: An instruction model, or a mapping to parse into one

        Returns:
            The committed transition, including the transfers it authorized

        Raises:
            InvalidInstruction: If caller is missing or the instruction is malformed
            InvalidPosition: If the caller does not hold the shares to burn
            PoolBusy: If the pool is held by another instruction
            ExchangeError: Any rejection raised by the pool
        """
        if not isinstance(caller, str) or not caller:
            raise InvalidInstruction("Instruction requires an authenticated caller")
        label = _instruction_label(instruction)

        try:
            if isinstance(instruction, Mapping):
                instruction = parse_instruction(instruction)
            plan = self._plan(caller, instruction)
            if isinstance(plan, WithdrawalResult):
                self.ledger.require_shares(caller, plan.shares_burned)
        except ExchangeError as err:
            logger.info(
                "instruction_rejected",
                caller=caller,
                instruction=label,
                error_kind=err.kind.value,
                reason=err.message,
            )
            raise

        # The pool stays closed to other plans and commits until every
        # transfer has gone through; a failed transfer leaves it unchanged.
        try:
            with self.pool.hold(plan):
                self._execute_transfers(caller, plan)
        except Exception as err:
            logger.warning(
                "instruction_aborted",
                caller=caller,
                instruction=label,
                error=str(err),
            )
            raise
        self._settle_position(caller, plan)

        logger.info(
            "instruction_processed",
            caller=caller,
            instruction=label,
            base_reserve=plan.state_after.base_reserve,
            quote_reserve=plan.state_after.quote_reserve,
            share_supply=plan.state_after.share_supply,
        )
        return plan

    def _plan(self, caller: Identity, instruction: AnyInstruction) -> Transition:
        """Dispatch an instruction to the matching pool planner."""
        if isinstance(instruction, InitializePool):
            return self.pool.plan_initialize(
                instruction.base_amount,
                instruction.quote_amount,
                instruction.fee_rate_bps,
                authority=caller,
            )
        if isinstance(instruction, Swap):
            return self.pool.plan_swap(
                instruction.amount_in,
                instruction.minimum_amount_out,
                instruction.direction,
            )
        if isinstance(instruction, AddLiquidity):
            return self.pool.plan_add_liquidity(
                instruction.base_amount,
                instruction.quote_amount,
                instruction.minimum_shares,
            )
        if isinstance(instruction, RemoveLiquidity):
            return self.pool.plan_remove_liquidity(
                instruction.shares_burned,
                instruction.minimum_base,
                instruction.minimum_quote,
            )
        raise InvalidInstruction(f"Unsupported instruction: {type(instruction).__name__}")

    def _execute_transfers(self, caller: Identity, plan: Transition) -> None:
        if self.transfer_agent is None:
            return
        for transfer in plan.transfers:
            # Nothing to move for a zero-amount leg
            if transfer.amount:
                self.transfer_agent.transfer(caller, transfer)

    def _settle_position(self, caller: Identity, plan: Transition) -> None:
        if isinstance(plan, (InitializeResult, DepositResult)):
            self.ledger.credit(caller, plan.shares_minted)
        elif isinstance(plan, WithdrawalResult):
            self.ledger.debit(caller, plan.shares_burned)


def _instruction_label(instruction: Any) -> str:
    """Instruction kind for log fields, read before any parsing."""
    if isinstance(instruction, Mapping):
        return str(instruction.get("kind", "unknown"))
    return getattr(instruction, "kind", type(instruction).__name__)
