"""Pytest configuration and fixtures."""

from collections.abc import Callable, Iterator

import pytest
import structlog

from exchange.pool import Pool, PositionLedger, Transfer
from exchange.processor import Processor
from tests.helpers import make_pool

# =============================================================================
# Mock classes for dependency injection
# =============================================================================


class RecordingTransferAgent:
    """Transfer agent that records every transfer instead of moving funds.

    Usage:
        agent = RecordingTransferAgent()
        processor = Processor(pool, transfer_agent=agent)
        processor.process("alice", instruction)
        assert agent.calls == [("alice", Transfer(...)), ...]
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, Transfer]] = []  # Track calls for assertions

    def transfer(self, owner: str, transfer: Transfer) -> None:
        self.calls.append((owner, transfer))


class FailingTransferAgent:
    """Transfer agent whose custody backend always refuses.

    Usage:
        agent = FailingTransferAgent(fail_on_call=2)  # first transfer succeeds
    """

    def __init__(self, fail_on_call: int = 1) -> None:
        self.fail_on_call = fail_on_call
        self.calls: list[tuple[str, Transfer]] = []

    def transfer(self, owner: str, transfer: Transfer) -> None:
        self.calls.append((owner, transfer))
        if len(self.calls) >= self.fail_on_call:
            raise RuntimeError("custody backend unavailable")


class ReentrantTransferAgent:
    """Transfer agent that calls back into the pool on its first transfer.

    Usage:
        agent = ReentrantTransferAgent(lambda: pool.swap(1_000, 0, "quote_to_base"))
        processor = Processor(pool, transfer_agent=agent)
    """

    def __init__(self, callback: Callable[[], object]) -> None:
        self.callback = callback
        self.calls: list[tuple[str, Transfer]] = []

    def transfer(self, owner: str, transfer: Transfer) -> None:
        self.calls.append((owner, transfer))
        if len(self.calls) == 1:
            self.callback()


# =============================================================================
# Pytest fixtures
# =============================================================================


@pytest.fixture
def empty_pool() -> Pool:
    """A pool that has not been initialized."""
    return Pool()


@pytest.fixture
def pool() -> Pool:
    """A 1,000,000 / 1,000,000 pool at 30 bps created by ALICE."""
    return make_pool()


@pytest.fixture
def transfer_agent() -> RecordingTransferAgent:
    """A transfer agent that records calls."""
    return RecordingTransferAgent()


@pytest.fixture
def processor(empty_pool: Pool, transfer_agent: RecordingTransferAgent) -> Processor:
    """A processor over an uninitialized pool with a recording agent."""
    return Processor(empty_pool, ledger=PositionLedger(), transfer_agent=transfer_agent)


@pytest.fixture
def reset_structlog() -> Iterator[None]:
    """Restore structlog defaults after a test reconfigures it."""
    yield
    structlog.reset_defaults()
