from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from splitledger.repositories.expense_repo import InMemoryExpenseRepository
from splitledger.repositories.participant_repo import InMemoryParticipantRepository
from splitledger.services.audit_logger import AuditLogger
from splitledger.services.balance_service import BalanceAggregator
from splitledger.services.expense_tracker import ExpenseTracker
from splitledger.services.ledger_service import ExpenseLedger
from splitledger.services.registry_service import IdentityRegistry


class FixedClock:
    """Deterministic clock: each call returns the next tick."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)):
        self.current = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def participant_repo():
    return InMemoryParticipantRepository()


@pytest.fixture
def expense_repo():
    return InMemoryExpenseRepository()


@pytest.fixture
def registry(participant_repo, clock):
    return IdentityRegistry(participant_repo, clock)


@pytest.fixture
def ledger(expense_repo, clock):
    return ExpenseLedger(expense_repo, clock)


@pytest.fixture
def aggregator(expense_repo):
    return BalanceAggregator(expense_repo)


@pytest.fixture
def tracker(participant_repo, expense_repo, clock):
    """Empty in-memory tracker."""
    return ExpenseTracker(participant_repo, expense_repo, clock=clock)


@pytest.fixture
def audit(tracker):
    """Audit logger subscribed to the tracker, keeping every event it sees."""
    audit_logger = AuditLogger(keep_history=True)
    tracker.subscribe(audit_logger)
    return audit_logger


@pytest.fixture
def mock_db():
    """MagicMock database whose collections expose motor's async methods."""
    collections = {}

    def get_collection(name):
        if name not in collections:
            collection = MagicMock(name=name)
            collection.find_one = AsyncMock(return_value=None)
            collection.insert_one = AsyncMock()
            collection.find_one_and_update = AsyncMock(return_value=None)
            collection.count_documents = AsyncMock(return_value=0)
            collection.create_index = AsyncMock()
            collections[name] = collection
        return collections[name]

    db = MagicMock()
    db.__getitem__.side_effect = get_collection
    return db


def make_cursor(docs):
    """Cursor mock supporting .sort() chaining and ``async for``."""
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.__aiter__.return_value = docs
    return cursor


@pytest.fixture
def cursor_factory():
    return make_cursor
