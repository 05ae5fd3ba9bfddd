from typing import Iterable, List, Sequence

import structlog

from splitledger.core.config import settings
from splitledger.core.errors import EmptyLedger, NotFound
from splitledger.models.base import Clock, to_millis, utcnow
from splitledger.models.expense import Expense
from splitledger.repositories.expense_repo import ExpenseRepository
from splitledger.schemas.ledger import ExpenseInfo
from splitledger.utils.expense_validation import (
    EntryInput,
    validate_entries,
    validate_label,
    zip_columns,
)

logger = structlog.get_logger(__name__)


class ExpenseLedger:
    """
    Append-only sequence of expenses.

    append() is the only mutation. Callers that share a ledger between
    concurrent tasks must serialize appends (ExpenseTracker holds the lock).
    """

    def __init__(
        self,
        repo: ExpenseRepository,
        clock: Clock = utcnow,
        max_entries: int | None = None,
    ):
        self.repo = repo
        self.clock = clock
        if max_entries is None:
            max_entries = settings.MAX_ENTRIES_PER_EXPENSE
        self.max_entries = max_entries

    async def append(self, label: str, entries: Iterable[EntryInput]) -> int:
        """Append an expense and return its id."""
        return (await self.append_expense(label, entries)).id

    async def append_expense(self, label: str, entries: Iterable[EntryInput]) -> Expense:
        """
        Validate and store a new expense, returning the stored record.

        Steps:
        1. Validate label, then entries (nothing is written on failure)
        2. Assign id = current count and stamp the time (millisecond precision)
        3. Store the complete record in one write
        """
        label = validate_label(label)
        validated = validate_entries(entries, self.max_entries)

        expense = Expense(
            id=await self.repo.count(),
            label=label,
            timestamp=to_millis(self.clock()),
            entries=tuple(validated),
        )
        await self.repo.append(expense)
        logger.info(
            "expense_appended",
            expense_id=expense.id,
            participants=len(expense.entries),
        )
        return expense

    async def append_columns(
        self,
        label: str,
        participants: Sequence[str],
        amounts_paid: Sequence[int],
        amounts_owed: Sequence[int],
    ) -> int:
        return (await self.append_columns_expense(
            label, participants, amounts_paid, amounts_owed
        )).id

    async def append_columns_expense(
        self,
        label: str,
        participants: Sequence[str],
        amounts_paid: Sequence[int],
        amounts_owed: Sequence[int],
    ) -> Expense:
        """Append from parallel participant/paid/owed arrays."""
        label = validate_label(label)
        return await self.append_expense(
            label, zip_columns(participants, amounts_paid, amounts_owed)
        )

    async def get(self, expense_id: int) -> Expense:
        expense = None
        if isinstance(expense_id, int) and not isinstance(expense_id, bool):
            expense = await self.repo.get(expense_id)
        if expense is None:
            raise NotFound(expense_id)
        return expense

    async def count(self) -> int:
        return await self.repo.count()

    async def last_label(self) -> str:
        last = await self.repo.last()
        if last is None:
            raise EmptyLedger()
        return last.label

    async def basic_info(self, expense_id: int) -> ExpenseInfo:
        expense = await self.get(expense_id)
        return ExpenseInfo(id=expense.id, label=expense.label, timestamp=expense.timestamp)

    async def participants_of(self, expense_id: int) -> List[str]:
        return (await self.get(expense_id)).participants()

    async def amount_paid(self, expense_id: int, participant_id: str) -> int:
        return (await self.get(expense_id)).amount_paid(participant_id)

    async def amount_owed(self, expense_id: int, participant_id: str) -> int:
        return (await self.get(expense_id)).amount_owed(participant_id)

    async def history(self) -> List[Expense]:
        """All expenses in id order."""
        return await self.repo.list_all()
