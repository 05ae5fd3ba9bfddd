"""
ExpenseRepository - append-only ordered store of expenses.

Contract:
1. append() stores one complete expense in a single write
2. Expense ids equal their position: the store never has gaps
3. Nothing is ever updated or deleted
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from splitledger.models.expense import Expense, ExpenseEntry
from splitledger.models.base import as_utc


class ExpenseRepository(ABC):
    """Storage contract for the expense ledger."""

    @abstractmethod
    async def append(self, expense: Expense) -> Expense:
        ...

    @abstractmethod
    async def get(self, expense_id: int) -> Optional[Expense]:
        ...

    @abstractmethod
    async def count(self) -> int:
        ...

    @abstractmethod
    async def last(self) -> Optional[Expense]:
        ...

    @abstractmethod
    def iter_all(self) -> AsyncIterator[Expense]:
        """Yield every expense in id order."""

    async def list_all(self) -> List[Expense]:
        return [expense async for expense in self.iter_all()]


class InMemoryExpenseRepository(ExpenseRepository):
    """Expenses held in a process-local list indexed by id."""

    def __init__(self):
        self._expenses: List[Expense] = []

    async def append(self, expense: Expense) -> Expense:
        if expense.id != len(self._expenses):
            raise ValueError(
                f"Expense id {expense.id} does not match next position {len(self._expenses)}"
            )
        self._expenses.append(expense)
        return expense

    async def get(self, expense_id: int) -> Optional[Expense]:
        if 0 <= expense_id < len(self._expenses):
            return self._expenses[expense_id]
        return None

    async def count(self) -> int:
        return len(self._expenses)

    async def last(self) -> Optional[Expense]:
        return self._expenses[-1] if self._expenses else None

    async def iter_all(self) -> AsyncIterator[Expense]:
        # Walk a copy: appends made during iteration belong to the next pass
        for expense in list(self._expenses):
            yield expense


class MongoExpenseRepository(ExpenseRepository):
    """
    Expenses stored in the ``expenses`` collection, ``_id`` = expense id.

    Amounts are stored as decimal strings: BSON int64 cannot hold
    18-decimal base-unit values.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["expenses"]

    @staticmethod
    def _to_doc(expense: Expense) -> dict:
        return {
            "_id": expense.id,
            "label": expense.label,
            "timestamp": expense.timestamp,
            "entries": [
                {
                    "participant_id": entry.participant_id,
                    "amount_paid": str(entry.amount_paid),
                    "amount_owed": str(entry.amount_owed),
                }
                for entry in expense.entries
            ],
        }

    @staticmethod
    def _from_doc(doc: dict) -> Expense:
        return Expense(
            id=doc["_id"],
            label=doc["label"],
            timestamp=as_utc(doc["timestamp"]),
            entries=tuple(
                ExpenseEntry(
                    participant_id=entry["participant_id"],
                    amount_paid=int(entry["amount_paid"]),
                    amount_owed=int(entry["amount_owed"]),
                )
                for entry in doc["entries"]
            ),
        )

    async def append(self, expense: Expense) -> Expense:
        # One insert_one per expense: readers see all of it or none of it
        await self.collection.insert_one(self._to_doc(expense))
        return expense

    async def get(self, expense_id: int) -> Optional[Expense]:
        doc = await self.collection.find_one({"_id": expense_id})
        if doc:
            return self._from_doc(doc)
        return None

    async def count(self) -> int:
        return await self.collection.count_documents({})

    async def last(self) -> Optional[Expense]:
        doc = await self.collection.find_one({}, sort=[("_id", -1)])
        if doc:
            return self._from_doc(doc)
        return None

    async def iter_all(self) -> AsyncIterator[Expense]:
        cursor = self.collection.find({}).sort("_id", 1)
        async for doc in cursor:
            yield self._from_doc(doc)
