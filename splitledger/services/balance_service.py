"""
Balance computation over the expense ledger.

net(P) = sum over every expense of (amount_paid - amount_owed) for P,
with absent entries counting as 0. Positive means P is owed money,
negative means P owes money. Only int arithmetic is used; nothing is
rounded or normalized (an unbalanced expense stays unbalanced).
"""

from collections import defaultdict
from typing import Dict, Iterable

from splitledger.core.errors import BalanceMismatch
from splitledger.models.expense import Expense
from splitledger.repositories.expense_repo import ExpenseRepository


class BalanceAggregator:
    """Recomputes balances from scratch by folding over the stored ledger."""

    def __init__(self, repo: ExpenseRepository):
        self.repo = repo

    async def net_balance(self, participant_id: str) -> int:
        total = 0
        async for expense in self.repo.iter_all():
            entry = expense.entry_for(participant_id)
            if entry is not None:
                total += entry.net()
        return total

    async def all_balances(self) -> Dict[str, int]:
        """Single pass over the ledger with one accumulator per participant seen."""
        totals: Dict[str, int] = defaultdict(int)
        async for expense in self.repo.iter_all():
            for entry in expense.entries:
                totals[entry.participant_id] += entry.net()
        return dict(totals)


class RunningBalances:
    """
    Balances maintained incrementally as expenses are appended.

    Must always equal BalanceAggregator.all_balances() over the same ledger;
    verify() checks that.
    """

    def __init__(self):
        self._totals: Dict[str, int] = {}
        self.applied = 0

    def apply(self, expense: Expense) -> None:
        if expense.id != self.applied:
            raise ValueError(
                f"Expense {expense.id} applied out of order (expected {self.applied})"
            )
        for entry in expense.entries:
            self._totals[entry.participant_id] = (
                self._totals.get(entry.participant_id, 0) + entry.net()
            )
        self.applied += 1

    def rebuild(self, expenses: Iterable[Expense]) -> None:
        self._totals = {}
        self.applied = 0
        for expense in expenses:
            self.apply(expense)

    def net_balance(self, participant_id: str) -> int:
        return self._totals.get(participant_id, 0)

    def as_dict(self) -> Dict[str, int]:
        return dict(self._totals)

    def verify(self, recomputed: Dict[str, int]) -> None:
        """Raise BalanceMismatch if any participant differs from a full recomputation."""
        differences = {}
        for participant_id in set(self._totals) | set(recomputed):
            running = self._totals.get(participant_id, 0)
            folded = recomputed.get(participant_id, 0)
            if running != folded:
                differences[participant_id] = (running, folded)
        if differences:
            raise BalanceMismatch(differences)
