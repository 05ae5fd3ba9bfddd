"""
ExpenseTracker - single entry point over the registry, ledger and balances.

Concurrency model:
- Every mutation runs under one asyncio.Lock, so writes apply one at a
  time in a strict total order
- Validation finishes before the single store write: a failed call
  changes nothing
- snapshot() and verify_balances() also take the lock, so no write
  interleaves with them
- Single-value reads are lock-free; each append is one atomic store
  write and the running balances are updated before control returns to
  the event loop
- Events are queued in commit order under the lock and delivered after
  it is released, so an observer may read or write through the tracker

Running balances live in this process. Call open() after attaching to a
store that already holds expenses. If another writer appends to the same
store, the next append here rebuilds the running balances from history.
"""

import asyncio
from collections import deque
from typing import Callable, Deque, Dict, Iterable, List, Sequence

import structlog

from splitledger.core.errors import EmptyLedger
from splitledger.models.base import Clock, utcnow
from splitledger.models.events import (
    ExpenseRecorded,
    LedgerEvent,
    NameUpdated,
    ParticipantRegistered,
)
from splitledger.models.expense import Expense
from splitledger.models.participant import Participant
from splitledger.repositories.expense_repo import ExpenseRepository
from splitledger.repositories.participant_repo import ParticipantRepository
from splitledger.schemas.ledger import ExpenseInfo, LedgerSnapshot, PersonBalance
from splitledger.services.balance_service import BalanceAggregator, RunningBalances
from splitledger.services.event_bus import EventBus, EventHandler
from splitledger.services.ledger_service import ExpenseLedger
from splitledger.services.registry_service import IdentityRegistry
from splitledger.utils.expense_validation import EntryInput

logger = structlog.get_logger(__name__)


class ExpenseTracker:

    def __init__(
        self,
        participant_repo: ParticipantRepository,
        expense_repo: ExpenseRepository,
        clock: Clock = utcnow,
        event_bus: EventBus | None = None,
        max_entries: int | None = None,
    ):
        self.registry = IdentityRegistry(participant_repo, clock)
        self.ledger = ExpenseLedger(expense_repo, clock, max_entries)
        self.aggregator = BalanceAggregator(expense_repo)
        self.events = event_bus or EventBus()
        self._running = RunningBalances()
        self._write_lock = asyncio.Lock()
        self._opened = False
        self._outbox: Deque[LedgerEvent] = deque()
        self._publishing = False

    # ===== LIFECYCLE =====

    async def open(self) -> None:
        """Load running balances from the store. Safe to call more than once."""
        async with self._write_lock:
            await self._open_locked()

    async def _open_locked(self) -> None:
        if self._opened:
            return
        self._running.rebuild(await self.ledger.history())
        self._opened = True
        logger.info("tracker_opened", expenses=self._running.applied)

    async def _ensure_open(self) -> None:
        if not self._opened:
            await self.open()

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        return self.events.subscribe(handler)

    # ===== WRITES =====

    async def register_participant(self, caller: str, name: str) -> Participant:
        """Register the (already authenticated) caller under a display name."""
        async with self._write_lock:
            participant = await self.registry.register(caller, name)
            self._outbox.append(
                ParticipantRegistered(id=participant.address, name=participant.name)
            )
        await self._flush_events()
        return participant

    async def update_participant_name(self, caller: str, new_name: str) -> Participant:
        """Rename the caller's own registration."""
        async with self._write_lock:
            participant = await self.registry.update_name(caller, new_name)
            self._outbox.append(
                NameUpdated(id=participant.address, new_name=participant.name)
            )
        await self._flush_events()
        return participant

    async def record_expense(self, label: str, entries: Iterable[EntryInput]) -> int:
        async with self._write_lock:
            await self._open_locked()
            expense = await self.ledger.append_expense(label, entries)
            await self._commit_expense(expense)
        await self._flush_events()
        return expense.id

    async def record_expense_columns(
        self,
        label: str,
        participants: Sequence[str],
        amounts_paid: Sequence[int],
        amounts_owed: Sequence[int],
    ) -> int:
        async with self._write_lock:
            await self._open_locked()
            expense = await self.ledger.append_columns_expense(
                label, participants, amounts_paid, amounts_owed
            )
            await self._commit_expense(expense)
        await self._flush_events()
        return expense.id

    async def _commit_expense(self, expense: Expense) -> None:
        if expense.id == self._running.applied:
            self._running.apply(expense)
        else:
            # Another writer appended to the shared store since the last sync
            logger.warning(
                "running_balances_stale",
                applied=self._running.applied,
                expense_id=expense.id,
            )
            self._running.rebuild(await self.ledger.history())
        self._outbox.append(ExpenseRecorded(id=expense.id, label=expense.label))

    async def _flush_events(self) -> None:
        """
        Deliver queued events after the write lock is released.

        Only one task drains the outbox at a time, so events reach observers
        in commit order. A handler may call back into the tracker; events its
        own writes produce are delivered by the drain already running.
        """
        if self._publishing:
            return
        self._publishing = True
        try:
            while self._outbox:
                await self.events.publish(self._outbox.popleft())
        finally:
            self._publishing = False


    # ===== REGISTRY READS =====

    async def is_registered(self, address: str) -> bool:
        return await self.registry.is_registered(address)

    async def get_person(self, address: str) -> Participant:
        return await self.registry.get_person(address)

    async def list_all(self) -> List[str]:
        return await self.registry.list_all()

    async def registered_count(self) -> int:
        return await self.registry.count()

    # ===== LEDGER READS =====

    async def get_expense(self, expense_id: int) -> Expense:
        return await self.ledger.get(expense_id)

    async def expense_info(self, expense_id: int) -> ExpenseInfo:
        return await self.ledger.basic_info(expense_id)

    async def expense_count(self) -> int:
        return await self.ledger.count()

    async def last_label(self) -> str:
        return await self.ledger.last_label()

    async def participants_of(self, expense_id: int) -> List[str]:
        return await self.ledger.participants_of(expense_id)

    async def amount_paid(self, expense_id: int, participant_id: str) -> int:
        return await self.ledger.amount_paid(expense_id, participant_id)

    async def amount_owed(self, expense_id: int, participant_id: str) -> int:
        return await self.ledger.amount_owed(expense_id, participant_id)

    async def history(self) -> List[Expense]:
        return await self.ledger.history()

    # ===== BALANCES =====

    async def net_balance(self, participant_id: str) -> int:
        await self._ensure_open()
        return self._running.net_balance(participant_id)

    async def all_balances(self) -> Dict[str, int]:
        await self._ensure_open()
        return self._running.as_dict()

    async def people_with_balances(self) -> List[PersonBalance]:
        """Registered participants in registration order with their net balances."""
        await self._ensure_open()
        return self._people_rows(await self.registry.get_people())

    def _people_rows(self, people: List[Participant]) -> List[PersonBalance]:
        return [
            PersonBalance(
                address=person.address,
                name=person.name,
                net_balance=self._running.net_balance(person.address),
            )
            for person in people
        ]

    async def verify_balances(self) -> Dict[str, int]:
        """
        Recompute every balance from the ledger and compare with the running totals.

        Returns the recomputed table; raises BalanceMismatch on any difference.
        """
        async with self._write_lock:
            await self._open_locked()
            recomputed = await self.aggregator.all_balances()
            self._running.verify(recomputed)
        return recomputed

    async def snapshot(self) -> LedgerSnapshot:
        """Registry listing, balance table, last label and history as one consistent read."""
        async with self._write_lock:
            await self._open_locked()
            people = await self.registry.get_people()
            expenses = await self.ledger.history()
            try:
                last_label = await self.ledger.last_label()
            except EmptyLedger:
                last_label = None

            return LedgerSnapshot(
                people=self._people_rows(people),
                balances=self._running.as_dict(),
                last_label=last_label,
                expenses=expenses,
                registered_count=len(people),
                expense_count=len(expenses),
            )
