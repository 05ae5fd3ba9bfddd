"""
Tests for ExpenseTracker, the entry point over registry, ledger and balances.

Covers:
- The Alice/Bob dinner walkthrough
- Domain events and their ordering
- Atomicity of rejected calls
- Snapshot consistency
- Concurrent writers
- Reopening a tracker over an existing store
"""

import asyncio

import pytest

from splitledger.core.errors import (
    AlreadyRegistered,
    EmptyLedger,
    NoParticipants,
    NotRegistered,
)
from splitledger.models.events import ExpenseRecorded, NameUpdated, ParticipantRegistered
from splitledger.services.expense_tracker import ExpenseTracker


@pytest.mark.asyncio
class TestDinnerScenario:

    async def test_walkthrough(self, tracker):
        await tracker.register_participant("A", "Alice")
        await tracker.register_participant("B", "Bob")
        assert await tracker.registered_count() == 2

        expense_id = await tracker.record_expense(
            "dinner", [("A", 100, 40), ("B", 0, 60)]
        )

        assert expense_id == 0
        assert await tracker.net_balance("A") == 60
        assert await tracker.net_balance("B") == -60
        assert await tracker.last_label() == "dinner"
        assert await tracker.participants_of(0) == ["A", "B"]
        assert await tracker.amount_paid(0, "A") == 100
        assert await tracker.amount_owed(0, "B") == 60

    async def test_running_balances_match_fold(self, tracker):
        await tracker.record_expense("dinner", [("A", 100, 40), ("B", 0, 60)])
        await tracker.record_expense_columns("taxi", ["B", "C"], [30, 0], [10, 20])
        await tracker.record_expense("gift", [("D", 50, 0)])

        recomputed = await tracker.verify_balances()
        assert recomputed == await tracker.all_balances()
        for participant, balance in recomputed.items():
            assert await tracker.aggregator.net_balance(participant) == balance
            assert await tracker.net_balance(participant) == balance

    async def test_people_with_balances(self, tracker):
        await tracker.register_participant("B", "Bob")
        await tracker.register_participant("A", "Alice")
        await tracker.record_expense("dinner", [("A", 10 ** 18, 0), ("B", 0, 10 ** 18)])

        rows = await tracker.people_with_balances()
        assert [(r.address, r.name, r.net_balance) for r in rows] == [
            ("B", "Bob", -(10 ** 18)),
            ("A", "Alice", 10 ** 18),
        ]
        assert rows[1].net_balance_display == "1.0"
        assert rows[0].net_balance_display == "-1.0"


@pytest.mark.asyncio
class TestEvents:

    async def test_events_in_commit_order(self, tracker, audit):
        await tracker.register_participant("A", "Alice")
        await tracker.update_participant_name("A", "Alicia")
        await tracker.record_expense("dinner", [("A", 100, 100)])

        events = audit.history
        assert [type(e) for e in events] == [ParticipantRegistered, NameUpdated, ExpenseRecorded]
        assert (events[0].id, events[0].name) == ("A", "Alice")
        assert (events[1].id, events[1].new_name) == ("A", "Alicia")
        assert (events[2].id, events[2].label) == (0, "dinner")

    async def test_failed_calls_emit_nothing(self, tracker, audit):
        await tracker.register_participant("A", "Alice")

        with pytest.raises(AlreadyRegistered):
            await tracker.register_participant("A", "Alice")
        with pytest.raises(NotRegistered):
            await tracker.update_participant_name("B", "Bob")
        with pytest.raises(NoParticipants):
            await tracker.record_expense("empty", [])

        assert len(audit.history) == 1
        assert await tracker.expense_count() == 0

    async def test_async_handler(self, tracker):
        received = []

        async def handler(event):
            await asyncio.sleep(0)
            received.append(event)

        tracker.subscribe(handler)
        await tracker.record_expense("dinner", [("A", 1, 1)])

        assert [e.event_type for e in received] == ["expense_recorded"]

    async def test_failing_handler_does_not_undo_write(self, tracker, audit):
        def broken(event):
            raise RuntimeError("observer down")

        tracker.subscribe(broken)
        expense_id = await tracker.record_expense("dinner", [("A", 5, 0)])

        assert expense_id == 0
        assert await tracker.expense_count() == 1
        assert await tracker.net_balance("A") == 5
        assert len(audit.history) == 1

    async def test_handler_may_read_through_tracker(self, tracker):
        seen = []

        async def refresh_view(event):
            snapshot = await tracker.snapshot()
            seen.append((snapshot.expense_count, snapshot.balances))
            await tracker.verify_balances()

        tracker.subscribe(refresh_view)
        await asyncio.wait_for(tracker.record_expense("dinner", [("A", 5, 0)]), 2)

        assert seen == [(1, {"A": 5})]

    async def test_handler_may_write_through_tracker(self, tracker, audit):
        async def add_tip(event):
            if isinstance(event, ExpenseRecorded) and event.label == "dinner":
                await tracker.record_expense("tip", [("A", 1, 0)])

        tracker.subscribe(add_tip)
        await asyncio.wait_for(tracker.record_expense("dinner", [("A", 5, 5)]), 2)

        assert [(e.id, e.label) for e in audit.history] == [(0, "dinner"), (1, "tip")]
        assert await tracker.net_balance("A") == 1

    async def test_unsubscribe(self, tracker):
        received = []
        unsubscribe = tracker.subscribe(received.append)

        await tracker.register_participant("A", "Alice")
        unsubscribe()
        await tracker.register_participant("B", "Bob")

        assert [e.id for e in received] == ["A"]


@pytest.mark.asyncio
class TestSnapshot:

    async def test_empty_snapshot(self, tracker):
        snapshot = await tracker.snapshot()

        assert snapshot.people == []
        assert snapshot.balances == {}
        assert snapshot.last_label is None
        assert snapshot.expenses == []
        assert snapshot.registered_count == 0
        assert snapshot.expense_count == 0

    async def test_snapshot_contents(self, tracker):
        await tracker.register_participant("A", "Alice")
        await tracker.register_participant("B", "Bob")
        await tracker.record_expense("dinner", [("A", 100, 40), ("B", 0, 60)])
        # C is not registered: listed in balances, not in people
        await tracker.record_expense("taxi", [("B", 30, 10), ("C", 0, 20)])

        snapshot = await tracker.snapshot()

        assert [p.address for p in snapshot.people] == ["A", "B"]
        assert [p.net_balance for p in snapshot.people] == [60, -40]
        assert snapshot.balances == {"A": 60, "B": -40, "C": -20}
        assert snapshot.last_label == "taxi"
        assert [e.label for e in snapshot.expenses] == ["dinner", "taxi"]
        assert snapshot.registered_count == 2
        assert snapshot.expense_count == 2

    async def test_snapshot_is_consistent_under_concurrent_writes(self, tracker):
        async def writer(i):
            await tracker.record_expense(f"e{i}", [("A", 2, 1), ("B", 0, 1)])

        async def reader():
            snapshot = await tracker.snapshot()
            n = snapshot.expense_count
            assert len(snapshot.expenses) == n
            assert snapshot.balances.get("A", 0) == n
            assert snapshot.balances.get("B", 0) == -n
            if n:
                assert snapshot.last_label == snapshot.expenses[-1].label

        tasks = []
        for i in range(20):
            tasks.append(writer(i))
            tasks.append(reader())
        await asyncio.gather(*tasks)

        final = await tracker.snapshot()
        assert final.expense_count == 20


@pytest.mark.asyncio
class TestConcurrency:

    async def test_concurrent_appends_get_distinct_ids(self, tracker):
        ids = await asyncio.gather(*[
            tracker.record_expense(f"e{i}", [("A", i, 0)]) for i in range(50)
        ])

        assert sorted(ids) == list(range(50))
        assert await tracker.expense_count() == 50
        for expense_id in ids:
            expense = await tracker.get_expense(expense_id)
            assert expense.id == expense_id
        assert await tracker.net_balance("A") == sum(range(50))
        await tracker.verify_balances()

    async def test_concurrent_duplicate_registration(self, tracker):
        results = await asyncio.gather(
            *[tracker.register_participant("A", f"Alice {i}") for i in range(5)],
            return_exceptions=True,
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, AlreadyRegistered)]
        assert len(successes) == 1
        assert len(failures) == 4
        assert await tracker.list_all() == ["A"]


@pytest.mark.asyncio
class TestReopen:

    async def test_open_rebuilds_running_balances(self, participant_repo, expense_repo, clock):
        first = ExpenseTracker(participant_repo, expense_repo, clock=clock)
        await first.register_participant("A", "Alice")
        await first.record_expense("dinner", [("A", 100, 40), ("B", 0, 60)])

        second = ExpenseTracker(participant_repo, expense_repo, clock=clock)
        await second.open()

        assert await second.net_balance("A") == 60
        assert await second.all_balances() == {"A": 60, "B": -60}
        assert await second.record_expense("taxi", [("B", 10, 0)]) == 1
        assert await second.net_balance("B") == -50
        await second.verify_balances()

    async def test_append_after_another_writer(self, participant_repo, expense_repo, clock):
        first = ExpenseTracker(participant_repo, expense_repo, clock=clock)
        second = ExpenseTracker(participant_repo, expense_repo, clock=clock)
        await first.open()
        await second.open()
        received = []
        second.subscribe(received.append)

        await first.record_expense("a", [("A", 10, 0)])

        assert await second.record_expense("b", [("B", 0, 4)]) == 1
        assert await second.expense_count() == 2
        assert await second.all_balances() == {"A": 10, "B": -4}
        assert [(e.id, e.label) for e in received] == [(1, "b")]
        await second.verify_balances()

    async def test_reads_open_lazily(self, participant_repo, expense_repo, clock):
        first = ExpenseTracker(participant_repo, expense_repo, clock=clock)
        await first.record_expense("dinner", [("A", 7, 0)])

        second = ExpenseTracker(participant_repo, expense_repo, clock=clock)
        assert await second.net_balance("A") == 7


@pytest.mark.asyncio
class TestReadPassthroughs:

    async def test_registry_reads(self, tracker):
        await tracker.register_participant("A", "Alice")

        assert await tracker.is_registered("A") is True
        assert await tracker.is_registered("B") is False
        assert (await tracker.get_person("A")).name == "Alice"
        assert await tracker.list_all() == ["A"]

    async def test_ledger_reads(self, tracker, clock):
        stamped = clock.current
        with pytest.raises(EmptyLedger):
            await tracker.last_label()

        await tracker.record_expense("dinner", [("A", 1, 1)])

        info = await tracker.expense_info(0)
        assert (info.id, info.label, info.timestamp) == (0, "dinner", stamped)
        assert [e.id for e in await tracker.history()] == [0]
