"""Validation for registry and ledger inputs.

Every check here runs before any store write, so a rejected call never
leaves partial state behind.
"""
from typing import Any, Iterable, List, Mapping, Sequence, Union

from splitledger.core.config import settings
from splitledger.core.errors import (
    EmptyLabel,
    EmptyName,
    InvalidEntry,
    InvalidParticipant,
    LabelTooLong,
    NameTooLong,
    NoParticipants,
)
from splitledger.models.expense import ExpenseEntry

EntryInput = Union[ExpenseEntry, Mapping[str, Any], Sequence[Any]]


def validate_address(address: Any) -> str:
    """Participant identifiers must be non-empty strings."""
    if not isinstance(address, str) or not address.strip():
        raise InvalidParticipant(address)
    return address


def validate_name(name: Any, max_length: int | None = None) -> str:
    """
    Validate a display name and return it trimmed.

    Rules:
    - must be a string that is non-empty after trimming
    - trimmed length must not exceed max_length
    """
    if max_length is None:
        max_length = settings.MAX_NAME_LENGTH

    if not isinstance(name, str) or not name.strip():
        raise EmptyName()
    name = name.strip()
    if len(name) > max_length:
        raise NameTooLong(max_length)
    return name


def validate_label(label: Any, max_length: int | None = None) -> str:
    """Validate an expense label and return it trimmed."""
    if max_length is None:
        max_length = settings.MAX_LABEL_LENGTH

    if not isinstance(label, str) or not label.strip():
        raise EmptyLabel()
    label = label.strip()
    if len(label) > max_length:
        raise LabelTooLong(max_length)
    return label


def _check_amount(value: Any, field: str, index: int) -> int:
    # bool is an int subclass; it is never a valid amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidEntry(f"{field} must be an integer amount in base units", index)
    if value < 0:
        raise InvalidEntry(f"{field} cannot be negative: {value}", index)
    return value


def _coerce_entry(raw: EntryInput, index: int) -> ExpenseEntry:
    if isinstance(raw, ExpenseEntry):
        participant_id = raw.participant_id
        paid, owed = raw.amount_paid, raw.amount_owed
    elif isinstance(raw, Mapping):
        participant_id = raw.get("participant_id")
        paid = raw.get("amount_paid", 0)
        owed = raw.get("amount_owed", 0)
    elif isinstance(raw, Sequence) and not isinstance(raw, str) and len(raw) == 3:
        participant_id, paid, owed = raw
    else:
        raise InvalidEntry("entry must be (participant_id, amount_paid, amount_owed)", index)

    if not isinstance(participant_id, str) or not participant_id.strip():
        raise InvalidEntry("participant id is missing", index)

    return ExpenseEntry(
        participant_id=participant_id,
        amount_paid=_check_amount(paid, "amount_paid", index),
        amount_owed=_check_amount(owed, "amount_owed", index),
    )


def validate_entries(
    entries: Iterable[EntryInput] | None,
    max_entries: int | None = None,
) -> List[ExpenseEntry]:
    """
    Validate expense entries and return them as ExpenseEntry objects.

    Rules, in order:
    - at least one entry
    - no more than max_entries entries
    - each entry names a participant and carries non-negative integer amounts
    - a participant may appear only once per expense
    """
    if max_entries is None:
        max_entries = settings.MAX_ENTRIES_PER_EXPENSE

    entries = list(entries) if entries is not None else []
    if not entries:
        raise NoParticipants()
    if len(entries) > max_entries:
        raise InvalidEntry(
            f"Expense lists {len(entries)} participants; the maximum is {max_entries}"
        )

    validated = []
    seen = set()
    for index, raw in enumerate(entries):
        entry = _coerce_entry(raw, index)
        if entry.participant_id in seen:
            raise InvalidEntry(
                f"participant '{entry.participant_id}' appears more than once", index
            )
        seen.add(entry.participant_id)
        validated.append(entry)
    return validated


def zip_columns(
    participants: Sequence[str],
    amounts_paid: Sequence[int],
    amounts_owed: Sequence[int],
) -> List[tuple]:
    """Join parallel participant/paid/owed arrays into entry tuples."""
    if not (len(participants) == len(amounts_paid) == len(amounts_owed)):
        raise InvalidEntry(
            "participants, amounts_paid and amounts_owed must have the same length "
            f"(got {len(participants)}, {len(amounts_paid)}, {len(amounts_owed)})"
        )
    return list(zip(participants, amounts_paid, amounts_owed))
