"""
Expense model - one immutable record in the append-only ledger.

Design principles:
- id is the ledger position: 0, 1, 2, ... never reused
- Immutable once appended (no update, no delete)
- Entries keep submission order
- All amounts in integer base units (no floats)
"""

from datetime import datetime
from typing import Tuple
from pydantic import BaseModel, Field, ConfigDict


class ExpenseEntry(BaseModel):
    """What one participant paid and owes for a single expense."""
    model_config = ConfigDict(frozen=True)

    participant_id: str
    amount_paid: int = Field(default=0, ge=0)
    amount_owed: int = Field(default=0, ge=0)

    def net(self) -> int:
        """Paid minus owed (positive = participant is owed money)."""
        return self.amount_paid - self.amount_owed


class Expense(BaseModel):
    """
    A recorded expense.

    Invariants:
    - entries is non-empty
    - no participant_id appears twice in entries
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=0)
    label: str = Field(..., min_length=1)
    timestamp: datetime
    entries: Tuple[ExpenseEntry, ...] = Field(..., min_length=1)

    def participants(self) -> list[str]:
        return [entry.participant_id for entry in self.entries]

    def entry_for(self, participant_id: str) -> ExpenseEntry | None:
        for entry in self.entries:
            if entry.participant_id == participant_id:
                return entry
        return None

    def amount_paid(self, participant_id: str) -> int:
        entry = self.entry_for(participant_id)
        return entry.amount_paid if entry else 0

    def amount_owed(self, participant_id: str) -> int:
        entry = self.entry_for(participant_id)
        return entry.amount_owed if entry else 0

    def total_paid(self) -> int:
        return sum(entry.amount_paid for entry in self.entries)

    def total_owed(self) -> int:
        return sum(entry.amount_owed for entry in self.entries)
