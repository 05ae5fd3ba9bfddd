"""
Domain events emitted by the expense tracker after each committed mutation.

Observers (audit log, UI refresh, ...) receive these in commit order.
"""

from datetime import datetime
from typing import Literal, Union
from pydantic import BaseModel, Field, ConfigDict

from splitledger.models.base import utcnow


class DomainEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    occurred_at: datetime = Field(default_factory=utcnow)

    def to_log_dict(self) -> dict:
        return self.model_dump(mode="json")


class ParticipantRegistered(DomainEvent):
    event_type: Literal["participant_registered"] = "participant_registered"
    id: str
    name: str


class NameUpdated(DomainEvent):
    event_type: Literal["name_updated"] = "name_updated"
    id: str
    new_name: str


class ExpenseRecorded(DomainEvent):
    event_type: Literal["expense_recorded"] = "expense_recorded"
    id: int
    label: str


LedgerEvent = Union[ParticipantRegistered, NameUpdated, ExpenseRecorded]
