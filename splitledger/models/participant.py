from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict

from splitledger.models.base import utcnow


class Participant(BaseModel):
    """
    A registered participant.

    The address never changes once registered; only the name is mutable.
    """
    model_config = ConfigDict(frozen=True)

    address: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    registered_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def renamed(self, name: str, at: datetime) -> "Participant":
        return self.model_copy(update={"name": name, "updated_at": at})
