from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, computed_field

from splitledger.models.expense import Expense
from splitledger.utils.amounts import format_amount


class ExpenseInfo(BaseModel):
    """Header of an expense without its entries."""
    id: int
    label: str
    timestamp: datetime


class PersonBalance(BaseModel):
    """One row of the people table: a registered participant and their net balance."""
    model_config = ConfigDict(frozen=True)

    address: str
    name: str
    net_balance: int

    @computed_field
    @property
    def net_balance_display(self) -> str:
        return format_amount(self.net_balance)


class LedgerSnapshot(BaseModel):
    """
    Point-in-time view of the whole ledger.

    people follows registration order; balances also covers participants
    that appear in expenses without being registered.
    """
    model_config = ConfigDict(frozen=True)

    people: List[PersonBalance]
    balances: Dict[str, int]
    last_label: Optional[str]
    expenses: List[Expense]
    registered_count: int
    expense_count: int
