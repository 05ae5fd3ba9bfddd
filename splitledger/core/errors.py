"""
Ledger error types.

Every caller-facing error is recoverable: the failed call left all state
unchanged and the caller decides whether to retry. Each error carries a
stable ``code`` so outer layers can map it without string matching.
"""


class LedgerError(Exception):
    """Base exception for caller-facing ledger errors."""
    code = "LEDGER_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ===== Registry =====

class AlreadyRegistered(LedgerError):
    code = "ALREADY_REGISTERED"

    def __init__(self, address: str):
        super().__init__(f"Participant '{address}' is already registered")
        self.address = address


class NotRegistered(LedgerError):
    code = "NOT_REGISTERED"

    def __init__(self, address: str):
        super().__init__(f"Participant '{address}' is not registered")
        self.address = address


class EmptyName(LedgerError):
    code = "EMPTY_NAME"

    def __init__(self):
        super().__init__("Name cannot be empty")


class NameTooLong(LedgerError):
    code = "NAME_TOO_LONG"

    def __init__(self, max_length: int):
        super().__init__(f"Name exceeds {max_length} characters")
        self.max_length = max_length


class InvalidParticipant(LedgerError):
    code = "INVALID_PARTICIPANT"

    def __init__(self, address):
        super().__init__(f"Invalid participant identifier: {address!r}")
        self.address = address


# ===== Ledger =====

class EmptyLabel(LedgerError):
    code = "EMPTY_LABEL"

    def __init__(self):
        super().__init__("Expense label cannot be empty")


class LabelTooLong(LedgerError):
    code = "LABEL_TOO_LONG"

    def __init__(self, max_length: int):
        super().__init__(f"Expense label exceeds {max_length} characters")
        self.max_length = max_length


class NoParticipants(LedgerError):
    code = "NO_PARTICIPANTS"

    def __init__(self):
        super().__init__("Expense must list at least one participant")


class InvalidEntry(LedgerError):
    code = "INVALID_ENTRY"

    def __init__(self, message: str, index: int | None = None):
        if index is not None:
            message = f"Entry {index}: {message}"
        super().__init__(message)
        self.index = index


class NotFound(LedgerError):
    code = "NOT_FOUND"

    def __init__(self, expense_id: int):
        super().__init__(f"Expense {expense_id} not found")
        self.expense_id = expense_id


class EmptyLedger(LedgerError):
    code = "EMPTY_LEDGER"

    def __init__(self):
        super().__init__("No expenses have been recorded")


class InvalidAmount(LedgerError):
    code = "INVALID_AMOUNT"


# ===== Internal =====

class BalanceMismatch(Exception):
    """Running balances diverged from a full recomputation over the ledger."""

    def __init__(self, differences: dict[str, tuple[int, int]]):
        super().__init__(
            f"Running balances differ from ledger fold for {len(differences)} participant(s)"
        )
        self.differences = differences
