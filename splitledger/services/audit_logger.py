"""
Audit Logger

Every committed mutation produces a domain event; this observer writes
one structured ``audit_event`` line per event so the ledger history can be
traced outside the store.
"""

from typing import List, Optional

import structlog

from splitledger.models.events import LedgerEvent


class AuditLogger:
    """
    Event bus observer that logs each domain event.

    Optionally keeps the events in memory (``keep_history=True``) so callers
    can inspect the audit trail without reading log output.
    """

    def __init__(self, keep_history: bool = False):
        self._logger = structlog.get_logger("splitledger.audit")
        self._history: Optional[List[LedgerEvent]] = [] if keep_history else None

    def __call__(self, event: LedgerEvent) -> None:
        self._logger.info("audit_event", **event.to_log_dict())
        if self._history is not None:
            self._history.append(event)

    @property
    def history(self) -> List[LedgerEvent]:
        return list(self._history or [])
