"""Process-level wiring: build an ExpenseTracker from settings."""
import structlog

from splitledger.core.config import settings
from splitledger.core.logging_config import configure_logging
from splitledger.db.mongo import connect_to_mongo, disconnect_from_mongo
from splitledger.models.base import Clock, utcnow
from splitledger.repositories.expense_repo import (
    InMemoryExpenseRepository,
    MongoExpenseRepository,
)
from splitledger.repositories.participant_repo import (
    InMemoryParticipantRepository,
    MongoParticipantRepository,
)
from splitledger.services.audit_logger import AuditLogger
from splitledger.services.expense_tracker import ExpenseTracker

logger = structlog.get_logger(__name__)


def build_memory_tracker(clock: Clock = utcnow) -> ExpenseTracker:
    """An empty tracker backed by process memory."""
    return ExpenseTracker(
        InMemoryParticipantRepository(),
        InMemoryExpenseRepository(),
        clock=clock,
    )


def build_mongo_tracker(db, clock: Clock = utcnow) -> ExpenseTracker:
    """A tracker attached to an existing MongoDB database handle."""
    return ExpenseTracker(
        MongoParticipantRepository(db),
        MongoExpenseRepository(db),
        clock=clock,
    )


async def create_tracker() -> ExpenseTracker:
    """
    Configure logging and build the tracker selected by STORE_BACKEND.

    The returned tracker is opened and has the audit logger subscribed.
    """
    configure_logging()

    if settings.STORE_BACKEND == "mongodb":
        db = await connect_to_mongo()
        tracker = build_mongo_tracker(db)
    else:
        tracker = build_memory_tracker()

    tracker.subscribe(AuditLogger())
    await tracker.open()
    logger.info("tracker_ready", backend=settings.STORE_BACKEND)
    return tracker


async def shutdown() -> None:
    await disconnect_from_mongo()
