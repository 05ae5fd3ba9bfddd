from typing import List

import structlog

from splitledger.core.errors import AlreadyRegistered, NotRegistered
from splitledger.models.base import Clock, to_millis, utcnow
from splitledger.models.participant import Participant
from splitledger.repositories.participant_repo import ParticipantRepository
from splitledger.utils.expense_validation import validate_address, validate_name

logger = structlog.get_logger(__name__)


class IdentityRegistry:
    """
    Known participants and their display names.

    Registration is one-time and permanent. Whether a caller may rename a
    given address is decided before the call reaches this class.
    """

    def __init__(self, repo: ParticipantRepository, clock: Clock = utcnow):
        self.repo = repo
        self.clock = clock

    async def register(self, address: str, name: str) -> Participant:
        address = validate_address(address)
        name = validate_name(name)

        if await self.repo.get(address) is not None:
            raise AlreadyRegistered(address)

        now = to_millis(self.clock())
        participant = Participant(
            address=address, name=name, registered_at=now, updated_at=now
        )
        await self.repo.insert(participant)
        logger.info("participant_registered", address=address)
        return participant

    async def update_name(self, address: str, new_name: str) -> Participant:
        if not await self.is_registered(address):
            raise NotRegistered(address)
        new_name = validate_name(new_name)

        updated = await self.repo.update_name(address, new_name, to_millis(self.clock()))
        if updated is None:
            raise NotRegistered(address)
        logger.info("participant_renamed", address=address)
        return updated

    async def is_registered(self, address: str) -> bool:
        if not isinstance(address, str):
            return False
        return await self.repo.get(address) is not None

    async def get_person(self, address: str) -> Participant:
        participant = await self.repo.get(address) if isinstance(address, str) else None
        if participant is None:
            raise NotRegistered(address)
        return participant

    async def list_all(self) -> List[str]:
        """Registered addresses in registration order."""
        return await self.repo.list_addresses()

    async def get_people(self) -> List[Participant]:
        return await self.repo.list_participants()

    async def count(self) -> int:
        return await self.repo.count()
