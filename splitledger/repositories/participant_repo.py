"""
ParticipantRepository - ordered store of registered participants.

Registration order is part of the stored state: list_addresses() must return
addresses in the order they were inserted, on every backend.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from splitledger.models.base import as_utc
from splitledger.models.participant import Participant


class ParticipantRepository(ABC):
    """Storage contract for the identity registry."""

    @abstractmethod
    async def get(self, address: str) -> Optional[Participant]:
        ...

    @abstractmethod
    async def insert(self, participant: Participant) -> Participant:
        ...

    @abstractmethod
    async def update_name(
        self, address: str, name: str, updated_at: datetime
    ) -> Optional[Participant]:
        ...

    @abstractmethod
    async def list_addresses(self) -> List[str]:
        ...

    @abstractmethod
    async def list_participants(self) -> List[Participant]:
        ...

    @abstractmethod
    async def count(self) -> int:
        ...


class InMemoryParticipantRepository(ParticipantRepository):
    """Participants held in process memory (dicts keep insertion order)."""

    def __init__(self):
        self._participants: Dict[str, Participant] = {}

    async def get(self, address: str) -> Optional[Participant]:
        return self._participants.get(address)

    async def insert(self, participant: Participant) -> Participant:
        self._participants[participant.address] = participant
        return participant

    async def update_name(
        self, address: str, name: str, updated_at: datetime
    ) -> Optional[Participant]:
        current = self._participants.get(address)
        if current is None:
            return None
        updated = current.renamed(name, updated_at)
        self._participants[address] = updated
        return updated

    async def list_addresses(self) -> List[str]:
        return list(self._participants)

    async def list_participants(self) -> List[Participant]:
        return list(self._participants.values())

    async def count(self) -> int:
        return len(self._participants)


class MongoParticipantRepository(ParticipantRepository):
    """Participants stored in the ``participants`` collection."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["participants"]

    @staticmethod
    def _from_doc(doc: dict) -> Participant:
        return Participant(
            address=doc["address"],
            name=doc["name"],
            registered_at=as_utc(doc["registered_at"]),
            updated_at=as_utc(doc["updated_at"]),
        )

    async def get(self, address: str) -> Optional[Participant]:
        doc = await self.collection.find_one({"address": address})
        if doc:
            return self._from_doc(doc)
        return None

    async def insert(self, participant: Participant) -> Participant:
        # seq records registration order; writers are serialized by the tracker
        seq = await self.collection.count_documents({})
        await self.collection.insert_one({
            "address": participant.address,
            "name": participant.name,
            "seq": seq,
            "registered_at": participant.registered_at,
            "updated_at": participant.updated_at,
        })
        return participant

    async def update_name(
        self, address: str, name: str, updated_at: datetime
    ) -> Optional[Participant]:
        result = await self.collection.find_one_and_update(
            {"address": address},
            {"$set": {"name": name, "updated_at": updated_at}},
            return_document=ReturnDocument.AFTER
        )
        if result:
            return self._from_doc(result)
        return None

    async def list_addresses(self) -> List[str]:
        cursor = self.collection.find({}, {"address": 1}).sort("seq", 1)
        return [doc["address"] async for doc in cursor]

    async def list_participants(self) -> List[Participant]:
        cursor = self.collection.find({}).sort("seq", 1)
        return [self._from_doc(doc) async for doc in cursor]

    async def count(self) -> int:
        return await self.collection.count_documents({})
