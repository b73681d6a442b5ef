# apps/signal_relay/adapters/external/database/signal_repository_mongodb.py

from datetime import datetime
from typing import Dict, Sequence

from motor.motor_asyncio import AsyncIOMotorDatabase

from ....core.domain.enums.signal_enums import OPEN_SIGNAL_STATUSES, SignalStatus
from ....core.repositories.signal_repository import SignalRepository


class SignalRepositoryMongoDB(SignalRepository):
    """
    Mongo implementation for broadcast signals (PENDING/ACTIVE -> EXPIRED/CANCELED).
    """

    COLLECTION = "signals"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db[self.COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("status", 1), ("expires_at", 1)],
            name="ix_status_expires_at",
        )
        await self._col.create_index(
            [("provider_id", 1), ("created_at", -1)],
            name="ix_provider_created_at",
        )
        await self._col.create_index([("symbol", 1), ("created_at", -1)], name="ix_symbol_created_at")

    async def insert_signal(self, doc: Dict) -> None:
        await self._col.insert_one(doc)

    async def transition_status(self, signal_id: str, from_statuses: Sequence[str], to_status: str) -> bool:
        res = await self._col.update_one(
            {"_id": signal_id, "status": {"$in": list(from_statuses)}},
            {"$set": {"status": to_status}},
        )
        return res.modified_count == 1

    async def expire_due(self, now: datetime) -> int:
        res = await self._col.update_many(
            {"status": {"$in": list(OPEN_SIGNAL_STATUSES)}, "expires_at": {"$lt": now}},
            {"$set": {"status": SignalStatus.EXPIRED.value}},
        )
        return res.modified_count
