from datetime import datetime
from typing import Dict, List, Optional, Sequence

from motor.motor_asyncio import AsyncIOMotorDatabase

from ....core.repositories.snapshot_repository import SnapshotRepository


class SnapshotRepositoryMongoDB(SnapshotRepository):
    """
    Mongo implementation for daily account snapshots.
    """

    COLLECTION = "account_snapshots"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db[self.COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("mt5_account_id", 1), ("snapshot_date", 1)],
            unique=True,
            name="ux_account_date",
        )

    async def latest_for_account(self, account_pk: str) -> Optional[Dict]:
        return await self._col.find_one({"mt5_account_id": account_pk}, sort=[("snapshot_date", -1)])

    async def upsert_daily(self, account_pk: str, snapshot_date: datetime, fields: Dict) -> None:
        await self._col.update_one(
            {"mt5_account_id": account_pk, "snapshot_date": snapshot_date},
            {"$set": fields},
            upsert=True,
        )

    async def list_since(self, account_pks: Sequence[str], since: datetime) -> List[Dict]:
        cursor = self._col.find(
            {"mt5_account_id": {"$in": list(account_pks)}, "snapshot_date": {"$gte": since}},
            sort=[("snapshot_date", 1)],
        )
        return await cursor.to_list(length=None)

    async def first_for_accounts(self, account_pks: Sequence[str]) -> Optional[Dict]:
        return await self._col.find_one(
            {"mt5_account_id": {"$in": list(account_pks)}},
            sort=[("snapshot_date", 1)],
        )
