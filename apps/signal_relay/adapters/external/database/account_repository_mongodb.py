from datetime import datetime
from typing import Dict, List, Optional, Sequence

from motor.motor_asyncio import AsyncIOMotorDatabase

from ....core.repositories.account_repository import AccountRepository


class AccountRepositoryMongoDB(AccountRepository):
    """
    Mongo implementation for linked MT5 accounts.
    """

    COLLECTION = "mt5_accounts"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db[self.COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("user_id", 1), ("account_id", 1), ("account_type", 1)],
            name="ix_user_account_type",
        )
        await self._col.create_index(
            [("is_connected", 1), ("last_heartbeat", 1)],
            name="ix_connected_heartbeat",
        )

    async def find_linked_account(
        self,
        user_id: str,
        account_id: str,
        account_type: Optional[str] = None,
    ) -> Optional[Dict]:
        q: Dict = {"user_id": user_id, "account_id": account_id}
        if account_type:
            q["account_type"] = account_type
        return await self._col.find_one(q)

    async def list_by_users(self, user_ids: Sequence[str], account_type: str) -> List[Dict]:
        cursor = self._col.find({"user_id": {"$in": list(user_ids)}, "account_type": account_type})
        return await cursor.to_list(length=None)

    async def list_by_user(self, user_id: str) -> List[Dict]:
        cursor = self._col.find({"user_id": user_id})
        return await cursor.to_list(length=None)

    async def record_heartbeat(self, account_pk: str, fields: Dict) -> None:
        await self._col.update_one({"_id": account_pk}, {"$set": fields})

    async def mark_disconnected_before(self, cutoff: datetime) -> int:
        res = await self._col.update_many(
            {"is_connected": True, "last_heartbeat": {"$lt": cutoff}},
            {"$set": {"is_connected": False}},
        )
        return res.modified_count
