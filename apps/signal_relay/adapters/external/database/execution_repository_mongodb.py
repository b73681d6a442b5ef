# apps/signal_relay/adapters/external/database/execution_repository_mongodb.py

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import BulkWriteError

from ....core.domain.enums.signal_enums import ExecutionStatus, OPEN_SIGNAL_STATUSES, SignalStatus
from ....core.repositories.execution_repository import ExecutionRepository
from .signal_repository_mongodb import SignalRepositoryMongoDB

DUPLICATE_KEY = 11000


class ExecutionRepositoryMongoDB(ExecutionRepository):
    """
    Mongo implementation for signal executions.

    The PENDING -> terminal transition is a single-document update filtered on
    status == PENDING, which Mongo applies atomically.
    """

    COLLECTION = "signal_executions"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db[self.COLLECTION]
        self._logger = logging.getLogger(self.__class__.__name__)

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("signal_id", 1), ("mt5_account_id", 1)],
            unique=True,
            name="ux_signal_account",
        )
        await self._col.create_index(
            [("user_id", 1), ("mt5_account_id", 1), ("status", 1), ("received_at", 1)],
            name="ix_user_account_status_received",
        )
        await self._col.create_index([("user_id", 1), ("received_at", -1)], name="ix_user_received")
        await self._col.create_index([("status", 1), ("signal_id", 1)], name="ix_status_signal")

    async def insert_many_skip_duplicates(self, docs: List[Dict]) -> int:
        if not docs:
            return 0
        try:
            res = await self._col.insert_many(docs, ordered=False)
            return len(res.inserted_ids)
        except BulkWriteError as exc:
            details = exc.details or {}
            others = [e for e in details.get("writeErrors", []) if e.get("code") != DUPLICATE_KEY]
            if others:
                raise
            inserted = int(details.get("nInserted", 0))
            self._logger.info(
                "skipped %d duplicate executions (inserted %d)",
                len(docs) - inserted,
                inserted,
            )
            return inserted

    async def count_received_since(self, user_id: str, since: datetime) -> int:
        return await self._col.count_documents({"user_id": user_id, "received_at": {"$gte": since}})

    def _join_signal(self, local_field: str = "signal_id") -> List[Dict]:
        return [
            {
                "$lookup": {
                    "from": SignalRepositoryMongoDB.COLLECTION,
                    "localField": local_field,
                    "foreignField": "_id",
                    "as": "signal",
                }
            },
            {"$unwind": "$signal"},
        ]

    async def list_deliverable(
        self,
        user_id: str,
        mt5_account_id: str,
        now: datetime,
        delay_cutoff: datetime,
        limit: int,
    ) -> List[Dict]:
        pipeline = [
            {
                "$match": {
                    "user_id": user_id,
                    "mt5_account_id": mt5_account_id,
                    "status": ExecutionStatus.PENDING.value,
                }
            },
            *self._join_signal(),
            {
                "$match": {
                    "signal.status": {"$in": list(OPEN_SIGNAL_STATUSES)},
                    "signal.expires_at": {"$gt": now},
                    "signal.created_at": {"$lte": delay_cutoff},
                }
            },
            {"$sort": {"received_at": 1, "_id": 1}},
            {"$limit": limit},
        ]
        cursor = self._col.aggregate(pipeline)
        return await cursor.to_list(length=limit)

    async def get_for_user(self, execution_id: str, user_id: str) -> Optional[Dict]:
        return await self._col.find_one({"_id": execution_id, "user_id": user_id})

    async def complete_if_pending(self, execution_id: str, user_id: str, fields: Dict) -> bool:
        res = await self._col.update_one(
            {"_id": execution_id, "user_id": user_id, "status": ExecutionStatus.PENDING.value},
            {"$set": fields},
        )
        return res.modified_count == 1

    async def expire_pending_of_expired_signals(self) -> int:
        pipeline = [
            {"$match": {"status": ExecutionStatus.PENDING.value}},
            *self._join_signal(),
            {"$match": {"signal.status": SignalStatus.EXPIRED.value}},
            {"$project": {"_id": 1}},
        ]
        ids = [d["_id"] async for d in self._col.aggregate(pipeline)]
        if not ids:
            return 0
        res = await self._col.update_many(
            {"_id": {"$in": ids}, "status": ExecutionStatus.PENDING.value},
            {"$set": {"status": ExecutionStatus.EXPIRED.value}},
        )
        return res.modified_count

    async def list_with_signal(
        self,
        since: datetime,
        user_id: Optional[str] = None,
        provider_id: Optional[str] = None,
    ) -> List[Dict]:
        match: Dict = {"received_at": {"$gte": since}}
        if user_id is not None:
            match["user_id"] = user_id
        pipeline = [{"$match": match}, *self._join_signal()]
        if provider_id is not None:
            pipeline.append({"$match": {"signal.provider_id": provider_id}})
        return await self._col.aggregate(pipeline).to_list(length=None)

    async def find_signal_history(
        self,
        user_id: str,
        symbol: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Dict], int]:
        signal_filter: Dict = {}
        if symbol:
            signal_filter["symbol"] = symbol
        if start_date or end_date:
            created: Dict = {}
            if start_date:
                created["$gte"] = start_date
            if end_date:
                created["$lte"] = end_date
            signal_filter["created_at"] = created

        # received signals (one per signal, however many receiver accounts),
        # then the user's own broadcasts, de-duplicated and paged server side
        pipeline = [
            {"$match": {"user_id": user_id}},
            {"$group": {"_id": "$signal_id"}},
            *self._join_signal(local_field="_id"),
            {"$replaceRoot": {"newRoot": "$signal"}},
            {"$match": signal_filter},
            {
                "$unionWith": {
                    "coll": SignalRepositoryMongoDB.COLLECTION,
                    "pipeline": [{"$match": {"provider_id": user_id, **signal_filter}}],
                }
            },
            {"$group": {"_id": "$_id", "doc": {"$first": "$$ROOT"}}},
            {"$replaceRoot": {"newRoot": "$doc"}},
            {"$sort": {"created_at": -1, "_id": 1}},
            {
                "$facet": {
                    "page": [{"$skip": offset}, {"$limit": limit}],
                    "total": [{"$count": "n"}],
                }
            },
        ]
        [result] = await self._col.aggregate(pipeline, allowDiskUse=True).to_list(length=1)
        total = result["total"][0]["n"] if result["total"] else 0
        return result["page"], total

    async def list_for_user_by_signals(self, user_id: str, signal_ids: Sequence[str]) -> List[Dict]:
        cursor = self._col.find({"user_id": user_id, "signal_id": {"$in": list(signal_ids)}})
        return await cursor.to_list(length=None)
