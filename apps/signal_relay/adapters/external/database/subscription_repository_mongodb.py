from typing import Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from ....core.repositories.subscription_repository import SubscriptionRepository


class SubscriptionRepositoryMongoDB(SubscriptionRepository):
    """
    Mongo read view over the billing-owned 'subscriptions', 'subscription_tiers'
    and 'users' collections.
    """

    SUBSCRIPTIONS = "subscriptions"
    TIERS = "subscription_tiers"
    USERS = "users"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._subs = db[self.SUBSCRIPTIONS]
        self._tiers = db[self.TIERS]
        self._users = db[self.USERS]

    async def get_active_tier(self, user_id: str) -> Optional[Dict]:
        sub = await self._subs.find_one({"user_id": user_id, "status": "ACTIVE"})
        if not sub:
            return None
        return await self._tiers.find_one({"_id": sub["tier_id"]})

    async def list_eligible_user_ids(self, exclude_user_id: str) -> List[str]:
        pipeline = [
            {"$match": {"status": "ACTIVE", "user_id": {"$ne": exclude_user_id}}},
            {"$group": {"_id": "$user_id"}},
            {
                "$lookup": {
                    "from": self.USERS,
                    "localField": "_id",
                    "foreignField": "_id",
                    "as": "user",
                }
            },
            {"$match": {"user.status": "ACTIVE"}},
            {"$project": {"_id": 1}},
        ]
        return [d["_id"] async for d in self._subs.aggregate(pipeline)]
