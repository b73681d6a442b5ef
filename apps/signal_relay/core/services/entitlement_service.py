import logging
from typing import Optional

from pydantic import BaseModel

from ..repositories.execution_repository import ExecutionRepository
from ..repositories.subscription_repository import SubscriptionRepository
from ..utils import Clock, start_of_day, utc_now
from ...exceptions import store_errors

UNLIMITED = -1


class Entitlement(BaseModel):
    """
    What the account's active tier allows, resolved per request.
    """
    limit: int                  # daily signal cap, -1 = unlimited
    delay_seconds: int = 0
    max_receiver_accounts: int = 0


class QuotaStatus(BaseModel):
    allowed: bool
    remaining: int
    limit: int


class EntitlementService:
    """
    Derives quota and delay from the subscription tier.

    Daily usage is the number of executions received by the user since
    midnight UTC of the current day.
    """

    def __init__(
        self,
        subscription_repo: SubscriptionRepository,
        execution_repo: ExecutionRepository,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._subscriptions = subscription_repo
        self._executions = execution_repo
        self._clock = clock or utc_now
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def get_entitlement(self, user_id: str) -> Optional[Entitlement]:
        with store_errors("tier lookup", self._logger):
            tier = await self._subscriptions.get_active_tier(user_id)
        if not tier:
            return None
        return Entitlement(
            limit=int(tier.get("max_signals_per_day") or 0),
            delay_seconds=int(tier.get("signal_delay") or 0),
            max_receiver_accounts=int(tier.get("max_slave_accounts") or 0),
        )

    async def quota_for(self, user_id: str, entitlement: Optional[Entitlement]) -> QuotaStatus:
        """
        Quota under an entitlement the caller already resolved, so that a
        poll judges quota and delay against the same tier.
        """
        if entitlement is None:
            return QuotaStatus(allowed=False, remaining=0, limit=0)

        if entitlement.limit == UNLIMITED:
            return QuotaStatus(allowed=True, remaining=UNLIMITED, limit=UNLIMITED)

        since = start_of_day(self._clock())
        with store_errors("daily usage count", self._logger):
            used = await self._executions.count_received_since(user_id, since)
        remaining = max(0, entitlement.limit - used)
        self._logger.debug("quota user=%s limit=%d used=%d", user_id, entitlement.limit, used)
        return QuotaStatus(allowed=remaining > 0, remaining=remaining, limit=entitlement.limit)

    async def check_quota(self, user_id: str) -> QuotaStatus:
        return await self.quota_for(user_id, await self.get_entitlement(user_id))
