from abc import ABC, abstractmethod
from typing import Dict, List, Optional


class SubscriptionRepository(ABC):
    """
    Read-only view over users / subscriptions / subscription tiers.
    """

    @abstractmethod
    async def get_active_tier(self, user_id: str) -> Optional[Dict]:
        """
        Tier document of the user's ACTIVE subscription, or None.
        Expected keys: max_signals_per_day, signal_delay, max_slave_accounts.
        """
        raise NotImplementedError

    @abstractmethod
    async def list_eligible_user_ids(self, exclude_user_id: str) -> List[str]:
        """
        Users other than `exclude_user_id` with an ACTIVE subscription
        and an ACTIVE user status.
        """
        raise NotImplementedError
