from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Sequence


class AccountRepository(ABC):
    """
    Repository interface for linked trading accounts (MASTER / SLAVE).

    Account rows are owned by the user service; we only read them and
    write the heartbeat/connection fields.
    """

    @abstractmethod
    async def ensure_indexes(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def find_linked_account(
        self,
        user_id: str,
        account_id: str,
        account_type: Optional[str] = None,
    ) -> Optional[Dict]:
        """
        Resolve the user's linked account by its external account id,
        optionally restricted to a role.
        """
        raise NotImplementedError

    @abstractmethod
    async def list_by_users(self, user_ids: Sequence[str], account_type: str) -> List[Dict]:
        raise NotImplementedError

    @abstractmethod
    async def list_by_user(self, user_id: str) -> List[Dict]:
        raise NotImplementedError

    @abstractmethod
    async def record_heartbeat(self, account_pk: str, fields: Dict) -> None:
        """Set is_connected/last_heartbeat and any reported figures."""
        raise NotImplementedError

    @abstractmethod
    async def mark_disconnected_before(self, cutoff: datetime) -> int:
        """Connected accounts with last_heartbeat < cutoff -> is_connected False."""
        raise NotImplementedError
