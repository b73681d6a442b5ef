from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Sequence


class SnapshotRepository(ABC):
    """
    Daily balance/equity snapshots per linked account (one per account per day).
    """

    @abstractmethod
    async def ensure_indexes(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def latest_for_account(self, account_pk: str) -> Optional[Dict]:
        raise NotImplementedError

    @abstractmethod
    async def upsert_daily(self, account_pk: str, snapshot_date: datetime, fields: Dict) -> None:
        raise NotImplementedError

    @abstractmethod
    async def list_since(self, account_pks: Sequence[str], since: datetime) -> List[Dict]:
        """Snapshots of the given accounts since `since`, oldest first."""
        raise NotImplementedError

    @abstractmethod
    async def first_for_accounts(self, account_pks: Sequence[str]) -> Optional[Dict]:
        raise NotImplementedError
