from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple


class ExecutionRepository(ABC):
    """
    Repository interface for per-receiver executions of a signal.

    Documents returned with a joined signal carry it under the "signal" key.
    """

    @abstractmethod
    async def ensure_indexes(self) -> None:
        """Unique (signal_id, mt5_account_id) plus lookup indexes."""
        raise NotImplementedError

    @abstractmethod
    async def insert_many_skip_duplicates(self, docs: List[Dict]) -> int:
        """
        Bulk insert; a duplicate (signal_id, mt5_account_id) pair is skipped,
        never failing the batch. Returns how many were actually inserted.
        """
        raise NotImplementedError

    @abstractmethod
    async def count_received_since(self, user_id: str, since: datetime) -> int:
        raise NotImplementedError

    @abstractmethod
    async def list_deliverable(
        self,
        user_id: str,
        mt5_account_id: str,
        now: datetime,
        delay_cutoff: datetime,
        limit: int,
    ) -> List[Dict]:
        """
        PENDING executions of this receiver account whose signal is PENDING/ACTIVE,
        not expired (expires_at > now) and old enough (created_at <= delay_cutoff).
        Ordered by received_at ascending, capped at `limit`.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_for_user(self, execution_id: str, user_id: str) -> Optional[Dict]:
        raise NotImplementedError

    @abstractmethod
    async def complete_if_pending(self, execution_id: str, user_id: str, fields: Dict) -> bool:
        """
        Compare-and-swap: apply `fields` (including the terminal status) only if
        the execution is still PENDING at write time. True when this call won.
        """
        raise NotImplementedError

    @abstractmethod
    async def expire_pending_of_expired_signals(self) -> int:
        """
        PENDING executions whose signal is EXPIRED -> EXPIRED (status-guarded).
        """
        raise NotImplementedError

    @abstractmethod
    async def list_with_signal(
        self,
        since: datetime,
        user_id: Optional[str] = None,
        provider_id: Optional[str] = None,
    ) -> List[Dict]:
        """
        Executions received since `since`, each joined with its signal.
        `user_id` filters on the receiver, `provider_id` on the signal's provider.
        """
        raise NotImplementedError

    @abstractmethod
    async def find_signal_history(
        self,
        user_id: str,
        symbol: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Dict], int]:
        """
        Signal documents the user provided or received (each once), newest
        first, paginated. Returns (page, total).
        """
        raise NotImplementedError

    @abstractmethod
    async def list_for_user_by_signals(self, user_id: str, signal_ids: Sequence[str]) -> List[Dict]:
        raise NotImplementedError
