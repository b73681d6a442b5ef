from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Sequence


class SignalRepository(ABC):
    """
    Repository interface for broadcast signals (append-only, status moves forward).
    """

    @abstractmethod
    async def ensure_indexes(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def insert_signal(self, doc: Dict) -> None:
        """
        Insert a freshly created signal. Never upserts.
        """
        raise NotImplementedError

    @abstractmethod
    async def transition_status(self, signal_id: str, from_statuses: Sequence[str], to_status: str) -> bool:
        """
        Guarded status change: only applies when the current status is in `from_statuses`.
        Returns True when the row was changed.
        """
        raise NotImplementedError

    @abstractmethod
    async def expire_due(self, now: datetime) -> int:
        """
        PENDING/ACTIVE signals with expires_at < now -> EXPIRED.
        Returns the number of signals expired.
        """
        raise NotImplementedError
