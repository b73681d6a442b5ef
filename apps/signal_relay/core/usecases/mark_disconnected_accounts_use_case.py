import logging
from datetime import timedelta
from typing import Optional

from ..repositories.account_repository import AccountRepository
from ..utils import Clock, utc_now
from ...exceptions import store_errors


class MarkDisconnectedAccountsUseCase:
    """
    Flags linked accounts whose EA stopped sending heartbeats.
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        stale_after_sec: int = 900,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._accounts = account_repo
        self._stale_after = timedelta(seconds=stale_after_sec)
        self._clock = clock or utc_now
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def execute(self) -> int:
        cutoff = self._clock() - self._stale_after
        with store_errors("disconnect check", self._logger):
            count = await self._accounts.mark_disconnected_before(cutoff)
        if count:
            self._logger.info("marked %d accounts as disconnected", count)
        return count
