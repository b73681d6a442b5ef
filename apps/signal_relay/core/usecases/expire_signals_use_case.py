import logging
from typing import Optional

from ..repositories.execution_repository import ExecutionRepository
from ..repositories.signal_repository import SignalRepository
from ..utils import Clock, utc_now
from ...exceptions import store_errors


class ExpireSignalsUseCase:
    """
    Time-triggered sweep:
      1) open signals past expires_at -> EXPIRED
      2) PENDING executions of EXPIRED signals -> EXPIRED

    Step 2 covers every expired signal, not just this tick's, so a sweep that
    died between the two steps is repaired by the next one.
    """

    def __init__(
        self,
        signal_repo: SignalRepository,
        execution_repo: ExecutionRepository,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._signals = signal_repo
        self._executions = execution_repo
        self._clock = clock or utc_now
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def execute(self) -> int:
        """
        Returns the number of signals expired by this sweep.
        """
        now = self._clock()
        with store_errors("expiry sweep", self._logger):
            expired_signals = await self._signals.expire_due(now)
            expired_execs = await self._executions.expire_pending_of_expired_signals()
        if expired_signals or expired_execs:
            self._logger.info(
                "sweep expired %d signals and %d executions", expired_signals, expired_execs
            )
        return expired_signals
