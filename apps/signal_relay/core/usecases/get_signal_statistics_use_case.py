import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..domain.enums.signal_enums import ExecutionStatus, SignalAction, StatsPeriod, StatsScope
from ..repositories.execution_repository import ExecutionRepository
from ..utils import Clock, start_of_day, utc_now
from ...exceptions import store_errors

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class SignalStatistics(BaseModel):
    period: str
    scope: str
    total_signals: int = 0
    executed: int = 0
    failed: int = 0
    skipped: int = 0
    expired: int = 0
    pending: int = 0
    by_symbol: Dict[str, int] = Field(default_factory=dict)
    by_action: Dict[str, int] = Field(default_factory=lambda: {a.value: 0 for a in SignalAction})


class GetSignalStatisticsUseCase:
    """
    Counts executions (joined with their signal) over a window, by terminal
    status, symbol and action.

    receiver scope: executions delivered to the user.
    provider scope: executions of signals the user broadcast.
    """

    def __init__(
        self,
        execution_repo: ExecutionRepository,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._executions = execution_repo
        self._clock = clock or utc_now
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    def _window_start(self, period: StatsPeriod) -> datetime:
        now = self._clock()
        if period is StatsPeriod.DAY:
            return start_of_day(now)
        if period is StatsPeriod.WEEK:
            return now - timedelta(days=7)
        if period is StatsPeriod.MONTH:
            return now - timedelta(days=30)
        return EPOCH

    async def execute(
        self,
        user_id: str,
        period: StatsPeriod = StatsPeriod.MONTH,
        scope: StatsScope = StatsScope.RECEIVER,
    ) -> SignalStatistics:
        since = self._window_start(period)

        with store_errors("signal statistics query", self._logger):
            if scope is StatsScope.PROVIDER:
                rows: List[Dict] = await self._executions.list_with_signal(since, provider_id=user_id)
            else:
                rows = await self._executions.list_with_signal(since, user_id=user_id)

        stats = SignalStatistics(period=period.value, scope=scope.value, total_signals=len(rows))
        counters = {
            ExecutionStatus.EXECUTED.value: "executed",
            ExecutionStatus.FAILED.value: "failed",
            ExecutionStatus.SKIPPED.value: "skipped",
            ExecutionStatus.EXPIRED.value: "expired",
            ExecutionStatus.PENDING.value: "pending",
        }
        for row in rows:
            attr = counters.get(row["status"])
            if attr:
                setattr(stats, attr, getattr(stats, attr) + 1)
            sig = row["signal"]
            stats.by_symbol[sig["symbol"]] = stats.by_symbol.get(sig["symbol"], 0) + 1
            stats.by_action[sig["action"]] = stats.by_action.get(sig["action"], 0) + 1
        return stats
