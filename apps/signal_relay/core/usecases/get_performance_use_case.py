import logging
from datetime import timedelta
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..domain.enums.signal_enums import PerformancePeriod
from ..repositories.account_repository import AccountRepository
from ..repositories.snapshot_repository import SnapshotRepository
from ..utils import Clock, as_utc, start_of_day, utc_now
from ...exceptions import store_errors

PERIOD_DAYS = {
    PerformancePeriod.D7: 7,
    PerformancePeriod.D30: 30,
    PerformancePeriod.D90: 90,
}


class PerformancePoint(BaseModel):
    date: str
    growth: float
    drawdown: float


class PerformanceResult(BaseModel):
    success: bool = True
    data: List[PerformancePoint] = Field(default_factory=list)
    message: Optional[str] = None


class GetPerformanceUseCase:
    """
    Growth / drawdown series for the dashboard chart, built from the daily
    account snapshots across all of the user's linked accounts.

    growth   = (day balance - initial balance) / initial balance * 100
    drawdown = -(running peak equity - day equity) / running peak * 100
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        snapshot_repo: SnapshotRepository,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._accounts = account_repo
        self._snapshots = snapshot_repo
        self._clock = clock or utc_now
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def execute(self, user_id: str, period: PerformancePeriod = PerformancePeriod.D30) -> PerformanceResult:
        since = start_of_day(self._clock() - timedelta(days=PERIOD_DAYS[period]))

        with store_errors("account listing", self._logger):
            accounts = await self._accounts.list_by_user(user_id)
        if not accounts:
            return PerformanceResult(message="No MT5 accounts found")
        account_pks = [a["_id"] for a in accounts]

        with store_errors("snapshot query", self._logger):
            snapshots = await self._snapshots.list_since(account_pks, since)
            first = await self._snapshots.first_for_accounts(account_pks) if snapshots else None
        if not snapshots:
            return PerformanceResult(message="No performance data available")

        initial_balance = float(first["balance"]) if first else 0.0

        # aggregate per day across accounts, keeping insertion (date) order
        per_day: Dict = {}
        for snap in snapshots:
            day = as_utc(snap["snapshot_date"]).date()
            agg = per_day.setdefault(day, {"balance": 0.0, "equity": 0.0})
            agg["balance"] += float(snap["balance"])
            agg["equity"] += float(snap["equity"])

        points: List[PerformancePoint] = []
        running_peak = initial_balance
        for day, agg in per_day.items():
            running_peak = max(running_peak, agg["equity"])
            growth = (agg["balance"] - initial_balance) / initial_balance * 100 if initial_balance > 0 else 0.0
            drawdown = -(running_peak - agg["equity"]) / running_peak * 100 if running_peak > 0 else 0.0
            points.append(
                PerformancePoint(
                    date=f"{day:%b} {day.day}",
                    growth=round(growth, 2),
                    drawdown=round(drawdown, 2),
                )
            )
        return PerformanceResult(data=points)
