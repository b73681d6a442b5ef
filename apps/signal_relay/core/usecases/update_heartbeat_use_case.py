import logging
from typing import Dict, Optional

from ..repositories.account_repository import AccountRepository
from ..repositories.snapshot_repository import SnapshotRepository
from ..utils import Clock, start_of_day, utc_now
from ...exceptions import NotFoundError, store_errors


class UpdateHeartbeatUseCase:
    """
    Records an EA heartbeat on its linked account and, when enabled, keeps one
    balance/equity snapshot per account per day with a running peak equity.
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        snapshot_repo: SnapshotRepository,
        capture_snapshots: bool = True,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._accounts = account_repo
        self._snapshots = snapshot_repo
        self._capture_snapshots = capture_snapshots
        self._clock = clock or utc_now
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def execute(
        self,
        user_id: str,
        account_id: str,
        balance: Optional[float] = None,
        equity: Optional[float] = None,
        profit: Optional[float] = None,
    ) -> str:
        with store_errors("account lookup", self._logger):
            account = await self._accounts.find_linked_account(user_id, account_id)
        if not account:
            raise NotFoundError("Account", account_id, "Account not found")

        now = self._clock()
        fields: Dict = {"is_connected": True, "last_heartbeat": now}
        if balance is not None:
            fields["balance"] = balance
        if equity is not None:
            fields["equity"] = equity
        if profit is not None:
            fields["profit"] = profit
        with store_errors("heartbeat write", self._logger):
            await self._accounts.record_heartbeat(account["_id"], fields)

        if self._capture_snapshots and balance is not None and equity is not None:
            await self._capture_snapshot(account["_id"], balance, equity, profit or 0.0)

        return "Heartbeat updated"

    async def _capture_snapshot(self, account_pk: str, balance: float, equity: float, profit: float) -> None:
        today = start_of_day(self._clock())
        try:
            latest = await self._snapshots.latest_for_account(account_pk)
            peak = equity
            if latest and latest.get("peak_equity") is not None:
                peak = max(float(latest["peak_equity"]), equity)
            await self._snapshots.upsert_daily(
                account_pk,
                today,
                {"balance": balance, "equity": equity, "profit": profit, "peak_equity": peak},
            )
        except Exception as exc:
            # heartbeat already recorded; a missing snapshot only thins the chart
            self._logger.warning("balance snapshot for %s failed: %s", account_pk, exc)
