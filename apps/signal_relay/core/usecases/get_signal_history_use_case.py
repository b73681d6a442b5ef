import logging
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from ..repositories.execution_repository import ExecutionRepository
from ...exceptions import store_errors


class HistoryExecution(BaseModel):
    status: str
    executed_at: Optional[datetime] = None
    executed_price: Optional[float] = None


class HistoryItem(BaseModel):
    id: str
    action: str
    symbol: str
    type: str
    volume: float
    price: float
    sl: Optional[float] = None
    tp: Optional[float] = None
    status: str
    created_at: datetime
    execution: Optional[HistoryExecution] = None


class HistoryPage(BaseModel):
    signals: List[HistoryItem]
    total: int
    limit: int
    offset: int


class GetSignalHistoryUseCase:
    """
    Signals the user either provided or received, newest first, each carrying
    the caller's own execution state (if any).
    """

    def __init__(self, execution_repo: ExecutionRepository, logger: Optional[logging.Logger] = None):
        self._executions = execution_repo
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def execute(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
        symbol: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> HistoryPage:
        with store_errors("signal history query", self._logger):
            signals, total = await self._executions.find_signal_history(
                user_id,
                symbol=symbol,
                start_date=start_date,
                end_date=end_date,
                limit=limit,
                offset=offset,
            )
            execs: List[Dict] = []
            if signals:
                execs = await self._executions.list_for_user_by_signals(user_id, [s["_id"] for s in signals])

        own: Dict[str, Dict] = {}
        for e in sorted(execs, key=lambda d: d["received_at"]):
            own.setdefault(e["signal_id"], e)

        items: List[HistoryItem] = []
        for s in signals:
            e = own.get(s["_id"])
            items.append(
                HistoryItem(
                    id=s["_id"],
                    action=s["action"],
                    symbol=s["symbol"],
                    type=s["type"],
                    volume=float(s["volume"]),
                    price=float(s["price"]),
                    sl=s.get("sl") or None,
                    tp=s.get("tp") or None,
                    status=s["status"],
                    created_at=s["created_at"],
                    execution=HistoryExecution(
                        status=e["status"],
                        executed_at=e.get("executed_at"),
                        executed_price=e.get("executed_price"),
                    ) if e else None,
                )
            )
        return HistoryPage(signals=items, total=total, limit=limit, offset=offset)
