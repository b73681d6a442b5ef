import logging
from datetime import timedelta
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..domain.entities.signal_entity import PendingSignal
from ..domain.enums.signal_enums import AccountType
from ..repositories.account_repository import AccountRepository
from ..repositories.execution_repository import ExecutionRepository
from ..services.entitlement_service import EntitlementService
from ..utils import Clock, as_utc, iso_z, utc_now
from ...exceptions import NotFoundError, store_errors

LIMIT_REACHED_MESSAGE = "Daily signal limit reached"


class PollResult(BaseModel):
    success: bool = True
    signals: List[PendingSignal] = Field(default_factory=list)
    message: Optional[str] = None


class PollPendingSignalsUseCase:
    """
    Serves pending executions to a polling receiver EA.

    Quota exhaustion is a soft limit: an empty result with a message, never an error.
    A signal is only visible once the tier's delay has fully elapsed since it was
    broadcast, and only while it is open and unexpired. Read-only.
    """

    def __init__(
        self,
        entitlement_service: EntitlementService,
        account_repo: AccountRepository,
        execution_repo: ExecutionRepository,
        batch_limit: int = 10,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._entitlements = entitlement_service
        self._accounts = account_repo
        self._executions = execution_repo
        self._batch_limit = batch_limit
        self._clock = clock or utc_now
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    @staticmethod
    def _to_pending(doc: Dict) -> PendingSignal:
        sig = doc["signal"]
        return PendingSignal(
            signal_id=doc["_id"],
            action=sig["action"],
            symbol=sig["symbol"],
            type=sig["type"],
            volume=float(sig["volume"]),
            price=float(sig["price"]),
            sl=float(sig.get("sl") or 0),
            tp=float(sig.get("tp") or 0),
            ticket=int(sig.get("master_ticket") or 0),
            magic=int(sig.get("magic") or 0),
            timestamp_utc=iso_z(as_utc(sig["created_at"])),
        )

    async def execute(self, user_id: str, account_id: str) -> PollResult:
        entitlement = await self._entitlements.get_entitlement(user_id)
        quota = await self._entitlements.quota_for(user_id, entitlement)
        if not quota.allowed:
            self._logger.info("poll user=%s: daily limit reached (limit=%d)", user_id, quota.limit)
            return PollResult(success=True, signals=[], message=LIMIT_REACHED_MESSAGE)

        with store_errors("receiver account lookup", self._logger):
            receiver = await self._accounts.find_linked_account(user_id, account_id, AccountType.SLAVE.value)
        if not receiver:
            raise NotFoundError("Slave account", account_id, "Slave account not found")

        now = self._clock()
        delay_cutoff = now - timedelta(seconds=entitlement.delay_seconds)
        with store_errors("pending signals query", self._logger):
            docs = await self._executions.list_deliverable(
                user_id=user_id,
                mt5_account_id=receiver["_id"],
                now=now,
                delay_cutoff=delay_cutoff,
                limit=self._batch_limit,
            )
        return PollResult(success=True, signals=[self._to_pending(d) for d in docs])
