import logging
from typing import Dict, Optional

from pydantic import BaseModel

from ..domain.enums.signal_enums import ExecutionStatus, TERMINAL_EXECUTION_STATUSES
from ..repositories.execution_repository import ExecutionRepository
from ..services.ack_status import NO_TRANSITION, classify_ack_status, error_from_status
from ..utils import Clock, utc_now
from ...exceptions import NotFoundError, PersistenceError

ACK_FAILED_MESSAGE = "Failed to acknowledge execution"


class AckDetails(BaseModel):
    executed_volume: Optional[float] = None
    executed_price: Optional[float] = None
    slippage: Optional[float] = None
    slave_ticket: Optional[int] = None
    error_code: Optional[int] = None
    error_message: Optional[str] = None


class AckResult(BaseModel):
    success: bool
    message: str


class AcknowledgeExecutionUseCase:
    """
    Moves an execution from PENDING to exactly one terminal status.

    The write is a compare-and-swap on status == PENDING, so a retry racing the
    original request (or the expiry sweeper) cannot both win. Whoever loses is
    told which terminal status was stored; that is still a success for the caller.
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

    async def _load(self, execution_id: str, user_id: str) -> Optional[Dict]:
        try:
            return await self._executions.get_for_user(execution_id, user_id)
        except Exception as exc:
            self._logger.exception("load execution %s failed: %s", execution_id, exc)
            raise PersistenceError("execution lookup", exc) from exc

    async def execute(
        self,
        execution_id: str,
        user_id: str,
        status: str,
        details: Optional[AckDetails] = None,
    ) -> AckResult:
        details = details or AckDetails()

        existing = await self._load(execution_id, user_id)
        if not existing:
            raise NotFoundError("Execution", execution_id, "Execution not found")

        if existing["status"] in TERMINAL_EXECUTION_STATUSES:
            return AckResult(success=True, message=f"Already acknowledged as {existing['status']}")

        target = classify_ack_status(status)
        if target is NO_TRANSITION:
            self._logger.warning("execution %s: unrecognised ack status %r, left PENDING", execution_id, status)
            return AckResult(success=False, message=ACK_FAILED_MESSAGE)

        now = self._clock()
        fields = {
            "status": target.value,
            "acknowledged_at": now,
            "executed_at": now if target is ExecutionStatus.EXECUTED else None,
            "executed_volume": details.executed_volume,
            "executed_price": details.executed_price,
            "slippage": details.slippage,
            "slave_ticket": details.slave_ticket or None,
            "error_code": details.error_code,
            "error_message": details.error_message or error_from_status(status),
        }

        try:
            won = await self._executions.complete_if_pending(execution_id, user_id, fields)
        except Exception as exc:
            self._logger.exception("ack write for execution %s failed: %s", execution_id, exc)
            raise PersistenceError("execution acknowledge", exc) from exc

        if not won:
            current = await self._load(execution_id, user_id)
            current_status = (current or {}).get("status") or "UNKNOWN"
            self._logger.info("execution %s lost ack race, stored status %s", execution_id, current_status)
            return AckResult(success=True, message=f"Already acknowledged as {current_status}")

        self._logger.info("execution %s acknowledged as %s", execution_id, target.value)
        return AckResult(success=True, message="Execution acknowledged")
