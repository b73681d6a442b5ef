import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError, field_validator

from .deps import get_current_user_id, get_services, http_error
from ....core.domain.entities.signal_entity import IncomingSignal
from ....core.domain.enums.signal_enums import PerformancePeriod, StatsPeriod, StatsScope
from ....core.services.entitlement_service import QuotaStatus
from ....core.usecases.acknowledge_execution_use_case import AckDetails, AckResult
from ....core.usecases.get_performance_use_case import PerformanceResult
from ....core.usecases.get_signal_history_use_case import HistoryPage
from ....core.usecases.get_signal_statistics_use_case import SignalStatistics
from ....exceptions import SignalRelayError
from ....wiring import SignalServices

router = APIRouter(prefix="/api/signals", tags=["signals"])


def _require_account_id(account_id: Optional[str]) -> str:
    if not account_id or not account_id.strip():
        raise HTTPException(status_code=400, detail="account_id is required")
    return account_id.strip()


def _finite_or_none(v: Optional[float]) -> Optional[float]:
    return v if v is None or math.isfinite(v) else None


# =========================
# EA messages (POST /)
# =========================

class SignalEnvelopeDTO(BaseModel):
    type: str = Field(..., examples=["TRADE_SIGNAL"])
    action: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    account_id: Optional[str] = None

    @field_validator("type")
    @classmethod
    def upper_type(cls, v: str) -> str:
        return v.upper()


class HeartbeatDataDTO(BaseModel):
    balance: Optional[float] = None
    equity: Optional[float] = None
    profit: Optional[float] = None

    @field_validator("balance", "equity", "profit")
    @classmethod
    def drop_non_finite(cls, v: Optional[float]) -> Optional[float]:
        return _finite_or_none(v)


class HeartbeatDTO(BaseModel):
    account_id: Optional[str] = None
    data: HeartbeatDataDTO = Field(default_factory=HeartbeatDataDTO)


class MessageOutDTO(BaseModel):
    success: bool
    message: str


async def _heartbeat(services: SignalServices, user_id: str, account_id: str, data: HeartbeatDataDTO) -> MessageOutDTO:
    try:
        msg = await services.heartbeat.execute(
            user_id, account_id, balance=data.balance, equity=data.equity, profit=data.profit
        )
    except SignalRelayError as exc:
        raise http_error(exc)
    return MessageOutDTO(success=True, message=msg)


@router.post("")
async def post_message(
    dto: SignalEnvelopeDTO,
    user_id: str = Depends(get_current_user_id),
    services: SignalServices = Depends(get_services),
):
    """
    Single entry point for the sender EA: TRADE_SIGNAL, HEARTBEAT, POSITION_SNAPSHOT.
    """
    account_id = _require_account_id(dto.account_id)

    if dto.type == "HEARTBEAT":
        try:
            data = HeartbeatDataDTO.model_validate(dto.data or {})
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors(include_url=False, include_input=False))
        return await _heartbeat(services, user_id, account_id, data)

    if dto.type == "TRADE_SIGNAL":
        try:
            data = dto.data or {}
            incoming = IncomingSignal.model_validate({
                **data,
                "action": dto.action or data.get("action"),
                "account_id": account_id,
            })
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors(include_url=False, include_input=False))

        try:
            signal_id = await services.ingest.execute(user_id, incoming)
        except SignalRelayError as exc:
            raise http_error(exc)
        return JSONResponse(
            status_code=201,
            content={"success": True, "signalId": signal_id, "message": "Signal received"},
        )

    if dto.type == "POSITION_SNAPSHOT":
        return {"success": True, "message": "Position snapshot received"}

    raise HTTPException(status_code=400, detail="Unknown message type")


@router.post("/heartbeat", response_model=MessageOutDTO)
async def post_heartbeat(
    dto: HeartbeatDTO,
    user_id: str = Depends(get_current_user_id),
    services: SignalServices = Depends(get_services),
):
    account_id = _require_account_id(dto.account_id)
    return await _heartbeat(services, user_id, account_id, dto.data)


# =========================
# Receiver EA (pending / ack)
# =========================

@router.get("/pending")
async def get_pending(
    account_id: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    services: SignalServices = Depends(get_services),
):
    """
    Up to POLL_BATCH_LIMIT deliverable signals, oldest first.
    An exhausted daily quota yields an empty list, not an error.
    """
    account_id = _require_account_id(account_id)
    try:
        result = await services.poll.execute(user_id, account_id)
    except SignalRelayError as exc:
        raise http_error(exc)

    body: Dict[str, Any] = {"signals": [s.model_dump() for s in result.signals]}
    if result.message:
        body["message"] = result.message
    return body


class AckDTO(BaseModel):
    signal_id: str = Field(..., min_length=1, description="execution id handed out by /pending")
    status: str = Field(..., min_length=1, examples=["EXECUTED", "FAILED:not enough money"])
    executed_volume: Optional[float] = None
    executed_price: Optional[float] = None
    slippage: Optional[float] = None
    slave_ticket: Optional[int] = None
    error_code: Optional[int] = None
    error_message: Optional[str] = None

    @field_validator("executed_volume", "executed_price", "slippage")
    @classmethod
    def drop_non_finite(cls, v: Optional[float]) -> Optional[float]:
        return _finite_or_none(v)


@router.post("/ack", response_model=AckResult)
async def post_ack(
    dto: AckDTO,
    user_id: str = Depends(get_current_user_id),
    services: SignalServices = Depends(get_services),
):
    """
    Idempotent: repeating an ack returns success naming the stored status.
    """
    details = AckDetails(**dto.model_dump(exclude={"signal_id", "status"}))
    try:
        return await services.acknowledge.execute(dto.signal_id, user_id, dto.status, details)
    except SignalRelayError as exc:
        raise http_error(exc)


class PositionsDTO(BaseModel):
    account_id: Optional[str] = None
    positions: List[Dict[str, Any]] = Field(default_factory=list)


@router.post("/positions")
async def post_positions(dto: PositionsDTO, user_id: str = Depends(get_current_user_id)):
    return {"success": True, "message": "Positions updated", "count": len(dto.positions)}


# =========================
# Dashboard (read-only)
# =========================

@router.get("/history", response_model=HistoryPage)
async def get_history(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    symbol: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    services: SignalServices = Depends(get_services),
):
    try:
        return await services.history.execute(
            user_id,
            limit=limit,
            offset=offset,
            symbol=symbol,
            start_date=start_date,
            end_date=end_date,
        )
    except SignalRelayError as exc:
        raise http_error(exc)


@router.get("/stats", response_model=SignalStatistics)
async def get_stats(
    period: StatsPeriod = Query(StatsPeriod.MONTH),
    scope: StatsScope = Query(StatsScope.RECEIVER),
    user_id: str = Depends(get_current_user_id),
    services: SignalServices = Depends(get_services),
):
    try:
        return await services.statistics.execute(user_id, period=period, scope=scope)
    except SignalRelayError as exc:
        raise http_error(exc)


@router.get("/performance", response_model=PerformanceResult)
async def get_performance(
    period: PerformancePeriod = Query(PerformancePeriod.D30),
    user_id: str = Depends(get_current_user_id),
    services: SignalServices = Depends(get_services),
):
    try:
        return await services.performance.execute(user_id, period=period)
    except SignalRelayError as exc:
        raise http_error(exc)


@router.get("/quota", response_model=QuotaStatus)
async def get_quota(
    user_id: str = Depends(get_current_user_id),
    services: SignalServices = Depends(get_services),
):
    try:
        return await services.entitlements.check_quota(user_id)
    except SignalRelayError as exc:
        raise http_error(exc)
