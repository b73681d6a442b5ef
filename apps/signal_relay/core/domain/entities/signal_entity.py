# apps/signal_relay/core/domain/entities/signal_entity.py

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..enums.signal_enums import ExecutionStatus, SignalAction, SignalStatus, TradeType


class SignalEntity(BaseModel):
    """
    Canonical in-memory representation of a document in the 'signals' collection.

    Written once by IngestSignalUseCase; afterwards only `status` moves
    (to EXPIRED by the sweeper, or CANCELED).
    """

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True)

    id: str = Field(..., alias="_id")
    provider_id: str
    mt5_account_id: str  # provider's MASTER linked account

    action: SignalAction
    symbol: str
    type: TradeType
    volume: float
    price: float
    sl: Optional[float] = None
    tp: Optional[float] = None
    master_ticket: Optional[int] = None
    magic: Optional[int] = None
    comment: Optional[str] = None

    status: SignalStatus = SignalStatus.PENDING
    created_at: datetime
    expires_at: datetime

    @model_validator(mode="after")
    def _expiry_after_creation(self) -> "SignalEntity":
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be later than created_at")
        return self

    def to_doc(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ExecutionEntity(BaseModel):
    """
    One receiver account's copy of a signal ('signal_executions' collection).

    Result fields stay empty until the single winning acknowledgment.
    """

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True)

    id: str = Field(..., alias="_id")
    signal_id: str
    user_id: str
    mt5_account_id: str  # receiver's SLAVE linked account

    status: ExecutionStatus = ExecutionStatus.PENDING
    received_at: datetime
    acknowledged_at: Optional[datetime] = None
    executed_at: Optional[datetime] = None

    executed_volume: Optional[float] = None
    executed_price: Optional[float] = None
    slippage: Optional[float] = None
    slave_ticket: Optional[int] = None
    error_code: Optional[int] = None
    error_message: Optional[str] = None

    def to_doc(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class IncomingSignal(BaseModel):
    """
    Trade action as reported by the provider's sender EA, before validation.
    """

    action: str
    symbol: str
    type: str
    volume: float = Field(..., allow_inf_nan=False)
    price: float = Field(..., allow_inf_nan=False)
    sl: Optional[float] = Field(None, allow_inf_nan=False)
    tp: Optional[float] = Field(None, allow_inf_nan=False)
    ticket: Optional[int] = None
    magic: Optional[int] = None
    comment: Optional[str] = None
    account_id: str  # external id of the provider's MASTER account


class PendingSignal(BaseModel):
    """
    Projection handed to a polling receiver EA. `signal_id` is the execution id,
    which the EA echoes back on acknowledgment.
    """

    signal_id: str
    action: str
    symbol: str
    type: str
    volume: float
    price: float
    sl: float = 0
    tp: float = 0
    ticket: int = 0
    magic: int = 0
    timestamp_utc: str
