# apps/signal_relay/core/domain/enums/signal_enums.py

from enum import Enum


class SignalStatus(str, Enum):
    """
    Lifecycle of a broadcast signal. Transitions only move forward.
    """
    PENDING = "PENDING"     # created by IngestSignalUseCase
    ACTIVE = "ACTIVE"       # still deliverable
    EXPIRED = "EXPIRED"     # past expires_at, set by the sweeper
    CANCELED = "CANCELED"   # administrative cancel or strict fan-out failure


OPEN_SIGNAL_STATUSES = (SignalStatus.PENDING.value, SignalStatus.ACTIVE.value)


class ExecutionStatus(str, Enum):
    """
    One receiver's copy of a signal. PENDING has exactly one way out.
    """
    PENDING = "PENDING"
    EXECUTED = "EXECUTED"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"
    SKIPPED = "SKIPPED"


TERMINAL_EXECUTION_STATUSES = (
    ExecutionStatus.EXECUTED.value,
    ExecutionStatus.FAILED.value,
    ExecutionStatus.EXPIRED.value,
    ExecutionStatus.SKIPPED.value,
)


class SignalAction(str, Enum):
    OPEN = "OPEN"
    CLOSE = "CLOSE"
    MODIFY = "MODIFY"


class TradeType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class AccountType(str, Enum):
    """
    Role of a linked trading account.
    MASTER broadcasts (provider), SLAVE copies (receiver).
    """
    MASTER = "MASTER"
    SLAVE = "SLAVE"


class StatsPeriod(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    ALL = "all"


class StatsScope(str, Enum):
    RECEIVER = "receiver"
    PROVIDER = "provider"


class PerformancePeriod(str, Enum):
    D7 = "7D"
    D30 = "30D"
    D90 = "90D"
