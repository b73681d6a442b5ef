from dataclasses import dataclass
from typing import Optional

from .config import Settings
from .core.repositories.account_repository import AccountRepository
from .core.repositories.execution_repository import ExecutionRepository
from .core.repositories.signal_repository import SignalRepository
from .core.repositories.snapshot_repository import SnapshotRepository
from .core.repositories.subscription_repository import SubscriptionRepository
from .core.services.entitlement_service import EntitlementService
from .core.usecases.acknowledge_execution_use_case import AcknowledgeExecutionUseCase
from .core.usecases.expire_signals_use_case import ExpireSignalsUseCase
from .core.usecases.get_performance_use_case import GetPerformanceUseCase
from .core.usecases.get_signal_history_use_case import GetSignalHistoryUseCase
from .core.usecases.get_signal_statistics_use_case import GetSignalStatisticsUseCase
from .core.usecases.ingest_signal_use_case import IngestSignalUseCase
from .core.usecases.mark_disconnected_accounts_use_case import MarkDisconnectedAccountsUseCase
from .core.usecases.poll_pending_signals_use_case import PollPendingSignalsUseCase
from .core.usecases.update_heartbeat_use_case import UpdateHeartbeatUseCase
from .core.utils import Clock


@dataclass
class SignalServices:
    """
    Use cases wired against one set of repositories. Lives on app.state.services.
    """
    entitlements: EntitlementService
    ingest: IngestSignalUseCase
    poll: PollPendingSignalsUseCase
    acknowledge: AcknowledgeExecutionUseCase
    expire: ExpireSignalsUseCase
    heartbeat: UpdateHeartbeatUseCase
    disconnect: MarkDisconnectedAccountsUseCase
    history: GetSignalHistoryUseCase
    statistics: GetSignalStatisticsUseCase
    performance: GetPerformanceUseCase


def build_services(
    settings: Settings,
    signal_repo: SignalRepository,
    execution_repo: ExecutionRepository,
    account_repo: AccountRepository,
    subscription_repo: SubscriptionRepository,
    snapshot_repo: SnapshotRepository,
    clock: Optional[Clock] = None,
) -> SignalServices:
    entitlements = EntitlementService(subscription_repo, execution_repo, clock=clock)
    return SignalServices(
        entitlements=entitlements,
        ingest=IngestSignalUseCase(
            signal_repo=signal_repo,
            execution_repo=execution_repo,
            account_repo=account_repo,
            subscription_repo=subscription_repo,
            ttl_sec=settings.SIGNAL_TTL_SEC,
            strict_fanout=settings.FANOUT_STRICT,
            clock=clock,
        ),
        poll=PollPendingSignalsUseCase(
            entitlement_service=entitlements,
            account_repo=account_repo,
            execution_repo=execution_repo,
            batch_limit=settings.POLL_BATCH_LIMIT,
            clock=clock,
        ),
        acknowledge=AcknowledgeExecutionUseCase(execution_repo, clock=clock),
        expire=ExpireSignalsUseCase(signal_repo, execution_repo, clock=clock),
        heartbeat=UpdateHeartbeatUseCase(
            account_repo,
            snapshot_repo,
            capture_snapshots=settings.CAPTURE_BALANCE_SNAPSHOTS,
            clock=clock,
        ),
        disconnect=MarkDisconnectedAccountsUseCase(
            account_repo,
            stale_after_sec=settings.HEARTBEAT_STALE_SEC,
            clock=clock,
        ),
        history=GetSignalHistoryUseCase(execution_repo),
        statistics=GetSignalStatisticsUseCase(execution_repo, clock=clock),
        performance=GetPerformanceUseCase(account_repo, snapshot_repo, clock=clock),
    )
