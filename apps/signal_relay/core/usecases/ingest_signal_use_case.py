import logging
import math
from datetime import datetime, timedelta
from typing import List, Optional

from ..domain.entities.signal_entity import ExecutionEntity, IncomingSignal, SignalEntity
from ..domain.enums.signal_enums import AccountType, OPEN_SIGNAL_STATUSES, SignalAction, SignalStatus, TradeType
from ..repositories.account_repository import AccountRepository
from ..repositories.execution_repository import ExecutionRepository
from ..repositories.signal_repository import SignalRepository
from ..repositories.subscription_repository import SubscriptionRepository
from ..utils import Clock, new_id, utc_now
from ...exceptions import NotFoundError, PersistenceError, SignalValidationError, store_errors


class IngestSignalUseCase:
    """
    Accepts a trade action from a provider and fans it out to every eligible receiver.

    Rules:
      - The provider must own a MASTER account matching the payload's account id.
      - The signal is stored PENDING with expires_at = now + ttl.
      - One PENDING execution per SLAVE account of every other user with an
        ACTIVE subscription and ACTIVE status. Duplicate pairs are skipped.
      - Fan-out is best-effort: a failure is logged and the signal stays
        visible, unless `strict_fanout` is set, in which case the signal is
        CANCELED and the ingest fails.
    """

    def __init__(
        self,
        signal_repo: SignalRepository,
        execution_repo: ExecutionRepository,
        account_repo: AccountRepository,
        subscription_repo: SubscriptionRepository,
        ttl_sec: int = 120,
        strict_fanout: bool = False,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._signals = signal_repo
        self._executions = execution_repo
        self._accounts = account_repo
        self._subscriptions = subscription_repo
        self._ttl = timedelta(seconds=ttl_sec)
        self._strict = strict_fanout
        self._clock = clock or utc_now
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    @staticmethod
    def _validate(incoming: IncomingSignal) -> None:
        actions = {a.value for a in SignalAction}
        types = {t.value for t in TradeType}
        if (incoming.action or "").upper() not in actions:
            raise SignalValidationError("action", f"action must be one of {sorted(actions)}")
        if (incoming.type or "").upper() not in types:
            raise SignalValidationError("type", f"type must be one of {sorted(types)}")
        if not (incoming.symbol or "").strip():
            raise SignalValidationError("symbol", "symbol is required")
        for name in ("volume", "price", "sl", "tp"):
            value = getattr(incoming, name)
            if value is not None and not math.isfinite(value):
                raise SignalValidationError(name, f"{name} must be a finite number")
        if incoming.volume <= 0:
            raise SignalValidationError("volume", "volume must be positive")
        if incoming.price < 0:
            raise SignalValidationError("price", "price must not be negative")
        if not (incoming.account_id or "").strip():
            raise SignalValidationError("account_id", "account_id is required")

    async def execute(self, provider_id: str, incoming: IncomingSignal) -> str:
        """
        Store the signal and fan it out. Returns the new signal id.
        """
        self._validate(incoming)

        with store_errors("master account lookup", self._logger):
            master = await self._accounts.find_linked_account(
                provider_id, incoming.account_id, AccountType.MASTER.value
            )
        if not master:
            raise NotFoundError("Master account", incoming.account_id, "Master account not found")

        now = self._clock()
        signal = SignalEntity(
            _id=new_id(),
            provider_id=provider_id,
            mt5_account_id=master["_id"],
            action=incoming.action.upper(),
            symbol=incoming.symbol.strip(),
            type=incoming.type.upper(),
            volume=incoming.volume,
            price=incoming.price,
            sl=incoming.sl or None,
            tp=incoming.tp or None,
            master_ticket=incoming.ticket or None,
            magic=incoming.magic or None,
            comment=incoming.comment or None,
            status=SignalStatus.PENDING,
            created_at=now,
            expires_at=now + self._ttl,
        )

        try:
            await self._signals.insert_signal(signal.to_doc())
        except Exception as exc:
            self._logger.exception("signal insert failed for provider %s: %s", provider_id, exc)
            raise PersistenceError("signal insert", exc) from exc

        try:
            created = await self.fan_out(signal.id, provider_id, now)
            self._logger.info(
                "signal %s %s %s %s fanned out to %d receivers",
                signal.id, signal.action, signal.symbol, signal.type, created,
            )
        except Exception as exc:
            self._logger.exception("fan-out failed for signal %s: %s", signal.id, exc)
            if self._strict:
                await self._cancel(signal.id)
                raise PersistenceError("execution fan-out", exc) from exc

        return signal.id

    async def fan_out(self, signal_id: str, provider_id: str, received_at: Optional[datetime] = None) -> int:
        """
        Create one PENDING execution per eligible receiver account.
        Safe to re-run for the same signal: existing pairs are skipped.
        """
        received_at = received_at or self._clock()
        user_ids = await self._subscriptions.list_eligible_user_ids(provider_id)
        if not user_ids:
            return 0

        accounts = await self._accounts.list_by_users(user_ids, AccountType.SLAVE.value)
        docs: List[dict] = [
            ExecutionEntity(
                _id=new_id(),
                signal_id=signal_id,
                user_id=acc["user_id"],
                mt5_account_id=acc["_id"],
                received_at=received_at,
            ).to_doc()
            for acc in accounts
        ]
        return await self._executions.insert_many_skip_duplicates(docs)

    async def _cancel(self, signal_id: str) -> None:
        try:
            await self._signals.transition_status(
                signal_id, OPEN_SIGNAL_STATUSES, SignalStatus.CANCELED.value
            )
        except Exception as exc:
            self._logger.exception("could not cancel signal %s after fan-out failure: %s", signal_id, exc)
