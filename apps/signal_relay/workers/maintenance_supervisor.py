import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient

from ..adapters.external.database.account_repository_mongodb import AccountRepositoryMongoDB
from ..adapters.external.database.execution_repository_mongodb import ExecutionRepositoryMongoDB
from ..adapters.external.database.signal_repository_mongodb import SignalRepositoryMongoDB
from ..adapters.external.database.snapshot_repository_mongodb import SnapshotRepositoryMongoDB
from ..adapters.external.database.subscription_repository_mongodb import SubscriptionRepositoryMongoDB
from ..config import Settings, get_settings
from ..wiring import SignalServices, build_services


class MaintenanceSupervisor:
    """
    High-level supervisor for the signal-relay process.

    Responsibilities:
    - Connect to Mongo, ensure indexes.
    - Wire repositories and use cases (exposed as `services`).
    - Run the periodic jobs: expiry sweep (every SWEEP_INTERVAL_SEC) and
      the disconnected-accounts check (every DISCONNECT_CHECK_INTERVAL_SEC).
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()
        self._logger = logging.getLogger(self.__class__.__name__)
        self._mongo_client: AsyncIOMotorClient | None = None
        self._db = None
        self._services: SignalServices | None = None
        self._tasks: List[asyncio.Task] = []

    @property
    def db(self):
        """Expose the AsyncIOMotorDatabase instance after start()."""
        return self._db

    @property
    def services(self) -> SignalServices | None:
        return self._services

    async def start(self):
        """
        Create connections, ensure indexes, wire use cases and spawn the periodic jobs.
        """
        s = self._settings

        # Mongo (tz_aware so stored datetimes come back as UTC-aware)
        self._mongo_client = AsyncIOMotorClient(s.MONGODB_URI, tz_aware=True)
        self._db = self._mongo_client[s.MONGODB_DB_NAME]

        signal_repo = SignalRepositoryMongoDB(self._db)
        execution_repo = ExecutionRepositoryMongoDB(self._db)
        account_repo = AccountRepositoryMongoDB(self._db)
        snapshot_repo = SnapshotRepositoryMongoDB(self._db)
        subscription_repo = SubscriptionRepositoryMongoDB(self._db)

        await signal_repo.ensure_indexes()
        await execution_repo.ensure_indexes()
        await account_repo.ensure_indexes()
        await snapshot_repo.ensure_indexes()

        self._services = build_services(
            settings=s,
            signal_repo=signal_repo,
            execution_repo=execution_repo,
            account_repo=account_repo,
            subscription_repo=subscription_repo,
            snapshot_repo=snapshot_repo,
        )

        if s.ENABLE_BACKGROUND_JOBS:
            self._spawn("expiry-sweep", self._services.expire.execute, s.SWEEP_INTERVAL_SEC)
            self._spawn("disconnect-check", self._services.disconnect.execute, s.DISCONNECT_CHECK_INTERVAL_SEC)
        self._logger.info("signal-relay started (db=%s, jobs=%s)", s.MONGODB_DB_NAME, s.ENABLE_BACKGROUND_JOBS)

    def _spawn(self, name: str, job: Callable[[], Awaitable[int]], interval_sec: int) -> None:
        async def _loop():
            """
            Forever-loop for one periodic job. A failed tick is logged and retried on the next one.
            """
            while True:
                try:
                    await job()
                except Exception as exc:
                    self._logger.exception("%s loop error: %s", name, exc)
                await asyncio.sleep(interval_sec)

        self._tasks.append(asyncio.create_task(_loop(), name=name))

    async def stop(self):
        """
        Gracefully stop resources.
        """
        for task in self._tasks:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await task
        self._tasks.clear()

        if self._mongo_client:
            self._mongo_client.close()
