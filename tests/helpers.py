from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List

from tests.fakes import (
    InMemoryAccountRepository,
    InMemoryExecutionRepository,
    InMemorySignalRepository,
    InMemorySnapshotRepository,
    InMemorySubscriptionRepository,
)

T0 = datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)

# same numbers the billing service seeds
TIERS = {
    "free": {"_id": "tier_free", "name": "free", "max_signals_per_day": 5, "signal_delay": 60, "max_slave_accounts": 1},
    "basic": {"_id": "tier_basic", "name": "basic", "max_signals_per_day": 50, "signal_delay": 30, "max_slave_accounts": 2},
    "pro": {"_id": "tier_pro", "name": "pro", "max_signals_per_day": -1, "signal_delay": 5, "max_slave_accounts": 5},
    "premium": {"_id": "tier_premium", "name": "premium", "max_signals_per_day": -1, "signal_delay": 0, "max_slave_accounts": 20},
}


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@dataclass
class Store:
    signals: InMemorySignalRepository
    executions: InMemoryExecutionRepository
    accounts: InMemoryAccountRepository
    subscriptions: InMemorySubscriptionRepository
    snapshots: InMemorySnapshotRepository
    _seq: List[int] = field(default_factory=lambda: [0])

    def add_user(
        self,
        user_id: str,
        tier: str = "premium",
        masters: List[str] = (),
        slaves: List[str] = (),
        user_status: str = "ACTIVE",
        sub_status: str = "ACTIVE",
    ) -> Dict[str, str]:
        """
        Registers a user with a subscription and linked accounts.
        Returns {external account id: account _id}.
        """
        self.subscriptions.users[user_id] = user_status
        if tier:
            t = TIERS[tier]
            self.subscriptions.tiers[t["_id"]] = t
            self.subscriptions.subscriptions[user_id] = {"tier_id": t["_id"], "status": sub_status}
        pks = {}
        for account_type, ids in (("MASTER", masters), ("SLAVE", slaves)):
            for account_id in ids:
                self._seq[0] += 1
                pk = f"acc{self._seq[0]}"
                self.accounts.docs[pk] = {
                    "_id": pk,
                    "user_id": user_id,
                    "account_id": account_id,
                    "account_type": account_type,
                    "is_connected": False,
                    "last_heartbeat": None,
                }
                pks[account_id] = pk
        return pks


def new_store() -> Store:
    signals = InMemorySignalRepository()
    return Store(
        signals=signals,
        executions=InMemoryExecutionRepository(signals),
        accounts=InMemoryAccountRepository(),
        subscriptions=InMemorySubscriptionRepository(),
        snapshots=InMemorySnapshotRepository(),
    )


def trade_payload(**overrides) -> Dict:
    data = {
        "action": "OPEN",
        "symbol": "EURUSD",
        "type": "BUY",
        "volume": 0.10,
        "price": 1.10500,
        "sl": 1.10000,
        "tp": 1.11000,
        "ticket": 123456,
        "magic": 777,
        "account_id": "MASTER-1",
    }
    data.update(overrides)
    return data
