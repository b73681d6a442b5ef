from datetime import datetime, timezone

import pytest

from apps.signal_relay.core.usecases.update_heartbeat_use_case import UpdateHeartbeatUseCase
from apps.signal_relay.exceptions import NotFoundError
from tests.helpers import T0

TODAY = datetime(2026, 3, 2, tzinfo=timezone.utc)


@pytest.fixture
def account_pk(store):
    return store.add_user("R1", tier="premium", slaves=["R1-A"])["R1-A"]


@pytest.mark.asyncio
async def test_heartbeat_marks_account_connected(store, services, account_pk):
    msg = await services.heartbeat.execute("R1", "R1-A", balance=1000.0, equity=990.0, profit=-10.0)

    assert msg == "Heartbeat updated"
    doc = store.accounts.docs[account_pk]
    assert doc["is_connected"] is True
    assert doc["last_heartbeat"] == T0
    assert (doc["balance"], doc["equity"], doc["profit"]) == (1000.0, 990.0, -10.0)


@pytest.mark.asyncio
async def test_heartbeat_writes_one_snapshot_per_day(store, services, clock, account_pk):
    await services.heartbeat.execute("R1", "R1-A", balance=1000.0, equity=1000.0)
    clock.advance(3600)
    await services.heartbeat.execute("R1", "R1-A", balance=1010.0, equity=1020.0)

    assert list(store.snapshots.docs) == [(account_pk, TODAY)]
    snap = store.snapshots.docs[(account_pk, TODAY)]
    assert snap["balance"] == 1010.0
    assert snap["peak_equity"] == 1020.0


@pytest.mark.asyncio
async def test_peak_equity_never_drops(store, services, clock, account_pk):
    await services.heartbeat.execute("R1", "R1-A", balance=1000.0, equity=1200.0)
    clock.advance(86400)
    await services.heartbeat.execute("R1", "R1-A", balance=1000.0, equity=900.0)

    latest = await store.snapshots.latest_for_account(account_pk)
    assert latest["equity"] == 900.0
    assert latest["peak_equity"] == 1200.0


@pytest.mark.asyncio
async def test_heartbeat_without_figures_skips_snapshot(store, services, account_pk):
    await services.heartbeat.execute("R1", "R1-A")
    await services.heartbeat.execute("R1", "R1-A", balance=1000.0)

    assert store.snapshots.docs == {}
    assert store.accounts.docs[account_pk]["is_connected"] is True


@pytest.mark.asyncio
async def test_snapshot_capture_can_be_switched_off(store, clock, account_pk):
    heartbeat = UpdateHeartbeatUseCase(store.accounts, store.snapshots, capture_snapshots=False, clock=clock)

    await heartbeat.execute("R1", "R1-A", balance=1000.0, equity=1000.0)

    assert store.snapshots.docs == {}


@pytest.mark.asyncio
async def test_snapshot_failure_does_not_fail_heartbeat(store, services, account_pk):
    store.snapshots.fail_writes = True

    msg = await services.heartbeat.execute("R1", "R1-A", balance=1000.0, equity=1000.0)

    assert msg == "Heartbeat updated"
    assert store.accounts.docs[account_pk]["last_heartbeat"] == T0


@pytest.mark.asyncio
async def test_heartbeat_for_unknown_account_is_not_found(store, services, account_pk):
    with pytest.raises(NotFoundError):
        await services.heartbeat.execute("R1", "OTHER")
    with pytest.raises(NotFoundError):
        await services.heartbeat.execute("R2", "R1-A")


@pytest.mark.asyncio
async def test_silent_accounts_are_marked_disconnected(store, services, clock, account_pk):
    other_pk = store.add_user("R2", tier="basic", slaves=["R2-A"])["R2-A"]
    await services.heartbeat.execute("R1", "R1-A")
    clock.advance(600)
    await services.heartbeat.execute("R2", "R2-A")

    clock.advance(301)  # R1 silent for 901s, R2 for 301s
    assert await services.disconnect.execute() == 1

    assert store.accounts.docs[account_pk]["is_connected"] is False
    assert store.accounts.docs[other_pk]["is_connected"] is True
    assert await services.disconnect.execute() == 0


@pytest.mark.asyncio
async def test_never_seen_accounts_are_ignored_by_monitor(store, services, clock, account_pk):
    clock.advance(10_000)

    assert await services.disconnect.execute() == 0
