from datetime import timedelta

import pytest

from apps.signal_relay.exceptions import PersistenceError
from tests.helpers import T0, TIERS


def _received(store, user_id, when, n=1):
    for i in range(n):
        eid = f"{user_id}-{when.isoformat()}-{i}"
        store.executions.docs[eid] = {
            "_id": eid,
            "signal_id": f"sig-{eid}",
            "user_id": user_id,
            "mt5_account_id": "acc",
            "status": "PENDING",
            "received_at": when,
        }


@pytest.mark.asyncio
async def test_unlimited_tier_is_always_allowed(store, services):
    store.add_user("u1", tier="premium")
    _received(store, "u1", T0, n=500)

    quota = await services.entitlements.check_quota("u1")

    assert (quota.allowed, quota.remaining, quota.limit) == (True, -1, -1)


@pytest.mark.asyncio
@pytest.mark.parametrize("consumed,remaining,allowed", [(0, 5, True), (3, 2, True), (5, 0, False), (9, 0, False)])
async def test_limited_tier_counts_todays_executions(store, services, consumed, remaining, allowed):
    store.add_user("u1", tier="free")
    _received(store, "u1", T0 - timedelta(hours=1), n=consumed)

    quota = await services.entitlements.check_quota("u1")

    assert quota.limit == 5
    assert quota.remaining == remaining
    assert quota.allowed is allowed


@pytest.mark.asyncio
async def test_executions_from_previous_days_do_not_count(store, services):
    store.add_user("u1", tier="free")
    _received(store, "u1", T0 - timedelta(hours=13), n=5)  # yesterday 23:00 UTC
    _received(store, "u1", T0.replace(hour=0, minute=0), n=1)  # midnight counts

    quota = await services.entitlements.check_quota("u1")

    assert quota.remaining == 4
    assert quota.allowed is True


@pytest.mark.asyncio
async def test_no_subscription_means_no_quota(store, services):
    store.add_user("u1", tier=None)

    quota = await services.entitlements.check_quota("u1")

    assert (quota.allowed, quota.remaining, quota.limit) == (False, 0, 0)


@pytest.mark.asyncio
async def test_inactive_subscription_means_no_quota(store, services):
    store.add_user("u1", tier="basic", sub_status="CANCELED")

    quota = await services.entitlements.check_quota("u1")

    assert quota.allowed is False
    assert await services.entitlements.get_entitlement("u1") is None


@pytest.mark.asyncio
async def test_entitlement_exposes_delay_and_receiver_cap(store, services):
    store.add_user("u1", tier="basic")

    ent = await services.entitlements.get_entitlement("u1")

    assert ent.limit == 50
    assert ent.delay_seconds == 30
    assert ent.max_receiver_accounts == 2


@pytest.mark.asyncio
async def test_tier_with_null_fields_grants_nothing(store, services):
    store.add_user("u1", tier="free")
    store.subscriptions.tiers["tier_free"] = {
        **TIERS["free"], "max_signals_per_day": None, "signal_delay": None, "max_slave_accounts": None
    }

    ent = await services.entitlements.get_entitlement("u1")
    quota = await services.entitlements.check_quota("u1")

    assert (ent.limit, ent.delay_seconds, ent.max_receiver_accounts) == (0, 0, 0)
    assert (quota.allowed, quota.remaining, quota.limit) == (False, 0, 0)


@pytest.mark.asyncio
async def test_unavailable_store_is_a_persistence_error(store, services):
    store.add_user("u1", tier="free")

    store.subscriptions.fail_reads = True
    with pytest.raises(PersistenceError) as err:
        await services.entitlements.check_quota("u1")
    assert err.value.operation == "tier lookup"

    store.subscriptions.fail_reads = False
    store.executions.fail_reads = True
    with pytest.raises(PersistenceError) as err:
        await services.entitlements.check_quota("u1")
    assert err.value.operation == "daily usage count"
