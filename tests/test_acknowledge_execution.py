import asyncio

import pytest
import pytest_asyncio

from apps.signal_relay.core.domain.entities.signal_entity import IncomingSignal
from apps.signal_relay.core.usecases.acknowledge_execution_use_case import ACK_FAILED_MESSAGE, AckDetails
from apps.signal_relay.exceptions import NotFoundError, PersistenceError
from tests.helpers import T0, trade_payload


@pytest_asyncio.fixture
async def execution_id(store, services):
    store.add_user("P", tier="premium", masters=["MASTER-1"])
    store.add_user("R1", tier="premium", slaves=["R1-A"])
    store.add_user("R2", tier="premium", slaves=["R2-A"])
    await services.ingest.execute("P", IncomingSignal(**trade_payload()))
    [item] = (await services.poll.execute("R1", "R1-A")).signals
    return item.signal_id


@pytest.mark.asyncio
async def test_executed_ack_records_the_fill(store, services, clock, execution_id):
    clock.advance(3)

    result = await services.acknowledge.execute(
        execution_id, "R1", "EXECUTED",
        AckDetails(executed_volume=0.1, executed_price=1.10505, slippage=0.5, slave_ticket=998877),
    )

    assert result.success is True
    assert result.message == "Execution acknowledged"
    doc = store.executions.docs[execution_id]
    assert doc["status"] == "EXECUTED"
    assert doc["acknowledged_at"] == doc["executed_at"] == clock.now
    assert doc["executed_price"] == 1.10505
    assert doc["slave_ticket"] == 998877


@pytest.mark.asyncio
async def test_failed_ack_keeps_error_text_from_status(store, services, execution_id):
    await services.acknowledge.execute(execution_id, "R1", "FAILED:not enough money", AckDetails(error_code=10019))

    doc = store.executions.docs[execution_id]
    assert doc["status"] == "FAILED"
    assert doc["executed_at"] is None
    assert doc["error_code"] == 10019
    assert doc["error_message"] == "not enough money"


@pytest.mark.asyncio
async def test_explicit_error_message_wins_over_status_suffix(store, services, execution_id):
    await services.acknowledge.execute(
        execution_id, "R1", "FAILED:x", AckDetails(error_message="market closed")
    )

    assert store.executions.docs[execution_id]["error_message"] == "market closed"


@pytest.mark.asyncio
async def test_rejected_is_stored_as_skipped(store, services, execution_id):
    await services.acknowledge.execute(execution_id, "R1", "REJECTED:symbol disabled")

    assert store.executions.docs[execution_id]["status"] == "SKIPPED"


@pytest.mark.asyncio
async def test_repeat_ack_is_idempotent_and_first_result_sticks(store, services, execution_id):
    await services.acknowledge.execute(execution_id, "R1", "EXECUTED", AckDetails(executed_price=1.10505))

    again = await services.acknowledge.execute(execution_id, "R1", "FAILED:retry", AckDetails(executed_price=9.9))

    assert again.success is True
    assert again.message == "Already acknowledged as EXECUTED"
    doc = store.executions.docs[execution_id]
    assert doc["status"] == "EXECUTED"
    assert doc["executed_price"] == 1.10505
    assert doc["error_message"] is None


@pytest.mark.asyncio
async def test_concurrent_acks_have_exactly_one_winner(store, services, execution_id):
    statuses = ["EXECUTED", "FAILED:a", "SKIPPED", "REJECTED", "FAILED:b", "EXECUTED"] * 2

    results = await asyncio.gather(
        *(services.acknowledge.execute(execution_id, "R1", s) for s in statuses)
    )

    assert all(r.success for r in results)
    winners = [r for r in results if r.message == "Execution acknowledged"]
    assert len(winners) == 1
    stored = store.executions.docs[execution_id]["status"]
    assert stored in {"EXECUTED", "FAILED", "SKIPPED"}
    losers = [r for r in results if r is not winners[0]]
    assert {r.message for r in losers} == {f"Already acknowledged as {stored}"}


@pytest.mark.asyncio
async def test_unrecognised_status_leaves_execution_pending(store, services, execution_id):
    result = await services.acknowledge.execute(execution_id, "R1", "PARTIAL")

    assert result.success is False
    assert result.message == ACK_FAILED_MESSAGE
    assert store.executions.docs[execution_id]["status"] == "PENDING"

    follow_up = await services.acknowledge.execute(execution_id, "R1", "EXECUTED")
    assert follow_up.message == "Execution acknowledged"


@pytest.mark.asyncio
async def test_unrecognised_status_after_terminal_reports_stored_status(store, services, execution_id):
    await services.acknowledge.execute(execution_id, "R1", "SKIPPED")

    result = await services.acknowledge.execute(execution_id, "R1", "PARTIAL")

    assert result.success is True
    assert result.message == "Already acknowledged as SKIPPED"


@pytest.mark.asyncio
async def test_sweeper_beats_late_ack(store, services, clock, execution_id):
    clock.advance(121)
    await services.expire.execute()

    result = await services.acknowledge.execute(execution_id, "R1", "EXECUTED")

    assert result.success is True
    assert result.message == "Already acknowledged as EXPIRED"
    assert store.executions.docs[execution_id]["executed_at"] is None


@pytest.mark.asyncio
async def test_other_users_execution_is_not_found(store, services, execution_id):
    with pytest.raises(NotFoundError) as err:
        await services.acknowledge.execute(execution_id, "R2", "EXECUTED")

    assert err.value.msg == "Execution not found"
    assert store.executions.docs[execution_id]["status"] == "PENDING"


@pytest.mark.asyncio
async def test_unknown_execution_is_not_found(services, execution_id):
    with pytest.raises(NotFoundError):
        await services.acknowledge.execute("does-not-exist", "R1", "EXECUTED")


@pytest.mark.asyncio
async def test_store_failure_surfaces_as_persistence_error(store, services, execution_id):
    store.executions.fail_writes = True

    with pytest.raises(PersistenceError):
        await services.acknowledge.execute(execution_id, "R1", "EXECUTED")

    assert store.executions.docs[execution_id]["status"] == "PENDING"
    assert store.executions.docs[execution_id]["received_at"] == T0
