import asyncio

import pytest

from apps.signal_relay.config import Settings
from apps.signal_relay.workers.maintenance_supervisor import MaintenanceSupervisor


@pytest.mark.asyncio
async def test_periodic_job_keeps_running_after_a_failed_tick():
    supervisor = MaintenanceSupervisor(Settings())
    ticks = []

    async def job():
        ticks.append(len(ticks))
        if len(ticks) == 1:
            raise RuntimeError("mongo went away")
        return 0

    supervisor._spawn("test-job", job, 0)
    for _ in range(100):
        if len(ticks) >= 3:
            break
        await asyncio.sleep(0)

    await supervisor.stop()
    assert len(ticks) >= 3
