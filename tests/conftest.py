import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from apps.signal_relay.adapters.entry.http.admin_router import router as admin_router
from apps.signal_relay.adapters.entry.http.signal_router import router as signal_router
from apps.signal_relay.config import Settings
from apps.signal_relay.wiring import build_services
from tests.helpers import T0, FakeClock, Store, new_store


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture
def settings() -> Settings:
    return Settings(ENABLE_BACKGROUND_JOBS=False)


@pytest.fixture
def store() -> Store:
    return new_store()


@pytest.fixture
def services(settings, store, clock):
    return build_services(
        settings=settings,
        signal_repo=store.signals,
        execution_repo=store.executions,
        account_repo=store.accounts,
        subscription_repo=store.subscriptions,
        snapshot_repo=store.snapshots,
        clock=clock,
    )


@pytest.fixture
def client(services) -> TestClient:
    app = FastAPI()
    app.include_router(signal_router)
    app.include_router(admin_router)
    app.state.services = services
    return TestClient(app)
