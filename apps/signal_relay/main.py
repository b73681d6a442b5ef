import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .adapters.entry.http.admin_router import router as admin_router
from .adapters.entry.http.signal_router import router as signal_router
from .config import get_settings
from .workers.maintenance_supervisor import MaintenanceSupervisor


def _setup_logging():
    """
    Configure basic logging from LOG_LEVEL.
    """
    logging.basicConfig(
        level=get_settings().LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


supervisor = MaintenanceSupervisor()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context for startup/shutdown lifecycle.
    """
    _setup_logging()
    logging.getLogger(__name__).info("Starting signal-relay (lifespan startup)...")
    await supervisor.start()

    app.state.db = supervisor.db
    app.state.services = supervisor.services

    try:
        yield
    finally:
        logging.getLogger(__name__).info("Shutting down signal-relay (lifespan shutdown)...")
        await supervisor.stop()


app = FastAPI(title="signal-relay", version="0.1.0", lifespan=lifespan)
app.include_router(signal_router)
app.include_router(admin_router)


@app.get("/healthz")
async def healthz():
    """
    Liveness probe endpoint.
    """
    return {"status": "ok"}
