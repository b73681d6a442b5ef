import os
from dotenv import load_dotenv
from dataclasses import dataclass
from functools import lru_cache

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    # mongo
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "signal_relay"

    # signal lifecycle
    SIGNAL_TTL_SEC: int = 120
    POLL_BATCH_LIMIT: int = 10

    # background jobs
    ENABLE_BACKGROUND_JOBS: bool = True
    SWEEP_INTERVAL_SEC: int = 60
    DISCONNECT_CHECK_INTERVAL_SEC: int = 3600
    HEARTBEAT_STALE_SEC: int = 900

    # behaviour flags
    CAPTURE_BALANCE_SNAPSHOTS: bool = True
    FANOUT_STRICT: bool = False  # cancel the signal when fan-out fails

    # generic
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    return Settings(
        MONGODB_URI=os.getenv("MONGODB_URI", "mongodb://localhost:27017"),
        MONGODB_DB_NAME=os.getenv("MONGODB_DB_NAME", "signal_relay"),
        SIGNAL_TTL_SEC=int(os.getenv("SIGNAL_TTL_SEC", 120)),
        POLL_BATCH_LIMIT=int(os.getenv("POLL_BATCH_LIMIT", 10)),
        ENABLE_BACKGROUND_JOBS=_env_bool("ENABLE_BACKGROUND_JOBS", True),
        SWEEP_INTERVAL_SEC=int(os.getenv("SWEEP_INTERVAL_SEC", 60)),
        DISCONNECT_CHECK_INTERVAL_SEC=int(os.getenv("DISCONNECT_CHECK_INTERVAL_SEC", 3600)),
        HEARTBEAT_STALE_SEC=int(os.getenv("HEARTBEAT_STALE_SEC", 900)),
        CAPTURE_BALANCE_SNAPSHOTS=_env_bool("CAPTURE_BALANCE_SNAPSHOTS", True),
        FANOUT_STRICT=_env_bool("FANOUT_STRICT", False),
        ENV=os.getenv("ENV", "dev"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
