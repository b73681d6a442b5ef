import logging
from contextlib import contextmanager
from typing import Optional


class SignalRelayError(Exception):
    """
    Base class for errors raised by the signal relay use cases.
    """


class NotFoundError(SignalRelayError):
    """
    Raised when an account, execution or signal reference does not resolve
    for the calling user.
    """
    def __init__(self, entity: str, ref: str, msg: str = ""):
        super().__init__(msg or f"{entity} not found")
        self.entity = entity
        self.ref = ref
        self.msg = msg or f"{entity} not found"


class SignalValidationError(SignalRelayError):
    """
    Raised when an incoming payload is malformed (unknown action, bad volume, ...).
    Nothing was persisted.
    """
    def __init__(self, field: str, msg: str):
        super().__init__(msg)
        self.field = field
        self.msg = msg


class PersistenceError(SignalRelayError):
    """
    Raised when the store is unavailable or rejected a write we cannot
    treat as idempotent.
    """
    def __init__(self, operation: str, cause: Exception = None):
        super().__init__(f"Persistence failure during {operation}")
        self.operation = operation
        self.cause = cause


@contextmanager
def store_errors(operation: str, logger: Optional[logging.Logger] = None):
    """
    Translate a driver/store failure inside the block into PersistenceError.
    Domain errors raised inside the block pass through untouched.
    """
    try:
        yield
    except SignalRelayError:
        raise
    except Exception as exc:
        if logger is not None:
            logger.exception("%s failed: %s", operation, exc)
        raise PersistenceError(operation, exc) from exc
