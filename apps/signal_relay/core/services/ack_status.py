from typing import Optional

from ..domain.enums.signal_enums import ExecutionStatus

# Returned for status strings that request no transition at all.
NO_TRANSITION = None


def classify_ack_status(status: str) -> Optional[ExecutionStatus]:
    """
    Map the status string reported by a receiver EA onto a terminal execution status.

      EXECUTED*             -> EXECUTED
      FAILED*               -> FAILED
      EXPIRED (exact)       -> EXPIRED
      REJECTED* / SKIPPED*  -> SKIPPED
      anything else         -> NO_TRANSITION
    """
    if status.startswith("EXECUTED"):
        return ExecutionStatus.EXECUTED
    if status.startswith("FAILED"):
        return ExecutionStatus.FAILED
    if status == "EXPIRED":
        return ExecutionStatus.EXPIRED
    if status.startswith("REJECTED") or status.startswith("SKIPPED"):
        return ExecutionStatus.SKIPPED
    return NO_TRANSITION


def error_from_status(status: str) -> Optional[str]:
    """'FAILED:no money' -> 'no money'."""
    if ":" not in status:
        return None
    detail = status.split(":")[1].strip()
    return detail or None
