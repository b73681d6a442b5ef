from typing import Optional

from fastapi import Header, HTTPException, Request

from ....exceptions import NotFoundError, SignalRelayError, SignalValidationError
from ....wiring import SignalServices


def get_services(request: Request) -> SignalServices:
    """
    Resolve the wired use cases from FastAPI app state.
    """
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Services are not initialized in app.state.services")
    return services


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """
    The gateway authenticates the caller and forwards the resolved user id.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing user identity")
    return x_user_id.strip()


def http_error(exc: SignalRelayError) -> HTTPException:
    """
    Map a domain error onto the HTTP status the EAs and dashboard expect.
    """
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=exc.msg)
    if isinstance(exc, SignalValidationError):
        return HTTPException(status_code=400, detail=exc.msg)
    return HTTPException(status_code=503, detail=str(exc))
