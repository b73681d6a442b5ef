from fastapi import APIRouter, Depends

from .deps import get_services, http_error
from ....exceptions import SignalRelayError
from ....wiring import SignalServices

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/signals/sweep")
async def trigger_sweep(services: SignalServices = Depends(get_services)):
    """
    Run the expiry sweep now instead of waiting for the next tick.
    """
    try:
        expired = await services.expire.execute()
    except SignalRelayError as exc:
        raise http_error(exc)
    return {"expired": expired}


@router.post("/accounts/disconnect-check")
async def trigger_disconnect_check(services: SignalServices = Depends(get_services)):
    try:
        disconnected = await services.disconnect.execute()
    except SignalRelayError as exc:
        raise http_error(exc)
    return {"disconnected": disconnected}
