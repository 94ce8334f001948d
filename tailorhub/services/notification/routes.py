"""HTTP surface for direct notifications and device token registration."""

from fastapi import APIRouter, Depends

from tailorhub.bootstrap import Services
from tailorhub.common.errors import DeliveryFailed, NotFound
from tailorhub.services.api.deps import get_services
from tailorhub.services.notification.schemas import DeviceTokenRequest, NotifyRequest
from tailorhub.services.notification.service import NotifyResult

router = APIRouter(tags=["notifications"])


@router.post("/notify")
def notify(req: NotifyRequest, services: Services = Depends(get_services)):
    """Send one push message to a user's registered device."""

    result = services.notifier.notify(req.user_id, req.title, req.body)
    if result is NotifyResult.NO_TOKEN:
        raise NotFound(f"no delivery token for user {req.user_id}")
    if result is NotifyResult.FAILED:
        raise DeliveryFailed("push delivery failed")
    return {"success": True}


@router.put("/users/{user_id}/device-token")
def register_device_token(user_id: str, req: DeviceTokenRequest, services: Services = Depends(get_services)):
    services.notifier.register_token(user_id, req.token)
    return {"success": True}
