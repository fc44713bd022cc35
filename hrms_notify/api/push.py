# hrms_notify/api/push.py
from fastapi import APIRouter, Depends, status

from hrms_notify.api.deps import current_account, get_services
from hrms_notify.container import Services
from hrms_notify.models.account import Account
from hrms_notify.models.push_subscription import PushSubscriptionIn, UnsubscribeIn

router = APIRouter(prefix="/push", tags=["push"])


@router.get("/vapid-public-key")
async def vapid_public_key(services: Services = Depends(get_services)):
    """Application server key the browser passes to pushManager.subscribe()."""
    return {
        "publicKey": services.settings.vapid_public_key,
        "enabled": services.settings.push_enabled,
    }


@router.post("/subscribe", status_code=status.HTTP_201_CREATED)
async def subscribe(
    body: PushSubscriptionIn,
    account: Account = Depends(current_account),
    services: Services = Depends(get_services),
):
    sub = await services.subscriptions.add(account.id, body)
    return {"message": "Subscribed", "endpoint": sub.endpoint}


@router.delete("/subscribe")
async def unsubscribe(
    body: UnsubscribeIn,
    account: Account = Depends(current_account),
    services: Services = Depends(get_services),
):
    await services.subscriptions.remove(account.id, body.endpoint)
    return {"message": "Unsubscribed"}


@router.delete("/subscriptions")
async def unsubscribe_all(
    account: Account = Depends(current_account),
    services: Services = Depends(get_services),
):
    removed = await services.subscriptions.remove_all(account.id)
    return {"message": "Unsubscribed from all devices", "removed": removed}
