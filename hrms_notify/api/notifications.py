# hrms_notify/api/notifications.py
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status

from hrms_notify.api.deps import current_account, get_services, require_any_role, require_role
from hrms_notify.container import Services
from hrms_notify.core.roles import ADMIN, EMPLOYEE, SUPER_ADMIN, RoleRequirement
from hrms_notify.models.account import Account
from hrms_notify.models.notification import SendNotificationIn
from hrms_notify.security.gates import authorize, require_owner
from hrms_notify.services.fanout import Scope
from hrms_notify.services.notification_store import DEFAULT_PAGE_SIZE, DEFAULT_RETENTION_DAYS

router = APIRouter(prefix="/notifications", tags=["notifications"])

_ANY_ROLE = RoleRequirement.at_least(EMPLOYEE)
_ADMIN = RoleRequirement.at_least(ADMIN)


def _owner_or_admin(account: Account, user_id: str) -> None:
    authorize(account, _ANY_ROLE)
    if account.id != user_id:
        authorize(account, _ADMIN)


@router.get("/user/{user_id}")
async def list_user_notifications(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    account: Account = Depends(current_account),
    services: Services = Depends(get_services),
):
    """
    Newest-first page of a user's notifications, with pagination and the
    unread count. Users see their own; Admin and above may look at anyone's.
    """
    _owner_or_admin(account, user_id)
    result = await services.notifications.list_for_user(user_id, page, limit)
    return result.to_dict()


@router.get("/user/{user_id}/unread-count")
async def unread_count(
    user_id: str,
    account: Account = Depends(current_account),
    services: Services = Depends(get_services),
):
    _owner_or_admin(account, user_id)
    return {"unreadCount": await services.notifications.unread_count(user_id)}


@router.put("/{notification_id}/read")
async def mark_notification_as_read(
    notification_id: str,
    account: Account = Depends(current_account),
    services: Services = Depends(get_services),
):
    """
    Marks one of the caller's notifications as read. Someone else's
    notification answers 404, same as one that does not exist.
    """
    notification = await services.notifications.mark_read(notification_id, account.id)
    return {"message": "Notification marked as read", "notification": notification.to_dict()}


@router.put("/user/{user_id}/read-all")
async def mark_all_as_read(
    user_id: str,
    account: Account = Depends(current_account),
    services: Services = Depends(get_services),
):
    authorize(account, _ANY_ROLE)
    require_owner(account, user_id)
    updated = await services.notifications.mark_all_read(user_id)
    return {"message": "All notifications marked as read", "updated": updated}


@router.delete("/cleanup")
async def cleanup_old_notifications(
    days: int = Query(DEFAULT_RETENTION_DAYS, ge=0),
    _: Account = Depends(require_role(ADMIN)),
    services: Services = Depends(get_services),
):
    deleted = await services.notifications.cleanup(days)
    return {"message": f"Deleted {deleted} old notifications", "deleted": deleted}


@router.post("/send", status_code=status.HTTP_202_ACCEPTED)
async def send_notification(
    body: SendNotificationIn,
    background_tasks: BackgroundTasks,
    caller: Account = Depends(require_role(ADMIN)),
    services: Services = Depends(get_services),
):
    """
    Manual fan-out (announcements, tests). Without userId it goes to every
    active account. Delivery runs after the response is sent.
    """
    scope = Scope.single(body.userId) if body.userId else Scope.all_active()
    background_tasks.add_task(
        services.fanout.notify_event,
        scope,
        body.type,
        body.title,
        body.message,
        body.data or {},
        url=body.url,
    )
    return {
        "ok": True,
        "scope": "user" if body.userId else "all",
        "sentBy": caller.id,
    }


@router.get("/debug/consumer-status")
async def debug_consumer_status(
    request: Request,
    _: Account = Depends(require_any_role(ADMIN, SUPER_ADMIN)),
):
    """
    State of the Service Bus consumer:
    - startedAt / lastMessageAt
    - lastError (if any)
    - processed / deadLettered counters
    - queue and whether a connection string is configured
    """
    return request.app.state.consumer.status()
