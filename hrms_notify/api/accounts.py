# hrms_notify/api/accounts.py
from fastapi import APIRouter, Depends, status

from hrms_notify.api.deps import current_account, get_services, require_role
from hrms_notify.container import Services
from hrms_notify.core.roles import ADMIN
from hrms_notify.models.account import (
    Account,
    AccountCreateIn,
    RoleChangeIn,
    StatusChangeIn,
)

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.get("/me")
async def me(account: Account = Depends(current_account)):
    return account.to_dict()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_account(
    body: AccountCreateIn,
    caller: Account = Depends(require_role(ADMIN)),
    services: Services = Depends(get_services),
):
    account = await services.account_service.create_account(caller, body)
    return {"message": "User created", "user": account.to_dict()}


@router.put("/{account_id}/role")
async def change_role(
    account_id: str,
    body: RoleChangeIn,
    caller: Account = Depends(require_role(ADMIN)),
    services: Services = Depends(get_services),
):
    account = await services.account_service.change_role(caller, account_id, body.role)
    return {"message": "Role updated", "user": account.to_dict()}


@router.put("/{account_id}/status")
async def change_status(
    account_id: str,
    body: StatusChangeIn,
    caller: Account = Depends(require_role(ADMIN)),
    services: Services = Depends(get_services),
):
    account = await services.account_service.change_status(caller, account_id, body.status)
    return {"message": "Status updated", "user": account.to_dict()}
