# hrms_notify/api/auth.py
from fastapi import APIRouter, Depends

from hrms_notify.api.deps import get_services
from hrms_notify.container import Services
from hrms_notify.models.account import LoginIn, RefreshIn

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login")
async def login(body: LoginIn, services: Services = Depends(get_services)):
    return await services.account_service.login(body.email, body.password)


@router.post("/refresh")
async def refresh(body: RefreshIn, services: Services = Depends(get_services)):
    return await services.account_service.refresh(body.refreshToken)
