# hrms_notify/api/deps.py
from fastapi import Depends, Request

from hrms_notify.container import Services
from hrms_notify.core.roles import RoleRequirement
from hrms_notify.models.account import Account
from hrms_notify.security.gates import authorize


def get_services(request: Request) -> Services:
    return request.app.state.services


async def current_account(request: Request, services: Services = Depends(get_services)) -> Account:
    account = await services.auth_gate.authenticate(request.headers.get("Authorization"))
    request.state.account = account
    return account


def require_role(role: str):
    """Dependency: authenticated and at least `role` in the hierarchy."""
    requirement = RoleRequirement.at_least(role)

    async def dependency(account: Account = Depends(current_account)) -> Account:
        return authorize(account, requirement)

    return dependency


def require_any_role(*roles: str):
    """Dependency: authenticated and holding one of `roles` exactly."""
    requirement = RoleRequirement.one_of(*roles)

    async def dependency(account: Account = Depends(current_account)) -> Account:
        return authorize(account, requirement)

    return dependency
