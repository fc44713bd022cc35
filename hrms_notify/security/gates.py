# hrms_notify/security/gates.py
"""
Authentication resolves a bearer token to a live account; authorization
checks that account's role against a RoleRequirement. Both are read-only.
"""
from typing import Optional

from hrms_notify.config import Settings
from hrms_notify.core.exceptions import Forbidden, Unauthenticated, ValidationFailed
from hrms_notify.core.roles import RoleRequirement, can_grant, is_known_role
from hrms_notify.infra.account_repository import AccountRepository
from hrms_notify.models.account import Account
from hrms_notify.security.jwt_utils import ACCESS, bearer_token, decode_token


class AuthenticationGate:
    def __init__(self, accounts: AccountRepository, settings: Settings):
        self.accounts = accounts
        self.settings = settings

    async def authenticate(self, authorization_header: Optional[str]) -> Account:
        return await self.resolve_token(bearer_token(authorization_header))

    async def resolve_token(self, token: str, token_type: str = ACCESS) -> Account:
        claims = decode_token(token, self.settings, token_type)
        account = await self.accounts.get(str(claims["sub"]))
        # a deleted account looks exactly like a missing one
        if account is None or account.is_deleted:
            raise Unauthenticated("User not found")
        return account


def authorize(account: Optional[Account], requirement: RoleRequirement) -> Account:
    if account is None:
        raise Unauthenticated("Not authenticated")
    if not requirement.allows(account.role):
        raise Forbidden(f"Forbidden: requires role {requirement.describe()}")
    return account


def require_owner(account: Account, owner_id: str) -> None:
    """Ownership check; layered on top of role authorization, never instead of it."""
    if account.id != owner_id:
        raise Forbidden("Forbidden: not the owner of this resource")


def authorize_grant(caller: Account, target_role: str) -> None:
    if not is_known_role(target_role):
        raise ValidationFailed(f"Unknown role: {target_role}")
    if not can_grant(caller.role, target_role):
        raise Forbidden(f"{caller.role or 'This account'} cannot assign the {target_role} role")
