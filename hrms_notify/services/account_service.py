# hrms_notify/services/account_service.py
import logging

from hrms_notify.config import Settings
from hrms_notify.core.exceptions import NotFound, Unauthenticated
from hrms_notify.infra.account_repository import AccountRepository
from hrms_notify.infra.subscription_repository import SubscriptionRepository
from hrms_notify.models.account import Account, AccountCreateIn, AccountStatus
from hrms_notify.security.gates import AuthenticationGate, authorize_grant
from hrms_notify.security.jwt_utils import ACCESS, REFRESH, create_token
from hrms_notify.security.passwords import hash_password, verify_password
from hrms_notify.services.realtime_bus import RealtimeBus

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class AccountService:
    def __init__(
        self,
        accounts: AccountRepository,
        subscriptions: SubscriptionRepository,
        gate: AuthenticationGate,
        bus: RealtimeBus,
        settings: Settings,
    ):
        self.accounts = accounts
        self.subscriptions = subscriptions
        self.gate = gate
        self.bus = bus
        self.settings = settings

    def _tokens(self, account: Account) -> dict:
        return {
            "token": create_token(account.id, self.settings, ACCESS),
            "refreshToken": create_token(account.id, self.settings, REFRESH),
            "role": account.role,
            "userId": account.id,
            "firstName": account.first_name,
            "lastName": account.last_name,
        }

    async def login(self, email: str, password: str) -> dict:
        account = await self.accounts.find_by_email(email)
        # same answer for unknown email, bad password and deleted account
        if account is None or account.is_deleted:
            raise Unauthenticated(INVALID_CREDENTIALS)
        if not verify_password(password, account.password_hash):
            raise Unauthenticated(INVALID_CREDENTIALS)
        return self._tokens(account)

    async def refresh(self, refresh_token: str) -> dict:
        account = await self.gate.resolve_token(refresh_token, REFRESH)
        return {"token": create_token(account.id, self.settings, ACCESS)}

    async def create_account(self, caller: Account, body: AccountCreateIn) -> Account:
        authorize_grant(caller, body.role)
        account = await self.accounts.create(
            email=body.email,
            password_hash=hash_password(body.password),
            first_name=body.firstName,
            last_name=body.lastName,
            role=body.role,
        )
        logger.info("%s created account %s (%s)", caller.id, account.id, account.role)
        return account

    async def change_role(self, caller: Account, target_id: str, role: str) -> Account:
        authorize_grant(caller, role)
        target = await self.accounts.get(target_id)
        if target is None or target.is_deleted:
            raise NotFound("User not found")
        # demoting someone who sits above you is a grant of their tier too
        authorize_grant(caller, target.role)
        account = await self.accounts.update_fields(target_id, role=role)
        logger.info("%s changed role of %s to %s", caller.id, target_id, role)
        return account

    async def change_status(self, caller: Account, target_id: str, status: AccountStatus) -> Account:
        target = await self.accounts.get(target_id)
        if target is None or target.is_deleted:
            raise NotFound("User not found")
        authorize_grant(caller, target.role)
        account = await self.accounts.update_fields(target_id, status=status.value)

        if status == AccountStatus.DELETED:
            removed = await self.subscriptions.remove_all(target_id)
            closed = await self.bus.close_room(target_id)
            logger.info(
                "account %s deleted: %d push subscriptions removed, %d sockets closed",
                target_id, removed, closed,
            )
        return account
