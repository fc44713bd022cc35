# hrms_notify/infra/account_repository.py
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from azure.data.tables import UpdateMode
from azure.data.tables.aio import TableClient

from hrms_notify.core.exceptions import Conflict, NotFound
from hrms_notify.infra.table_client import query_all
from hrms_notify.models.account import Account, AccountStatus

PARTITION = "account"


def _to_entity(account: Account) -> dict:
    return {
        "PartitionKey": PARTITION,
        "RowKey": account.id,
        "email": account.email,
        "passwordHash": account.password_hash,
        "role": account.role,
        "status": account.status.value,
        "firstName": account.first_name,
        "lastName": account.last_name,
        "createdAt": account.created_at,
    }


def _from_entity(entity: dict) -> Account:
    return Account(
        id=entity["RowKey"],
        email=entity.get("email", ""),
        password_hash=entity.get("passwordHash", ""),
        role=entity.get("role", ""),
        status=entity.get("status", AccountStatus.ACTIVE.value),
        first_name=entity.get("firstName", ""),
        last_name=entity.get("lastName", ""),
        created_at=entity.get("createdAt"),
    )


class AccountRepository:
    def __init__(self, table: TableClient):
        self.table = table

    async def get(self, account_id: str) -> Optional[Account]:
        if not account_id:
            return None
        try:
            entity = await self.table.get_entity(partition_key=PARTITION, row_key=account_id)
        except ResourceNotFoundError:
            return None
        return _from_entity(entity)

    async def find_by_email(self, email: str) -> Optional[Account]:
        rows = await query_all(
            self.table,
            "PartitionKey eq @pk and email eq @email",
            pk=PARTITION,
            email=email.strip().lower(),
        )
        return _from_entity(rows[0]) if rows else None

    async def list_active(self) -> List[Account]:
        rows = await query_all(
            self.table,
            "PartitionKey eq @pk and status eq @status",
            pk=PARTITION,
            status=AccountStatus.ACTIVE.value,
        )
        return [_from_entity(row) for row in rows]

    async def create(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: str,
    ) -> Account:
        email = email.strip().lower()
        if await self.find_by_email(email) is not None:
            raise Conflict("Email already registered")

        account = Account(
            id=uuid.uuid4().hex,
            email=email,
            password_hash=password_hash,
            role=role,
            first_name=first_name,
            last_name=last_name,
            created_at=datetime.now(timezone.utc),
        )
        try:
            await self.table.create_entity(entity=_to_entity(account))
        except ResourceExistsError:
            raise Conflict("Account already exists")
        return account

    async def update_fields(self, account_id: str, **fields) -> Account:
        entity = {"PartitionKey": PARTITION, "RowKey": account_id, **fields}
        try:
            await self.table.update_entity(entity=entity, mode=UpdateMode.MERGE)
        except ResourceNotFoundError:
            raise NotFound("User not found")
        account = await self.get(account_id)
        if account is None:
            raise NotFound("User not found")
        return account
