# hrms_notify/infra/subscription_repository.py
import hashlib
from datetime import datetime, timezone
from typing import List

from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from azure.data.tables.aio import TableClient

from hrms_notify.infra.table_client import query_all, submit_in_batches
from hrms_notify.models.push_subscription import (
    PushKeys,
    PushSubscription,
    PushSubscriptionIn,
)


def endpoint_key(endpoint: str) -> str:
    # endpoints are URLs; '/' and '?' are not allowed in a RowKey
    return hashlib.sha256(endpoint.encode("utf-8")).hexdigest()


def _from_entity(entity: dict) -> PushSubscription:
    return PushSubscription(
        account_id=entity["PartitionKey"],
        endpoint=entity["endpoint"],
        keys=PushKeys(p256dh=entity["p256dh"], auth=entity["auth"]),
        created_at=entity.get("createdAt"),
    )


class SubscriptionRepository:
    """
    Push subscriptions keyed by (account id, endpoint). Adding and removing
    are single keyed writes, so concurrent (un)subscribe calls never lose
    each other's changes.
    """

    def __init__(self, table: TableClient):
        self.table = table

    async def add(self, account_id: str, sub: PushSubscriptionIn) -> PushSubscription:
        entity = {
            "PartitionKey": account_id,
            "RowKey": endpoint_key(sub.endpoint),
            "endpoint": sub.endpoint,
            "p256dh": sub.keys.p256dh,
            "auth": sub.keys.auth,
            "createdAt": datetime.now(timezone.utc),
        }
        try:
            await self.table.create_entity(entity=entity)
        except ResourceExistsError:
            # same endpoint registered again: keep the original
            existing = await self.table.get_entity(
                partition_key=account_id, row_key=entity["RowKey"]
            )
            return _from_entity(existing)
        return _from_entity(entity)

    async def list_for(self, account_id: str) -> List[PushSubscription]:
        rows = await query_all(self.table, "PartitionKey eq @pk", pk=account_id)
        return [_from_entity(row) for row in rows]

    async def remove(self, account_id: str, endpoint: str) -> bool:
        try:
            await self.table.delete_entity(
                partition_key=account_id, row_key=endpoint_key(endpoint)
            )
        except ResourceNotFoundError:
            return False
        return True

    async def remove_all(self, account_id: str) -> int:
        rows = await query_all(
            self.table, "PartitionKey eq @pk", select=["PartitionKey", "RowKey"], pk=account_id
        )
        return await submit_in_batches(self.table, [("delete", row) for row in rows])
