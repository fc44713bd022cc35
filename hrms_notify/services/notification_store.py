# hrms_notify/services/notification_store.py
"""
Durable per-recipient notification records in Table Storage.

Layout:
  PartitionKey = recipient account id
  RowKey       = <inverted microsecond timestamp>-<random hex>

Table Storage returns a partition sorted by RowKey, so the inverted
timestamp makes a plain partition scan newest-first.
"""
import asyncio
import json
import logging
import uuid
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from azure.core.exceptions import ResourceNotFoundError
from azure.data.tables import UpdateMode
from azure.data.tables.aio import TableClient

from hrms_notify.core.exceptions import NotFound, ServerFault, ValidationFailed
from hrms_notify.infra.account_repository import AccountRepository
from hrms_notify.infra.table_client import query_all, submit_in_batches
from hrms_notify.models.account import Account
from hrms_notify.models.notification import Notification, NotificationPage

logger = logging.getLogger(__name__)

_MAX_MICROS = 10 ** 18
DEFAULT_PAGE_SIZE = 20
DEFAULT_RETENTION_DAYS = 30


def _row_key(micros: int) -> str:
    return f"{_MAX_MICROS - micros:019d}-{uuid.uuid4().hex}"


def _from_entity(entity: dict) -> Notification:
    raw = entity.get("data")
    if isinstance(raw, str) and raw:
        data = json.loads(raw)
    else:
        data = raw or {}
    return Notification(
        id=entity["RowKey"],
        recipient=entity["PartitionKey"],
        type=entity["type"],
        title=entity["title"],
        message=entity["message"],
        data=data,
        read=bool(entity.get("read", False)),
        read_at=entity.get("readAt"),
        created_at=entity["createdAt"],
    )


class NotificationStore:
    def __init__(self, table: TableClient, accounts: AccountRepository):
        self.table = table
        self.accounts = accounts
        self._last_micros = 0

    def _next_micros(self, created_at: datetime) -> int:
        # strictly increasing, so records from this process keep insertion order
        micros = max(int(created_at.timestamp() * 1_000_000), self._last_micros + 1)
        self._last_micros = micros
        return micros

    def _new_entity(
        self,
        recipient: str,
        noti_type: str,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]],
        created_at: datetime,
    ) -> dict:
        return {
            "PartitionKey": recipient,
            "RowKey": _row_key(self._next_micros(created_at)),
            "type": noti_type,
            "title": title,
            "message": message,
            "data": json.dumps(data or {}, default=str),
            "read": False,
            "createdAt": created_at,
        }

    async def create_for_user(
        self,
        recipient: str,
        noti_type: str,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        entity = self._new_entity(
            recipient, noti_type, title, message, data, datetime.now(timezone.utc)
        )
        await self.table.create_entity(entity=entity)
        return _from_entity(entity)

    async def create_for_accounts(
        self,
        accounts: Sequence[Account],
        noti_type: str,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> int:
        """
        One record per account. Every insert is attempted; if any failed,
        ServerFault is raised once all of them have settled.
        """
        created_at = datetime.now(timezone.utc)
        entities = [
            self._new_entity(a.id, noti_type, title, message, data, created_at)
            for a in accounts
        ]
        # each recipient is its own partition, so these cannot share a transaction
        results = await asyncio.gather(
            *(self.table.create_entity(entity=e) for e in entities),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            logger.warning(
                "%d of %d %s notifications were not stored: %r",
                len(failures), len(entities), noti_type, failures[0],
            )
            raise ServerFault(
                f"{len(failures)} of {len(entities)} notifications could not be stored"
            )
        return len(entities)

    async def create_for_all_active_users(
        self,
        noti_type: str,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> int:
        active = await self.accounts.list_active()
        return await self.create_for_accounts(active, noti_type, title, message, data)

    async def list_for_user(
        self, recipient: str, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE
    ) -> NotificationPage:
        if page < 1 or page_size < 1:
            raise ValidationFailed("page and limit must be positive")

        # a key-only scan gives both counts and the page boundaries;
        # full entities are read for the requested page only
        index = await query_all(
            self.table, "PartitionKey eq @pk", select=["RowKey", "read"], pk=recipient
        )
        start = (page - 1) * page_size
        window = index[start:start + page_size]
        rows: List[dict] = []
        if window:
            rows = await query_all(
                self.table,
                "PartitionKey eq @pk and RowKey ge @first and RowKey le @last",
                pk=recipient,
                first=window[0]["RowKey"],
                last=window[-1]["RowKey"],
            )
        return NotificationPage(
            notifications=[_from_entity(r) for r in rows],
            page=page,
            limit=page_size,
            total=len(index),
            unread_count=sum(1 for r in index if not r.get("read", False)),
        )

    async def unread_count(self, recipient: str) -> int:
        rows = await query_all(
            self.table,
            "PartitionKey eq @pk and read eq @read",
            select=["RowKey"],
            pk=recipient,
            read=False,
        )
        return len(rows)

    async def mark_read(self, notification_id: str, recipient: str) -> Notification:
        # the recipient is the partition key: another user's id simply isn't found
        try:
            entity = await self.table.get_entity(partition_key=recipient, row_key=notification_id)
        except ResourceNotFoundError:
            raise NotFound("Notification not found")

        if entity.get("read"):
            return _from_entity(entity)

        read_at = datetime.now(timezone.utc)
        await self.table.update_entity(
            entity={
                "PartitionKey": recipient,
                "RowKey": notification_id,
                "read": True,
                "readAt": read_at,
            },
            mode=UpdateMode.MERGE,
        )
        entity = dict(entity, read=True, readAt=read_at)
        return _from_entity(entity)

    async def mark_all_read(self, recipient: str) -> int:
        rows = await query_all(
            self.table,
            "PartitionKey eq @pk and read eq @read",
            select=["PartitionKey", "RowKey"],
            pk=recipient,
            read=False,
        )
        read_at = datetime.now(timezone.utc)
        operations = [
            (
                "update",
                {
                    "PartitionKey": row["PartitionKey"],
                    "RowKey": row["RowKey"],
                    "read": True,
                    "readAt": read_at,
                },
                {"mode": UpdateMode.MERGE},
            )
            for row in rows
        ]
        return await submit_in_batches(self.table, operations)

    async def cleanup(self, older_than_days: int = DEFAULT_RETENTION_DAYS) -> int:
        """Deletes read records created before now - older_than_days."""
        if older_than_days < 0:
            raise ValidationFailed("days must not be negative")

        cutoff = datetime.now(timezone.utc) - timedelta(days=older_than_days)
        rows = await query_all(
            self.table,
            "read eq @read and createdAt lt @cutoff",
            select=["PartitionKey", "RowKey"],
            read=True,
            cutoff=cutoff,
        )

        by_partition: Dict[str, List[dict]] = defaultdict(list)
        for row in rows:
            by_partition[row["PartitionKey"]].append(row)

        deleted = 0
        for partition_rows in by_partition.values():
            deleted += await submit_in_batches(
                self.table, [("delete", row) for row in partition_rows]
            )
        if deleted:
            logger.info("cleanup removed %d read notifications older than %d days", deleted, older_than_days)
        return deleted
