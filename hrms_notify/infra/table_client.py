# hrms_notify/infra/table_client.py
import logging
from typing import Any, Iterable, List, Optional, Tuple

from azure.data.tables.aio import TableClient, TableServiceClient

from hrms_notify.config import Settings

logger = logging.getLogger(__name__)

# Table Storage caps an entity group transaction at 100 operations
# (all in the same partition).
MAX_BATCH = 100


class Tables:
    """The three async table clients the service works against."""

    def __init__(
        self,
        accounts: TableClient,
        subscriptions: TableClient,
        notifications: TableClient,
        service: Optional[TableServiceClient] = None,
    ):
        self.accounts = accounts
        self.subscriptions = subscriptions
        self.notifications = notifications
        self._service = service

    @classmethod
    async def connect(cls, settings: Settings) -> "Tables":
        if not settings.storage_connection_string:
            raise RuntimeError("AZURE_STORAGE_CONNECTION_STRING is not configured")

        service = TableServiceClient.from_connection_string(
            conn_str=settings.storage_connection_string
        )
        clients = []
        for name in (
            settings.accounts_table,
            settings.subscriptions_table,
            settings.notifications_table,
        ):
            clients.append(await service.create_table_if_not_exists(table_name=name))
            logger.info("table ready: %s", name)
        return cls(*clients, service=service)

    async def close(self) -> None:
        for client in (self.accounts, self.subscriptions, self.notifications):
            await client.close()
        if self._service is not None:
            await self._service.close()


async def query_all(
    table: TableClient,
    query_filter: str,
    select: Optional[List[str]] = None,
    **parameters: Any,
) -> List[dict]:
    """
    Runs a filter with @name placeholders bound from `parameters`; values
    are never formatted into the filter string.
    """
    kwargs: dict = {"parameters": parameters}
    if select:
        kwargs["select"] = select
    return [entity async for entity in table.query_entities(query_filter, **kwargs)]


def chunked(operations: Iterable[Tuple], size: int = MAX_BATCH) -> Iterable[List[Tuple]]:
    batch: List[Tuple] = []
    for op in operations:
        batch.append(op)
        if len(batch) == size:
            yield batch
            batch = []
    if batch:
        yield batch


async def submit_in_batches(table: TableClient, operations: List[Tuple]) -> int:
    """Submits same-partition operations as transactions of up to MAX_BATCH."""
    done = 0
    for batch in chunked(operations):
        await table.submit_transaction(batch)
        done += len(batch)
    return done
